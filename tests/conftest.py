"""Shared fixtures: fresh global options/console per test and helpers to build units and trees."""

import json
from pathlib import Path
from typing import Callable, Optional

import pytest

from treebuild.config import Options, set_options
from treebuild.model import Unit
from treebuild.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def fresh_globals():
    set_options(Options(concurrency=4))
    set_console(Console())
    yield
    set_options(Options(concurrency=4))
    set_console(Console())


@pytest.fixture()
def make_unit(tmp_path) -> Callable[..., Unit]:
    """Build an in-memory Unit; its directory lives under tmp_path but is not created."""
    counter = {"index": 0}

    def _make(
        name: str,
        scripts: Optional[dict] = None,
        dependencies: Optional[dict] = None,
        dev_dependencies: Optional[dict] = None,
    ) -> Unit:
        manifest = {"name": name, "version": "1.0.0"}
        if scripts is not None:
            manifest["scripts"] = scripts
        if dependencies is not None:
            manifest["dependencies"] = dependencies
        if dev_dependencies is not None:
            manifest["devDependencies"] = dev_dependencies
        unit = Unit(
            name=name,
            version="1.0.0",
            manifest_path=tmp_path / name / "package.json",
            manifest=manifest,
            index=counter["index"],
        )
        counter["index"] += 1
        return unit

    return _make


@pytest.fixture()
def write_manifest(tmp_path) -> Callable[..., Path]:
    """Write a package.json at tmp_path/<rel>/package.json and return its path."""

    def _write(rel: str, manifest) -> Path:
        directory = tmp_path / rel
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        if isinstance(manifest, str):
            path.write_text(manifest)
        else:
            path.write_text(json.dumps(manifest))
        return path

    return _write
