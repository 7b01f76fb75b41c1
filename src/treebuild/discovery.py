# discovery.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, List, Optional

from .config import DEFAULT_EXCLUDE_DIRS, DEFAULT_MANIFEST_NAME
from .model import DiscoveryError, Unit
from .ui.console import get_console


def find_manifests(
    root: str | Path,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    exclude: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> List[Path]:
    """
    Recursively collect every manifest file under root.

    Entries are visited in sorted order so repeated runs see the same units
    in the same order. Directories named in `exclude` are not entered, and
    symlinked directories are not followed.

    Raises:
        DiscoveryError: root is missing or a directory cannot be listed
    """
    root_p = Path(root)
    if not root_p.is_dir():
        raise DiscoveryError(path=str(root_p), message="root directory does not exist")

    excluded = set(exclude)
    found: List[Path] = []

    def _walk(directory: Path) -> None:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            raise DiscoveryError(path=str(directory), message=f"cannot list directory: {e.strerror or e}") from e

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if entry.name not in excluded:
                    _walk(Path(entry.path))
            elif entry.is_file() and entry.name == manifest_name:
                found.append(Path(entry.path))

    _walk(root_p)
    return found


def load_unit(manifest_path: str | Path, index: int) -> Optional[Unit]:
    """
    Parse one manifest into a Unit.

    Returns None for a manifest without a name (e.g. a `{"type": "module"}`
    marker under a build output directory); such files are not packages.

    Raises:
        DiscoveryError: the file cannot be read or is not a JSON object
    """
    path = Path(manifest_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DiscoveryError(path=str(path), message=f"cannot read manifest: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise DiscoveryError(path=str(path), message=f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DiscoveryError(path=str(path), message="manifest must be a JSON object")
    name = data.get("name")
    if not isinstance(name, str) or not name:
        get_console().print_verbose(f"Skipping {path}: no package name")
        return None

    unit = Unit(
        name=name,
        version=str(data.get("version") or ""),
        manifest_path=path.resolve(),
        manifest=data,
        index=index,
    )
    get_console().print_verbose(f"Package Loaded: {unit.name_colored}")
    return unit
