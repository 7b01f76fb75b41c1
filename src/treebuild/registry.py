# registry.py
from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from . import executor, runner
from .config import get_options
from .discovery import find_manifests, load_unit
from .model import ExecutionResult, Unit

NPM_INSTALL_COMMAND = "npm i --no-package-lock --no-shrinkwrap"

# Top-level manifest keys in conventional order; anything else follows alphabetically.
MANIFEST_KEY_ORDER = [
    "name",
    "version",
    "private",
    "description",
    "keywords",
    "homepage",
    "bugs",
    "repository",
    "license",
    "author",
    "contributors",
    "sideEffects",
    "main",
    "module",
    "browser",
    "types",
    "bin",
    "man",
    "files",
    "directories",
    "workspaces",
    "scripts",
    "config",
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
    "bundledDependencies",
    "engines",
    "os",
    "cpu",
    "publishConfig",
]
SORTED_TABLES = {
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
}


# ----------------------------------------------------------------------
# Per-unit operations
# ----------------------------------------------------------------------

def clean_node_modules(unit: Unit) -> ExecutionResult:
    return executor.remove_tree(unit.directory / "node_modules", prefix=unit.name_colored)


def no_hoist_install(unit: Unit, repo_root: str | Path) -> ExecutionResult:
    """
    Install the unit's dependencies in place, using the repo root's .npmrc.

    The .npmrc copy is removed again whether or not the install succeeded.
    """
    root_npmrc = Path(repo_root) / ".npmrc"
    unit_npmrc = unit.directory / ".npmrc"

    executor.copy_file(root_npmrc, unit_npmrc)
    try:
        return executor.execute(NPM_INSTALL_COMMAND, cwd=unit.directory, prefix=unit.name_colored)
    finally:
        executor.remove_file(unit_npmrc)


def sort_manifest(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy with keys in conventional order and dependency tables sorted by name."""
    known = [k for k in MANIFEST_KEY_ORDER if k in manifest]
    rest = sorted(k for k in manifest if k not in MANIFEST_KEY_ORDER)

    out: Dict[str, Any] = {}
    for key in known + rest:
        value = manifest[key]
        if key in SORTED_TABLES and isinstance(value, dict):
            value = {k: value[k] for k in sorted(value)}
        out[key] = value
    return out


def save_manifest(unit: Unit) -> ExecutionResult:
    command = f"write {unit.manifest_path}"
    text = json.dumps(sort_manifest(dict(unit.manifest)), indent=2, ensure_ascii=False) + "\n"
    try:
        unit.manifest_path.write_text(text, encoding="utf-8")
    except OSError as e:
        return ExecutionResult(command=command, error=f"cannot write {unit.manifest_path}: {e.strerror or e}")
    return ExecutionResult(command=command, exit_code=0)


# ----------------------------------------------------------------------
# Selection state
# ----------------------------------------------------------------------

@dataclass
class _Flags:
    matched: bool = False
    mark_for_build: bool = False


class Selection:
    """
    matched / marked-for-build flags per unit.

    Keyed by the Unit value itself, so two packages that share a name (test
    fixtures, copied examples) keep separate flags.

    Flags are only ever set. Setting matched also marks for build.
    """

    def __init__(self) -> None:
        self._flags: Dict[Unit, _Flags] = {}

    def _get(self, unit: Unit) -> _Flags:
        return self._flags.setdefault(unit, _Flags())

    def set_matched(self, unit: Unit) -> None:
        flags = self._get(unit)
        flags.matched = True
        flags.mark_for_build = True

    def set_mark_for_build(self, unit: Unit) -> None:
        self._get(unit).mark_for_build = True

    def is_matched(self, unit: Unit) -> bool:
        flags = self._flags.get(unit)
        return bool(flags and flags.matched)

    def is_marked_for_build(self, unit: Unit) -> bool:
        flags = self._flags.get(unit)
        return bool(flags and flags.mark_for_build)


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------

class Units:
    """All units discovered under the given roots, in discovery order."""

    @classmethod
    def load(cls, dirs: Iterable[str | Path]) -> "Units":
        options = get_options()
        manifests: List[Path] = []
        for d in dirs:
            manifests.extend(find_manifests(d, options.manifest_name, options.exclude_dirs))
        units: List[Unit] = []
        for path in manifests:
            unit = load_unit(path, index=len(units))
            if unit is not None:
                units.append(unit)
        return cls(units)

    def __init__(self, units: Sequence[Unit]):
        self.units = tuple(units)
        self.selection = Selection()
        self._by_name: Dict[str, List[Unit]] = {}
        for u in self.units:
            self._by_name.setdefault(u.name, []).append(u)

    def __iter__(self) -> Iterator[Unit]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def find(self, name: str) -> Optional[Unit]:
        """First unit with this name, in discovery order."""
        same_name = self._by_name.get(name)
        return same_name[0] if same_name else None

    def find_all(self, name: str) -> List[Unit]:
        return list(self._by_name.get(name, ()))

    def select(self, patterns: Optional[Sequence[str]] = None) -> List[Unit]:
        """
        Match units by name glob and mark what they depend on for build.

        No patterns matches everything. Dependencies are followed through
        units in this registry only; a dependency name shared by several
        units marks all of them. Returns the matched units.
        """
        matched = [
            u for u in self.units
            if not patterns or any(fnmatch(u.name, p) for p in patterns)
        ]
        for unit in matched:
            self.selection.set_matched(unit)

        pending = deque(matched)
        while pending:
            unit = pending.popleft()
            for dep_name, _version in unit.combined_dependencies():
                for dep in self._by_name.get(dep_name, ()):
                    if not self.selection.is_marked_for_build(dep):
                        self.selection.set_mark_for_build(dep)
                        pending.append(dep)
        return matched

    def marked(self) -> List[Unit]:
        return [u for u in self.units if self.selection.is_marked_for_build(u)]

    # ---- bulk operations ----

    def clean_node_modules(self) -> bool:
        return runner.run_and_reduce(self.units, clean_node_modules, message="rimraf node_modules")

    def no_hoist_install(self, repo_root: str | Path) -> bool:
        return runner.run_and_reduce(
            self.units,
            lambda unit: no_hoist_install(unit, repo_root),
            message="npm i",
        )

    def save_manifests(self) -> bool:
        return runner.reduce_to_success(runner.run_sequential(self.units, save_manifest))

    def clean(self, status: bool = True) -> bool:
        return runner.clean(self.units, status=status)

    def run_script(self, script: str, parallel: bool = True, status: bool = True) -> bool:
        return runner.run_script(self.marked(), script, status=status, parallel=parallel)
