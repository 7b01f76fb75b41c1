# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import click


# Display colors, picked by unit index so every unit keeps its color for the run.
PALETTE: Tuple[str, ...] = (
    "red",
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "white",
    "bright_black",
    "bright_red",
    "bright_green",
    "bright_yellow",
    "bright_blue",
    "bright_magenta",
    "bright_cyan",
    "bright_white",
)


@dataclass
class DiscoveryError(Exception):
    """Unreadable root directory or malformed manifest. Aborts discovery."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class ExecutionResult:
    """Outcome of one external action (shell command, directory removal, ...)."""
    command: str
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class Unit:
    """
    One discovered package: its manifest plus the position it was found at.

    Units never change after discovery. Selection flags (matched /
    marked for build) are kept by the registry, keyed by unit name.
    """
    name: str
    version: str
    manifest_path: Path
    manifest: Mapping[str, Any] = field(repr=False, compare=False)
    index: int = 0

    @property
    def directory(self) -> Path:
        return self.manifest_path.parent

    @property
    def color(self) -> str:
        return PALETTE[self.index % len(PALETTE)]

    @property
    def name_colored(self) -> str:
        return click.style(self.name, fg=self.color)

    @property
    def scripts(self) -> Dict[str, str]:
        return dict(self.manifest.get("scripts") or {})

    def get_script(self, name: str) -> Optional[str]:
        return self.scripts.get(name)

    @property
    def dependencies(self) -> List[str]:
        return list(self.manifest.get("dependencies") or {})

    def combined_dependencies(self) -> List[Tuple[str, str]]:
        """(name, version) pairs: runtime dependencies first, then devDependencies."""
        pairs: List[Tuple[str, str]] = []
        for key in ("dependencies", "devDependencies"):
            for dep_name, dep_version in (self.manifest.get(key) or {}).items():
                pairs.append((dep_name, dep_version))
        return pairs
