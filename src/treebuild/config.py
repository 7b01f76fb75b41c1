# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple


DEFAULT_MANIFEST_NAME = "package.json"
DEFAULT_EXCLUDE_DIRS = ("node_modules",)


def default_concurrency() -> int:
    return os.cpu_count() or 2


@dataclass(frozen=True)
class Options:
    """
    Process-wide settings, fixed once at startup.

    concurrency is the number of lanes (K) every bounded queue gets unless a
    caller passes its own.
    """
    concurrency: int = 0
    verbose: bool = False
    manifest_name: str = DEFAULT_MANIFEST_NAME
    exclude_dirs: Tuple[str, ...] = DEFAULT_EXCLUDE_DIRS

    def __post_init__(self) -> None:
        if self.concurrency == 0:
            object.__setattr__(self, "concurrency", default_concurrency())
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")


# Global options instance (set by CLI)
_options: Optional[Options] = None


def get_options() -> Options:
    """Get the global options, creating defaults on first use."""
    global _options
    if _options is None:
        _options = Options()
    return _options


def set_options(options: Options) -> None:
    """Set the global options."""
    global _options
    _options = options
