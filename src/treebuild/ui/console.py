"""Console output formatting utilities for treebuild."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, verbose: bool = False):
        """
        Initialize console formatter.

        Args:
            verbose: If True, show verbose lines and full stack traces
        """
        self.verbose = verbose

    def print_run_started(self, command: str, unit_count: int, concurrency: int) -> None:
        """Print run start information."""
        print(f"\n{command.upper()} STARTED")
        print(f"Units: {unit_count}")
        print(f"Concurrency: {concurrency}")
        print()

    def print_status(self, line: str) -> None:
        """Print one progress line."""
        print(line, flush=True)

    def print_verbose(self, message: str) -> None:
        """Print message only if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def print_unit(
        self,
        name: str,
        version: str,
        directory: str,
        matched: bool = False,
        marked: bool = False,
    ) -> None:
        """Print one discovered unit for `treebuild list`."""
        flag = "*" if matched else ("+" if marked else " ")
        version_display = f"@{version}" if version else ""
        print(f"{flag} {name}{version_display}  {directory}")

    def print_command_failure(self, prefix: str, reason: str, output: str = "") -> None:
        """
        Print a failed command.

        Args:
            prefix: Colored unit name the command ran for
            reason: One-line failure reason
            output: Captured stderr/stdout, printed as-is
        """
        print(f"ERROR: {prefix}: {reason}", file=sys.stderr)
        if output:
            print(output.rstrip("\n"), file=sys.stderr)

    def print_results(self, title: str, success: bool, elapsed: Optional[float] = None) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print(f"{title}: {'SUCCESS' if success else 'FAILED'}")
        if elapsed is not None:
            print(f"Duration: {elapsed:.3f}s")
        print("=" * 40)

    def print_error(
        self,
        title: str,
        reason: str,
        path: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print a run-level error, e.g. a manifest discovery could not read.

        Args:
            title: What failed (`Discovery failed`)
            reason: Why, one line
            path: File or directory involved, if any
            hint: Command or fix to try next
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        if path:
            print(f"  path:   {path}", file=sys.stderr)
        print(f"  reason: {reason}", file=sys.stderr)
        if hint:
            print(f"Hint: {hint}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in verbose mode."""
        if self.verbose:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)


# Shared by every module that reports; the CLI swaps in a verbose one when asked.
_console = Console()


def get_console() -> Console:
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console
