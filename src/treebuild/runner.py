# runner.py
from __future__ import annotations

import os
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from . import executor
from .model import ExecutionResult, Unit
from .taskqueue import BoundedTaskQueue, timed
from .ui.console import get_console

R = TypeVar("R")


# ----------------------------------------------------------------------
# Execution modes
# ----------------------------------------------------------------------

def run_parallel(
    units: Sequence[Unit],
    operation: Callable[[Unit], R],
    label: Optional[Callable[[Unit], str]] = None,
    concurrency: Optional[int] = None,
) -> List[R]:
    """
    Run operation on every unit through a bounded queue.

    Every unit is attempted even if some raise; the first exception to
    surface is re-raised after all of them finished (see BoundedTaskQueue).
    Results are in unit order.
    """
    units = list(units)
    op = timed(operation, len(units), label)
    with BoundedTaskQueue(concurrency) as q:
        return q.run_all(units, op)


def run_sequential(units: Iterable[Unit], operation: Callable[[Unit], R]) -> List[R]:
    """Run operation on each unit in order, one finishing before the next starts."""
    results: List[R] = []
    for unit in units:
        results.append(operation(unit))
    return results


def for_each(
    units: Sequence[Unit],
    operation: Callable[[Unit], R],
    parallel: bool,
    message: Optional[str] = None,
    concurrency: Optional[int] = None,
) -> List[R]:
    if not parallel:
        return run_sequential(units, operation)
    label = (lambda unit: f"{unit.name_colored}: {message}") if message else None
    return run_parallel(units, operation, label=label, concurrency=concurrency)


# ----------------------------------------------------------------------
# Reduction
# ----------------------------------------------------------------------

def reduce_to_success(results: Iterable[ExecutionResult]) -> bool:
    """
    True only if no result carries an error. An empty batch succeeds.

    Every result is inspected, failed or not.
    """
    failed = [r for r in results if r.error]
    return not failed


def _guarded(operation: Callable[[Unit], ExecutionResult]) -> Callable[[Unit], ExecutionResult]:
    """Turn an exception raised by operation into a failed ExecutionResult."""
    def run(unit: Unit) -> ExecutionResult:
        try:
            return operation(unit)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            get_console().print_command_failure(unit.name_colored, error)
            return ExecutionResult(command=getattr(operation, "__name__", "operation"), error=error)

    return run


def run_and_reduce(
    units: Sequence[Unit],
    operation: Callable[[Unit], ExecutionResult],
    message: Optional[str] = None,
    concurrency: Optional[int] = None,
) -> bool:
    """Run operation on every unit in parallel, never stopping early, and reduce."""
    results = for_each(units, _guarded(operation), parallel=True, message=message, concurrency=concurrency)
    return reduce_to_success(results)


# ----------------------------------------------------------------------
# Script passes
# ----------------------------------------------------------------------

def script_env(unit: Unit) -> dict[str, str]:
    """PATH with the unit's local node_modules/.bin appended."""
    bin_dir = unit.directory / "node_modules" / ".bin"
    return {"PATH": f"{os.environ.get('PATH', '')}{os.pathsep}{bin_dir}"}


def run_script(
    units: Sequence[Unit],
    script: str,
    status: bool = True,
    parallel: bool = True,
    concurrency: Optional[int] = None,
) -> bool:
    """
    Run a named manifest script on every unit that declares it.

    Units without the script are skipped; they are neither attempted nor
    counted in the progress total or the verdict.
    """
    with_script = [u for u in units if u.get_script(script)]

    def exec_script(unit: Unit) -> ExecutionResult:
        command = unit.get_script(script)
        return executor.execute(
            command,
            cwd=unit.directory,
            env=script_env(unit),
            prefix=unit.name_colored,
        )

    if not parallel:
        return reduce_to_success(run_sequential(with_script, _guarded(exec_script)))

    label = (lambda unit: f"{unit.name_colored}: {unit.get_script(script)}") if status else None
    results = run_parallel(with_script, _guarded(exec_script), label=label, concurrency=concurrency)
    return reduce_to_success(results)


def clean(
    units: Sequence[Unit],
    status: bool = True,
    concurrency: Optional[int] = None,
) -> bool:
    """Run every declared `clean` script; True when none failed."""
    return run_script(units, "clean", status=status, parallel=True, concurrency=concurrency)
