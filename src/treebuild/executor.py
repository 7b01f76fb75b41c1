# executor.py
from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional

from .model import ExecutionResult
from .ui.console import get_console

# Keep the tail of captured output; enough to diagnose without flooding the log.
OUTPUT_TAIL = 4000


def execute(
    command: str,
    cwd: str | Path,
    env: Optional[Dict[str, str]] = None,
    prefix: Optional[str] = None,
) -> ExecutionResult:
    """
    Run a shell command and report the outcome as data.

    A non-zero exit or a failure to spawn sets `error` on the result; the
    failure is also printed with `prefix` (usually the colored unit name).
    Nothing is raised for a failing command.
    """
    full_env = os.environ.copy()
    full_env.update(env or {})

    try:
        proc = subprocess.run(
            command,
            shell=True,
            cwd=str(cwd),
            env=full_env,
            text=True,
            capture_output=True,
        )
    except OSError as e:
        reason = f"cannot run '{command}': {e}"
        get_console().print_command_failure(prefix or str(cwd), reason)
        return ExecutionResult(command=command, error=reason)

    result = ExecutionResult(
        command=command,
        exit_code=proc.returncode,
        stdout=proc.stdout[-OUTPUT_TAIL:],
        stderr=proc.stderr[-OUTPUT_TAIL:],
    )
    if proc.returncode != 0:
        result.error = f"'{command}' exited with code {proc.returncode}"
        get_console().print_command_failure(
            prefix or str(cwd),
            result.error,
            output=result.stderr or result.stdout,
        )
    return result


def remove_tree(path: str | Path, prefix: Optional[str] = None) -> ExecutionResult:
    """Delete a directory tree. A directory that is already gone is not an error."""
    command = f"rimraf {path}"
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        reason = f"cannot remove {path}: {e.strerror or e}"
        get_console().print_command_failure(prefix or str(path), reason)
        return ExecutionResult(command=command, error=reason)
    return ExecutionResult(command=command, exit_code=0)


def copy_file(src: str | Path, dst: str | Path) -> None:
    shutil.copyfile(src, dst)


def remove_file(path: str | Path) -> None:
    Path(path).unlink()
