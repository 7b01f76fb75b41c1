# taskqueue.py
from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, TypeVar

from .config import get_options
from .ui.console import get_console

T = TypeVar("T")
R = TypeVar("R")


class BoundedTaskQueue:
    """
    Runs item operations on a fixed number of lanes.

    All submissions share one FIFO backlog; whenever a lane finishes a task it
    takes the oldest task not yet started. Each submission gets its own
    Future, settled with that item's return value or exception, so a failing
    operation never affects its siblings.

    Use as a context manager; leaving the block waits for every submitted task.
    """

    def __init__(self, concurrency: Optional[int] = None):
        if concurrency is None:
            concurrency = get_options().concurrency
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.concurrency = concurrency
        self._pool = ThreadPoolExecutor(
            max_workers=concurrency,
            thread_name_prefix="treebuild-lane",
        )

    def __enter__(self) -> "BoundedTaskQueue":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)

    def submit(self, item: T, operation: Callable[[T], R]) -> "Future[R]":
        """Queue operation(item). Never blocks."""
        return self._pool.submit(operation, item)

    def run_all(self, items: Iterable[T], operation: Callable[[T], R]) -> List[R]:
        """
        Submit every item and wait for all of them.

        Results come back in input order. If any operation raised, the first
        exception to complete is re-raised once every task has finished;
        nothing is cancelled.
        """
        futures = [self.submit(item, operation) for item in items]

        first_error: Optional[BaseException] = None
        for fut in as_completed(futures):
            exc = fut.exception()
            if exc is not None and first_error is None:
                first_error = exc

        if first_error is not None:
            raise first_error
        return [fut.result() for fut in futures]


class ProgressReporter:
    """
    Wraps operations so each completion prints `[n/total] label - 1.234s`.

    The counter is shared by every wrapped call and only touched under a lock,
    so concurrent completions get distinct, gap-free indices and lines come
    out in completion order.
    """

    def __init__(
        self,
        total: int,
        label: Callable[[T], str],
        sink: Optional[Callable[[str], None]] = None,
    ):
        self.total = total
        self.label = label
        self._sink = sink or get_console().print_status
        self._lock = threading.Lock()
        self._done = 0

    @property
    def completed(self) -> int:
        with self._lock:
            return self._done

    def wrap(self, operation: Callable[[T], R]) -> Callable[[T], R]:
        def timed(item: T) -> R:
            start = time.monotonic()
            result = operation(item)
            elapsed = time.monotonic() - start
            with self._lock:
                self._done += 1
                self._sink(f"[{self._done}/{self.total}] {self.label(item)} - {elapsed:.3f}s")
            return result

        return timed


def timed(
    operation: Callable[[T], R],
    total: int,
    label: Optional[Callable[[T], str]] = None,
    sink: Optional[Callable[[str], None]] = None,
) -> Callable[[T], R]:
    """Decorate operation with progress reporting, or return it untouched when label is None."""
    if label is None:
        return operation
    return ProgressReporter(total, label, sink=sink).wrap(operation)
