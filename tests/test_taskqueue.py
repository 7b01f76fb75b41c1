"""Tests for the bounded task queue and the progress reporter."""

import random
import re
import threading
import time

import pytest

from treebuild.config import Options, set_options
from treebuild.taskqueue import BoundedTaskQueue, ProgressReporter, timed


class InFlight:
    """Counts operations currently running and remembers the peak."""

    def __init__(self):
        self.lock = threading.Lock()
        self.current = 0
        self.peak = 0

    def op(self, item):
        with self.lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
        time.sleep(random.uniform(0.001, 0.01))
        with self.lock:
            self.current -= 1
        return item


class TestBoundedTaskQueue:

    @pytest.mark.parametrize("k", [1, 2, 3, 5])
    def test_never_more_than_k_in_flight(self, k):
        counter = InFlight()
        with BoundedTaskQueue(k) as q:
            results = q.run_all(range(25), counter.op)

        assert results == list(range(25))
        assert 1 <= counter.peak <= k

    def test_uses_all_lanes(self):
        barrier = threading.Barrier(3, timeout=5)

        def op(item):
            barrier.wait()
            return item

        with BoundedTaskQueue(3) as q:
            assert q.run_all([1, 2, 3], op) == [1, 2, 3]

    def test_results_in_input_order(self):
        random.seed(7)
        delays = {i: random.uniform(0, 0.02) for i in range(30)}

        def op(item):
            time.sleep(delays[item])
            return f"result-{item}"

        with BoundedTaskQueue(6) as q:
            results = q.run_all(list(range(30)), op)

        assert results == [f"result-{i}" for i in range(30)]

    def test_submit_returns_future_per_item(self):
        with BoundedTaskQueue(2) as q:
            futures = [q.submit(i, lambda x: x * 10) for i in range(5)]
            assert [f.result(timeout=5) for f in futures] == [0, 10, 20, 30, 40]

    def test_failure_only_rejects_its_own_future(self):
        def op(item):
            if item == 2:
                raise RuntimeError("unit 2 broke")
            return item

        with BoundedTaskQueue(2) as q:
            futures = [q.submit(i, op) for i in range(5)]
            with pytest.raises(RuntimeError, match="unit 2 broke"):
                futures[2].result(timeout=5)
            assert [futures[i].result(timeout=5) for i in (0, 1, 3, 4)] == [0, 1, 3, 4]

    def test_run_all_reraises_after_every_task_finished(self):
        finished = []
        lock = threading.Lock()

        def op(item):
            if item == 0:
                raise ValueError("first")
            time.sleep(0.01)
            with lock:
                finished.append(item)
            return item

        with BoundedTaskQueue(2) as q:
            with pytest.raises(ValueError, match="first"):
                q.run_all(range(6), op)

        assert sorted(finished) == [1, 2, 3, 4, 5]

    def test_tasks_start_in_submission_order(self):
        started = []
        lock = threading.Lock()

        def op(item):
            with lock:
                started.append(item)
            return item

        with BoundedTaskQueue(1) as q:
            q.run_all(range(10), op)

        assert started == list(range(10))

    def test_default_concurrency_comes_from_options(self):
        set_options(Options(concurrency=3))
        q = BoundedTaskQueue()
        try:
            assert q.concurrency == 3
        finally:
            q.shutdown()

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            BoundedTaskQueue(0)

    def test_empty_input(self):
        with BoundedTaskQueue(2) as q:
            assert q.run_all([], lambda x: x) == []


class TestProgressReporter:

    def test_counter_has_no_gaps_or_duplicates(self):
        random.seed(11)
        lines = []
        n = 40
        reporter = ProgressReporter(n, lambda item: f"unit-{item}", sink=lines.append)

        def op(item):
            time.sleep(random.uniform(0, 0.005))
            return item

        with BoundedTaskQueue(8) as q:
            results = q.run_all(range(n), reporter.wrap(op))

        assert results == list(range(n))
        assert reporter.completed == n
        indices = [int(re.match(r"\[(\d+)/40\]", line).group(1)) for line in lines]
        assert indices == list(range(1, n + 1))

    def test_line_format(self):
        lines = []
        reporter = ProgressReporter(1, lambda item: f"{item}: build", sink=lines.append)

        assert reporter.wrap(lambda item: item.upper())("pkg") == "PKG"
        assert len(lines) == 1
        assert re.fullmatch(r"\[1/1\] pkg: build - \d+\.\d{3}s", lines[0])

    def test_raising_operation_is_not_counted(self):
        lines = []
        reporter = ProgressReporter(2, str, sink=lines.append)

        def op(item):
            raise KeyError(item)

        with pytest.raises(KeyError):
            reporter.wrap(op)("x")
        assert reporter.completed == 0
        assert lines == []

    def test_timed_without_label_returns_operation(self):
        def op(item):
            return item

        assert timed(op, 3, None) is op

    def test_default_sink_is_console(self, capsys):
        wrapped = timed(lambda item: item, 1, lambda item: f"label-{item}")
        wrapped("a")
        out = capsys.readouterr().out
        assert "[1/1] label-a - " in out
