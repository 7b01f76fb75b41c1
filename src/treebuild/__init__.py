
from .model import DiscoveryError, ExecutionResult, Unit
from .registry import Selection, Units
from .runner import clean, for_each, reduce_to_success, run_and_reduce, run_parallel, run_sequential
from .taskqueue import BoundedTaskQueue, ProgressReporter

__all__ = [
    "BoundedTaskQueue",
    "DiscoveryError",
    "ExecutionResult",
    "ProgressReporter",
    "Selection",
    "Unit",
    "Units",
    "clean",
    "for_each",
    "reduce_to_success",
    "run_and_reduce",
    "run_parallel",
    "run_sequential",
]
