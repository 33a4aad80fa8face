"""Process execution exports."""

from .execution_contracts import (
    ExecutionFailedError,
    ExecutionOutcome,
    ExecutionRequest,
    ExecutionTimeoutError,
    OutputObserver,
    OutputStream,
)
from .process_runner import SPAWN_FAILURE_EXIT_CODE, ProcessRunner

__all__ = [
    "SPAWN_FAILURE_EXIT_CODE",
    "ExecutionFailedError",
    "ExecutionOutcome",
    "ExecutionRequest",
    "ExecutionTimeoutError",
    "OutputObserver",
    "OutputStream",
    "ProcessRunner",
]
