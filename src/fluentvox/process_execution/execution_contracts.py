"""Contracts shared by the process runner and its callers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class OutputStream(str, Enum):
    """Child output stream a chunk was read from."""

    STDOUT = "stdout"
    STDERR = "stderr"


OutputObserver = Callable[[str, OutputStream], None]


@dataclass(frozen=True)
class ExecutionRequest:
    """One subprocess invocation.

    `timeout_seconds` of zero waits without bound. `environment` holds overrides layered
    on top of the inherited environment.
    """

    command: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float = 0
    on_output: OutputObserver | None = None
    cwd: Path | None = None

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError("command must contain at least one token.")
        if self.timeout_seconds < 0:
            raise ValueError("timeout_seconds must not be negative.")


@dataclass(frozen=True)
class ExecutionOutcome:  # pylint: disable=too-many-instance-attributes
    """Normalized result of one subprocess invocation.

    Captured stdout is kept on failure too.
    """

    command: tuple[str, ...]
    exit_code: int | None
    stdout: str
    stderr: str
    timed_out: bool = False
    timeout_seconds: float = 0
    pid: int | None = None

    @property
    def succeeded(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    @property
    def error_text(self) -> str:
        """Best available failure text: stderr, else stdout."""
        if self.timed_out:
            return f"Process timed out after {_format_seconds(self.timeout_seconds)} seconds"
        stderr = self.stderr.strip()
        if stderr:
            return stderr
        return self.stdout.strip()

    def raise_for_status(self) -> ExecutionOutcome:
        """Return self when the child succeeded, otherwise raise the matching error.

        Raises:
          ExecutionTimeoutError: If the child was killed after the timeout.
          ExecutionFailedError: If the child exited with a non-zero status.
        """
        if self.timed_out:
            raise ExecutionTimeoutError(self.timeout_seconds, outcome=self)
        if self.exit_code != 0:
            raise ExecutionFailedError(self)
        return self


class ExecutionTimeoutError(Exception):
    """Raised when a child process exceeded its allotted wall-clock time."""

    def __init__(self, timeout_seconds: float, *, outcome: ExecutionOutcome | None = None) -> None:
        super().__init__(f"Process timed out after {_format_seconds(timeout_seconds)} seconds")
        self.timeout_seconds = timeout_seconds
        self.outcome = outcome


class ExecutionFailedError(Exception):
    """Raised when a child process exited with a non-zero status."""

    def __init__(self, outcome: ExecutionOutcome) -> None:
        message = outcome.error_text or f"Process exited with code {outcome.exit_code}"
        super().__init__(message)
        self.outcome = outcome

    @property
    def exit_code(self) -> int | None:
        return self.outcome.exit_code


def _format_seconds(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
