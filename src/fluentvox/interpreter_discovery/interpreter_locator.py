"""Discovery and validation of the Python runtime that hosts Chatterbox."""

from __future__ import annotations

import dataclasses
import logging
import os
import re
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from fluentvox.platform_support import OperatingSystem

from .runtime_candidates import (
    PARENT_SEARCH_DEPTH,
    CandidateOrigin,
    ResolvedRuntime,
    RuntimeCandidate,
    iter_candidates,
)

MINIMUM_VERSION = "3.10.0"
PROBE_TIMEOUT_SECONDS = 10

_VERSION_PATTERN = re.compile(r"Python\s+(\d+\.\d+(?:\.\d+)?)")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionQueryResult:
    """Exit status and combined output of `<command> --version`."""

    exit_code: int
    output: str


RuntimeProbe = Callable[[tuple[str, ...]], VersionQueryResult | None]


class RuntimeNotFoundError(Exception):
    """Raised when no interpreter candidate passes the liveness check."""

    def __init__(self, message: str, *, tried: tuple[RuntimeCandidate, ...] = ()) -> None:
        super().__init__(message)
        self.tried = tried


class RuntimeVersionTooLowError(Exception):
    """Raised when the resolved interpreter is older than the supported minimum."""

    def __init__(self, version: str, minimum: str) -> None:
        super().__init__(f"Python {version} is too old. FluentVox requires Python {minimum}+.")
        self.version = version
        self.minimum = minimum


class InterpreterLocator:
    """Finds a runnable interpreter once and reuses it until `reset()`.

    Resolution order: configured override, the active virtual environment, conventional venv
    directories under home and the working directory tree, then the OS default commands.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        python_path: str | None = None,
        *,
        os_kind: OperatingSystem | None = None,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
        cwd: Path | None = None,
        probe: RuntimeProbe | None = None,
        parent_depth: int = PARENT_SEARCH_DEPTH,
    ) -> None:
        self._python_path = python_path
        self._os_kind = os_kind or OperatingSystem.detect()
        self._environ = environ
        self._home = home
        self._cwd = cwd
        self._probe = probe or query_version
        self._parent_depth = parent_depth
        self._resolved: ResolvedRuntime | None = None
        self._version_checked = False

    @property
    def python_path(self) -> str | None:
        return self._python_path

    @property
    def os_kind(self) -> OperatingSystem:
        return self._os_kind

    def candidates(self) -> tuple[RuntimeCandidate, ...]:
        """Every candidate in resolution order, without probing."""
        return tuple(
            iter_candidates(
                self._python_path,
                os_kind=self._os_kind,
                environ=os.environ if self._environ is None else self._environ,
                home=self._home or self._os_kind.home_directory(),
                cwd=self._cwd or Path.cwd(),
                parent_depth=self._parent_depth,
            )
        )

    def resolve(self) -> ResolvedRuntime:
        """Return the cached runtime, probing candidates on first use.

        Raises:
          RuntimeNotFoundError: If no candidate answers `--version` with exit status zero.
        """
        if self._resolved is not None:
            return self._resolved

        tried: list[RuntimeCandidate] = []
        for candidate in self.candidates():
            tried.append(candidate)
            result = self._probe(candidate.command)
            if result is not None and result.exit_code == 0:
                logger.debug("Resolved runtime %s (%s)", candidate.display, candidate.origin.value)
                self._resolved = ResolvedRuntime(
                    command=candidate.command,
                    origin=candidate.origin,
                    version=parse_version(result.output),
                )
                self._version_checked = True
                return self._resolved
            if candidate.origin is CandidateOrigin.OVERRIDE:
                logger.warning(
                    "Configured python_path '%s' is not runnable, searching further",
                    candidate.display,
                )
            else:
                logger.debug("Rejected runtime candidate %s", candidate.display)

        raise RuntimeNotFoundError(
            "Python not found. Please install Python 3.10+ or set python_path in the "
            f"configuration. {self._os_kind.python_install_hint()}",
            tried=tuple(tried),
        )

    def command(self) -> tuple[str, ...]:
        """Argv prefix for invoking the resolved runtime."""
        return self.resolve().command

    def version(self) -> str | None:
        """Detected `X.Y.Z` version of the resolved runtime, or None when unreadable."""
        resolved = self.resolve()
        if resolved.version is None and not self._version_checked:
            result = self._probe(resolved.command)
            version = parse_version(result.output) if result is not None else None
            self._resolved = dataclasses.replace(resolved, version=version)
            self._version_checked = True
        return self._resolved.version if self._resolved is not None else None

    def ensure_minimum_version(self, minimum: str = MINIMUM_VERSION) -> str | None:
        """Return the detected version after checking it against `minimum`.

        An unreadable version is logged and accepted.

        Raises:
          RuntimeNotFoundError: If no runtime resolves.
          RuntimeVersionTooLowError: If the detected version is below `minimum`.
        """
        version = self.version()
        if version is None:
            logger.warning("Could not read the version of %s", self.resolve().display)
            return None
        if version_tuple(version) < version_tuple(minimum):
            raise RuntimeVersionTooLowError(version, minimum)
        return version

    def reset(self) -> None:
        """Forget the resolved runtime and its version."""
        self._resolved = None
        self._version_checked = False


def query_version(command: tuple[str, ...]) -> VersionQueryResult | None:
    """Run `<command> --version`. None when the command cannot be started."""
    try:
        completed = subprocess.run(
            [*command, "--version"],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=PROBE_TIMEOUT_SECONDS,
            check=False,
            stdin=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return VersionQueryResult(
        exit_code=completed.returncode,
        output=f"{completed.stdout}\n{completed.stderr}",
    )


def parse_version(output: str) -> str | None:
    """Extract `X.Y.Z` from `Python X.Y.Z` in either output stream."""
    match = _VERSION_PATTERN.search(output)
    if match is None:
        return None
    return match.group(1)


def version_tuple(version: str) -> tuple[int, int, int]:
    parts = [int(part) for part in re.findall(r"\d+", version)[:3]]
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]
