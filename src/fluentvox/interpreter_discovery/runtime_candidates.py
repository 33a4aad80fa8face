"""Interpreter candidates and their search order."""

from __future__ import annotations

import shlex
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from fluentvox.platform_support import OperatingSystem

VENV_DIRECTORY_NAMES = (
    ".venv",
    "venv",
    "venv311",
    "venv310",
    "venv312",
    "venv313",
    "venv314",
    "env",
    "ENV",
)
ACTIVE_VENV_VARIABLE = "VIRTUAL_ENV"
PARENT_SEARCH_DEPTH = 3


class CandidateOrigin(str, Enum):
    """Resolution tier a candidate came from."""

    OVERRIDE = "override"
    ACTIVE_VENV = "active_venv"
    LOCAL_VENV = "local_venv"
    OS_DEFAULT = "os_default"


@dataclass(frozen=True)
class RuntimeCandidate:
    """One unvalidated guess at an interpreter command."""

    command: tuple[str, ...]
    origin: CandidateOrigin

    @property
    def display(self) -> str:
        return " ".join(self.command)


@dataclass(frozen=True)
class ResolvedRuntime:
    """The candidate that passed the liveness check."""

    command: tuple[str, ...]
    origin: CandidateOrigin
    version: str | None = None

    @property
    def display(self) -> str:
        return " ".join(self.command)


def split_command(raw_command: str, os_kind: OperatingSystem | None = None) -> tuple[str, ...]:
    """Turn a configured command into argv tokens.

    An existing file path stays one token even when it contains spaces. Anything else is a
    command line such as `py -3` and is split into its launcher and arguments.
    """
    stripped = raw_command.strip()
    if not stripped:
        return ()
    if Path(stripped).is_file():
        return (stripped,)
    resolved_os = os_kind or OperatingSystem.detect()
    try:
        tokens = shlex.split(stripped, posix=resolved_os.is_unix)
    except ValueError:
        return (stripped,)
    if not resolved_os.is_unix:
        tokens = [_strip_quotes(token) for token in tokens]
    return tuple(token for token in tokens if token)


def iter_candidates(  # pylint: disable=too-many-arguments
    override: str | None,
    *,
    os_kind: OperatingSystem,
    environ: Mapping[str, str],
    home: Path,
    cwd: Path,
    parent_depth: int = PARENT_SEARCH_DEPTH,
) -> Iterator[RuntimeCandidate]:
    """Yield candidates in resolution order, each command at most once."""
    seen: set[tuple[str, ...]] = set()
    for candidate in _ordered_candidates(
        override,
        os_kind=os_kind,
        environ=environ,
        home=home,
        cwd=cwd,
        parent_depth=parent_depth,
    ):
        if candidate.command and candidate.command not in seen:
            seen.add(candidate.command)
            yield candidate


def venv_search_directories(home: Path, cwd: Path, parent_depth: int) -> list[Path]:
    """Home first, then the working directory and its parents."""
    directories = [home, cwd, *list(cwd.parents)[:parent_depth]]
    unique: list[Path] = []
    for directory in directories:
        if directory not in unique:
            unique.append(directory)
    return unique


def _ordered_candidates(  # pylint: disable=too-many-arguments
    override: str | None,
    *,
    os_kind: OperatingSystem,
    environ: Mapping[str, str],
    home: Path,
    cwd: Path,
    parent_depth: int,
) -> Iterator[RuntimeCandidate]:
    if override and override.strip():
        yield RuntimeCandidate(split_command(override, os_kind), CandidateOrigin.OVERRIDE)

    active_venv = environ.get(ACTIVE_VENV_VARIABLE, "").strip()
    if active_venv:
        for interpreter in os_kind.venv_interpreter_paths(Path(active_venv)):
            if interpreter.is_file():
                yield RuntimeCandidate((str(interpreter),), CandidateOrigin.ACTIVE_VENV)

    for directory in venv_search_directories(home, cwd, parent_depth):
        for venv_name in VENV_DIRECTORY_NAMES:
            for interpreter in os_kind.venv_interpreter_paths(directory / venv_name):
                if interpreter.is_file():
                    yield RuntimeCandidate((str(interpreter),), CandidateOrigin.LOCAL_VENV)

    for default_command in os_kind.interpreter_candidates():
        yield RuntimeCandidate(split_command(default_command, os_kind), CandidateOrigin.OS_DEFAULT)


def _strip_quotes(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in {'"', "'"}:
        return token[1:-1]
    return token
