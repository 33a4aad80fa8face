"""Interpreter discovery exports."""

from .interpreter_locator import (
    MINIMUM_VERSION,
    InterpreterLocator,
    RuntimeNotFoundError,
    RuntimeProbe,
    RuntimeVersionTooLowError,
    VersionQueryResult,
    parse_version,
    query_version,
    version_tuple,
)
from .runtime_candidates import (
    ACTIVE_VENV_VARIABLE,
    VENV_DIRECTORY_NAMES,
    CandidateOrigin,
    ResolvedRuntime,
    RuntimeCandidate,
    iter_candidates,
    split_command,
    venv_search_directories,
)

__all__ = [
    "ACTIVE_VENV_VARIABLE",
    "MINIMUM_VERSION",
    "VENV_DIRECTORY_NAMES",
    "CandidateOrigin",
    "InterpreterLocator",
    "ResolvedRuntime",
    "RuntimeCandidate",
    "RuntimeNotFoundError",
    "RuntimeProbe",
    "RuntimeVersionTooLowError",
    "VersionQueryResult",
    "iter_candidates",
    "parse_version",
    "query_version",
    "split_command",
    "venv_search_directories",
    "version_tuple",
]
