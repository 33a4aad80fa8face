"""Result mapping exports."""

from .generation_outcomes import (
    GenerationFailure,
    GenerationOutcome,
    GenerationSuccess,
    format_duration,
    outcome_from_mapping,
)
from .stdout_metadata import extract_metadata, metadata_float, metadata_int

__all__ = [
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationSuccess",
    "extract_metadata",
    "format_duration",
    "metadata_float",
    "metadata_int",
    "outcome_from_mapping",
]
