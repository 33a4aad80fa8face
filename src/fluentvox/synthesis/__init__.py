"""Speech synthesis exports."""

from .fluent_builder import (
    CFG_WEIGHT_RANGE,
    DEFAULT_SAMPLE_RATE,
    EXAGGERATION_RANGE,
    TEMPERATURE_RANGE,
    FluentVox,
    InvalidInputError,
)

__all__ = [
    "CFG_WEIGHT_RANGE",
    "DEFAULT_SAMPLE_RATE",
    "EXAGGERATION_RANGE",
    "TEMPERATURE_RANGE",
    "FluentVox",
    "InvalidInputError",
]
