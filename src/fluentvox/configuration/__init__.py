"""Configuration domain exports."""

from .config_scaffold_builder import (
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import (
    DEFAULT_SETTINGS_FILENAME,
    ConfigurationError,
    load_settings,
    settings_from_mapping,
)
from .runtime_settings import FluentVoxSettings, GenerationDefaults, PyTorchPins

__all__ = [
    "FluentVoxSettings",
    "GenerationDefaults",
    "PyTorchPins",
    "ConfigurationError",
    "load_settings",
    "settings_from_mapping",
    "DEFAULT_SETTINGS_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
