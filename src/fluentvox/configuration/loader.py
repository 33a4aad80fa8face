"""Configuration loader service."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from fluentvox.script_templates import Device, TTSModel

from .runtime_settings import FluentVoxSettings, GenerationDefaults, PyTorchPins

DEFAULT_SETTINGS_FILENAME = "fluentvox.yaml"

_KNOWN_AUDIO_FORMATS = frozenset({"wav", "mp3", "m4a", "ogg", "opus", "flac"})

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_settings(config_path: Path | str | None = None) -> FluentVoxSettings:
    """Load settings from an explicit file, the working directory file, or defaults.

    Args:
      config_path: Explicit configuration file. It must exist when given.

    Returns:
      Validated settings. Built-in defaults when no file applies.

    Raises:
      ConfigurationError: If the explicit file is missing or any value is invalid.
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        return _load_settings_file(path)

    local_path = Path.cwd() / DEFAULT_SETTINGS_FILENAME
    if local_path.is_file():
        return _load_settings_file(local_path)

    logger.debug("No configuration file found, using built-in defaults")
    return FluentVoxSettings()


def settings_from_mapping(
    parsed: Mapping[str, Any], *, source_path: Path | None = None
) -> FluentVoxSettings:
    """Validate an already parsed configuration mapping."""
    base_path = source_path.parent if source_path is not None else Path.cwd()
    defaults = FluentVoxSettings()
    return FluentVoxSettings(
        python_path=_optional_string(parsed.get("python_path"), "python_path"),
        models_path=_optional_path(parsed.get("models_path"), "models_path", base_path),
        default_model=_parse_model(parsed.get("default_model", defaults.default_model.value)),
        device=_parse_device(parsed.get("device", defaults.device.value)),
        output_path=_optional_path(parsed.get("output_path"), "output_path", base_path),
        audio_format=_parse_audio_format(parsed.get("audio_format", defaults.audio_format)),
        sample_rate=_require_positive_int(
            parsed.get("sample_rate", defaults.sample_rate), "sample_rate"
        ),
        generation=_parse_generation_section(parsed.get("generation")),
        timeout_seconds=_require_non_negative_int(
            parsed.get("timeout_seconds", defaults.timeout_seconds), "timeout_seconds"
        ),
        verbose=_require_bool(parsed.get("verbose", defaults.verbose), "verbose"),
        pytorch=_parse_pytorch_section(parsed.get("pytorch")),
        source_path=source_path,
    )


def _load_settings_file(path: Path) -> FluentVoxSettings:
    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    logger.debug("Loaded configuration from %s", path)
    return settings_from_mapping(parsed, source_path=path)


def _parse_generation_section(value: Any) -> GenerationDefaults:
    if value is None:
        return GenerationDefaults()
    section = _require_mapping(value, "generation")
    defaults = GenerationDefaults()
    return GenerationDefaults(
        exaggeration=_require_number(
            section.get("exaggeration", defaults.exaggeration), "generation.exaggeration"
        ),
        temperature=_require_number(
            section.get("temperature", defaults.temperature), "generation.temperature"
        ),
        cfg_weight=_require_number(
            section.get("cfg_weight", defaults.cfg_weight), "generation.cfg_weight"
        ),
        seed=_require_non_negative_int(section.get("seed", defaults.seed), "generation.seed"),
    )


def _parse_pytorch_section(value: Any) -> PyTorchPins:
    if value is None:
        return PyTorchPins()
    section = _require_mapping(value, "pytorch")
    defaults = PyTorchPins()
    return PyTorchPins(
        torch=_require_version(section.get("torch", defaults.torch), "pytorch.torch"),
        torchaudio=_require_version(
            section.get("torchaudio", defaults.torchaudio), "pytorch.torchaudio"
        ),
        torchvision=_require_version(
            section.get("torchvision", defaults.torchvision), "pytorch.torchvision"
        ),
    )


def _parse_model(value: Any) -> TTSModel:
    name = _require_non_empty_string(value, "default_model")
    try:
        return TTSModel(name)
    except ValueError as exc:
        allowed = ", ".join(model.value for model in TTSModel)
        raise ConfigurationError(
            f"default_model '{name}' is not supported. Use one of: {allowed}."
        ) from exc


def _parse_device(value: Any) -> Device:
    name = _require_non_empty_string(value, "device").lower()
    try:
        return Device(name)
    except ValueError as exc:
        allowed = ", ".join(device.value for device in Device)
        raise ConfigurationError(
            f"device '{name}' is not supported. Use one of: {allowed}."
        ) from exc


def _parse_audio_format(value: Any) -> str:
    name = _require_non_empty_string(value, "audio_format").lower()
    if name not in _KNOWN_AUDIO_FORMATS:
        allowed = ", ".join(sorted(_KNOWN_AUDIO_FORMATS))
        raise ConfigurationError(
            f"audio_format '{name}' is not supported. Use one of: {allowed}."
        )
    return name


def _require_version(value: Any, field_name: str) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return _require_non_empty_string(value, field_name)


def _optional_path(value: Any, field_name: str, base_path: Path) -> Path | None:
    raw = _optional_string(value, field_name)
    if raw is None:
        return None
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        return (base_path / candidate).resolve()
    return candidate


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _require_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be true or false.")
    return value


def _require_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{field_name} must be a number.")
    return float(value)


def _require_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value < 0:
        raise ConfigurationError(f"{field_name} must not be negative.")
    return value


def _require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return value
