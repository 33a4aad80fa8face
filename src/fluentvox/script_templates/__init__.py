"""Script templating exports."""

from .generation_script import (
    AVAILABLE_MARKER,
    NOT_AVAILABLE_MARKER,
    GenerationParameters,
    build_generation_script,
    build_runtime_prelude,
)
from .probe_scripts import (
    NOT_INSTALLED_MARKER,
    build_accelerator_probe_script,
    build_chatterbox_check_script,
    build_model_check_script,
    build_model_download_script,
)
from .tts_models import Device, Language, TTSModel

__all__ = [
    "AVAILABLE_MARKER",
    "NOT_AVAILABLE_MARKER",
    "NOT_INSTALLED_MARKER",
    "Device",
    "GenerationParameters",
    "Language",
    "TTSModel",
    "build_accelerator_probe_script",
    "build_chatterbox_check_script",
    "build_generation_script",
    "build_model_check_script",
    "build_model_download_script",
    "build_runtime_prelude",
]
