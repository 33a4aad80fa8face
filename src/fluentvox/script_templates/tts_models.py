"""Chatterbox model, device and language vocabularies."""

from __future__ import annotations

from enum import Enum


class TTSModel(str, Enum):
    """Chatterbox TTS model variants."""

    CHATTERBOX = "chatterbox"
    CHATTERBOX_TURBO = "chatterbox-turbo"
    CHATTERBOX_MULTILINGUAL = "chatterbox-multilingual"

    @property
    def python_class(self) -> str:
        return _MODEL_CLASSES[self]

    @property
    def python_import(self) -> str:
        module = _MODEL_MODULES[self]
        return f"from {module} import {self.python_class}"

    @property
    def is_multilingual(self) -> bool:
        return self is TTSModel.CHATTERBOX_MULTILINGUAL

    @property
    def supports_paralinguistic_tags(self) -> bool:
        return self is TTSModel.CHATTERBOX_TURBO

    @property
    def description(self) -> str:
        return _MODEL_DESCRIPTIONS[self]


_MODEL_CLASSES = {
    TTSModel.CHATTERBOX: "ChatterboxTTS",
    TTSModel.CHATTERBOX_TURBO: "ChatterboxTurbo",
    TTSModel.CHATTERBOX_MULTILINGUAL: "ChatterboxMultilingualTTS",
}

_MODEL_MODULES = {
    TTSModel.CHATTERBOX: "chatterbox.tts",
    TTSModel.CHATTERBOX_TURBO: "chatterbox.turbo",
    TTSModel.CHATTERBOX_MULTILINGUAL: "chatterbox.mtl_tts",
}

_MODEL_DESCRIPTIONS = {
    TTSModel.CHATTERBOX: "Standard English TTS with emotion control (500M params)",
    TTSModel.CHATTERBOX_TURBO: (
        "Fast TTS with paralinguistic tags [laugh], [cough] (350M params)"
    ),
    TTSModel.CHATTERBOX_MULTILINGUAL: "Multilingual TTS supporting 23+ languages (500M params)",
}


class Device(str, Enum):
    """Compute device requested for inference."""

    AUTO = "auto"
    CUDA = "cuda"
    MPS = "mps"
    CPU = "cpu"

    @property
    def description(self) -> str:
        return {
            Device.AUTO: "Auto-detect best available device",
            Device.CUDA: "NVIDIA CUDA GPU",
            Device.MPS: "Apple Metal Performance Shaders",
            Device.CPU: "CPU only",
        }[self]


class Language(str, Enum):
    """Languages accepted by the multilingual model."""

    ARABIC = "ar"
    DANISH = "da"
    GERMAN = "de"
    GREEK = "el"
    ENGLISH = "en"
    SPANISH = "es"
    FINNISH = "fi"
    FRENCH = "fr"
    HEBREW = "he"
    HINDI = "hi"
    ITALIAN = "it"
    JAPANESE = "ja"
    KOREAN = "ko"
    MALAY = "ms"
    DUTCH = "nl"
    NORWEGIAN = "no"
    POLISH = "pl"
    PORTUGUESE = "pt"
    RUSSIAN = "ru"
    SWEDISH = "sv"
    SWAHILI = "sw"
    TURKISH = "tr"
    CHINESE = "zh"

    @property
    def display_name(self) -> str:
        return self.name.capitalize()
