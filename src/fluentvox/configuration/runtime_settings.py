"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from fluentvox.script_templates import Device, TTSModel


@dataclass(frozen=True)
class GenerationDefaults:
    """Voice controls applied when a request does not set its own."""

    exaggeration: float = 0.5
    temperature: float = 0.8
    cfg_weight: float = 0.5
    seed: int = 0


@dataclass(frozen=True)
class PyTorchPins:
    """Package versions installed by the pinned PyTorch install."""

    torch: str = "2.6.0"
    torchaudio: str = "2.6.0"
    torchvision: str = "0.21.0"


@dataclass(frozen=True)
class FluentVoxSettings:  # pylint: disable=too-many-instance-attributes
    """Client settings, read once at construction."""

    python_path: str | None = None
    models_path: Path | None = None
    default_model: TTSModel = TTSModel.CHATTERBOX
    device: Device = Device.AUTO
    output_path: Path | None = None
    audio_format: str = "wav"
    sample_rate: int = 24000
    generation: GenerationDefaults = field(default_factory=GenerationDefaults)
    timeout_seconds: int = 300
    verbose: bool = False
    pytorch: PyTorchPins = field(default_factory=PyTorchPins)
    source_path: Path | None = None
