"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

from .loader import DEFAULT_SETTINGS_FILENAME

_CONFIG_SCAFFOLD_TEMPLATE = """# FluentVox configuration.
# Every key is optional. Remove a key to fall back to the built-in default.

# Interpreter command or path that has chatterbox-tts installed.
# Leave empty to search the active venv, local venvs, then the system defaults.
# python_path: "/path/to/venv/bin/python"

# Directory holding downloaded models. Defaults to the HuggingFace hub cache.
# models_path: "~/.cache/huggingface/hub"

# chatterbox, chatterbox-turbo or chatterbox-multilingual
default_model: "chatterbox"

# auto, cuda, mps or cpu
device: "auto"

# Directory for generated audio. Defaults to the working directory.
# output_path: "./output"

# wav, mp3, m4a, ogg, opus or flac
audio_format: "wav"
sample_rate: 24000

generation:
  exaggeration: 0.5
  temperature: 0.8
  cfg_weight: 0.5
  # 0 leaves the runtime unseeded.
  seed: 0

# Seconds before a generation run is killed. 0 waits forever.
timeout_seconds: 300

# Echo raw runtime output to stderr.
verbose: false

pytorch:
  torch: "2.6.0"
  torchaudio: "2.6.0"
  torchvision: "0.21.0"
"""


def build_placeholder_configuration() -> str:
    """Build a commented YAML configuration listing every key with its default."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str = DEFAULT_SETTINGS_FILENAME) -> Path:
    """Write the commented configuration scaffold to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
