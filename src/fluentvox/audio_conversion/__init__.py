"""Audio conversion exports."""

from .ffmpeg_converter import (
    FORMAT_PRESETS,
    AudioConversionError,
    AudioConverter,
    AudioInfo,
    build_ffmpeg_command,
    flac_options,
    m4a_options,
    mp3_options,
    ogg_options,
    opus_options,
    parse_probe_output,
)

__all__ = [
    "FORMAT_PRESETS",
    "AudioConversionError",
    "AudioConverter",
    "AudioInfo",
    "build_ffmpeg_command",
    "flac_options",
    "m4a_options",
    "mp3_options",
    "ogg_options",
    "opus_options",
    "parse_probe_output",
]
