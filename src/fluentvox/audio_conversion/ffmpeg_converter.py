"""Audio format conversion through the FFmpeg binary."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fluentvox.platform_support import OperatingSystem
from fluentvox.process_execution import ProcessRunner

TOOL_PROBE_TIMEOUT_SECONDS = 10

_VERSION_PATTERN = re.compile(r"ffmpeg version (\S+)")

logger = logging.getLogger(__name__)


class AudioConversionError(Exception):
    """Raised when conversion cannot start: missing input or missing FFmpeg."""


@dataclass(frozen=True)
class AudioInfo:
    """Stream and container facts reported by ffprobe."""

    duration: float
    sample_rate: int
    channels: int
    codec: str
    bitrate: int


def mp3_options(bitrate_kbps: int = 192) -> dict[str, str]:
    return {"codec:a": "libmp3lame", "b:a": f"{bitrate_kbps}k", "ar": "44100"}


def m4a_options(bitrate_kbps: int = 128) -> dict[str, str]:
    return {"codec:a": "aac", "b:a": f"{bitrate_kbps}k", "ar": "44100"}


def ogg_options(quality: int = 5) -> dict[str, str]:
    return {"codec:a": "libvorbis", "q:a": str(quality)}


def opus_options(bitrate_kbps: int = 96) -> dict[str, str]:
    return {"codec:a": "libopus", "b:a": f"{bitrate_kbps}k"}


def flac_options() -> dict[str, str]:
    return {"codec:a": "flac"}


FORMAT_PRESETS = {
    "mp3": mp3_options,
    "m4a": m4a_options,
    "ogg": ogg_options,
    "opus": opus_options,
    "flac": flac_options,
}


def build_ffmpeg_command(
    ffmpeg: str, input_path: Path, output_path: Path, options: Mapping[str, Any]
) -> tuple[str, ...]:
    """`ffmpeg -i <input> -y [-key value ...] <output>`."""
    arguments: list[str] = [ffmpeg, "-i", str(input_path), "-y"]
    for key, value in options.items():
        arguments.extend((f"-{key}", str(value)))
    arguments.append(str(output_path))
    return tuple(arguments)


class AudioConverter:
    """Converts generated WAV files with FFmpeg and inspects them with ffprobe."""

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        timeout_seconds: float = 300,
        local_bin_directories: Sequence[Path] | None = None,
    ) -> None:
        self._runner = runner
        self._timeout_seconds = timeout_seconds
        self._local_bin_directories = tuple(
            local_bin_directories if local_bin_directories is not None else (Path.cwd() / "bin",)
        )
        self._tool_paths: dict[str, str] = {}

    @property
    def os_kind(self) -> OperatingSystem:
        return self._runner.locator.os_kind

    def find_tool(self, name: str) -> str | None:
        """Locate `ffmpeg` or `ffprobe` on PATH, then in the local bin directories."""
        if name in self._tool_paths:
            return self._tool_paths[name]

        executable_names: tuple[str, ...] = (name,)
        if self.os_kind is OperatingSystem.WINDOWS:
            executable_names = (f"{name}.exe", name)
        for candidate in executable_names:
            if self._responds(candidate):
                self._tool_paths[name] = candidate
                return candidate

        for directory in self._local_bin_directories:
            for candidate_name in executable_names:
                candidate_path = directory / candidate_name
                if candidate_path.is_file() and os.access(candidate_path, os.X_OK):
                    self._tool_paths[name] = str(candidate_path)
                    return self._tool_paths[name]

        logger.debug("%s not found", name)
        return None

    def ffmpeg_path(self) -> str:
        """Raises AudioConversionError with an install hint when FFmpeg is missing."""
        path = self.find_tool("ffmpeg")
        if path is None:
            raise AudioConversionError(
                "FFmpeg not found. Please install FFmpeg or ensure it is in your PATH. "
                f"{self.os_kind.ffmpeg_install_hint()}"
            )
        return path

    def ffmpeg_version(self) -> str | None:
        path = self.find_tool("ffmpeg")
        if path is None:
            return None
        outcome = self._runner.run((path, "-version"), timeout_seconds=TOOL_PROBE_TIMEOUT_SECONDS)
        if not outcome.succeeded:
            return None
        match = _VERSION_PATTERN.search(outcome.stdout)
        return match.group(1) if match else "unknown"

    def convert(
        self,
        input_path: Path | str,
        output_path: Path | str,
        options: Mapping[str, Any] | None = None,
    ) -> bool:
        """Run FFmpeg; True when it exits zero and the output file exists.

        Raises:
          AudioConversionError: If the input file or FFmpeg is missing.
        """
        source = Path(input_path)
        destination = Path(output_path)
        if not source.exists():
            raise AudioConversionError(f"Input file not found: {source}")
        command = build_ffmpeg_command(self.ffmpeg_path(), source, destination, options or {})
        outcome = self._runner.run(command, timeout_seconds=self._timeout_seconds)
        if not outcome.succeeded:
            logger.warning("FFmpeg failed for %s: %s", source, outcome.error_text)
            return False
        return destination.exists()

    def to_mp3(
        self, input_path: Path | str, output_path: Path | str, bitrate_kbps: int = 192
    ) -> bool:
        return self.convert(input_path, output_path, mp3_options(bitrate_kbps))

    def to_m4a(
        self, input_path: Path | str, output_path: Path | str, bitrate_kbps: int = 128
    ) -> bool:
        return self.convert(input_path, output_path, m4a_options(bitrate_kbps))

    def to_ogg(self, input_path: Path | str, output_path: Path | str, quality: int = 5) -> bool:
        return self.convert(input_path, output_path, ogg_options(quality))

    def to_opus(
        self, input_path: Path | str, output_path: Path | str, bitrate_kbps: int = 96
    ) -> bool:
        return self.convert(input_path, output_path, opus_options(bitrate_kbps))

    def to_flac(self, input_path: Path | str, output_path: Path | str) -> bool:
        return self.convert(input_path, output_path, flac_options())

    def convert_audio(
        self,
        input_path: Path | str,
        output_path: Path | str,
        audio_format: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> bool:
        """Convert using the preset for `audio_format`, or the output suffix when omitted.

        Explicit `options` override preset values key by key.

        Raises:
          AudioConversionError: If the input or FFmpeg is missing, or the format is unknown.
        """
        resolved_format = (audio_format or Path(output_path).suffix.lstrip(".")).lower()
        preset = FORMAT_PRESETS.get(resolved_format)
        if preset is None:
            if resolved_format != "wav":
                supported = ", ".join(["wav", *FORMAT_PRESETS])
                raise AudioConversionError(
                    f"Unsupported audio format '{resolved_format}'. Use one of: {supported}."
                )
            merged: dict[str, Any] = {}
        else:
            merged = preset()
        merged.update(options or {})
        return self.convert(input_path, output_path, merged)

    def audio_info(self, file_path: Path | str) -> AudioInfo | None:
        """ffprobe summary of the first stream, or None when unavailable."""
        path = Path(file_path)
        if not path.exists():
            return None
        ffprobe = self.find_tool("ffprobe")
        if ffprobe is None:
            raise AudioConversionError(
                "FFprobe not found. Please install FFmpeg or ensure it is in your PATH. "
                f"{self.os_kind.ffmpeg_install_hint()}"
            )
        outcome = self._runner.run(
            (
                ffprobe,
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                str(path),
            ),
            timeout_seconds=TOOL_PROBE_TIMEOUT_SECONDS * 3,
        )
        if not outcome.succeeded:
            return None
        return parse_probe_output(outcome.stdout)

    def _responds(self, executable: str) -> bool:
        outcome = self._runner.run(
            (executable, "-version"), timeout_seconds=TOOL_PROBE_TIMEOUT_SECONDS
        )
        return outcome.succeeded


def parse_probe_output(output: str) -> AudioInfo | None:
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    streams = data.get("streams") or []
    container = data.get("format")
    if not streams or not isinstance(container, dict):
        return None
    stream = streams[0]
    return AudioInfo(
        duration=float(container.get("duration") or 0),
        sample_rate=int(stream.get("sample_rate") or 0),
        channels=int(stream.get("channels") or 0),
        codec=str(stream.get("codec_name") or "unknown"),
        bitrate=int(container.get("bit_rate") or 0),
    )
