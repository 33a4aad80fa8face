"""FFmpeg converter tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest
from fluentvox.audio_conversion import (
    AudioConversionError,
    AudioConverter,
    build_ffmpeg_command,
    mp3_options,
    parse_probe_output,
)
from fluentvox.interpreter_discovery import InterpreterLocator, VersionQueryResult
from fluentvox.platform_support import OperatingSystem
from fluentvox.process_execution import ExecutionOutcome, OutputObserver, ProcessRunner

_Handler = Callable[[tuple[str, ...]], tuple[int, str]]


class _ToolRunner(ProcessRunner):
    """Routes each command to a handler returning (exit code, stdout)."""

    def __init__(
        self, tmp_path: Path, handler: _Handler, os_kind: OperatingSystem = OperatingSystem.LINUX
    ) -> None:
        locator = InterpreterLocator(
            "python3",
            os_kind=os_kind,
            environ={},
            home=tmp_path,
            cwd=tmp_path,
            probe=lambda command: VersionQueryResult(0, "Python 3.11.7"),
        )
        super().__init__(locator)
        self._handler = handler
        self.commands: list[tuple[str, ...]] = []

    def run(  # pylint: disable=too-many-arguments
        self,
        command: Sequence[str],
        *,
        environment: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
        on_output: OutputObserver | None = None,
        cwd: Path | None = None,
    ) -> ExecutionOutcome:
        recorded = tuple(command)
        self.commands.append(recorded)
        exit_code, stdout = self._handler(recorded)
        return ExecutionOutcome(recorded, exit_code, stdout, "" if exit_code == 0 else "failed")


def _ffmpeg_available(command: tuple[str, ...]) -> tuple[int, str]:
    if command[1:] == ("-version",):
        if command[0] in {"ffmpeg", "ffprobe"}:
            return 0, f"{command[0]} version 6.1.1 Copyright (c) 2000-2023"
        return 127, ""
    if command[0] == "ffmpeg":
        Path(command[-1]).write_bytes(b"converted")
        return 0, ""
    return 1, ""


def _source(tmp_path: Path) -> Path:
    source = tmp_path / "speech.wav"
    source.write_bytes(b"RIFF")
    return source


def test_build_ffmpeg_command_orders_input_options_output(tmp_path: Path) -> None:
    command = build_ffmpeg_command(
        "ffmpeg", tmp_path / "in.wav", tmp_path / "out.mp3", mp3_options(128)
    )

    assert command == (
        "ffmpeg",
        "-i",
        str(tmp_path / "in.wav"),
        "-y",
        "-codec:a",
        "libmp3lame",
        "-b:a",
        "128k",
        "-ar",
        "44100",
        str(tmp_path / "out.mp3"),
    )


def test_to_mp3_runs_ffmpeg_and_reports_created_file(tmp_path: Path) -> None:
    runner = _ToolRunner(tmp_path, _ffmpeg_available)
    converter = AudioConverter(runner, local_bin_directories=())
    destination = tmp_path / "speech.mp3"

    assert converter.to_mp3(_source(tmp_path), destination)

    assert destination.read_bytes() == b"converted"
    assert runner.commands[-1][:2] == ("ffmpeg", "-i")
    assert "libmp3lame" in runner.commands[-1]


def test_tool_lookup_is_cached(tmp_path: Path) -> None:
    runner = _ToolRunner(tmp_path, _ffmpeg_available)
    converter = AudioConverter(runner, local_bin_directories=())

    assert converter.find_tool("ffmpeg") == "ffmpeg"
    assert converter.find_tool("ffmpeg") == "ffmpeg"
    assert runner.commands.count(("ffmpeg", "-version")) == 1
    assert converter.ffmpeg_version() == "6.1.1"


def test_windows_lookup_tries_exe_name_first(tmp_path: Path) -> None:
    def handler(command: tuple[str, ...]) -> tuple[int, str]:
        return (0, "") if command[0] == "ffmpeg.exe" else (1, "")

    converter = AudioConverter(
        _ToolRunner(tmp_path, handler, OperatingSystem.WINDOWS), local_bin_directories=()
    )

    assert converter.find_tool("ffmpeg") == "ffmpeg.exe"


def test_local_bin_directory_is_searched_after_path(tmp_path: Path) -> None:
    local_bin = tmp_path / "bin"
    local_bin.mkdir()
    local_ffmpeg = local_bin / "ffmpeg"
    local_ffmpeg.write_text("#!/bin/sh\n", encoding="utf-8")
    local_ffmpeg.chmod(0o755)
    converter = AudioConverter(
        _ToolRunner(tmp_path, lambda command: (127, "")), local_bin_directories=(local_bin,)
    )

    assert converter.find_tool("ffmpeg") == str(local_ffmpeg)


def test_missing_ffmpeg_raises_with_install_hint(tmp_path: Path) -> None:
    converter = AudioConverter(
        _ToolRunner(tmp_path, lambda command: (127, "")), local_bin_directories=()
    )

    with pytest.raises(AudioConversionError) as error:
        converter.to_flac(_source(tmp_path), tmp_path / "speech.flac")

    assert "FFmpeg not found" in str(error.value)
    assert "apt install ffmpeg" in str(error.value)


def test_missing_input_raises_before_running_ffmpeg(tmp_path: Path) -> None:
    runner = _ToolRunner(tmp_path, _ffmpeg_available)
    converter = AudioConverter(runner, local_bin_directories=())

    with pytest.raises(AudioConversionError):
        converter.to_ogg(tmp_path / "absent.wav", tmp_path / "out.ogg")
    assert runner.commands == []


def test_failed_ffmpeg_returns_false(tmp_path: Path) -> None:
    def handler(command: tuple[str, ...]) -> tuple[int, str]:
        return (0, "") if command[1:] == ("-version",) else (1, "")

    converter = AudioConverter(_ToolRunner(tmp_path, handler), local_bin_directories=())

    assert not converter.to_opus(_source(tmp_path), tmp_path / "speech.opus")


def test_convert_audio_infers_preset_and_applies_overrides(tmp_path: Path) -> None:
    runner = _ToolRunner(tmp_path, _ffmpeg_available)
    converter = AudioConverter(runner, local_bin_directories=())

    assert converter.convert_audio(
        _source(tmp_path), tmp_path / "speech.m4a", options={"ar": 22050}
    )

    command = runner.commands[-1]
    assert "aac" in command
    assert command[command.index("-ar") + 1] == "22050"


def test_convert_audio_rejects_unknown_format(tmp_path: Path) -> None:
    converter = AudioConverter(_ToolRunner(tmp_path, _ffmpeg_available), local_bin_directories=())

    with pytest.raises(AudioConversionError) as error:
        converter.convert_audio(_source(tmp_path), tmp_path / "speech.aiff")

    assert "Unsupported audio format 'aiff'" in str(error.value)


def test_audio_info_reads_ffprobe_json(tmp_path: Path) -> None:
    probe_json = json.dumps(
        {
            "streams": [{"sample_rate": "24000", "channels": 1, "codec_name": "pcm_s16le"}],
            "format": {"duration": "2.500000", "bit_rate": "384000"},
        }
    )

    def handler(command: tuple[str, ...]) -> tuple[int, str]:
        if command[1:] == ("-version",):
            return 0, ""
        return 0, probe_json

    converter = AudioConverter(_ToolRunner(tmp_path, handler), local_bin_directories=())

    info = converter.audio_info(_source(tmp_path))

    assert info is not None
    assert info.duration == 2.5
    assert info.sample_rate == 24000
    assert info.channels == 1
    assert info.codec == "pcm_s16le"
    assert info.bitrate == 384000
    assert converter.audio_info(tmp_path / "absent.wav") is None


def test_parse_probe_output_rejects_incomplete_reports() -> None:
    assert parse_probe_output("not json") is None
    assert parse_probe_output(json.dumps({"streams": []})) is None
