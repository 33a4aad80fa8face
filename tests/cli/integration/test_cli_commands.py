"""CLI command integration tests."""

from __future__ import annotations

import ast
import json
from collections.abc import Mapping, Sequence
from pathlib import Path

from click.testing import CliRunner
from fluentvox.cli import CliError, CliState, cli
from fluentvox.configuration import FluentVoxSettings
from fluentvox.interpreter_discovery import InterpreterLocator, VersionQueryResult
from fluentvox.platform_support import OperatingSystem
from fluentvox.process_execution import (
    ExecutionOutcome,
    OutputObserver,
    OutputStream,
    ProcessRunner,
)

_ACCELERATORS = json.dumps(
    {"installed": True, "version": "2.6.0", "cuda": False, "cuda_version": None, "mps": False}
)


class _RuntimeDouble(ProcessRunner):
    """Stands in for the Chatterbox runtime, pip and FFmpeg."""

    def __init__(
        self,
        tmp_path: Path,
        *,
        cached_models: set[str] | None = None,
        generation_error: str | None = None,
    ) -> None:
        locator = InterpreterLocator(
            "python3",
            os_kind=OperatingSystem.LINUX,
            environ={},
            home=tmp_path,
            cwd=tmp_path,
            probe=lambda command: VersionQueryResult(0, "Python 3.11.7"),
        )
        super().__init__(locator)
        self._cached_models = set(cached_models or {"ChatterboxTTS"})
        self._generation_error = generation_error
        self.scripts: list[str] = []
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
        exit_code, stdout, stderr = self._answer(recorded)
        if on_output is not None and stderr:
            on_output(stderr, OutputStream.STDERR)
        return ExecutionOutcome(recorded, exit_code, stdout, stderr)

    def _answer(self, command: tuple[str, ...]) -> tuple[int, str, str]:
        if command[0] == "ffmpeg":
            if command[1:] != ("-version",):
                Path(command[-1]).write_bytes(b"encoded")
            return 0, "ffmpeg version 7.0", ""
        if command[1:3] == ("-m", "pip"):
            if command[3] == "--version":
                return 0, "pip 24.2 from /venv (python 3.11)", ""
            return 0, "Successfully installed\n", ""
        script = command[-1]
        self.scripts.append(script)
        if "import chatterbox\n" in script:
            return 0, "OK:0.1.4\n", ""
        if "torch.cuda.is_available()" in script and '"installed"' in script:
            return 0, _ACCELERATORS, ""
        if "print('AVAILABLE')" in script:
            loaded = any(name in script for name in self._cached_models)
            return 0, "AVAILABLE\n" if loaded else "NOT_AVAILABLE\n", ""
        if "Downloading" in script:
            return 0, "Model downloaded successfully!\n", "Fetching weights\n"
        if "ta.save(" in script:
            if self._generation_error is not None:
                return 1, "", self._generation_error
            Path(_output_path(script)).write_bytes(b"RIFFwave")
            return 0, json.dumps({"sample_rate": 24000, "duration": 125.5}), "Loading model...\n"
        return 1, "", "unexpected script"


def _output_path(script: str) -> str:
    for line in script.splitlines():
        if line.startswith("output_path = "):
            return ast.literal_eval(line.removeprefix("output_path = "))
    raise AssertionError("generation script has no output path")


def _state(tmp_path: Path, runtime: _RuntimeDouble) -> CliState:
    return CliState(settings=FluentVoxSettings(output_path=tmp_path), runner=runtime)


def test_generate_config_writes_scaffold(tmp_path: Path) -> None:
    output_path = tmp_path / "fluentvox.yaml"

    result = CliRunner().invoke(
        cli,
        ["generate-config", "--output", str(output_path)],
        obj=_state(tmp_path, _RuntimeDouble(tmp_path)),
    )

    assert result.exit_code == 0
    assert output_path.read_text(encoding="utf-8").startswith("# FluentVox configuration.")
    assert str(output_path.resolve()) in result.output


def test_generate_config_refuses_to_overwrite(tmp_path: Path) -> None:
    output_path = tmp_path / "fluentvox.yaml"
    output_path.write_text("existing", encoding="utf-8")

    result = CliRunner().invoke(
        cli,
        ["generate-config", "--output", str(output_path)],
        obj=_state(tmp_path, _RuntimeDouble(tmp_path)),
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, CliError)
    assert output_path.read_text(encoding="utf-8") == "existing"


def test_generate_writes_audio_and_prints_path(tmp_path: Path) -> None:
    runtime = _RuntimeDouble(tmp_path, cached_models={"ChatterboxMultilingualTTS"})
    output_path = tmp_path / "bonjour.wav"

    result = CliRunner().invoke(
        cli,
        [
            "generate",
            "Bonjour tout le monde",
            "-o",
            str(output_path),
            "-m",
            "multilingual",
            "-l",
            "fr",
            "--preset",
            "narration",
            "--seed",
            "11",
        ],
        obj=_state(tmp_path, runtime),
    )

    assert result.exit_code == 0, result.output
    assert output_path.read_bytes() == b"RIFFwave"
    assert str(output_path) in result.output
    assert "Duration: 02:05.50" in result.output
    generation_script = runtime.scripts[-1]
    assert "language_id='fr'" in generation_script
    assert "temperature=0.6" in generation_script
    assert "torch.manual_seed(11)" in generation_script


def test_generate_reports_runtime_failure(tmp_path: Path) -> None:
    runtime = _RuntimeDouble(tmp_path, generation_error="RuntimeError: CUDA out of memory")

    result = CliRunner().invoke(
        cli, ["generate", "Hello", "-o", str(tmp_path / "out.wav")], obj=_state(tmp_path, runtime)
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, CliError)
    assert "CUDA out of memory" in str(result.exception)


def test_generate_rejects_missing_voice_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["generate", "Hello", "--voice", str(tmp_path / "absent.wav")],
        obj=_state(tmp_path, _RuntimeDouble(tmp_path)),
    )

    assert result.exit_code == 1
    assert "Reference audio file not found" in str(result.exception)


def test_models_list_reports_availability(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["models"], obj=_state(tmp_path, _RuntimeDouble(tmp_path)))

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("chatterbox ")
    assert " downloaded " in lines[0]
    assert "not downloaded" in lines[1]
    assert "Models directory:" in lines[-1]


def test_models_download_requires_a_selection(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["models", "download"], obj=_state(tmp_path, _RuntimeDouble(tmp_path))
    )

    assert result.exit_code == 1
    assert "--model" in str(result.exception)


def test_models_download_fetches_missing_model(tmp_path: Path) -> None:
    runtime = _RuntimeDouble(tmp_path)

    result = CliRunner().invoke(
        cli,
        ["models", "download", "--model", "chatterbox-turbo"],
        obj=_state(tmp_path, runtime),
    )

    assert result.exit_code == 0
    assert "chatterbox-turbo: downloaded" in result.output
    assert any("Downloading chatterbox-turbo model" in script for script in runtime.scripts)


def test_doctor_prints_every_check(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["doctor"], obj=_state(tmp_path, _RuntimeDouble(tmp_path)))

    assert result.exit_code == 0, result.output
    assert "[ok] python     Python 3.11.7 installed" in result.output
    assert "[ok] chatterbox" in result.output
    assert "[--] gpu" in result.output
    assert "All requirements are met." in result.output


def test_install_skips_packages_that_are_present(tmp_path: Path) -> None:
    runtime = _RuntimeDouble(tmp_path)

    result = CliRunner().invoke(cli, ["install", "--pytorch"], obj=_state(tmp_path, runtime))

    assert result.exit_code == 0, result.output
    assert "PyTorch 2.6.0 (CPU only) (already installed)" in result.output
    assert "Chatterbox TTS 0.1.4 (already installed)" in result.output
    assert not any(command[3:4] == ("install",) for command in runtime.commands)


def test_install_upgrade_runs_pip(tmp_path: Path) -> None:
    runtime = _RuntimeDouble(tmp_path)

    result = CliRunner().invoke(cli, ["install", "--upgrade"], obj=_state(tmp_path, runtime))

    assert result.exit_code == 0, result.output
    assert ("python3", "-m", "pip", "install", "--upgrade", "chatterbox-tts") in runtime.commands
    assert "Chatterbox TTS installed successfully" in result.output


def test_convert_uses_output_suffix(tmp_path: Path) -> None:
    source = tmp_path / "speech.wav"
    source.write_bytes(b"RIFF")
    destination = tmp_path / "speech.flac"
    runtime = _RuntimeDouble(tmp_path)

    result = CliRunner().invoke(
        cli, ["convert", str(source), str(destination)], obj=_state(tmp_path, runtime)
    )

    assert result.exit_code == 0, result.output
    assert destination.read_bytes() == b"encoded"
    assert any("flac" in command for command in runtime.commands if command[0] == "ffmpeg")
