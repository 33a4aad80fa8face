"""Requirements checker tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from fluentvox.audio_conversion import AudioConverter
from fluentvox.configuration import PyTorchPins
from fluentvox.interpreter_discovery import InterpreterLocator, VersionQueryResult
from fluentvox.platform_support import OperatingSystem
from fluentvox.process_execution import (
    ExecutionOutcome,
    OutputObserver,
    OutputStream,
    ProcessRunner,
)
from fluentvox.requirements_check import (
    PYTORCH_CUDA_INDEX_URL,
    RequirementReport,
    RequirementsChecker,
    pytorch_install_arguments,
)

_CUDA_REPORT = json.dumps(
    {
        "installed": True,
        "version": "2.6.0",
        "cuda": True,
        "cuda_version": "12.1",
        "device_name": "RTX 4090",
        "mps": False,
    }
)


class _RuntimeRunner(ProcessRunner):
    """Answers interpreter, pip and FFmpeg commands from a routing function."""

    def __init__(
        self,
        tmp_path: Path,
        route: Callable[[tuple[str, ...]], tuple[int, str, str]],
        *,
        python_version: str = "Python 3.11.7",
        os_kind: OperatingSystem = OperatingSystem.LINUX,
    ) -> None:
        locator = InterpreterLocator(
            "python3",
            os_kind=os_kind,
            environ={},
            home=tmp_path,
            cwd=tmp_path,
            probe=lambda command: VersionQueryResult(0, python_version),
        )
        super().__init__(locator)
        self._route = route
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
        exit_code, stdout, stderr = self._route(recorded)
        if on_output is not None:
            if stdout:
                on_output(stdout, OutputStream.STDOUT)
            if stderr:
                on_output(stderr, OutputStream.STDERR)
        return ExecutionOutcome(recorded, exit_code, stdout, stderr)


def _healthy_route(command: tuple[str, ...]) -> tuple[int, str, str]:
    if command[:2] == ("ffmpeg", "-version"):
        return 0, "ffmpeg version 7.0 Copyright", ""
    if command[1:4] == ("-m", "pip", "--version"):
        return 0, "pip 24.2 from /venv/lib/python3.11/site-packages/pip (python 3.11)", ""
    if command[1] == "-c" and "import chatterbox" in command[2]:
        return 0, "OK:0.1.4\n", ""
    if command[1] == "-c" and "torch.cuda.is_available" in command[2]:
        return 0, _CUDA_REPORT + "\n", ""
    return 1, "", "unexpected command"


def _message(report: RequirementReport, name: str) -> str:
    check = report.check(name)
    assert check is not None
    return check.message


def _checker(runner: _RuntimeRunner) -> RequirementsChecker:
    return RequirementsChecker(
        runner,
        converter=AudioConverter(runner, local_bin_directories=()),
        platform_details=lambda: {
            "os_name": "Linux",
            "architecture": "x64",
            "is_apple_silicon": False,
        },
    )


def test_healthy_runtime_passes_every_check(tmp_path: Path) -> None:
    runner = _RuntimeRunner(tmp_path, _healthy_route)

    report = _checker(runner).check()

    assert report.passed
    assert [check.name for check in report.checks] == [
        "platform",
        "python",
        "pip",
        "pytorch",
        "chatterbox",
        "ffmpeg",
        "gpu",
    ]
    assert _message(report, "platform") == "Linux x64 (Intel/AMD)"
    assert _message(report, "python") == "Python 3.11.7 installed"
    assert _message(report, "pip") == "pip 24.2 installed"
    assert _message(report, "pytorch") == "PyTorch 2.6.0 (CUDA 12.1)"
    assert _message(report, "chatterbox") == "Chatterbox TTS 0.1.4"
    assert _message(report, "gpu") == "CUDA 12.1 (RTX 4090)"
    assert _message(report, "ffmpeg") == "FFmpeg 7.0 installed at ffmpeg"


def test_accelerator_probe_runs_once_per_check(tmp_path: Path) -> None:
    runner = _RuntimeRunner(tmp_path, _healthy_route)

    _checker(runner).check()

    probes = [command for command in runner.commands if "torch.cuda" in command[-1]]
    assert len(probes) == 1


def test_missing_gpu_is_optional(tmp_path: Path) -> None:
    cpu_report = json.dumps({"installed": True, "version": "2.6.0", "cuda": False, "mps": False})

    def route(command: tuple[str, ...]) -> tuple[int, str, str]:
        if command[1] == "-c" and "torch.cuda.is_available" in command[2]:
            return 0, cpu_report, ""
        return _healthy_route(command)

    report = _checker(_RuntimeRunner(tmp_path, route)).check()

    gpu = report.check("gpu")
    assert gpu is not None
    assert not gpu.status
    assert gpu.optional
    assert report.passed
    assert _message(report, "pytorch") == "PyTorch 2.6.0 (CPU only)"


def test_old_python_fails_with_install_hint(tmp_path: Path) -> None:
    runner = _RuntimeRunner(tmp_path, _healthy_route, python_version="Python 3.9.6")

    report = _checker(runner).check()

    python = report.check("python")
    assert python is not None
    assert not python.status
    assert "3.9.6" in python.message
    assert not report.passed


def test_missing_packages_fail_with_remedies(tmp_path: Path) -> None:
    def route(command: tuple[str, ...]) -> tuple[int, str, str]:
        if command[1] == "-c" and "import chatterbox" in command[2]:
            return 0, "NOT_INSTALLED\n", ""
        if command[1] == "-c" and "torch.cuda.is_available" in command[2]:
            return 0, json.dumps({"installed": False}), ""
        if command[1:4] == ("-m", "pip", "--version"):
            return 1, "", "No module named pip"
        if command[0] == "ffmpeg":
            return 127, "", ""
        return _healthy_route(command)

    report = _checker(_RuntimeRunner(tmp_path, route)).check()

    assert "ensurepip" in _message(report, "pip")
    assert "pip install torch==2.6.0" in _message(report, "pytorch")
    assert "pip install chatterbox-tts" in _message(report, "chatterbox")
    assert "FFmpeg is not installed" in _message(report, "ffmpeg")
    assert _message(report, "gpu").startswith("No GPU acceleration")
    assert not report.passed


def test_pytorch_arguments_use_cuda_index_off_macos() -> None:
    pins = PyTorchPins(torch="2.5.1", torchaudio="2.5.1", torchvision="0.20.1")

    linux = pytorch_install_arguments(pins, os_kind=OperatingSystem.LINUX)
    mac = pytorch_install_arguments(pins, os_kind=OperatingSystem.MACOS)
    latest_cpu = pytorch_install_arguments(
        pins, use_latest=True, cpu_only=True, os_kind=OperatingSystem.WINDOWS
    )

    assert linux == [
        "install",
        "torch==2.5.1",
        "torchaudio==2.5.1",
        "torchvision==0.20.1",
        "--index-url",
        PYTORCH_CUDA_INDEX_URL,
    ]
    assert "--index-url" not in mac
    assert latest_cpu == ["install", "torch", "torchaudio", "torchvision"]


def test_install_chatterbox_streams_pip_output(tmp_path: Path) -> None:
    def route(command: tuple[str, ...]) -> tuple[int, str, str]:
        if command[1:3] == ("-m", "pip"):
            return 0, "Successfully installed chatterbox-tts-0.1.4\n", ""
        return _healthy_route(command)

    runner = _RuntimeRunner(tmp_path, route)
    chunks: list[str] = []

    outcome = _checker(runner).install_chatterbox(lambda chunk, stream: chunks.append(chunk))

    assert outcome.success
    assert runner.commands[-1] == ("python3", "-m", "pip", "install", "chatterbox-tts")
    assert chunks == ["Successfully installed chatterbox-tts-0.1.4\n"]


def test_failed_install_reports_error_and_standard_output(tmp_path: Path) -> None:
    def route(command: tuple[str, ...]) -> tuple[int, str, str]:
        if command[1:3] == ("-m", "pip"):
            return 1, "Collecting torch==2.6.0\n", "ERROR: No matching distribution\n"
        return _healthy_route(command)

    outcome = _checker(_RuntimeRunner(tmp_path, route)).install_pytorch(cpu_only=True)

    assert not outcome.success
    assert outcome.error is not None
    assert outcome.error.startswith("ERROR: No matching distribution")
    assert "Standard output:\nCollecting torch==2.6.0" in outcome.error
