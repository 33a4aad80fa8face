"""Environment diagnostics and package installation for the Chatterbox runtime."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fluentvox.audio_conversion import AudioConverter
from fluentvox.configuration import PyTorchPins
from fluentvox.interpreter_discovery import (
    MINIMUM_VERSION,
    RuntimeNotFoundError,
    RuntimeVersionTooLowError,
)
from fluentvox.platform_support import OperatingSystem, platform_info
from fluentvox.process_execution import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    OutputObserver,
    OutputStream,
    ProcessRunner,
)
from fluentvox.script_templates import (
    NOT_INSTALLED_MARKER,
    build_accelerator_probe_script,
    build_chatterbox_check_script,
)

PYTORCH_CUDA_INDEX_URL = "https://download.pytorch.org/whl/cu121"
PIP_MISSING_MESSAGE = "pip is not installed. Run: python -m ensurepip --upgrade"
INSTALL_TIMEOUT_SECONDS = 1800
PROBE_TIMEOUT_SECONDS = 120

_RUNTIME_ERRORS = (RuntimeNotFoundError, ExecutionFailedError, ExecutionTimeoutError)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequirementCheck:
    """Result of one diagnostic check."""

    name: str
    status: bool
    message: str
    optional: bool = False

    @property
    def satisfied(self) -> bool:
        return self.status or self.optional


@dataclass(frozen=True)
class RequirementReport:
    """All diagnostic checks; `passed` ignores failed optional checks."""

    checks: tuple[RequirementCheck, ...]

    @property
    def passed(self) -> bool:
        return all(check.satisfied for check in self.checks)

    def check(self, name: str) -> RequirementCheck | None:
        for candidate in self.checks:
            if candidate.name == name:
                return candidate
        return None


@dataclass(frozen=True)
class PackageInstallOutcome:
    """Result of a pip install; `error` carries the captured pip output on failure."""

    success: bool
    error: str | None = None
    output: str = ""


@dataclass
class _CapturedOutput:
    forward: OutputObserver | None = None
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)

    def __call__(self, chunk: str, stream: OutputStream) -> None:
        if stream is OutputStream.STDERR:
            self.stderr.append(chunk)
        else:
            self.stdout.append(chunk)
        if self.forward is not None:
            self.forward(chunk, stream)


def pytorch_install_arguments(
    pins: PyTorchPins | None = None,
    *,
    use_latest: bool = False,
    cpu_only: bool = False,
    os_kind: OperatingSystem | None = None,
) -> list[str]:
    """pip arguments for installing PyTorch; CUDA wheels off macOS unless `cpu_only`."""
    resolved_pins = pins or PyTorchPins()
    if use_latest:
        packages = ["torch", "torchaudio", "torchvision"]
    else:
        packages = [
            f"torch=={resolved_pins.torch}",
            f"torchaudio=={resolved_pins.torchaudio}",
            f"torchvision=={resolved_pins.torchvision}",
        ]
    arguments = ["install", *packages]
    resolved_os = os_kind or OperatingSystem.detect()
    if resolved_os is not OperatingSystem.MACOS and not cpu_only:
        arguments.extend(["--index-url", PYTORCH_CUDA_INDEX_URL])
    return arguments


class RequirementsChecker:
    """Runs the doctor checks and the pip installs against the resolved runtime."""

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        converter: AudioConverter | None = None,
        pytorch_pins: PyTorchPins | None = None,
        platform_details: Callable[[], dict[str, Any]] | None = None,
    ) -> None:
        self._runner = runner
        self._converter = converter or AudioConverter(runner)
        self._pytorch_pins = pytorch_pins or PyTorchPins()
        self._platform_details = platform_details or (
            lambda: platform_info(runner.locator.os_kind)
        )
        self._accelerator_report: dict[str, Any] | None = None

    @property
    def os_kind(self) -> OperatingSystem:
        return self._runner.locator.os_kind

    def python_command(self) -> str:
        """Display form of the resolved interpreter command, or an empty string."""
        try:
            return " ".join(self._runner.locator.command())
        except RuntimeNotFoundError:
            return ""

    def check(self) -> RequirementReport:
        self._accelerator_report = None
        return RequirementReport(
            checks=(
                self.check_platform(),
                self.check_python(),
                self.check_pip(),
                self.check_pytorch(),
                self.check_chatterbox(),
                self.check_ffmpeg(),
                self.check_gpu(),
            )
        )

    def check_platform(self) -> RequirementCheck:
        info = self._platform_details()
        flavour = "Apple Silicon" if info.get("is_apple_silicon") else "Intel/AMD"
        return RequirementCheck(
            name="platform",
            status=True,
            message=f"{info.get('os_name')} {info.get('architecture')} ({flavour})",
        )

    def check_python(self) -> RequirementCheck:
        locator = self._runner.locator
        try:
            version = locator.ensure_minimum_version(MINIMUM_VERSION)
        except RuntimeNotFoundError as exc:
            return RequirementCheck(name="python", status=False, message=str(exc))
        except RuntimeVersionTooLowError as exc:
            return RequirementCheck(
                name="python",
                status=False,
                message=f"{exc} {self.os_kind.python_install_hint()}",
            )
        shown = version or "(unknown version)"
        return RequirementCheck(name="python", status=True, message=f"Python {shown} installed")

    def check_pip(self) -> RequirementCheck:
        try:
            version = self._runner.pip_version()
        except RuntimeNotFoundError:
            version = None
        if version is None:
            return RequirementCheck(name="pip", status=False, message=PIP_MISSING_MESSAGE)
        return RequirementCheck(name="pip", status=True, message=f"pip {version} installed")

    def check_pytorch(self) -> RequirementCheck:
        try:
            report = self._accelerators()
        except _RUNTIME_ERRORS as exc:
            return RequirementCheck(
                name="pytorch", status=False, message=f"PyTorch check failed: {exc}"
            )
        if not report.get("installed"):
            command = "pip " + " ".join(
                pytorch_install_arguments(self._pytorch_pins, os_kind=self.os_kind)
            )
            return RequirementCheck(
                name="pytorch",
                status=False,
                message=f"PyTorch is not installed. Run: {command}",
            )
        backends = []
        if report.get("cuda"):
            backends.append(f"CUDA {report.get('cuda_version')}")
        if report.get("mps"):
            backends.append("MPS (Metal)")
        if not backends:
            backends.append("CPU only")
        return RequirementCheck(
            name="pytorch",
            status=True,
            message=f"PyTorch {report.get('version')} ({', '.join(backends)})",
        )

    def check_chatterbox(self) -> RequirementCheck:
        try:
            outcome = self._runner.run_script(
                build_chatterbox_check_script(), timeout_seconds=PROBE_TIMEOUT_SECONDS
            )
        except _RUNTIME_ERRORS as exc:
            return RequirementCheck(
                name="chatterbox", status=False, message=f"Chatterbox TTS check failed: {exc}"
            )
        output = outcome.stdout.strip()
        if output == NOT_INSTALLED_MARKER:
            return RequirementCheck(
                name="chatterbox",
                status=False,
                message="Chatterbox TTS is not installed. Run: pip install chatterbox-tts",
            )
        if output.startswith("ERROR:"):
            return RequirementCheck(
                name="chatterbox",
                status=False,
                message=f"Chatterbox TTS error: {output.removeprefix('ERROR:')}",
            )
        version = output.removeprefix("OK:")
        return RequirementCheck(name="chatterbox", status=True, message=f"Chatterbox TTS {version}")

    def check_ffmpeg(self) -> RequirementCheck:
        path = self._converter.find_tool("ffmpeg")
        if path is None:
            return RequirementCheck(
                name="ffmpeg",
                status=False,
                message=f"FFmpeg is not installed. {self.os_kind.ffmpeg_install_hint()}",
            )
        version = self._converter.ffmpeg_version() or "unknown"
        return RequirementCheck(
            name="ffmpeg", status=True, message=f"FFmpeg {version} installed at {path}"
        )

    def check_gpu(self) -> RequirementCheck:
        try:
            report = self._accelerators()
        except _RUNTIME_ERRORS:
            return RequirementCheck(
                name="gpu",
                status=False,
                optional=True,
                message="GPU check failed (CPU mode will be used)",
            )
        if report.get("cuda"):
            return RequirementCheck(
                name="gpu",
                status=True,
                optional=True,
                message=f"CUDA {report.get('cuda_version')} ({report.get('device_name')})",
            )
        if report.get("mps"):
            return RequirementCheck(
                name="gpu",
                status=True,
                optional=True,
                message="MPS (Apple Metal Performance Shaders)",
            )
        return RequirementCheck(
            name="gpu",
            status=False,
            optional=True,
            message="No GPU acceleration available (CPU mode will be used)",
        )

    def install_chatterbox(self, on_output: OutputObserver | None = None) -> PackageInstallOutcome:
        return self._pip_install(["install", "chatterbox-tts"], on_output)

    def upgrade_chatterbox(self, on_output: OutputObserver | None = None) -> PackageInstallOutcome:
        return self._pip_install(["install", "--upgrade", "chatterbox-tts"], on_output)

    def install_pytorch(
        self,
        on_output: OutputObserver | None = None,
        *,
        use_latest: bool = False,
        cpu_only: bool = False,
    ) -> PackageInstallOutcome:
        arguments = pytorch_install_arguments(
            self._pytorch_pins, use_latest=use_latest, cpu_only=cpu_only, os_kind=self.os_kind
        )
        return self._pip_install(arguments, on_output)

    def _pip_install(
        self, arguments: list[str], on_output: OutputObserver | None
    ) -> PackageInstallOutcome:
        captured = _CapturedOutput(forward=on_output)
        logger.info("Running pip %s", " ".join(arguments))
        try:
            self._runner.pip(arguments, timeout_seconds=INSTALL_TIMEOUT_SECONDS, on_output=captured)
        except _RUNTIME_ERRORS as exc:
            message = str(exc)
            error_output = "".join(captured.stderr).strip()
            standard_output = "".join(captured.stdout).strip()
            if error_output and error_output != message:
                message += f"\n\nError output:\n{error_output}"
            if standard_output and standard_output != message:
                message += f"\n\nStandard output:\n{standard_output}"
            return PackageInstallOutcome(success=False, error=message, output=standard_output)
        return PackageInstallOutcome(success=True, output="".join(captured.stdout))

    def _accelerators(self) -> dict[str, Any]:
        if self._accelerator_report is None:
            outcome = self._runner.run_script(
                build_accelerator_probe_script(), timeout_seconds=PROBE_TIMEOUT_SECONDS
            )
            self._accelerator_report = _parse_accelerator_report(outcome.stdout)
        return self._accelerator_report


def _parse_accelerator_report(stdout: str) -> dict[str, Any]:
    for line in reversed(stdout.strip().splitlines()):
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return {"installed": False}
