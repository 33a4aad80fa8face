"""Host operating system detection and per-OS conventions."""

from __future__ import annotations

import os
import platform
import sys
from enum import Enum
from pathlib import Path

_WINDOWS_INTERPRETER_CANDIDATES = (
    "python",
    "python3",
    "py -3",
    "C:\\Python311\\python.exe",
    "C:\\Python310\\python.exe",
    "C:\\Python312\\python.exe",
    "C:\\Python313\\python.exe",
)

_POSIX_INTERPRETER_CANDIDATES = (
    "python3",
    "python",
    "python3.11",
    "python3.10",
    "python3.12",
    "python3.13",
    "/usr/bin/python3",
    "/usr/local/bin/python3",
)


class OperatingSystem(str, Enum):
    """Operating systems with distinct runtime conventions."""

    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"

    @classmethod
    def detect(cls, platform_name: str | None = None) -> OperatingSystem:
        name = (platform_name or sys.platform).lower()
        if name.startswith("win") or name.startswith("cygwin"):
            return cls.WINDOWS
        if name.startswith("darwin"):
            return cls.MACOS
        return cls.LINUX

    @property
    def display_name(self) -> str:
        return {
            OperatingSystem.LINUX: "Linux",
            OperatingSystem.MACOS: "macOS",
            OperatingSystem.WINDOWS: "Windows",
        }[self]

    @property
    def is_unix(self) -> bool:
        return self is not OperatingSystem.WINDOWS

    def home_directory(self) -> Path:
        if self is OperatingSystem.WINDOWS:
            profile = os.environ.get("USERPROFILE")
            if profile:
                return Path(profile)
            drive, home_path = os.environ.get("HOMEDRIVE"), os.environ.get("HOMEPATH")
            if drive and home_path:
                return Path(drive + home_path)
            return Path.home()
        return Path(os.environ.get("HOME") or "/tmp")

    def cache_directory(self) -> Path:
        home = self.home_directory()
        if self is OperatingSystem.WINDOWS:
            return home / "AppData" / "Local" / "fluentvox"
        if self is OperatingSystem.MACOS:
            return home / "Library" / "Caches" / "fluentvox"
        return home / ".cache" / "fluentvox"

    def huggingface_home(self) -> Path:
        home = self.home_directory()
        if self is OperatingSystem.WINDOWS:
            return home / "AppData" / "Local" / "huggingface"
        return home / ".cache" / "huggingface"

    def huggingface_hub_cache(self) -> Path:
        return self.huggingface_home() / "hub"

    def interpreter_candidates(self) -> tuple[str, ...]:
        """Default interpreter commands, most preferred first."""
        if self is OperatingSystem.WINDOWS:
            return _WINDOWS_INTERPRETER_CANDIDATES
        return _POSIX_INTERPRETER_CANDIDATES

    def venv_interpreter_paths(self, venv_root: Path) -> tuple[Path, ...]:
        """Interpreter locations inside one virtual environment root."""
        if self is OperatingSystem.WINDOWS:
            return (venv_root / "Scripts" / "python.exe",)
        return (venv_root / "bin" / "python", venv_root / "bin" / "python3")

    def python_install_hint(self) -> str:
        return {
            OperatingSystem.WINDOWS: (
                "Download from https://python.org or run: winget install Python.Python.3.11"
            ),
            OperatingSystem.MACOS: "Run: brew install python@3.11",
            OperatingSystem.LINUX: (
                "Run: sudo apt install python3.11 python3.11-venv (Ubuntu/Debian) "
                "or sudo dnf install python3.11 (Fedora)"
            ),
        }[self]

    def ffmpeg_install_hint(self) -> str:
        return {
            OperatingSystem.WINDOWS: (
                "Download from https://ffmpeg.org or run: winget install FFmpeg"
            ),
            OperatingSystem.MACOS: "Run: brew install ffmpeg",
            OperatingSystem.LINUX: (
                "Run: sudo apt install ffmpeg (Ubuntu/Debian) "
                "or sudo dnf install ffmpeg (Fedora)"
            ),
        }[self]


def architecture(machine: str | None = None) -> str:
    """Return the normalized CPU architecture name."""
    raw = machine if machine is not None else platform.machine()
    lowered = raw.lower()
    if lowered in {"x86_64", "amd64"}:
        return "x86_64"
    if lowered in {"arm64", "aarch64"}:
        return "arm64"
    if lowered in {"i386", "i686", "x86"}:
        return "x86"
    return raw


def is_apple_silicon(os_kind: OperatingSystem | None = None, machine: str | None = None) -> bool:
    resolved_os = os_kind or OperatingSystem.detect()
    return resolved_os is OperatingSystem.MACOS and architecture(machine) == "arm64"


def has_nvidia_gpu_potential(os_kind: OperatingSystem | None = None) -> bool:
    """macOS ships Metal rather than CUDA; every other host may carry an NVIDIA GPU."""
    return (os_kind or OperatingSystem.detect()) is not OperatingSystem.MACOS


def platform_info(os_kind: OperatingSystem | None = None) -> dict[str, object]:
    """Describe the host for diagnostics output."""
    resolved_os = os_kind or OperatingSystem.detect()
    return {
        "os": resolved_os.value,
        "os_name": resolved_os.display_name,
        "architecture": architecture(),
        "python_version": platform.python_version(),
        "home_directory": str(resolved_os.home_directory()),
        "cache_directory": str(resolved_os.cache_directory()),
        "is_unix": resolved_os.is_unix,
        "has_nvidia_potential": has_nvidia_gpu_potential(resolved_os),
        "is_apple_silicon": is_apple_silicon(resolved_os),
    }
