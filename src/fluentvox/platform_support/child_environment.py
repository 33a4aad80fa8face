"""Environment variables exposed to runtime child processes."""

from __future__ import annotations

import os
from collections.abc import Mapping

from .operating_system import OperatingSystem


def runtime_environment_defaults(os_kind: OperatingSystem | None = None) -> dict[str, str]:
    """Variables every runtime child receives unless the caller overrides them."""
    resolved_os = os_kind or OperatingSystem.detect()
    defaults = {
        "HF_HUB_DISABLE_PROGRESS_BARS": "0",
        "TRANSFORMERS_VERBOSITY": "warning",
        "HF_HOME": str(resolved_os.huggingface_home()),
        "PYTHONUNBUFFERED": "1",
    }
    if resolved_os is OperatingSystem.MACOS:
        defaults["PYTORCH_ENABLE_MPS_FALLBACK"] = "1"
    return defaults


def merge_environment(
    overrides: Mapping[str, str] | None = None,
    *,
    inherited: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Layer overrides on top of the inherited environment; overrides win on collision."""
    merged = dict(os.environ if inherited is None else inherited)
    for key, value in (overrides or {}).items():
        merged[str(key)] = str(value)
    return merged


def child_environment(
    overrides: Mapping[str, str] | None = None,
    *,
    os_kind: OperatingSystem | None = None,
    inherited: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Inherited environment plus runtime defaults plus caller overrides, in that order."""
    layered = dict(runtime_environment_defaults(os_kind))
    layered.update(overrides or {})
    return merge_environment(layered, inherited=inherited)
