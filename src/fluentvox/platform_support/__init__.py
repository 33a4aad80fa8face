"""Platform support exports."""

from .child_environment import child_environment, merge_environment, runtime_environment_defaults
from .operating_system import (
    OperatingSystem,
    architecture,
    has_nvidia_gpu_potential,
    is_apple_silicon,
    platform_info,
)

__all__ = [
    "OperatingSystem",
    "architecture",
    "child_environment",
    "has_nvidia_gpu_potential",
    "is_apple_silicon",
    "merge_environment",
    "platform_info",
    "runtime_environment_defaults",
]
