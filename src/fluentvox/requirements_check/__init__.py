"""Requirements check exports."""

from .requirement_checks import (
    PIP_MISSING_MESSAGE,
    PYTORCH_CUDA_INDEX_URL,
    PackageInstallOutcome,
    RequirementCheck,
    RequirementReport,
    RequirementsChecker,
    pytorch_install_arguments,
)

__all__ = [
    "PIP_MISSING_MESSAGE",
    "PYTORCH_CUDA_INDEX_URL",
    "PackageInstallOutcome",
    "RequirementCheck",
    "RequirementReport",
    "RequirementsChecker",
    "pytorch_install_arguments",
]
