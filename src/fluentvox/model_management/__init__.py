"""Model management exports."""

from .model_catalog import DOWNLOAD_TIMEOUT_SECONDS, ModelDownloadError, ModelManager, ModelStatus

__all__ = [
    "DOWNLOAD_TIMEOUT_SECONDS",
    "ModelDownloadError",
    "ModelManager",
    "ModelStatus",
]
