"""Local availability and download of Chatterbox model weights."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from fluentvox.interpreter_discovery import RuntimeNotFoundError
from fluentvox.process_execution import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    OutputObserver,
    ProcessRunner,
)
from fluentvox.script_templates import (
    AVAILABLE_MARKER,
    TTSModel,
    build_model_check_script,
    build_model_download_script,
)

DOWNLOAD_TIMEOUT_SECONDS = 1800

logger = logging.getLogger(__name__)


class ModelDownloadError(Exception):
    """Raised when model weights could not be fetched."""

    def __init__(self, model: TTSModel, reason: str) -> None:
        super().__init__(f"Failed to download model '{model.value}': {reason}")
        self.model = model
        self.reason = reason


@dataclass(frozen=True)
class ModelStatus:
    """Availability of one model in the local cache."""

    model: TTSModel
    available: bool

    @property
    def description(self) -> str:
        return self.model.description


class ModelManager:
    """Checks and populates the HuggingFace cache through the runtime."""

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        models_path: Path | None = None,
        download_timeout_seconds: float = DOWNLOAD_TIMEOUT_SECONDS,
        check_timeout_seconds: float | None = None,
    ) -> None:
        self._runner = runner
        self._models_path = models_path
        self._download_timeout_seconds = download_timeout_seconds
        self._check_timeout_seconds = check_timeout_seconds

    def is_model_available(self, model: TTSModel) -> bool:
        """True when the model loads from the local cache on CPU.

        The check runs under the runner default timeout unless `check_timeout_seconds` is set.
        """
        try:
            outcome = self._runner.run_script(
                build_model_check_script(model),
                timeout_seconds=self._check_timeout_seconds,
            )
        except (RuntimeNotFoundError, ExecutionFailedError, ExecutionTimeoutError) as exc:
            logger.debug("Availability check for %s failed: %s", model.value, exc)
            return False
        lines = outcome.stdout.strip().splitlines()
        return bool(lines) and lines[-1].strip() == AVAILABLE_MARKER

    def ensure_model(self, model: TTSModel, on_progress: OutputObserver | None = None) -> bool:
        """Download the model unless it is already cached.

        Raises:
          ModelDownloadError: If the download fails.
        """
        if self.is_model_available(model):
            return True
        return self.download_model(model, on_progress)

    def download_model(self, model: TTSModel, on_progress: OutputObserver | None = None) -> bool:
        """Fetch the model weights into the HuggingFace cache.

        Raises:
          ModelDownloadError: If the runtime is missing or the download script fails.
        """
        logger.info("Downloading model %s", model.value)
        try:
            self._runner.run_script(
                build_model_download_script(model),
                timeout_seconds=self._download_timeout_seconds,
                on_output=on_progress,
            )
        except (RuntimeNotFoundError, ExecutionFailedError, ExecutionTimeoutError) as exc:
            raise ModelDownloadError(model, str(exc)) from exc
        return True

    def list_models(self) -> tuple[ModelStatus, ...]:
        return tuple(
            ModelStatus(model=model, available=self.is_model_available(model))
            for model in TTSModel
        )

    def models_path(self) -> Path:
        """Configured models directory, else the HuggingFace hub cache."""
        if self._models_path is not None:
            return self._models_path
        return self._runner.locator.os_kind.huggingface_hub_cache()
