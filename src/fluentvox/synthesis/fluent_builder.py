"""Fluent speech generation client."""

from __future__ import annotations

import hashlib
import logging
import tempfile
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from fluentvox.audio_conversion import FORMAT_PRESETS, AudioConversionError, AudioConverter
from fluentvox.configuration import FluentVoxSettings
from fluentvox.interpreter_discovery import (
    InterpreterLocator,
    RuntimeNotFoundError,
    RuntimeVersionTooLowError,
)
from fluentvox.model_management import ModelDownloadError, ModelManager
from fluentvox.process_execution import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    OutputObserver,
    ProcessRunner,
)
from fluentvox.result_mapping import (
    GenerationFailure,
    GenerationOutcome,
    GenerationSuccess,
    extract_metadata,
    metadata_float,
    metadata_int,
)
from fluentvox.script_templates import (
    Device,
    GenerationParameters,
    Language,
    TTSModel,
    build_generation_script,
)

DEFAULT_SAMPLE_RATE = 24000

EXAGGERATION_RANGE = (0.25, 2.0)
CFG_WEIGHT_RANGE = (0.2, 1.0)
TEMPERATURE_RANGE = (0.05, 5.0)

_EXTENSION_FORMATS = {
    "mp3": "mp3",
    "m4a": "m4a",
    "aac": "m4a",
    "ogg": "ogg",
    "opus": "opus",
    "flac": "flac",
}

_GENERATION_ERRORS = (
    RuntimeNotFoundError,
    RuntimeVersionTooLowError,
    ExecutionFailedError,
    ExecutionTimeoutError,
    ModelDownloadError,
)

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised for caller mistakes detected before any process is started."""


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, float(value)))


class FluentVox:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """Chainable builder that renders one utterance through Chatterbox.

    Example:
      FluentVox().text("Hello there").expressive().save_to("hello.wav").generate()
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        settings: FluentVoxSettings | None = None,
        *,
        locator: InterpreterLocator | None = None,
        runner: ProcessRunner | None = None,
        model_manager: ModelManager | None = None,
        converter: AudioConverter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or FluentVoxSettings()
        defaults = self._settings.generation
        self._text: str | None = None
        self._audio_prompt_path: Path | None = None
        self._output_path: Path | None = None
        self._model = self._settings.default_model
        self._device = self._settings.device
        self._language: Language | None = None
        self._exaggeration = defaults.exaggeration
        self._temperature = defaults.temperature
        self._cfg_weight = defaults.cfg_weight
        self._seed = defaults.seed
        self._trim_silence = False
        self._timeout_seconds = self._settings.timeout_seconds
        self._verbose = self._settings.verbose
        self._on_progress: OutputObserver | None = None

        self._locator = locator or (
            runner.locator if runner is not None else InterpreterLocator(self._settings.python_path)
        )
        self._injected_runner = runner
        self._runner: ProcessRunner | None = runner
        self._injected_model_manager = model_manager
        self._injected_converter = converter
        self._clock = clock or datetime.now

    @classmethod
    def make(cls, settings: FluentVoxSettings | None = None) -> FluentVox:
        return cls(settings)

    @property
    def locator(self) -> InterpreterLocator:
        return self._locator

    # Text

    def text(self, text: str) -> FluentVox:
        self._text = text
        return self

    # Model selection

    def model(self, model: TTSModel | str) -> FluentVox:
        self._model = TTSModel(model)
        return self

    def standard(self) -> FluentVox:
        return self.model(TTSModel.CHATTERBOX)

    def turbo(self) -> FluentVox:
        return self.model(TTSModel.CHATTERBOX_TURBO)

    def multilingual(self) -> FluentVox:
        return self.model(TTSModel.CHATTERBOX_MULTILINGUAL)

    # Voice cloning

    def voice_from(self, audio_path: Path | str) -> FluentVox:
        """Clone the voice in a reference recording.

        Raises:
          InvalidInputError: If the file does not exist.
        """
        path = Path(audio_path)
        if not path.is_file():
            raise InvalidInputError(f"Reference audio file not found: {path}")
        self._audio_prompt_path = path.resolve()
        return self

    def clone_voice(self, audio_path: Path | str) -> FluentVox:
        return self.voice_from(audio_path)

    def default_voice(self) -> FluentVox:
        self._audio_prompt_path = None
        return self

    # Language, used by the multilingual model

    def language(self, language: Language | str) -> FluentVox:
        self._language = Language(language)
        return self

    def english(self) -> FluentVox:
        return self.language(Language.ENGLISH)

    def french(self) -> FluentVox:
        return self.language(Language.FRENCH)

    def spanish(self) -> FluentVox:
        return self.language(Language.SPANISH)

    def german(self) -> FluentVox:
        return self.language(Language.GERMAN)

    def portuguese(self) -> FluentVox:
        return self.language(Language.PORTUGUESE)

    def japanese(self) -> FluentVox:
        return self.language(Language.JAPANESE)

    def chinese(self) -> FluentVox:
        return self.language(Language.CHINESE)

    # Expression

    def exaggeration(self, value: float) -> FluentVox:
        self._exaggeration = _clamp(value, EXAGGERATION_RANGE)
        return self

    def subtle(self) -> FluentVox:
        return self.exaggeration(0.3)

    def neutral(self) -> FluentVox:
        return self.exaggeration(0.5)

    def expressive(self) -> FluentVox:
        return self.exaggeration(0.7)

    def dramatic(self) -> FluentVox:
        return self.exaggeration(1.0)

    # Pace

    def cfg_weight(self, value: float) -> FluentVox:
        self._cfg_weight = _clamp(value, CFG_WEIGHT_RANGE)
        return self

    def pace(self, value: float) -> FluentVox:
        return self.cfg_weight(value)

    def slow(self) -> FluentVox:
        return self.cfg_weight(0.3)

    def normal_pace(self) -> FluentVox:
        return self.cfg_weight(0.5)

    def fast(self) -> FluentVox:
        return self.cfg_weight(0.7)

    # Randomness

    def temperature(self, value: float) -> FluentVox:
        self._temperature = _clamp(value, TEMPERATURE_RANGE)
        return self

    def deterministic(self) -> FluentVox:
        return self.temperature(0.3)

    def creative(self) -> FluentVox:
        return self.temperature(1.2)

    def seed(self, seed: int) -> FluentVox:
        self._seed = int(seed)
        return self

    # Audio processing

    def trim_silence(self) -> FluentVox:
        self._trim_silence = True
        return self

    def keep_silence(self) -> FluentVox:
        self._trim_silence = False
        return self

    # Device

    def device(self, device: Device | str) -> FluentVox:
        self._device = Device(device)
        return self

    def cuda(self) -> FluentVox:
        return self.device(Device.CUDA)

    def mps(self) -> FluentVox:
        return self.device(Device.MPS)

    def cpu(self) -> FluentVox:
        return self.device(Device.CPU)

    def auto_device(self) -> FluentVox:
        return self.device(Device.AUTO)

    # Output and process

    def save_to(self, path: Path | str) -> FluentVox:
        self._output_path = Path(path)
        return self

    def output(self, path: Path | str) -> FluentVox:
        return self.save_to(path)

    def timeout(self, seconds: int) -> FluentVox:
        """Seconds before generation is killed; 0 waits without bound."""
        if seconds < 0:
            raise InvalidInputError("timeout must not be negative.")
        self._timeout_seconds = seconds
        return self

    def verbose(self, enabled: bool = True) -> FluentVox:
        self._verbose = enabled
        if self._injected_runner is None:
            self._runner = None
        return self

    def on_progress(self, callback: OutputObserver) -> FluentVox:
        self._on_progress = callback
        return self

    # Presets

    def for_narration(self) -> FluentVox:
        return self.neutral().normal_pace().temperature(0.6)

    def for_dialogue(self) -> FluentVox:
        return self.expressive().normal_pace().temperature(0.9)

    def for_voice_agent(self) -> FluentVox:
        return self.turbo().neutral().fast().deterministic()

    def for_audiobook(self) -> FluentVox:
        return self.dramatic().slow().creative()

    # Execution

    def parameters(self, output_path: Path | None = None) -> GenerationParameters:
        """Validated parameters for the current builder state.

        Raises:
          InvalidInputError: If the text is empty or the reference audio vanished.
        """
        self._validate()
        return GenerationParameters(
            text=self._text or "",
            output_path=(output_path or self._output_path or self._default_output_path()),
            model=self._model,
            device=self._device,
            exaggeration=self._exaggeration,
            temperature=self._temperature,
            cfg_weight=self._cfg_weight,
            seed=self._seed,
            trim_silence=self._trim_silence,
            audio_prompt_path=self._audio_prompt_path,
            language=self._language if self._model.is_multilingual else None,
        )

    def generate(self) -> GenerationOutcome:
        """Render the text to audio.

        Runtime, model and process failures come back as `GenerationFailure`.

        Raises:
          InvalidInputError: If the text is empty or the reference audio is missing.
        """
        parameters = self.parameters()
        output_path = parameters.output_path
        runner = self._process_runner()
        try:
            self._locator.ensure_minimum_version()
            self._model_manager(runner).ensure_model(self._model, self._on_progress)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            execution = runner.run_script(
                build_generation_script(parameters),
                timeout_seconds=self._timeout_seconds,
                on_output=self._on_progress,
            )
        except _GENERATION_ERRORS as exc:
            logger.warning("Generation failed: %s", exc)
            return GenerationFailure(message=f"Generation failed: {exc}")
        except OSError as exc:
            return GenerationFailure(message=f"Generation failed: {exc}")

        if not output_path.exists():
            return GenerationFailure(
                message=f"Generation finished but no audio was written to {output_path}"
            )

        reported = extract_metadata(execution.stdout)
        return GenerationSuccess(
            output_path=output_path,
            text=parameters.text,
            sample_rate=metadata_int(reported, "sample_rate", DEFAULT_SAMPLE_RATE),
            duration=metadata_float(reported, "duration", 0.0),
            metadata=self._request_metadata(),
        )

    def generate_raw(self) -> bytes | None:
        """Audio bytes of a WAV render, or None on failure. The temporary file is removed."""
        temporary = Path(tempfile.gettempdir()) / f"fluentvox_{uuid.uuid4().hex}.wav"
        previous = self._output_path
        self._output_path = temporary
        try:
            outcome = self.generate()
            if not outcome.is_successful():
                return None
            return temporary.read_bytes()
        finally:
            self._output_path = previous
            temporary.unlink(missing_ok=True)

    # Conversion

    def convert_to(
        self,
        output_path: Path | str,
        options: Mapping[str, Any] | None = None,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        """Generate, then convert to the format named by the output suffix.

        `options` may carry `bitrate` (kbps) or `quality` for ogg.

        Raises:
          InvalidInputError: If the suffix is not a supported audio format.
        """
        destination = Path(output_path)
        extension = destination.suffix.lstrip(".").lower()
        audio_format = _EXTENSION_FORMATS.get(extension)
        if audio_format is None:
            raise InvalidInputError(
                f"Unsupported audio format: .{extension}. "
                "Supported formats: mp3, m4a, aac, ogg, opus, flac"
            )
        settings = dict(options or {})
        if audio_format == "ogg":
            return self.convert_to_ogg(
                destination, settings.get("quality", 5), delete_original=delete_original
            )
        if audio_format == "flac":
            return self.convert_to_flac(destination, delete_original=delete_original)
        bitrate_defaults = {"mp3": 192, "m4a": 128, "opus": 96}
        return self._generate_and_convert(
            audio_format,
            destination,
            {"bitrate": int(settings.get("bitrate", bitrate_defaults[audio_format]))},
            delete_original=delete_original,
        )

    def convert_to_mp3(
        self,
        output_path: Path | str | None = None,
        bitrate_kbps: int = 192,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        return self._generate_and_convert(
            "mp3", output_path, {"bitrate": bitrate_kbps}, delete_original=delete_original
        )

    def convert_to_m4a(
        self,
        output_path: Path | str | None = None,
        bitrate_kbps: int = 128,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        return self._generate_and_convert(
            "m4a", output_path, {"bitrate": bitrate_kbps}, delete_original=delete_original
        )

    def convert_to_ogg(
        self,
        output_path: Path | str | None = None,
        quality: int = 5,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        return self._generate_and_convert(
            "ogg", output_path, {"quality": quality}, delete_original=delete_original
        )

    def convert_to_opus(
        self,
        output_path: Path | str | None = None,
        bitrate_kbps: int = 96,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        return self._generate_and_convert(
            "opus", output_path, {"bitrate": bitrate_kbps}, delete_original=delete_original
        )

    def convert_to_flac(
        self,
        output_path: Path | str | None = None,
        *,
        delete_original: bool = False,
    ) -> GenerationOutcome:
        return self._generate_and_convert("flac", output_path, {}, delete_original=delete_original)

    def _generate_and_convert(
        self,
        audio_format: str,
        output_path: Path | str | None,
        preset_settings: dict[str, int],
        *,
        delete_original: bool,
    ) -> GenerationOutcome:
        rendered = self.generate()
        if not isinstance(rendered, GenerationSuccess):
            return rendered

        destination = (
            Path(output_path)
            if output_path is not None
            else rendered.output_path.with_suffix(f".{audio_format}")
        )
        if "bitrate" in preset_settings:
            options = FORMAT_PRESETS[audio_format](preset_settings["bitrate"])
        elif "quality" in preset_settings:
            options = FORMAT_PRESETS[audio_format](preset_settings["quality"])
        else:
            options = FORMAT_PRESETS[audio_format]()

        try:
            converted = self._audio_converter().convert(rendered.output_path, destination, options)
        except AudioConversionError as exc:
            return GenerationFailure(message=str(exc))
        if not converted:
            return GenerationFailure(message=f"Failed to convert to {audio_format.upper()}")

        if delete_original and rendered.output_path != destination:
            rendered.output_path.unlink(missing_ok=True)
        return GenerationSuccess(
            output_path=destination,
            text=rendered.text,
            sample_rate=rendered.sample_rate,
            duration=rendered.duration,
            metadata={**rendered.metadata, "converted_to": audio_format, **preset_settings},
        )

    # Helpers

    def _validate(self) -> None:
        if not self._text or not self._text.strip():
            raise InvalidInputError("Text cannot be empty.")
        if self._model.is_multilingual and self._language is None:
            self._language = Language.ENGLISH
        if self._audio_prompt_path is not None and not self._audio_prompt_path.is_file():
            raise InvalidInputError(f"Reference audio file not found: {self._audio_prompt_path}")

    def _default_output_path(self) -> Path:
        base = self._settings.output_path or Path.cwd()
        digest = hashlib.md5((self._text or "").encode("utf-8")).hexdigest()[:8]
        stamp = self._clock().strftime("%Y%m%d_%H%M%S")
        return base / f"fluentvox_{stamp}_{digest}.{self._settings.audio_format}"

    def _request_metadata(self) -> dict[str, Any]:
        return {
            "model": self._model.value,
            "device": self._device.value,
            "exaggeration": self._exaggeration,
            "temperature": self._temperature,
            "cfg_weight": self._cfg_weight,
            "seed": self._seed,
            "language": self._language.value if self._language is not None else None,
        }

    def _process_runner(self) -> ProcessRunner:
        if self._runner is None:
            self._runner = ProcessRunner(
                self._locator,
                timeout_seconds=self._timeout_seconds,
                verbose=self._verbose,
            )
        return self._runner

    def _model_manager(self, runner: ProcessRunner) -> ModelManager:
        if self._injected_model_manager is not None:
            return self._injected_model_manager
        return ModelManager(runner, models_path=self._settings.models_path)

    def _audio_converter(self) -> AudioConverter:
        if self._injected_converter is not None:
            return self._injected_converter
        return AudioConverter(self._process_runner(), timeout_seconds=self._timeout_seconds or 300)
