"""Command line interface entry point."""

from __future__ import annotations

import dataclasses
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click

from fluentvox.audio_conversion import AudioConversionError, AudioConverter
from fluentvox.configuration import (
    DEFAULT_SETTINGS_FILENAME,
    ConfigurationError,
    FluentVoxSettings,
    load_settings,
    write_placeholder_configuration,
)
from fluentvox.interpreter_discovery import InterpreterLocator
from fluentvox.model_management import ModelDownloadError, ModelManager
from fluentvox.process_execution import OutputObserver, OutputStream, ProcessRunner
from fluentvox.requirements_check import RequirementCheck, RequirementsChecker
from fluentvox.script_templates import Language, TTSModel
from fluentvox.synthesis import FluentVox, InvalidInputError

_MODEL_ALIASES = {
    "standard": TTSModel.CHATTERBOX,
    "turbo": TTSModel.CHATTERBOX_TURBO,
    "multilingual": TTSModel.CHATTERBOX_MULTILINGUAL,
}
_MODEL_CHOICES = [model.value for model in TTSModel] + list(_MODEL_ALIASES)
_PRESETS = ("narration", "dialogue", "voice-agent", "audiobook")


class CliError(Exception):
    """Custom CLI error."""


@dataclass
class CliState:
    """Settings and the shared runtime collaborators for one CLI invocation."""

    settings: FluentVoxSettings | None = None
    runner: ProcessRunner | None = None

    def process_runner(self) -> ProcessRunner:
        if self.runner is None:
            settings = self.settings or FluentVoxSettings()
            self.runner = ProcessRunner(
                InterpreterLocator(settings.python_path),
                timeout_seconds=settings.timeout_seconds,
                verbose=settings.verbose,
            )
        return self.runner

    def model_manager(self) -> ModelManager:
        settings = self.settings or FluentVoxSettings()
        return ModelManager(self.process_runner(), models_path=settings.models_path)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="fluentvox")
@click.option(
    "--config",
    "config_path",
    required=False,
    type=click.Path(path_type=str),
    help=(
        f"Path to a YAML configuration file (default: ./{DEFAULT_SETTINGS_FILENAME} if present)"
    ),
)
@click.option(
    "-v", "--verbose", is_flag=True, default=False, help="Show runtime output and debug logs."
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """FluentVox: Chatterbox text-to-speech from the command line."""
    state = ctx.ensure_object(CliState)
    if state.settings is None:
        try:
            state.settings = load_settings(config_path)
        except ConfigurationError as exc:
            raise CliError(str(exc)) from exc
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
        state.settings = dataclasses.replace(state.settings, verbose=True)


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_SETTINGS_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML configuration file to write",
)
def generate_config(output_path: str) -> None:
    """Write a commented YAML configuration with every default."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="doctor")
@click.option(
    "--download-default",
    is_flag=True,
    default=False,
    help="Download the default model when it is missing.",
)
@click.pass_obj
def doctor(state: CliState, download_default: bool) -> None:
    """Check Python, PyTorch, Chatterbox, FFmpeg and GPU support."""
    runner = state.process_runner()
    checker = RequirementsChecker(
        runner, pytorch_pins=(state.settings or FluentVoxSettings()).pytorch
    )
    report = checker.check()
    for check in report.checks:
        click.echo(_format_check(check))

    if not report.passed:
        raise CliError("Some requirements are not met. Run `fluentvox install` to fix them.")
    click.echo("All requirements are met.")

    if download_default:
        model = (state.settings or FluentVoxSettings()).default_model
        manager = state.model_manager()
        if manager.is_model_available(model):
            click.echo(f"Model {model.value} is already downloaded.")
            return
        click.echo(f"Downloading {model.value} (this may take a while)...")
        try:
            manager.download_model(model, _progress_printer(runner))
        except ModelDownloadError as exc:
            raise CliError(str(exc)) from exc
        click.echo(f"Model {model.value} downloaded.")


@cli.command(name="generate")
@click.argument("text")
@click.option(
    "-o", "--output", "output_path", type=click.Path(path_type=str), help="Output file path"
)
@click.option(
    "-m",
    "--model",
    "model_name",
    type=click.Choice(_MODEL_CHOICES),
    default=None,
    help="Model to use (default from configuration)",
)
@click.option("--voice", type=click.Path(path_type=str), help="Reference audio for voice cloning")
@click.option(
    "-l",
    "--language",
    type=click.Choice([language.value for language in Language]),
    default=None,
    help="Language code for the multilingual model",
)
@click.option("--exaggeration", type=float, default=None, help="Expressiveness (0.25-2.0)")
@click.option("--temperature", type=float, default=None, help="Randomness (0.05-5.0)")
@click.option("--cfg", "cfg_weight", type=float, default=None, help="Pace/CFG weight (0.2-1.0)")
@click.option("--seed", type=int, default=None, help="Random seed (0 leaves it unseeded)")
@click.option("--preset", type=click.Choice(_PRESETS), default=None, help="Apply a voice preset")
@click.option("--trim-silence", is_flag=True, default=False, help="Trim leading/trailing silence")
@click.pass_obj
def generate(  # pylint: disable=too-many-arguments
    state: CliState,
    text: str,
    output_path: str | None,
    model_name: str | None,
    voice: str | None,
    language: str | None,
    exaggeration: float | None,
    temperature: float | None,
    cfg_weight: float | None,
    seed: int | None,
    preset: str | None,
    trim_silence: bool,
) -> None:
    """Synthesize TEXT to an audio file and print its path."""
    settings = state.settings or FluentVoxSettings()
    runner = state.process_runner()
    builder = FluentVox(settings, runner=runner).text(text)
    try:
        if preset is not None:
            _apply_preset(builder, preset)
        if model_name is not None:
            builder.model(_MODEL_ALIASES.get(model_name, model_name))
        if voice is not None:
            builder.voice_from(voice)
        if language is not None:
            builder.language(language)
        if exaggeration is not None:
            builder.exaggeration(exaggeration)
        if temperature is not None:
            builder.temperature(temperature)
        if cfg_weight is not None:
            builder.cfg_weight(cfg_weight)
        if seed is not None:
            builder.seed(seed)
        if trim_silence:
            builder.trim_silence()
        if output_path is not None:
            builder.save_to(output_path)
        outcome = builder.on_progress(_progress_printer(runner)).generate()
    except InvalidInputError as exc:
        raise CliError(str(exc)) from exc

    if not outcome.is_successful():
        raise CliError(outcome.error or "Generation failed")
    click.echo(f"Duration: {outcome.formatted_duration()}", err=True)
    click.echo(str(outcome.output_path))


@cli.command(name="models")
@click.argument("action", type=click.Choice(["list", "download"]), default="list")
@click.option(
    "-m",
    "--model",
    "model_name",
    type=click.Choice([model.value for model in TTSModel]),
    default=None,
    help="Model to download",
)
@click.option(
    "-a", "--all", "download_all", is_flag=True, default=False, help="Download all models"
)
@click.pass_obj
def models(state: CliState, action: str, model_name: str | None, download_all: bool) -> None:
    """List model availability or download models."""
    manager = state.model_manager()
    if action == "list":
        for status in manager.list_models():
            marker = "downloaded" if status.available else "not downloaded"
            click.echo(f"{status.model.value:<26} {marker:<15} {status.description}")
        click.echo(f"Models directory: {manager.models_path()}")
        return

    if download_all:
        selected = list(TTSModel)
    elif model_name is not None:
        selected = [TTSModel(model_name)]
    else:
        raise CliError("Please specify a model with --model or use --all to download all models.")

    progress = _progress_printer(state.process_runner())
    for model in selected:
        if manager.is_model_available(model):
            click.echo(f"{model.value}: already downloaded")
            continue
        click.echo(f"{model.value}: downloading (this may take a while)...")
        try:
            manager.download_model(model, progress)
        except ModelDownloadError as exc:
            raise CliError(str(exc)) from exc
        click.echo(f"{model.value}: downloaded")


@cli.command(name="install")
@click.option(
    "--pytorch", is_flag=True, default=False, help="Also install PyTorch (pinned versions)"
)
@click.option(
    "--pytorch-latest",
    is_flag=True,
    default=False,
    help="Install the latest PyTorch instead of the pinned versions",
)
@click.option("-u", "--upgrade", is_flag=True, default=False, help="Upgrade existing packages")
@click.option("--cpu-only", is_flag=True, default=False, help="Install CPU-only PyTorch wheels")
@click.pass_obj
def install(
    state: CliState, pytorch: bool, pytorch_latest: bool, upgrade: bool, cpu_only: bool
) -> None:
    """Install Chatterbox TTS and, optionally, PyTorch into the resolved runtime."""
    runner = state.process_runner()
    checker = RequirementsChecker(
        runner, pytorch_pins=(state.settings or FluentVoxSettings()).pytorch
    )
    python_check = checker.check_python()
    if not python_check.status:
        raise CliError(python_check.message)
    click.echo(python_check.message)

    progress = _progress_printer(runner)
    if pytorch or pytorch_latest:
        pytorch_check = checker.check_pytorch()
        if pytorch_check.status and not upgrade:
            click.echo(f"{pytorch_check.message} (already installed)")
        else:
            click.echo("Installing PyTorch (this may take a while)...")
            result = checker.install_pytorch(progress, use_latest=pytorch_latest, cpu_only=cpu_only)
            if not result.success:
                raise CliError(f"Failed to install PyTorch\n{result.error}")
            click.echo("PyTorch installed successfully")

    chatterbox_check = checker.check_chatterbox()
    if chatterbox_check.status and not upgrade:
        click.echo(f"{chatterbox_check.message} (already installed)")
        return
    verb = "Upgrading" if upgrade else "Installing"
    click.echo(f"{verb} Chatterbox TTS (this may take a while)...")
    if upgrade:
        result = checker.upgrade_chatterbox(progress)
    else:
        result = checker.install_chatterbox(progress)
    if not result.success:
        raise CliError(
            f"Failed to install Chatterbox TTS\n{result.error}\n\n"
            f"Try running manually: {checker.python_command()} -m pip install chatterbox-tts"
        )
    click.echo("Chatterbox TTS installed successfully")


@cli.command(name="convert")
@click.argument("input_path", type=click.Path(path_type=str))
@click.argument("output_path", type=click.Path(path_type=str))
@click.option(
    "--format",
    "audio_format",
    type=click.Choice(["wav", "mp3", "m4a", "ogg", "opus", "flac"]),
    default=None,
    help="Target format (default: the output file suffix)",
)
@click.pass_obj
def convert(state: CliState, input_path: str, output_path: str, audio_format: str | None) -> None:
    """Convert INPUT_PATH to OUTPUT_PATH with FFmpeg."""
    converter = AudioConverter(state.process_runner())
    try:
        converted = converter.convert_audio(input_path, output_path, audio_format)
    except AudioConversionError as exc:
        raise CliError(str(exc)) from exc
    if not converted:
        raise CliError(f"FFmpeg could not convert {input_path}")
    click.echo(str(Path(output_path).resolve()))


def _apply_preset(builder: FluentVox, preset: str) -> None:
    {
        "narration": builder.for_narration,
        "dialogue": builder.for_dialogue,
        "voice-agent": builder.for_voice_agent,
        "audiobook": builder.for_audiobook,
    }[preset]()


def _format_check(check: RequirementCheck) -> str:
    if check.status:
        marker = "[ok]"
    elif check.optional:
        marker = "[--]"
    else:
        marker = "[!!]"
    return f"{marker} {check.name:<10} {check.message}"


def _progress_printer(runner: ProcessRunner) -> OutputObserver:
    """Echo runtime progress lines unless the runner already echoes everything."""
    verbose = runner.verbose

    def _print(chunk: str, stream: OutputStream) -> None:
        if not verbose and stream is OutputStream.STDERR:
            click.echo(chunk, nl=False, err=True)

    return _print


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
