"""CLI smoke tests."""

from click.testing import CliRunner
from fluentvox.cli import cli


def test_cli_displays_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("generate", "generate-config", "doctor", "models", "install", "convert"):
        assert command in result.output


def test_generate_help_lists_voice_controls() -> None:
    result = CliRunner().invoke(cli, ["generate", "--help"])

    assert result.exit_code == 0
    assert "--exaggeration" in result.output
    assert "--preset" in result.output
    assert "voice-agent" in result.output
