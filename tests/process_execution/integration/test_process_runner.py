"""Process runner integration tests against the current interpreter."""

from __future__ import annotations

import io
import os
import sys
import time
from pathlib import Path

import pytest
from fluentvox.interpreter_discovery import InterpreterLocator, VersionQueryResult
from fluentvox.process_execution import (
    SPAWN_FAILURE_EXIT_CODE,
    ExecutionFailedError,
    ExecutionTimeoutError,
    OutputStream,
    ProcessRunner,
)


def _current_interpreter_runner(**kwargs: object) -> ProcessRunner:
    locator = InterpreterLocator(
        sys.executable,
        environ={},
        probe=lambda command: VersionQueryResult(0, f"Python {sys.version.split()[0]}"),
    )
    return ProcessRunner(locator, **kwargs)  # type: ignore[arg-type]


def _process_is_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except PermissionError:
        return False
    return False


def test_run_captures_both_streams_and_exit_code() -> None:
    runner = _current_interpreter_runner()

    outcome = runner.run(
        (
            sys.executable,
            "-c",
            "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)",
        )
    )

    assert outcome.exit_code == 3
    assert outcome.stdout.strip() == "out"
    assert outcome.stderr.strip() == "err"
    assert outcome.error_text == "err"
    assert outcome.timed_out is False


@pytest.mark.skipif(sys.platform.startswith("win"), reason="process group check is POSIX-only")
def test_timeout_kills_child_and_reports_timeout() -> None:
    runner = _current_interpreter_runner()
    started = time.monotonic()

    outcome = runner.run((sys.executable, "-c", "import time; time.sleep(30)"), timeout_seconds=1)

    assert outcome.timed_out is True
    assert time.monotonic() - started < 15
    assert outcome.pid is not None
    assert _process_is_gone(outcome.pid)
    with pytest.raises(ExecutionTimeoutError):
        outcome.raise_for_status()


@pytest.mark.skipif(sys.platform.startswith("win"), reason="process group check is POSIX-only")
def test_streaming_timeout_kills_child() -> None:
    runner = _current_interpreter_runner()
    chunks: list[str] = []

    outcome = runner.run(
        (
            sys.executable,
            "-c",
            "import sys, time; print('started', flush=True); time.sleep(30)",
        ),
        timeout_seconds=1,
        on_output=lambda chunk, stream: chunks.append(chunk),
    )

    assert outcome.timed_out is True
    assert "started" in "".join(chunks)
    assert "started" in outcome.stdout
    assert outcome.pid is not None
    assert _process_is_gone(outcome.pid)


def test_observer_receives_output_before_process_exits() -> None:
    runner = _current_interpreter_runner()
    deliveries: list[tuple[float, str, OutputStream]] = []
    script = (
        "import sys, time\n"
        "print('first', flush=True)\n"
        "time.sleep(1.5)\n"
        "print('progress', file=sys.stderr, flush=True)\n"
        "print('second', flush=True)\n"
    )

    started = time.monotonic()
    outcome = runner.run(
        (sys.executable, "-c", script),
        timeout_seconds=30,
        on_output=lambda chunk, stream: deliveries.append(
            (time.monotonic() - started, chunk, stream)
        ),
    )
    finished = time.monotonic() - started

    first_delivery = next(entry for entry in deliveries if "first" in entry[1])
    assert first_delivery[2] is OutputStream.STDOUT
    assert first_delivery[0] < finished - 1.0
    assert any(stream is OutputStream.STDERR for _, _, stream in deliveries)
    assert outcome.stdout.split() == ["first", "second"]


def test_environment_override_beats_inherited_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLUENTVOX_PROBE", "inherited")
    runner = _current_interpreter_runner()

    outcome = runner.run(
        (sys.executable, "-c", "import os; print(os.environ['FLUENTVOX_PROBE'])"),
        environment={"FLUENTVOX_PROBE": "override"},
    )

    assert outcome.stdout.strip() == "override"


def test_run_script_uses_resolved_interpreter_and_raises_on_failure() -> None:
    runner = _current_interpreter_runner()

    assert runner.run_script("print(6 * 7)").stdout.strip() == "42"
    with pytest.raises(ExecutionFailedError) as error:
        runner.run_script("raise SystemExit('broken script')")
    assert "broken script" in str(error.value)


def test_run_file_passes_arguments(tmp_path: Path) -> None:
    script = tmp_path / "echo_args.py"
    script.write_text("import sys\nprint(' '.join(sys.argv[1:]))\n", encoding="utf-8")
    runner = _current_interpreter_runner()

    outcome = runner.run_file(script, ["alpha", "beta"])

    assert outcome.stdout.strip() == "alpha beta"


def test_spawn_failure_becomes_failed_outcome(tmp_path: Path) -> None:
    runner = _current_interpreter_runner()

    outcome = runner.run((str(tmp_path / "missing-binary"),))

    assert outcome.exit_code == SPAWN_FAILURE_EXIT_CODE
    assert "Could not start" in outcome.error_text


def test_verbose_mode_echoes_child_output() -> None:
    echo = io.StringIO()
    runner = _current_interpreter_runner(verbose=True, echo_stream=echo)

    runner.run((sys.executable, "-c", "print('visible')"))

    assert "visible" in echo.getvalue()


def test_pip_version_reads_current_interpreter() -> None:
    runner = _current_interpreter_runner()

    version = runner.pip_version()

    if version is not None:
        assert version[0].isdigit()
        assert runner.is_package_installed("pip")
