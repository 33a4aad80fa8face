"""Subprocess execution with streaming output and a hard timeout."""

from __future__ import annotations

import codecs
import logging
import os
import queue
import shlex
import signal
import subprocess
import sys
import threading
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO, Any, TextIO

from fluentvox.interpreter_discovery import InterpreterLocator
from fluentvox.platform_support import OperatingSystem, child_environment

from .execution_contracts import (
    ExecutionOutcome,
    ExecutionRequest,
    OutputObserver,
    OutputStream,
)

SPAWN_FAILURE_EXIT_CODE = 127

_READ_CHUNK_BYTES = 4096
_READER_JOIN_SECONDS = 5.0

logger = logging.getLogger(__name__)

_Chunk = tuple[OutputStream, str | None]


class ProcessRunner:
    """Runs commands against the resolved interpreter or any other executable.

    `run()` never raises for a failed child; it returns an `ExecutionOutcome`. The
    interpreter helpers (`run_script`, `run_file`, `pip`) raise on failure instead.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        locator: InterpreterLocator | None = None,
        *,
        timeout_seconds: float = 300,
        verbose: bool = False,
        environment: Mapping[str, str] | None = None,
        echo_stream: TextIO | None = None,
        os_kind: OperatingSystem | None = None,
    ) -> None:
        self._locator = locator or InterpreterLocator()
        self._timeout_seconds = timeout_seconds
        self._verbose = verbose
        self._environment = dict(environment or {})
        self._echo_stream = echo_stream
        self._os_kind = os_kind or self._locator.os_kind

    @property
    def locator(self) -> InterpreterLocator:
        return self._locator

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def verbose(self) -> bool:
        return self._verbose

    def run(  # pylint: disable=too-many-arguments
        self,
        command: Sequence[str],
        *,
        environment: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
        on_output: OutputObserver | None = None,
        cwd: Path | None = None,
    ) -> ExecutionOutcome:
        """Run one command and normalize its result."""
        overrides = {**self._environment, **(environment or {})}
        request = ExecutionRequest(
            command=tuple(command),
            environment=overrides,
            timeout_seconds=self._timeout_seconds if timeout_seconds is None else timeout_seconds,
            on_output=on_output,
            cwd=cwd,
        )
        return self.execute(request)

    def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        environment = child_environment(request.environment, os_kind=self._os_kind)
        logger.debug("Spawning %s", _describe(request.command))
        try:
            process = subprocess.Popen(  # pylint: disable=consider-using-with
                list(request.command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=environment,
                cwd=request.cwd,
                **_session_options(self._os_kind),
            )
        except OSError as exc:
            logger.warning("Could not start %s: %s", _describe(request.command), exc)
            return ExecutionOutcome(
                command=request.command,
                exit_code=SPAWN_FAILURE_EXIT_CODE,
                stdout="",
                stderr=f"Could not start {request.command[0]}: {exc}",
                timeout_seconds=request.timeout_seconds,
            )

        if request.on_output is not None or self._verbose:
            outcome = self._collect_streaming(process, request)
        else:
            outcome = self._collect_buffered(process, request)

        if outcome.timed_out:
            logger.warning(
                "Killed %s after %s seconds", _describe(request.command), request.timeout_seconds
            )
        else:
            logger.debug("Process %s exited with code %s", outcome.pid, outcome.exit_code)
        return outcome

    def run_script(
        self,
        source: str,
        *,
        timeout_seconds: float | None = None,
        on_output: OutputObserver | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        """Run inline source with `-c` against the resolved interpreter.

        Raises:
          RuntimeNotFoundError: If no interpreter resolves.
          ExecutionTimeoutError: If the script outlives the timeout.
          ExecutionFailedError: If the script exits non-zero.
        """
        command = (*self._locator.command(), "-c", source)
        return self.run(
            command,
            environment=environment,
            timeout_seconds=timeout_seconds,
            on_output=on_output,
        ).raise_for_status()

    def run_file(
        self,
        script_path: Path | str,
        arguments: Sequence[str] = (),
        *,
        timeout_seconds: float | None = None,
        on_output: OutputObserver | None = None,
    ) -> ExecutionOutcome:
        """Run a script file with arguments against the resolved interpreter."""
        command = (*self._locator.command(), str(script_path), *arguments)
        return self.run(
            command, timeout_seconds=timeout_seconds, on_output=on_output
        ).raise_for_status()

    def pip(
        self,
        arguments: Sequence[str],
        *,
        timeout_seconds: float | None = None,
        on_output: OutputObserver | None = None,
    ) -> ExecutionOutcome:
        """Run `<interpreter> -m pip <arguments>`."""
        command = (*self._locator.command(), "-m", "pip", *arguments)
        return self.run(
            command, timeout_seconds=timeout_seconds, on_output=on_output
        ).raise_for_status()

    def pip_version(self) -> str | None:
        """pip version reported by the interpreter, or None when pip is unusable."""
        outcome = self.run((*self._locator.command(), "-m", "pip", "--version"), timeout_seconds=60)
        if not outcome.succeeded:
            return None
        parts = outcome.stdout.split()
        if len(parts) >= 2 and parts[0] == "pip":
            return parts[1]
        return None

    def is_package_installed(self, package: str) -> bool:
        return self.package_version(package) is not None

    def package_version(self, package: str) -> str | None:
        """Installed version of a distribution per `pip show`, or None."""
        outcome = self.run(
            (*self._locator.command(), "-m", "pip", "show", package), timeout_seconds=60
        )
        if not outcome.succeeded:
            return None
        for line in outcome.stdout.splitlines():
            key, _, value = line.partition(":")
            if key.strip().lower() == "version":
                return value.strip() or None
        return None

    def _collect_buffered(
        self, process: subprocess.Popen[bytes], request: ExecutionRequest
    ) -> ExecutionOutcome:
        timeout = request.timeout_seconds or None
        timed_out = False
        try:
            stdout_bytes, stderr_bytes = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill_process_tree(process, self._os_kind)
            stdout_bytes, stderr_bytes = process.communicate()

        stdout = _decode(stdout_bytes)
        stderr = _decode(stderr_bytes)
        self._echo(stdout)
        self._echo(stderr)
        return ExecutionOutcome(
            command=request.command,
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            timeout_seconds=request.timeout_seconds,
            pid=process.pid,
        )

    def _collect_streaming(
        self, process: subprocess.Popen[bytes], request: ExecutionRequest
    ) -> ExecutionOutcome:
        chunks: queue.Queue[_Chunk] = queue.Queue()
        readers = [
            threading.Thread(
                target=_pump_stream,
                args=(process.stdout, OutputStream.STDOUT, chunks),
                daemon=True,
            ),
            threading.Thread(
                target=_pump_stream,
                args=(process.stderr, OutputStream.STDERR, chunks),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        deadline = (
            time.monotonic() + request.timeout_seconds if request.timeout_seconds else None
        )
        collected: dict[OutputStream, list[str]] = {
            OutputStream.STDOUT: [],
            OutputStream.STDERR: [],
        }
        open_streams = len(readers)
        timed_out = False
        while open_streams:
            wait = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                stream, chunk = chunks.get(timeout=wait)
            except queue.Empty:
                timed_out = True
                break
            if chunk is None:
                open_streams -= 1
                continue
            collected[stream].append(chunk)
            self._echo(chunk)
            if request.on_output is not None:
                request.on_output(chunk, stream)

        if not timed_out:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                process.wait(timeout=remaining)
            except subprocess.TimeoutExpired:
                timed_out = True

        if timed_out:
            _kill_process_tree(process, self._os_kind)
            process.wait()
        for reader in readers:
            reader.join(timeout=_READER_JOIN_SECONDS)
        _drain_remaining(chunks, collected)

        return ExecutionOutcome(
            command=request.command,
            exit_code=process.returncode,
            stdout="".join(collected[OutputStream.STDOUT]),
            stderr="".join(collected[OutputStream.STDERR]),
            timed_out=timed_out,
            timeout_seconds=request.timeout_seconds,
            pid=process.pid,
        )

    def _echo(self, text: str) -> None:
        if not self._verbose or not text:
            return
        stream = self._echo_stream or sys.stderr
        stream.write(text)
        stream.flush()


def _pump_stream(pipe: IO[bytes] | None, stream: OutputStream, sink: queue.Queue[_Chunk]) -> None:
    """Forward decoded chunks as soon as the child writes them; None marks end of stream."""
    if pipe is None:
        sink.put((stream, None))
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            data = pipe.read1(_READ_CHUNK_BYTES)  # type: ignore[attr-defined]
            if not data:
                break
            text = decoder.decode(data)
            if text:
                sink.put((stream, text))
        tail = decoder.decode(b"", final=True)
        if tail:
            sink.put((stream, tail))
    except (OSError, ValueError):
        logger.debug("Stopped reading %s after the pipe closed", stream.value)
    finally:
        pipe.close()
        sink.put((stream, None))


def _drain_remaining(
    chunks: queue.Queue[_Chunk], collected: dict[OutputStream, list[str]]
) -> None:
    while True:
        try:
            stream, chunk = chunks.get_nowait()
        except queue.Empty:
            return
        if chunk is not None:
            collected[stream].append(chunk)


def _kill_process_tree(process: subprocess.Popen[bytes], os_kind: OperatingSystem) -> None:
    """Kill the child together with everything it spawned."""
    if os_kind is OperatingSystem.WINDOWS:
        try:
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(process.pid)],
                capture_output=True,
                timeout=10,
                check=False,
            )
        except (OSError, subprocess.SubprocessError):
            logger.debug("taskkill failed for %s", process.pid)
        if process.poll() is None:
            process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError:
        process.kill()


def _session_options(os_kind: OperatingSystem) -> dict[str, Any]:
    """Start the child in its own process group so a timeout can kill the whole tree."""
    if os_kind is OperatingSystem.WINDOWS:
        return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}
    return {"start_new_session": True}


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _describe(command: Sequence[str]) -> str:
    shown = [token if len(token) <= 80 else token[:77] + "..." for token in command]
    return shlex.join(shown)
