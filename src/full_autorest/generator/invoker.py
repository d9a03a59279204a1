"""Process invoker -- run AutoRest as a subprocess under a deadline.

:func:`build_arguments` turns a language, a list of input specifications and
a :class:`~full_autorest.generator.options.GeneratorOptions` into the
positional-sensitive argument vector AutoRest expects::

    --go --use="@microsoft.azure/autorest.go@~2" --tag="v1"
        --output-folder="/tmp/generated" https://.../readme.md

:func:`invoke` resolves ``autorest`` on ``PATH``, wires the child's output
streams straight to the sinks from the options, and blocks until the child
exits, the deadline passes, or the caller sets its cancel event. It returns
``None`` on exit status zero and otherwise raises one of:

* :class:`~full_autorest.exceptions.GeneratorFailedError` -- the generator
  exited non-zero (tool failure).
* :class:`~full_autorest.exceptions.InvocationError` and subclasses -- the
  generator could not be found, started, or finished in time
  (infrastructure failure).

On every exit path the child's process group is killed and reaped and any
pump threads copying its output are joined before :func:`invoke` returns.
"""

from __future__ import annotations

import io
import json
import logging
import os
import shlex
import shutil
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import IO, Optional, Sequence, Union

from full_autorest.exceptions import (
    GeneratorFailedError,
    GeneratorNotFoundError,
    InvocationCancelledError,
    InvocationError,
    InvocationTimeoutError,
)
from full_autorest.generator.options import (
    GeneratorLanguage,
    GeneratorOptions,
    Sink,
    language_flag,
)

logger = logging.getLogger(__name__)

AUTOREST_EXECUTABLE = "autorest"
"""Bare name of the generator binary, resolved through ``PATH``."""

_CHUNK_SIZE = 64 * 1024
_POLL_INTERVAL = 0.05


# ------------------------------------------------------------------ #
# Argument vector
# ------------------------------------------------------------------ #


def quote(value: str) -> str:
    """Double-quote *value* with backslash escapes so it stays one token."""
    return json.dumps(value, ensure_ascii=False)


def build_arguments(
    language: Union[GeneratorLanguage, str],
    input_specs: Sequence[str],
    options: GeneratorOptions,
) -> list[str]:
    """Build the AutoRest argument vector (without the executable).

    Order is fixed: language flag, ``--use`` and ``--tag`` when explicitly
    set, ``--output-folder`` (always, using the resolved default when
    unset), then every input specification verbatim.

    Args:
        language: Generator language member or raw flag token.
        input_specs: Locations (URLs or paths) of the API descriptions.
        options: Options controlling this run.

    Returns:
        The arguments to pass after the executable name.
    """
    args = [language_flag(language)]

    use_val, has_use = options.use()
    if has_use:
        args.append(f"--use={quote(use_val)}")

    tag_val, has_tag = options.tag()
    if has_tag:
        args.append(f"--tag={quote(tag_val)}")

    output_folder, _ = options.output_folder()
    args.append(f"--output-folder={quote(str(output_folder))}")

    args.extend(input_specs)
    return args


def format_command(
    language: Union[GeneratorLanguage, str],
    input_specs: Sequence[str],
    options: GeneratorOptions,
    executable: str = AUTOREST_EXECUTABLE,
) -> str:
    """Render the full command line as a shell-safe string (for logs and dry runs)."""
    return shlex.join([executable, *build_arguments(language, input_specs, options)])


# ------------------------------------------------------------------ #
# Stream wiring
# ------------------------------------------------------------------ #


def _has_fileno(sink: Sink) -> bool:
    """Return True if *sink* is backed by a real OS file descriptor."""
    try:
        sink.fileno()
    except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
        return False
    return True


class _Pump(threading.Thread):
    """Copy bytes from a child pipe to a sink as they arrive."""

    def __init__(self, source: IO[bytes], sink: Sink, name: str) -> None:
        super().__init__(name=name, daemon=True)
        self._source = source
        self._sink = sink

    def run(self) -> None:
        try:
            for chunk in iter(lambda: self._source.read1(_CHUNK_SIZE), b""):
                try:
                    self._sink.write(chunk)
                except (OSError, ValueError) as exc:
                    # The sink is gone; keep draining so the child never
                    # blocks on a full pipe.
                    logger.warning("Dropping %s output: %s", self.name, exc)
                    self._sink = None
                    self._drain()
                    return
        finally:
            self._source.close()

    def _drain(self) -> None:
        for _ in iter(lambda: self._source.read1(_CHUNK_SIZE), b""):
            pass


class _StreamBinding:
    """Decide how each child stream reaches its sink.

    ``subprocess.DEVNULL`` and raw descriptors go straight to the child, as
    do file objects with a real descriptor. Anything else is fed through a
    pipe and a :class:`_Pump` thread. When stdout and stderr share one sink,
    stderr is merged into stdout by the OS so emission order is kept.
    """

    def __init__(self, stdout: Sink, stderr: Sink) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._pumps: list[_Pump] = []

        merged = stdout is stderr and not isinstance(stdout, int)
        self.stdout_target = self._target(stdout)
        self.stderr_target = subprocess.STDOUT if merged else self._target(stderr)

    @staticmethod
    def _target(sink: Sink) -> Union[int, IO[bytes]]:
        if isinstance(sink, int):
            return sink
        if _has_fileno(sink):
            if hasattr(sink, "flush"):
                sink.flush()
            return sink
        return subprocess.PIPE

    def start(self, proc: subprocess.Popen) -> None:
        if self.stdout_target == subprocess.PIPE:
            self._pumps.append(_Pump(proc.stdout, self._stdout, "autorest-stdout"))
        if self.stderr_target == subprocess.PIPE:
            self._pumps.append(_Pump(proc.stderr, self._stderr, "autorest-stderr"))
        for pump in self._pumps:
            pump.start()

    def join(self) -> None:
        for pump in self._pumps:
            pump.join()


# ------------------------------------------------------------------ #
# Process lifecycle
# ------------------------------------------------------------------ #


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the child together with anything it spawned, then reap it."""
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    elif proc.poll() is None:
        proc.kill()
    proc.wait()


def _wait(
    proc: subprocess.Popen,
    deadline: Optional[float],
    cancel_event: Optional[threading.Event],
) -> int:
    """Block until *proc* exits, the deadline passes, or *cancel_event* is set."""
    while True:
        remaining = None if deadline is None else deadline - time.monotonic()
        if remaining is not None and remaining <= 0:
            raise InvocationTimeoutError("autorest exceeded its deadline and was killed")
        if cancel_event is not None and cancel_event.is_set():
            raise InvocationCancelledError("autorest invocation was cancelled")

        if cancel_event is None:
            step = remaining
        elif remaining is None:
            step = _POLL_INTERVAL
        else:
            step = min(_POLL_INTERVAL, remaining)

        try:
            return proc.wait(timeout=step)
        except subprocess.TimeoutExpired:
            continue


def invoke(
    language: Union[GeneratorLanguage, str],
    input_specs: Sequence[str],
    options: GeneratorOptions,
    *,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    executable: str = AUTOREST_EXECUTABLE,
) -> None:
    """Execute AutoRest on the local machine.

    Args:
        language: Generator language member or raw flag token.
        input_specs: Locations of the API descriptions, passed verbatim.
        options: Output folder, flags, and stream sinks for this run.
        timeout: Seconds the generator may run before it is killed.
            ``None`` waits indefinitely.
        cancel_event: When set by another thread the generator is killed.
        executable: Name (or path) of the generator binary.

    Raises:
        GeneratorNotFoundError: *executable* is not on ``PATH``.
        InvocationCancelledError: *cancel_event* was set before or during
            the run.
        InvocationTimeoutError: The deadline expired before or during the run.
        InvocationError: The process could not be started.
        GeneratorFailedError: The generator exited with a non-zero status.
    """
    args = build_arguments(language, input_specs, options)

    binary = shutil.which(executable)
    if binary is None:
        raise GeneratorNotFoundError(f"'{executable}' was not found on PATH")
    if cancel_event is not None and cancel_event.is_set():
        raise InvocationCancelledError("autorest invocation was cancelled before launch")
    if timeout is not None and timeout <= 0:
        raise InvocationTimeoutError("deadline expired before autorest was launched")

    deadline = None if timeout is None else time.monotonic() + timeout
    stdout, _ = options.stdout()
    stderr, _ = options.stderr()
    streams = _StreamBinding(stdout, stderr)

    command = [binary, *args]
    logger.debug("Running %s", shlex.join(command))
    try:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=streams.stdout_target,
            stderr=streams.stderr_target,
            start_new_session=(os.name == "posix"),
        )
    except OSError as exc:
        raise InvocationError(f"Unable to start {Path(binary).name}: {exc}") from exc

    streams.start(proc)
    try:
        returncode = _wait(proc, deadline, cancel_event)
    except InvocationError as exc:
        logger.warning("autorest (pid %d) stopped: %s", proc.pid, exc)
        raise
    finally:
        _kill_process_group(proc)
        streams.join()

    if returncode != 0:
        logger.warning("autorest (pid %d) exited with status %d", proc.pid, returncode)
        raise GeneratorFailedError(returncode)
    logger.info("autorest (pid %d) finished successfully", proc.pid)
