"""Request handler for ``/generate``.

Each request moves through a fixed sequence::

    Received -> TempDirAllocated -> Invoking -> Responding -> Cleaned

:class:`GenerateHandler` allocates a private temporary output directory,
builds a :class:`~full_autorest.generator.options.GeneratorOptions` bound to
a :class:`ResponseStream`, and hands both to a :class:`GenerationRun` that
invokes AutoRest on a worker thread under the configured deadline. The
worker removes the directory in a ``finally`` block, so cleanup happens on
success, generator failure, infrastructure failure and timeout alike.

The event loop never blocks on a run: the worker pushes output into an
:class:`asyncio.Queue` with ``call_soon_threadsafe`` and the response body
awaits it. When the client disconnects the body stops and the run is
cancelled, which kills the generator.

Wire contract
-------------
The generator's stdout and stderr are merged into the response body in the
order they are emitted. Because the status line is sent before the
generator finishes, the body always ends with a status line::

    full_autorest: exit-status=0
    full_autorest: exit-status=3
    full_autorest: error=timeout autorest exceeded its deadline and was killed

With ``buffered=true`` the output is held until the generator exits and
the HTTP status also reflects the outcome: 200 on success, 502 when the
generator exits non-zero (exit status in ``X-Generator-Exit-Code``), 504 on
timeout and 500 for any other infrastructure failure. The body still ends
with the same status line.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from full_autorest.exceptions import (
    FullAutorestError,
    GeneratorFailedError,
    InvocationError,
    InvocationTimeoutError,
    WorkspaceError,
)
from full_autorest.generator.invoker import invoke
from full_autorest.generator.options import GeneratorOptions
from full_autorest.models import GenerationRequest, GeneratorConfig

logger = logging.getLogger(__name__)

TRAILER_PREFIX = b"full_autorest: "
EXIT_CODE_HEADER = "X-Generator-Exit-Code"
WORKSPACE_PREFIX = "full_autorest"

DISCONNECT_POLL_SECONDS = 0.5
"""How often a quiet streaming response checks whether its client is gone."""

_EOF = None

DisconnectCheck = Callable[[], Awaitable[bool]]


def status_line(error: Optional[FullAutorestError]) -> bytes:
    """Render the trailing status line for a finished run."""
    if error is None:
        detail = "exit-status=0"
    elif isinstance(error, GeneratorFailedError):
        detail = f"exit-status={error.returncode}"
    else:
        detail = f"error={getattr(error, 'kind', 'internal')} {error}"
    return TRAILER_PREFIX + detail.encode("utf-8") + b"\n"


class ResponseStream:
    """Byte sink written from worker threads and read on the event loop.

    Writers (the invoker's pump thread) push chunks; the HTTP layer awaits
    them in order. :meth:`close` appends the status line and ends iteration.
    After :meth:`abandon` further writes raise :class:`BrokenPipeError`, so
    the pump stops forwarding output nobody will read.

    Args:
        loop: Event loop the reader runs on.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._lock = threading.Lock()
        self._last = b"\n"
        self._abandoned = False

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        with self._lock:
            if self._abandoned:
                raise BrokenPipeError("response reader went away")
            self._last = data[-1:]
            self._put(bytes(data))
        return len(data)

    def close(self, trailer: bytes = b"") -> None:
        with self._lock:
            if trailer and not self._abandoned:
                if self._last != b"\n":
                    self._put(b"\n")
                self._put(trailer)
            self._put(_EOF)

    def abandon(self) -> None:
        """Mark the reader as gone."""
        with self._lock:
            self._abandoned = True

    async def get(self) -> Optional[bytes]:
        """Next chunk, or ``None`` once the stream is closed."""
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _EOF:
                return
            yield chunk

    def _put(self, item: Optional[bytes]) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed: the server shut down under this request.
            self._abandoned = True


class GenerationRun:
    """One AutoRest invocation owned by one request.

    Owns the temporary output directory from the moment it is constructed;
    :meth:`start` launches the worker thread, which records :attr:`error`,
    removes the directory and only then closes the stream.

    Args:
        workspace: Freshly allocated output directory (removed when done).
        language: Language flag token.
        specs: Input specification locations.
        options: Options for the run; stdout/stderr are rebound to
            :attr:`stream`.
        timeout: Deadline in seconds.
        executable: Generator binary name.
        loop: Event loop the response is read on.
    """

    def __init__(
        self,
        workspace: Path,
        language: str,
        specs: list[str],
        options: GeneratorOptions,
        timeout: float,
        executable: str,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.workspace = workspace
        self.language = language
        self.specs = specs
        self.stream = ResponseStream(loop)
        self.options = options.set_stdout(self.stream).set_stderr(self.stream)
        self.timeout = timeout
        self.executable = executable
        self.cancel_event = threading.Event()
        self.error: Optional[FullAutorestError] = None
        self._thread = threading.Thread(
            target=self._run, name=f"generate-{workspace.name}", daemon=True
        )

    def start(self) -> GenerationRun:
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Kill the generator and stop forwarding its output."""
        self.stream.abandon()
        self.cancel_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        try:
            invoke(
                self.language,
                self.specs,
                self.options,
                timeout=self.timeout,
                cancel_event=self.cancel_event,
                executable=self.executable,
            )
        except FullAutorestError as exc:
            self.error = exc
            logger.warning("generate failed (%s): %s", type(exc).__name__, exc)
        except Exception as exc:
            logger.exception("unexpected error while running the generator")
            self.error = InvocationError(f"unexpected error: {exc}")
        finally:
            shutil.rmtree(self.workspace, ignore_errors=True)
            if self.workspace.exists():
                logger.warning("unable to remove workspace %s", self.workspace)
            self.stream.close(status_line(self.error))


async def stream_body(
    run: GenerationRun, is_disconnected: Optional[DisconnectCheck] = None
) -> AsyncIterator[bytes]:
    """Yield the run's output as it arrives, cancelling the run if the body stops early.

    While the generator is silent the client connection is checked every
    :data:`DISCONNECT_POLL_SECONDS` through *is_disconnected*.
    """
    finished = False
    try:
        while True:
            try:
                chunk = await asyncio.wait_for(run.stream.get(), DISCONNECT_POLL_SECONDS)
            except asyncio.TimeoutError:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("client disconnected, cancelling %s", run.workspace.name)
                    return
                continue
            if chunk is _EOF:
                finished = True
                return
            yield chunk
    finally:
        if not finished:
            run.cancel()


class GenerateHandler:
    """Callable handling one ``/generate`` request.

    Built once per application from an explicit
    :class:`~full_autorest.models.GeneratorConfig`; holds no per-request
    state, so concurrent requests never share anything but the logger.
    """

    def __init__(self, config: GeneratorConfig) -> None:
        self._config = config

    def allocate_workspace(self) -> Path:
        """Create a fresh, uniquely named directory under the system temp root.

        Raises:
            WorkspaceError: If the directory cannot be created.
        """
        try:
            return Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
        except OSError as exc:
            raise WorkspaceError(str(exc)) from exc

    def prepare(self, request: GenerationRequest, workspace: Path) -> GenerationRun:
        """Build the run for *request*, writing into *workspace*.

        Must be called on the event loop that will read the response.
        """
        options = GeneratorOptions().set_output_folder(workspace)
        if request.tag is not None:
            options.set_tag(request.tag)

        return GenerationRun(
            workspace=workspace,
            language=request.language or self._config.language,
            specs=list(request.specs) or list(self._config.input_specs),
            options=options,
            timeout=self._config.timeout_seconds,
            executable=self._config.executable,
            loop=asyncio.get_running_loop(),
        )

    async def __call__(
        self,
        request: GenerationRequest,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> Response:
        logger.info("request received: generate")

        try:
            workspace = self.allocate_workspace()
        except WorkspaceError as exc:
            logger.error("unable to allocate workspace: %s", exc)
            return PlainTextResponse(str(exc), status_code=500)

        try:
            run = self.prepare(request, workspace).start()
        except BaseException:
            shutil.rmtree(workspace, ignore_errors=True)
            raise

        body = stream_body(run, is_disconnected)
        if request.buffered:
            return await self._buffered_response(run, body)
        return StreamingResponse(body, media_type="text/plain")

    async def _buffered_response(
        self, run: GenerationRun, body: AsyncIterator[bytes]
    ) -> Response:
        # The stream closes only after the worker has recorded run.error.
        content = b"".join([chunk async for chunk in body])

        headers: dict[str, str] = {}
        error = run.error
        if error is None:
            status = 200
        elif isinstance(error, GeneratorFailedError):
            status = 502
            headers[EXIT_CODE_HEADER] = str(error.returncode)
        elif isinstance(error, InvocationTimeoutError):
            status = 504
        else:
            status = 500
        return Response(content, status_code=status, headers=headers, media_type="text/plain")
