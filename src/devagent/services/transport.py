"""
Transport Layer for the MCP server.

A transport moves opaque JSON messages in and out of the process and knows
nothing about their meaning. The server registers one message handler and
one error handler; the last registration wins.

StdioTransport:
    Reads newline-delimited JSON from stdin and writes one JSON line per
    message to stdout. Internally it is a bounded channel:

        reader task  --parse-->  asyncio.Queue  --dispatcher-->  handler tasks

    The reader only parses and enqueues. The dispatcher starts one task
    per message, so a slow tool call never blocks other requests and
    responses may be written out of arrival order (clients correlate by
    id). ``max_concurrency=1`` turns this into strict one-at-a-time
    processing.

Failure semantics:
    Malformed lines and I/O errors go to the error handler; the stream
    keeps going. Neither start() nor send() raises for I/O problems.
    Output to stdout goes through an asyncio pipe writer and is drained,
    so a slow reader on the other end never stalls the event loop.

Author: dev-agent Team
"""

import asyncio
import inspect
import sys
from abc import ABC, abstractmethod
from typing import IO, Any, Awaitable, Callable, Optional, TextIO, Union

from ..constants import DEFAULT_MESSAGE_QUEUE_SIZE, ErrorMessage
from ..logging import get_logger
from .jsonrpc import Message, ProtocolError, parse_message, serialize


logger = get_logger(__name__)

# Largest single line accepted from stdin (bytes)
STDIN_LINE_LIMIT = 16 * 1024 * 1024

MessageHandler = Callable[[Message], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Exception], None]
Writer = Union[asyncio.StreamWriter, TextIO]

# Marks the end of input on the message queue
_END_OF_INPUT = object()


class Transport(ABC):
    """
    Abstract transport for JSON-RPC messages.

    Subclasses implement start/stop/send; handler registration, the
    closed signal and in-flight tracking live here.
    """

    def __init__(self) -> None:
        self._message_handler: Optional[MessageHandler] = None
        self._error_handler: Optional[ErrorHandler] = None
        self._closed = asyncio.Event()
        self._in_flight: set[asyncio.Task] = set()

    def on_message(self, handler: MessageHandler) -> None:
        """Set the handler invoked for every parsed message."""
        self._message_handler = handler

    def on_error(self, handler: ErrorHandler) -> None:
        """Set the handler invoked for parse and I/O errors."""
        self._error_handler = handler

    @abstractmethod
    async def start(self) -> None:
        """Begin reading messages."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop reading and release the streams. Idempotent."""

    @abstractmethod
    async def send(self, message: Message) -> None:
        """Write one message."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the transport is started and accepting sends."""

    @property
    def in_flight(self) -> int:
        """Number of message handlers still running."""
        return len(self._in_flight)

    async def wait_closed(self) -> None:
        """Wait until the input side has ended or the transport stopped."""
        await self._closed.wait()

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for in-flight message handlers to finish.

        Args:
            timeout: Seconds to wait at most. None waits indefinitely.

        Returns:
            Number of handlers still running when the wait ended.
        """
        pending = {task for task in self._in_flight if task is not asyncio.current_task()}
        if not pending:
            return 0
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        return len(still_running)

    def _report_error(self, error: Exception) -> None:
        if self._error_handler is None:
            logger.error("Transport error with no error handler", extra={"error": str(error)})
            return
        self._error_handler(error)

    async def _deliver(self, message: Message) -> None:
        handler = self._message_handler
        if handler is None:
            logger.debug("Dropping message, no handler registered")
            return
        try:
            outcome = handler(message)
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._report_error(exc)


class StdioTransport(Transport):
    """
    Newline-delimited JSON over a byte stream (stdin/stdout by default).

    Args:
        reader: Stream to read from. Defaults to the process stdin.
        writer: Stream to write to. Defaults to a non-blocking writer on the
            process stdout. A plain text stream is written synchronously.
            Pass an asyncio.StreamWriter for flow-controlled writes.
        queue_size: Parsed messages buffered between reader and dispatcher.
        max_concurrency: Cap on concurrently running handlers (None = no cap).
    """

    def __init__(
        self,
        reader: Optional[asyncio.StreamReader] = None,
        writer: Optional[Writer] = None,
        queue_size: int = DEFAULT_MESSAGE_QUEUE_SIZE,
        max_concurrency: Optional[int] = None,
    ):
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._queue_size = queue_size
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

        self._queue: Optional[asyncio.Queue] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._dispatch_task: Optional[asyncio.Task] = None
        self._pipe_transport: Optional[asyncio.BaseTransport] = None
        self._owns_writer = False
        self._write_lock = asyncio.Lock()
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def start(self) -> None:
        if self._ready:
            return

        if self._reader is None:
            self._reader = await self._open_stdin()
        if self._writer is None:
            self._writer = await self._open_stdout()

        self._closed.clear()
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._reader_task = asyncio.create_task(self._read_loop(), name="stdio-reader")
        self._dispatch_task = asyncio.create_task(self._dispatch_loop(), name="stdio-dispatcher")
        self._ready = True

        logger.debug("Stdio transport started", extra={"queue_size": self._queue_size})

    async def stop(self) -> None:
        if not self._ready:
            return
        self._ready = False

        tasks = [t for t in (self._reader_task, self._dispatch_task) if t is not None]
        tasks.extend(t for t in self._in_flight if t is not asyncio.current_task())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._reader_task = None
        self._dispatch_task = None
        self._queue = None

        if self._pipe_transport is not None:
            self._pipe_transport.close()
            self._pipe_transport = None

        if self._owns_writer and isinstance(self._writer, asyncio.StreamWriter):
            self._writer.close()
            self._writer = None
            self._owns_writer = False

        self._closed.set()
        logger.debug("Stdio transport stopped")

    async def send(self, message: Message) -> None:
        """
        Serialize ``message`` and write it as one line.

        Stream writers are drained before the lock is released, so a client
        that reads slowly only delays other sends, never the event loop.
        """
        if not self._ready or self._writer is None:
            self._report_error(RuntimeError(ErrorMessage.TRANSPORT_NOT_READY))
            return

        try:
            line = serialize(message) + "\n"
        except (TypeError, ValueError) as exc:
            self._report_error(exc)
            return

        async with self._write_lock:
            writer = self._writer
            if writer is None:
                self._report_error(RuntimeError(ErrorMessage.TRANSPORT_NOT_READY))
                return
            try:
                if isinstance(writer, asyncio.StreamWriter):
                    writer.write(line.encode("utf-8"))
                    await writer.drain()
                else:
                    writer.write(line)
                    writer.flush()
            except (OSError, ValueError) as exc:
                self._report_error(exc)

    async def _open_stdin(self) -> asyncio.StreamReader:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=STDIN_LINE_LIMIT)
        protocol = asyncio.StreamReaderProtocol(reader)
        self._pipe_transport, _ = await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        return reader

    async def _open_stdout(self) -> Writer:
        try:
            writer = await open_pipe_writer(sys.stdout)
        except (OSError, ValueError) as exc:
            # Regular files cannot be wrapped in a pipe transport
            logger.debug("Writing stdout synchronously", extra={"error": str(exc)})
            return sys.stdout
        self._owns_writer = True
        return writer

    async def _read_loop(self) -> None:
        assert self._reader is not None and self._queue is not None
        queue = self._queue
        while True:
            try:
                raw = await self._reader.readline()
            except ValueError as exc:
                # Line longer than the reader limit; the oversized line is discarded
                self._report_error(exc)
                continue
            except OSError as exc:
                self._report_error(exc)
                break

            if not raw:
                logger.debug("Input stream closed")
                break

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            try:
                message = parse_message(line)
            except ProtocolError as exc:
                self._report_error(exc)
                continue

            await queue.put(message)

        await queue.put(_END_OF_INPUT)

    async def _dispatch_loop(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            item = await queue.get()
            if item is _END_OF_INPUT:
                break

            if self._semaphore is not None:
                await self._semaphore.acquire()

            task = asyncio.create_task(self._run_handler(item))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

        self._closed.set()

    async def _run_handler(self, message: Message) -> None:
        try:
            await self._deliver(message)
        finally:
            if self._semaphore is not None:
                self._semaphore.release()


async def open_pipe_writer(pipe: IO[Any]) -> asyncio.StreamWriter:
    """
    Wrap a writable pipe in an asyncio.StreamWriter.

    Writes through the returned writer are buffered by the event loop and
    ``drain()`` waits for the reader to catch up instead of blocking.

    Raises:
        ValueError: If ``pipe`` is not a pipe, socket or character device.
    """
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, pipe)
    return asyncio.StreamWriter(transport, protocol, None, loop)
