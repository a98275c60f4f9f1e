"""Concurrent pump for native messaging stdio.

stdin is read only by one dedicated reader thread and stdout is
written only by one dedicated writer thread. The event loop talks
to both through bounded channels, so blocking stream I/O never
runs on the loop and a slow peer exerts back-pressure instead of
growing memory.

Reader: decodes frames and sends IOSuccess(message) items. On end
of stream it sends one IOFailure(Disconnected) and stops; on any
other error it sends that error and stops. A closed channel stops
it silently. Either way the channel is then finished, so later
receives return None.

Writer: receives encoded frames and writes+flushes each. A write
failure means the browser is gone; the writer stops and closes its
channel so later sends report Disconnected. No retries.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import IO, TYPE_CHECKING, TypeVar

from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.host import io_ops
from native_messaging.host.channel import CHANNEL_CAPACITY, Channel
from native_messaging.host.errors import (
    NmError,
    disconnected,
    internal_failure,
)
from native_messaging.host.protocol import (
    MAX_FROM_BROWSER,
    decode_message_opt,
    encode_message,
)

if TYPE_CHECKING:
    from collections.abc import Callable

R = TypeVar("R")

_logger = logging.getLogger(__name__)

READER_THREAD_NAME = "native-messaging-reader"
WRITER_THREAD_NAME = "native-messaging-writer"


def _spawn_blocking(
    fn: Callable[[], R],
    *,
    name: str,
) -> asyncio.Future[R]:
    """Run `fn` on its own daemon thread.

    Returns a loop future resolved with fn's return value, or with
    the exception it raised. Daemon threads never hold the process
    open while parked on a stdin read.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[R] = loop.create_future()

    def _set_result(value: R) -> None:
        if not future.done():
            future.set_result(value)

    def _set_exception(exc: Exception) -> None:
        if not future.done():
            future.set_exception(exc)

    def _resolve(
        apply: Callable[[R], None] | Callable[[Exception], None],
        outcome: R | Exception,
    ) -> None:
        try:
            loop.call_soon_threadsafe(apply, outcome)
        except RuntimeError:
            _logger.debug("event loop closed before %s finished", name)

    def _target() -> None:
        try:
            value = fn()
        except Exception as exc:  # noqa: BLE001
            _resolve(_set_exception, exc)
            return
        _resolve(_set_result, value)

    threading.Thread(target=_target, name=name, daemon=True).start()
    return future


def _read_loop(
    reader: IO[bytes],
    max_size: int,
    channel: Channel[IOResult[str, NmError]],
) -> None:
    while True:
        result = decode_message_opt(reader, max_size)
        if isinstance(result, IOFailure):
            _logger.warning(
                "reader stopping: %s",
                unsafe_perform_io(result.failure()),
            )
            channel.blocking_send(result)
            return
        message = unsafe_perform_io(result.unwrap())
        if message is None:
            _logger.debug("stdin reached end of stream")
            channel.blocking_send(IOFailure(disconnected()))
            return
        if not channel.blocking_send(IOSuccess(message)):
            _logger.debug("inbound channel closed; reader stopping")
            return


def _reader_worker(
    reader: IO[bytes],
    max_size: int,
    channel: Channel[IOResult[str, NmError]],
) -> None:
    """Reader thread body. Always drops the sending end on exit.

    Unexpected crashes become InternalFailure.
    """
    try:
        _read_loop(reader, max_size, channel)
    except Exception as exc:  # noqa: BLE001
        _logger.exception("reader thread crashed")
        channel.blocking_send(
            IOFailure(internal_failure(f"reader thread crashed: {exc!r}")),
        )
    finally:
        channel.finish_threadsafe()


def _writer_worker(
    writer: IO[bytes],
    channel: Channel[bytes],
) -> None:
    """Writer thread body. Always drops the receiving end on exit."""
    try:
        while True:
            frame = channel.blocking_recv()
            if frame is None:
                _logger.debug("outbound channel finished; writer stopping")
                return
            result = io_ops.send_frame(writer, frame)
            if isinstance(result, IOFailure):
                _logger.warning(
                    "writer stopping: %s",
                    unsafe_perform_io(result.failure()),
                )
                return
    finally:
        channel.close_threadsafe()


def spawn_reader(
    max_size: int = MAX_FROM_BROWSER,
    *,
    reader: IO[bytes] | None = None,
    capacity: int = CHANNEL_CAPACITY,
) -> Channel[IOResult[str, NmError]]:
    """Start the reader thread; return the channel it feeds.

    Must be called from a running event loop. Reads stdin unless
    another byte stream is given.
    """
    channel: Channel[IOResult[str, NmError]] = Channel(capacity)
    source = reader if reader is not None else io_ops.get_stdin_buffer()
    channel.bind_worker(
        _spawn_blocking(
            lambda: _reader_worker(source, max_size, channel),
            name=READER_THREAD_NAME,
        ),
    )
    return channel


def spawn_writer(
    *,
    writer: IO[bytes] | None = None,
    capacity: int = CHANNEL_CAPACITY,
) -> Channel[bytes]:
    """Start the writer thread; return the channel it drains.

    Must be called from a running event loop. Writes stdout unless
    another byte stream is given. Items must be complete frames.
    """
    channel: Channel[bytes] = Channel(capacity)
    sink = writer if writer is not None else io_ops.get_stdout_buffer()
    channel.bind_worker(
        _spawn_blocking(
            lambda: _writer_worker(sink, channel),
            name=WRITER_THREAD_NAME,
        ),
    )
    return channel


async def shutdown_writer(channel: Channel[bytes]) -> None:
    """Finish the sending side and wait for queued frames to flush."""
    await channel.finish()
    if channel.worker is not None:
        await channel.worker


async def get_message(
    max_size: int = MAX_FROM_BROWSER,
) -> IOResult[str, NmError]:
    """Read one message from stdin on a dedicated thread.

    End of stream is Disconnected. For a stream of messages prefer
    `spawn_reader`, which keeps one thread for the whole session.
    """
    try:
        return await _spawn_blocking(
            lambda: io_ops.decode_message(
                io_ops.get_stdin_buffer(), max_size,
            ),
            name="native-messaging-get",
        )
    except Exception as exc:  # noqa: BLE001
        return IOFailure(
            internal_failure(f"reader task failed: {exc!r}"),
        )


async def send_message(msg: object) -> IOResult[None, NmError]:
    """Encode and write one message to stdout on a dedicated thread.

    Not for use while `event_loop` owns stdout; send through its
    Sender instead.
    """
    encoded = encode_message(msg)
    if isinstance(encoded, Failure):
        return IOFailure(encoded.failure())
    frame = encoded.unwrap()
    try:
        return await _spawn_blocking(
            lambda: io_ops.write_stdout_frame(frame),
            name="native-messaging-send",
        )
    except Exception as exc:  # noqa: BLE001
        return IOFailure(
            internal_failure(f"writer task failed: {exc!r}"),
        )
