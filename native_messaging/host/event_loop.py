"""Native messaging event loop.

Pulls decoded messages from the reader channel one at a time and
awaits the handler for each before taking the next. Handlers reply
through a shared Sender bound to the writer channel.

    Running --Disconnected--> Terminated(IOSuccess)
    Running --read error----> Terminated(IOFailure)
    Running --handler error-> Terminated(IOFailure)

Nothing is retried: a failed handler or a broken stream ends the
loop and the error is returned to the caller.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.host.errors import NmError, disconnected
from native_messaging.host.protocol import MAX_FROM_BROWSER, encode_message
from native_messaging.host.pump import (
    shutdown_writer,
    spawn_reader,
    spawn_writer,
)

if TYPE_CHECKING:
    from native_messaging.host.channel import Channel

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sender:
    """Reply handle bound to the writer channel.

    Safe to share between handlers and any tasks they spawn; the
    channel serializes frames, so no locking is needed.
    """

    writer: Channel[bytes]

    async def send(self, msg: object) -> IOResult[None, NmError]:
        """Encode `msg` and queue it for stdout.

        Encoding errors come back as-is. If the writer is gone the
        result is Disconnected, whatever stopped it.
        """
        encoded = encode_message(msg)
        if isinstance(encoded, Failure):
            return IOFailure(encoded.failure())
        if not await self.writer.send(encoded.unwrap()):
            return IOFailure(disconnected())
        return IOSuccess(None)


Handler = Callable[
    [str, Sender],
    Awaitable["IOResult[None, NmError]"],
]


async def event_loop(
    handler: Handler,
    *,
    reader: IO[bytes] | None = None,
    writer: IO[bytes] | None = None,
    max_size: int = MAX_FROM_BROWSER,
) -> IOResult[None, NmError]:
    """Run the host until the browser disconnects or something fails.

    `handler` gets the raw JSON text and the Sender. Streams default
    to the process stdin/stdout. On exit the reader channel is
    dropped and every reply already queued is flushed.
    """
    inbound = spawn_reader(max_size, reader=reader)
    outbound = spawn_writer(writer=writer)
    sender = Sender(outbound)
    try:
        while True:
            item = await inbound.recv()
            if item is None:
                return IOSuccess(None)
            if isinstance(item, IOFailure):
                err = unsafe_perform_io(item.failure())
                if err.is_disconnect:
                    _logger.info("browser disconnected; event loop done")
                    return IOSuccess(None)
                _logger.error("event loop stopping: %s", err)
                return item
            message = unsafe_perform_io(item.unwrap())
            result = await handler(message, sender)
            if isinstance(result, IOFailure):
                _logger.error(
                    "handler failed: %s",
                    unsafe_perform_io(result.failure()),
                )
                return result
    finally:
        await inbound.close()
        await shutdown_writer(outbound)
