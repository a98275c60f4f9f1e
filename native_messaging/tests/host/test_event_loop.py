"""Tests for the native messaging event loop and Sender."""
from __future__ import annotations

import asyncio
import errno
import json
import struct
from io import BytesIO

import pytest
from returns.io import IOFailure, IOResult, IOSuccess
from returns.unsafe import unsafe_perform_io

from native_messaging.host.errors import NmError, internal_failure
from native_messaging.host.event_loop import Sender, event_loop
from native_messaging.host.protocol import (
    MAX_FROM_BROWSER,
    MAX_TO_BROWSER,
    decode_message_opt,
)


def _frame(value: object) -> bytes:
    body = json.dumps(value, separators=(",", ":")).encode("utf-8")
    return struct.pack("=I", len(body)) + body


def _replies(out: BytesIO) -> list[object]:
    stream = BytesIO(out.getvalue())
    replies: list[object] = []
    while True:
        result = decode_message_opt(stream, MAX_FROM_BROWSER)
        text = unsafe_perform_io(result.unwrap())
        if text is None:
            return replies
        replies.append(json.loads(text))


async def _echo(raw: str, sender: Sender) -> IOResult[None, NmError]:
    return await sender.send({"echo": json.loads(raw)})


class _FailingWrite(BytesIO):
    def write(self, data: object) -> int:  # type: ignore[override]
        raise BrokenPipeError(errno.EPIPE, "Broken pipe")


class TestEventLoop:
    """Tests for event_loop dispatch and termination."""

    def test_echoes_until_disconnect(self) -> None:
        """Each request gets a reply in order; EOF ends cleanly."""
        reader = BytesIO(_frame(1) + _frame({"a": "b"}) + _frame([3]))
        out = BytesIO()
        result = asyncio.run(event_loop(_echo, reader=reader, writer=out))
        assert result == IOSuccess(None)
        assert _replies(out) == [
            {"echo": 1},
            {"echo": {"a": "b"}},
            {"echo": [3]},
        ]

    def test_empty_input_is_clean_exit(self) -> None:
        """No input at all is a clean disconnect with no output."""
        out = BytesIO()
        result = asyncio.run(
            event_loop(_echo, reader=BytesIO(b""), writer=out),
        )
        assert isinstance(result, IOSuccess)
        assert out.getvalue() == b""

    def test_partial_prefix_is_clean_exit(self) -> None:
        """A dangling 1-3 byte prefix after a frame is a disconnect."""
        out = BytesIO()
        reader = BytesIO(_frame("x") + b"\x05\x00")
        result = asyncio.run(event_loop(_echo, reader=reader, writer=out))
        assert isinstance(result, IOSuccess)
        assert _replies(out) == [{"echo": "x"}]

    def test_read_error_ends_loop_after_flushing(self) -> None:
        """An oversized frame ends the loop; earlier replies still go out."""
        reader = BytesIO(_frame("ok") + _frame("x" * 64))
        out = BytesIO()
        result = asyncio.run(
            event_loop(_echo, reader=reader, writer=out, max_size=16),
        )
        assert isinstance(result, IOFailure)
        err = unsafe_perform_io(result.failure())
        assert err.kind == "IncomingTooLarge"
        assert err.context["max"] == 16
        assert _replies(out) == [{"echo": "ok"}]

    def test_truncated_body_is_failure(self) -> None:
        """A body cut short is an IoFailure, not a clean exit."""
        reader = BytesIO(struct.pack("=I", 10) + b"abc")
        result = asyncio.run(
            event_loop(_echo, reader=reader, writer=BytesIO()),
        )
        assert unsafe_perform_io(result.failure()).kind == "IoFailure"

    def test_handler_failure_ends_loop(self) -> None:
        """A handler IOFailure is returned and later frames are not read."""
        calls: list[str] = []

        async def failing(raw: str, sender: Sender) -> IOResult[None, NmError]:
            calls.append(raw)
            return IOFailure(internal_failure("handler gave up"))

        reader = BytesIO(_frame(1) + _frame(2))
        result = asyncio.run(
            event_loop(failing, reader=reader, writer=BytesIO()),
        )
        assert calls == ["1"]
        assert unsafe_perform_io(result.failure()).message == (
            "internal task error: handler gave up"
        )

    def test_handler_exception_propagates(self) -> None:
        """Exceptions raised by the handler are not swallowed."""

        async def raising(raw: str, sender: Sender) -> IOResult[None, NmError]:
            msg = "handler bug"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="handler bug"):
            asyncio.run(
                event_loop(raising, reader=BytesIO(_frame(1)), writer=BytesIO()),
            )

    def test_handler_sees_messages_sequentially(self) -> None:
        """The next message is not dispatched until the handler returns."""
        active: list[int] = []
        peak: list[int] = []

        async def slow(raw: str, sender: Sender) -> IOResult[None, NmError]:
            active.append(1)
            peak.append(len(active))
            await asyncio.sleep(0.01)
            active.pop()
            return IOSuccess(None)

        reader = BytesIO(b"".join(_frame(i) for i in range(5)))
        asyncio.run(event_loop(slow, reader=reader, writer=BytesIO()))
        assert peak == [1, 1, 1, 1, 1]


class TestSender:
    """Tests for Sender replies."""

    def test_oversized_reply_is_returned_not_fatal(self) -> None:
        """OutgoingTooLarge goes back to the handler, which may recover."""
        errors: list[str] = []

        async def handler(raw: str, sender: Sender) -> IOResult[None, NmError]:
            result = await sender.send("x" * MAX_TO_BROWSER)
            if isinstance(result, IOFailure):
                errors.append(unsafe_perform_io(result.failure()).kind)
                return await sender.send({"error": "too big"})
            return result

        out = BytesIO()
        result = asyncio.run(
            event_loop(handler, reader=BytesIO(_frame(0)), writer=out),
        )
        assert isinstance(result, IOSuccess)
        assert errors == ["OutgoingTooLarge"]
        assert _replies(out) == [{"error": "too big"}]

    def test_shared_across_tasks(self) -> None:
        """Concurrent tasks replying through one Sender never interleave."""

        async def fan_out(raw: str, sender: Sender) -> IOResult[None, NmError]:
            results = await asyncio.gather(
                *(sender.send({"part": i, "pad": "y" * 1000}) for i in range(20)),
            )
            for result in results:
                if isinstance(result, IOFailure):
                    return result
            return IOSuccess(None)

        out = BytesIO()
        asyncio.run(event_loop(fan_out, reader=BytesIO(_frame(0)), writer=out))
        replies = _replies(out)
        assert sorted(r["part"] for r in replies) == list(range(20))  # type: ignore[index]

    def test_send_after_writer_died_is_disconnected(self) -> None:
        """Once stdout is broken, sends report Disconnected."""

        async def handler(raw: str, sender: Sender) -> IOResult[None, NmError]:
            first = await sender.send({"n": 1})
            assert isinstance(first, IOSuccess)
            await asyncio.wait_for(sender.writer.worker, 5)  # type: ignore[arg-type]
            return await sender.send({"n": 2})

        result = asyncio.run(
            event_loop(
                handler,
                reader=BytesIO(_frame(0)),
                writer=_FailingWrite(),
            ),
        )
        assert isinstance(result, IOFailure)
        assert unsafe_perform_io(result.failure()).is_disconnect
