"""Blocking transport for native messaging frames.

All process stream access (stdin, stdout) goes through here.
Tests mock the buffer seams or pass in-memory streams. Every
function returns an IOResult and never raises for stream errors.
"""
from __future__ import annotations

import errno
import sys
from typing import IO, Any

from pydantic import TypeAdapter, ValidationError
from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.host.errors import (
    NmError,
    deserialize_failure,
    disconnected,
    io_failure,
)
from native_messaging.host.protocol import (
    MAX_FROM_BROWSER,
    decode_message_opt,
    encode_message,
)


def get_stdin_buffer() -> IO[bytes]:
    """Return stdin binary buffer. Mockable seam."""
    return sys.stdin.buffer


def get_stdout_buffer() -> IO[bytes]:
    """Return stdout binary buffer. Mockable seam."""
    return sys.stdout.buffer


def send_frame(
    writer: IO[bytes],
    frame: bytes,
) -> IOResult[None, NmError]:
    """Write an already-encoded frame, then flush.

    Write and flush fail separately (operation "write" or
    "flush" in the error context); both are IoFailure. The stream
    must be blocking: a write that would block is IoFailure too.
    """
    view = memoryview(frame)
    try:
        while view:
            written = writer.write(view)
            if written is None:
                raise BlockingIOError(errno.EAGAIN, "stream is non-blocking")
            view = view[written:]
    except OSError as exc:
        return IOFailure(io_failure(exc, operation="write"))
    try:
        writer.flush()
    except OSError as exc:
        return IOFailure(io_failure(exc, operation="flush"))
    return IOSuccess(None)


def send_json(
    writer: IO[bytes],
    msg: object,
) -> IOResult[None, NmError]:
    """Encode a value and write it as one frame."""
    encoded = encode_message(msg)
    if isinstance(encoded, Failure):
        return IOFailure(encoded.failure())
    return send_frame(writer, encoded.unwrap())


def decode_message(
    reader: IO[bytes],
    max_size: int = MAX_FROM_BROWSER,
) -> IOResult[str, NmError]:
    """Decode a required message; end of stream is Disconnected."""
    result = decode_message_opt(reader, max_size)
    if isinstance(result, IOFailure):
        return result
    message = unsafe_perform_io(result.unwrap())
    if message is None:
        return IOFailure(disconnected())
    return IOSuccess(message)


def recv_json(
    reader: IO[bytes],
    max_size: int = MAX_FROM_BROWSER,
    shape: Any = Any,
) -> IOResult[Any, NmError]:
    """Decode a message and validate it as `shape`.

    Framing problems keep their own kinds; malformed JSON or a
    payload that does not fit `shape` is DeserializeFailure.
    """
    result = decode_message(reader, max_size)
    if isinstance(result, IOFailure):
        return result
    raw = unsafe_perform_io(result.unwrap())
    try:
        value = TypeAdapter(shape).validate_json(raw)
    except ValidationError as exc:
        return IOFailure(deserialize_failure(exc))
    return IOSuccess(value)


def read_stdin_message(
    max_size: int = MAX_FROM_BROWSER,
) -> IOResult[str | None, NmError]:
    """Read one frame from stdin. IOSuccess(None) on end of stream."""
    return decode_message_opt(get_stdin_buffer(), max_size)


def write_stdout_frame(frame: bytes) -> IOResult[None, NmError]:
    """Write one encoded frame to stdout and flush."""
    return send_frame(get_stdout_buffer(), frame)
