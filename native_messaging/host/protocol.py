"""Native messaging frame codec.

A frame is a 4-byte unsigned length in the host's native byte
order followed by that many bytes of UTF-8 JSON. Outgoing
(host -> browser) payloads are capped at 1 MiB, incoming
(browser -> host) payloads at 64 MiB.
"""
from __future__ import annotations

import errno
import json
import struct
from typing import IO

from pydantic import BaseModel
from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure, Result, Success

from native_messaging.host.errors import (
    NmError,
    incoming_not_utf8,
    incoming_too_large,
    io_failure,
    outgoing_too_large,
    serialize_failure,
    unexpected_eof,
)

# 1 MiB (host -> browser)
MAX_TO_BROWSER = 1_048_576

# 64 MiB (browser -> host)
MAX_FROM_BROWSER = 64 * 1_048_576

HEADER_SIZE = 4

# "=" is native byte order with the standard 4-byte size.
_HEADER = struct.Struct("=I")


def effective_cap(max_size: int) -> int:
    """Narrow a caller-supplied limit to the global incoming cap."""
    return min(max_size, MAX_FROM_BROWSER)


def encode_length(length: int) -> bytes:
    """Pack a payload length as a native-order u32 prefix."""
    return _HEADER.pack(length)


def decode_length(header: bytes) -> int:
    """Unpack a native-order u32 length prefix."""
    (length,) = _HEADER.unpack(header)
    return int(length)


def _to_json_bytes(msg: object) -> bytes:
    if isinstance(msg, BaseModel):
        msg = msg.model_dump(mode="json", by_alias=True)
    return json.dumps(
        msg,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    ).encode("utf-8")


def encode_message(msg: object) -> Result[bytes, NmError]:
    """Encode a value as a complete native messaging frame.

    Returns Success(length prefix + compact JSON). The size check
    runs before any prefix is built, so an oversized value never
    yields a partial frame.
    """
    try:
        body = _to_json_bytes(msg)
    except (TypeError, ValueError) as exc:
        return Failure(serialize_failure(exc))
    if len(body) > MAX_TO_BROWSER:
        return Failure(outgoing_too_large(len(body), MAX_TO_BROWSER))
    return Success(encode_length(len(body)) + body)


def _read_exact(reader: IO[bytes], n: int) -> bytes:
    """Read up to n bytes, stopping early only at end of stream.

    A non-blocking stream with no data (read returns None) raises
    BlockingIOError rather than passing for end of stream.
    """
    buf = bytearray()
    while len(buf) < n:
        chunk = reader.read(n - len(buf))
        if chunk is None:
            raise BlockingIOError(errno.EAGAIN, "stream is non-blocking")
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


def decode_message_opt(
    reader: IO[bytes],
    max_size: int,
) -> IOResult[str | None, NmError]:
    """Decode a single frame from a blocking byte stream.

    - IOSuccess(str): got a message
    - IOSuccess(None): end of stream before a full length prefix
      (a 1-3 byte prefix counts as a disconnect too)
    - IOFailure: oversized length, truncated body, bad UTF-8 or
      a stream error

    The length is checked against min(max_size, MAX_FROM_BROWSER)
    before the body is read.
    """
    cap = effective_cap(max_size)

    try:
        header = _read_exact(reader, HEADER_SIZE)
    except OSError as exc:
        return IOFailure(io_failure(exc, operation="read_header"))
    if len(header) < HEADER_SIZE:
        return IOSuccess(None)

    length = decode_length(header)
    if length > cap:
        return IOFailure(incoming_too_large(length, cap))

    try:
        body = _read_exact(reader, length)
    except OSError as exc:
        return IOFailure(io_failure(exc, operation="read_body"))
    if len(body) < length:
        return IOFailure(unexpected_eof(length, len(body)))

    try:
        return IOSuccess(body.decode("utf-8"))
    except UnicodeDecodeError as exc:
        return IOFailure(incoming_not_utf8(exc))
