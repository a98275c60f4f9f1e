"""Host side of the native messaging protocol.

Public API: the frame codec (protocol), blocking stream helpers
(io_ops), the stdio pump and the event loop.
"""
from __future__ import annotations

from native_messaging.host.channel import CHANNEL_CAPACITY, Channel
from native_messaging.host.errors import ERROR_KINDS, ErrorKind, NmError
from native_messaging.host.event_loop import Handler, Sender, event_loop
from native_messaging.host.io_ops import (
    decode_message,
    recv_json,
    send_frame,
    send_json,
)
from native_messaging.host.protocol import (
    HEADER_SIZE,
    MAX_FROM_BROWSER,
    MAX_TO_BROWSER,
    decode_message_opt,
    encode_message,
)
from native_messaging.host.pump import (
    get_message,
    send_message,
    spawn_reader,
    spawn_writer,
)

__all__ = [
    "CHANNEL_CAPACITY",
    "ERROR_KINDS",
    "HEADER_SIZE",
    "MAX_FROM_BROWSER",
    "MAX_TO_BROWSER",
    "Channel",
    "ErrorKind",
    "Handler",
    "NmError",
    "Sender",
    "decode_message",
    "decode_message_opt",
    "encode_message",
    "event_loop",
    "get_message",
    "recv_json",
    "send_frame",
    "send_json",
    "send_message",
    "spawn_reader",
    "spawn_writer",
]
