"""Echo handler for the reference native messaging host.

Replies to each request with the parsed JSON value. A payload
that is not strict JSON, or whose echo cannot be sent back, gets
an error reply instead of ending the host; failures to deliver
the reply itself are returned to the event loop.
"""
from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from returns.io import IOFailure
from returns.unsafe import unsafe_perform_io

if TYPE_CHECKING:
    from returns.io import IOResult

    from native_messaging.host.errors import NmError
    from native_messaging.host.event_loop import Sender

_logger = logging.getLogger(__name__)

# Send failures caused by the reply value, not by the transport.
_PAYLOAD_ERRORS = frozenset({"OutgoingTooLarge", "SerializeFailure"})


def _reject_constant(name: str) -> Any:
    msg = f"{name} is not valid JSON"
    raise ValueError(msg)


def _error_reply(message: str) -> dict[str, Any]:
    return {
        "success": False,
        "error": message,
    }


def build_reply(raw: str) -> dict[str, Any]:
    """Build the reply for one raw request.

    Returns a dict with 'success' and either 'echo' or 'error'.
    NaN and Infinity are rejected like any other malformed input.
    """
    try:
        value = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        _logger.warning("request is not valid JSON: %s", exc)
        return _error_reply(f"Invalid JSON in native message: {exc}")
    return {
        "success": True,
        "echo": value,
    }


async def handle_message(
    raw: str,
    sender: Sender,
) -> IOResult[None, NmError]:
    """Reply to one request through the shared sender.

    A reply the protocol cannot carry (too large, not encodable)
    is replaced by an error reply. Transport failures are returned.
    """
    _logger.debug("request received: %s", raw[:500])
    result = await sender.send(build_reply(raw))
    if isinstance(result, IOFailure):
        err = unsafe_perform_io(result.failure())
        if err.kind in _PAYLOAD_ERRORS:
            _logger.warning("echo not sent: %s", err.message)
            return await sender.send(_error_reply(err.message))
    return result
