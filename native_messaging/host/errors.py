"""Native messaging error taxonomy.

Every failure in the host core is one of a closed set of kinds.
Errors travel as values inside IOResult/Result containers; the
event loop decides which kinds end the process cleanly.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Literal

ErrorKind = Literal[
    "Disconnected",
    "OutgoingTooLarge",
    "IncomingTooLarge",
    "IncomingNotUtf8",
    "SerializeFailure",
    "DeserializeFailure",
    "IoFailure",
    "InternalFailure",
]

ERROR_KINDS: tuple[ErrorKind, ...] = (
    "Disconnected",
    "OutgoingTooLarge",
    "IncomingTooLarge",
    "IncomingNotUtf8",
    "SerializeFailure",
    "DeserializeFailure",
    "IoFailure",
    "InternalFailure",
)


@dataclass(frozen=True)
class NmError:
    """Structured error for framing, transport and pump failures."""

    kind: ErrorKind
    message: str
    context: dict[str, object] = field(default_factory=dict)

    @property
    def is_disconnect(self) -> bool:
        """True for the clean end-of-stream signal."""
        return self.kind == "Disconnected"

    def to_dict(self) -> dict[str, object]:
        """Return plain dict suitable for JSON serialization.

        Context values JSON cannot hold are converted with str().
        """
        data = asdict(self)

        def make_safe(obj: object) -> object:
            if isinstance(obj, (str, int, float, bool, type(None))):
                return obj
            if isinstance(obj, (list, tuple)):
                return [make_safe(x) for x in obj]
            if isinstance(obj, dict):
                return {str(k): make_safe(v) for k, v in obj.items()}
            return str(obj)

        data["context"] = make_safe(self.context)
        return data

    def __str__(self) -> str:
        """Human-readable error representation for logging."""
        max_len = 500
        base = f"NmError[{self.kind}]: {self.message}"
        if self.context:
            ctx_str = str(self.context)
            if len(ctx_str) > max_len:
                ctx_str = ctx_str[: max_len - 3] + "..."
            base += f" | context={ctx_str}"
        return base


def disconnected() -> NmError:
    """Browser closed stdin (clean shutdown)."""
    return NmError(
        kind="Disconnected",
        message="native messaging disconnected (stdin closed)",
    )


def outgoing_too_large(length: int, limit: int) -> NmError:
    """Outgoing payload exceeds the host->browser cap."""
    return NmError(
        kind="OutgoingTooLarge",
        message=(
            f"outgoing native message is {length} bytes"
            f" (max {limit}); reduce size (chunk/compress)"
            " before sending"
        ),
        context={"len": length, "max": limit},
    )


def incoming_too_large(length: int, limit: int) -> NmError:
    """Claimed incoming length exceeds the effective cap."""
    return NmError(
        kind="IncomingTooLarge",
        message=(
            f"incoming native message is {length} bytes"
            f" (max {limit}); extension must send smaller"
            " messages (chunk/compress)"
        ),
        context={"len": length, "max": limit},
    )


def incoming_not_utf8(exc: UnicodeDecodeError) -> NmError:
    """Incoming body bytes are not valid UTF-8."""
    return NmError(
        kind="IncomingNotUtf8",
        message=f"incoming native message is not valid UTF-8: {exc}",
        context={"position": exc.start, "reason": exc.reason},
    )


def serialize_failure(exc: Exception) -> NmError:
    """JSON encoding of an outgoing value failed."""
    return NmError(
        kind="SerializeFailure",
        message=f"failed to serialize JSON: {exc}",
        context={"error_type": type(exc).__name__},
    )


def deserialize_failure(exc: Exception) -> NmError:
    """Incoming payload did not match the expected JSON shape."""
    return NmError(
        kind="DeserializeFailure",
        message=f"failed to deserialize JSON: {exc}",
        context={"error_type": type(exc).__name__},
    )


def io_failure(exc: OSError, *, operation: str) -> NmError:
    """Underlying stream failure during `operation`."""
    return NmError(
        kind="IoFailure",
        message=f"I/O error: {exc}",
        context={
            "operation": operation,
            "reason": type(exc).__name__,
            "errno": exc.errno,
        },
    )


def unexpected_eof(expected: int, received: int) -> NmError:
    """Stream ended inside a frame body."""
    return NmError(
        kind="IoFailure",
        message=(
            "I/O error: unexpected end of stream"
            f" (expected {expected} body bytes, got {received})"
        ),
        context={
            "operation": "read_body",
            "reason": "UnexpectedEof",
            "expected": expected,
            "received": received,
        },
    )


def internal_failure(detail: str) -> NmError:
    """A background worker never produced a result."""
    return NmError(
        kind="InternalFailure",
        message=f"internal task error: {detail}",
    )
