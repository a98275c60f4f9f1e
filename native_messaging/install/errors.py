"""Installer error type."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field

_PLAIN = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class InstallError:
    """Structured error for manifest install/verify/remove failures."""

    operation: str
    error_type: str
    message: str
    context: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Return plain dict suitable for JSON serialization."""
        data = asdict(self)
        data["context"] = {
            str(k): v if isinstance(v, _PLAIN) else str(v)
            for k, v in self.context.items()
        }
        return data

    def __str__(self) -> str:
        return (
            f"InstallError[{self.operation}]"
            f" {self.error_type}: {self.message}"
        )
