"""Invocation results as a tagged union.

`Success` wraps a payload, `Failure` carries an `ErrorKind` and a message.
Both are frozen and short-lived: produced by the dispatcher, consumed by the
transport adapter that issued the request.

Example:
    >>> result = Success("4")
    >>> result.is_ok()
    True
    >>> Failure(ErrorKind.UNKNOWN_TOOL, "Tool 'x' not found").to_dict()
    {'kind': 'UnknownTool', 'message': "Tool 'x' not found"}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from .errors import ErrorKind, http_status


@dataclass(frozen=True, slots=True)
class Success:
    """Completed invocation."""
    payload: Any

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Failure:
    """Failed invocation with a machine-checkable kind."""
    kind: ErrorKind
    message: str

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    @property
    def status_code(self) -> int:
        """HTTP status for this failure."""
        return http_status(self.kind)

    def to_dict(self) -> dict[str, str]:
        """Serialize for JSON transport."""
        return {"kind": self.kind.value, "message": self.message}

    @classmethod
    def unknown_tool(cls, name: str) -> Failure:
        return cls(ErrorKind.UNKNOWN_TOOL, f"Tool '{name}' not found")

    @classmethod
    def decode_error(cls, message: str) -> Failure:
        return cls(ErrorKind.TRANSPORT_DECODE_ERROR, message)


InvocationResult: TypeAlias = Success | Failure
