"""Error taxonomy and exceptions for the dispatch server.

Provides the machine-checkable error kinds carried by every failure envelope
and the exceptions raised between the backend, the retry layer and the
dispatcher. Exceptions never cross a transport boundary: adapters convert
them into envelopes.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Failure kinds reported to clients.

    Used for programmatic error handling and HTTP / JSON-RPC status mapping.
    """
    UNKNOWN_TOOL = "UnknownTool"
    UNKNOWN_RESOURCE = "UnknownResource"
    INVALID_PARAMETERS = "InvalidParameters"
    BACKEND_REJECTED = "BackendRejected"
    BACKEND_UNAVAILABLE = "BackendUnavailable"
    UNKNOWN_MESSAGE_TYPE = "UnknownMessageType"
    TRANSPORT_DECODE_ERROR = "TransportDecodeError"
    INTERNAL_ERROR = "InternalError"
    UNAUTHORIZED = "Unauthorized"


# HTTP status for each kind; anything missing maps to 500
_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.UNKNOWN_TOOL: 404,
    ErrorKind.UNKNOWN_RESOURCE: 404,
    ErrorKind.INVALID_PARAMETERS: 400,
    ErrorKind.UNKNOWN_MESSAGE_TYPE: 400,
    ErrorKind.TRANSPORT_DECODE_ERROR: 400,
    ErrorKind.UNAUTHORIZED: 401,
}


def http_status(kind: ErrorKind) -> int:
    """HTTP status code for a failure kind."""
    return _HTTP_STATUS.get(kind, 500)


class BackendError(Exception):
    """Transport- or backend-level failure from the generative-model backend.

    Attributes:
        status: HTTP-style status code, or None when the failure had none
        message: Human-readable description
    """

    __slots__ = ("status", "message")

    def __init__(self, status: int | None, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"[{status}] {message}" if status is not None else message)

    @property
    def is_transient(self) -> bool:
        """Rate limits and server errors may succeed on retry."""
        return self.status == 429 or (self.status is not None and 500 <= self.status < 600)


class RetriesExhaustedError(BackendError):
    """Every allowed attempt failed with a retryable error."""

    __slots__ = ("attempts", "last_error")

    def __init__(self, attempts: int, last_error: BackendError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(last_error.status, "Maximum retries exceeded")


class DuplicateToolError(ValueError):
    """A tool or resource with the same name is already registered."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"'{name}' is already registered")


class CatalogFrozenError(RuntimeError):
    """Registration attempted after the catalog was frozen."""


class TransportDecodeError(ValueError):
    """Raw transport input could not be decoded into a request."""
