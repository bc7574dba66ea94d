"""Unified error handling for gemini_mcp.

- ErrorKind: failure kinds carried by every envelope
- BackendError/RetriesExhaustedError: backend failures and retry exhaustion
- DuplicateToolError/CatalogFrozenError: catalog build errors
- TransportDecodeError: undecodable transport input
- Success/Failure/InvocationResult: dispatcher results
"""

from .errors import (
    BackendError,
    CatalogFrozenError,
    DuplicateToolError,
    ErrorKind,
    RetriesExhaustedError,
    TransportDecodeError,
    http_status,
)
from .result import Failure, InvocationResult, Success

__all__ = [
    # Kinds
    "ErrorKind", "http_status",
    # Exceptions
    "BackendError", "RetriesExhaustedError", "DuplicateToolError",
    "CatalogFrozenError", "TransportDecodeError",
    # Results
    "Success", "Failure", "InvocationResult",
]
