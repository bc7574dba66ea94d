"""Foundation - Core building blocks for gemini_mcp.

Contains: core records, error handling, catalog, testing, config.
"""

from __future__ import annotations

__all__ = [
    # Core
    "ToolDefinition", "ResourceDefinition", "InvocationRequest", "schema_for",
    # Errors
    "ErrorKind", "BackendError", "RetriesExhaustedError", "DuplicateToolError",
    "CatalogFrozenError", "TransportDecodeError", "Success", "Failure", "InvocationResult",
    # Registry
    "ToolCatalog",
    # Testing
    "StubBackend",
    # Config
    "ServerSettings", "LoggingSettings", "RetrySettings", "get_settings", "clear_settings_cache",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("ToolDefinition", "ResourceDefinition", "InvocationRequest", "schema_for"):
        from . import core
        return getattr(core, name)
    if name in ("ErrorKind", "BackendError", "RetriesExhaustedError", "DuplicateToolError",
                "CatalogFrozenError", "TransportDecodeError", "Success", "Failure", "InvocationResult"):
        from . import errors
        return getattr(errors, name)
    if name == "ToolCatalog":
        from .registry import ToolCatalog
        return ToolCatalog
    if name == "StubBackend":
        from .testing import StubBackend
        return StubBackend
    if name in ("ServerSettings", "LoggingSettings", "RetrySettings", "get_settings", "clear_settings_cache"):
        from . import config
        return getattr(config, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
