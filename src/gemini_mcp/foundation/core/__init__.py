"""Core catalog records.

- ToolDefinition: named, schema-described invocable operation
- ResourceDefinition: named, readable data endpoint
- InvocationRequest: decoded client invocation
- schema_for: self-contained JSON schema for a Pydantic params model
"""

from .base import (
    InvocationRequest,
    ResourceDefinition,
    StreamHandler,
    ToolDefinition,
    ToolHandler,
    schema_for,
)

__all__ = [
    "InvocationRequest",
    "ResourceDefinition",
    "StreamHandler",
    "ToolDefinition",
    "ToolHandler",
    "schema_for",
]
