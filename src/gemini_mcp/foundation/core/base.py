"""Core catalog records: tool and resource definitions, invocation requests.

A `ToolDefinition` pairs a name and description with a Pydantic parameter
schema and the handler that performs the backend call. The JSON schema shown
to clients is derived from the Pydantic model, so the HTTP, WebSocket and
stdio paths all validate against the same record.

Example:
    >>> class EchoParams(BaseModel):
    ...     text: str = Field(..., description="Text to echo")
    ...
    >>> async def echo(backend, params):
    ...     return params.text
    ...
    >>> echo_tool = ToolDefinition(
    ...     name="echo",
    ...     description="Echo the input text back",
    ...     params_schema=EchoParams,
    ...     handler=echo,
    ... )
    >>> echo_tool.parameters()["required"]
    ['text']
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from pydantic import BaseModel

if TYPE_CHECKING:
    from gemini_mcp.backend import Backend

ToolHandler: TypeAlias = "Callable[[Backend, Any], Awaitable[Any]]"
StreamHandler: TypeAlias = "Callable[[Backend, Any], Awaitable[AsyncIterator[str]]]"

_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
_MIN_DESCRIPTION = 10


def _inline_refs(node: Any, defs: Mapping[str, Any]) -> Any:
    """Replace local `$ref`s with their definitions and drop titles."""
    if isinstance(node, dict):
        if (ref := node.get("$ref")) and ref.startswith("#/$defs/"):
            return _inline_refs(defs[ref.removeprefix("#/$defs/")], defs)
        return {
            k: _inline_refs(v, defs) for k, v in node.items()
            if k != "$defs" and not (k == "title" and isinstance(v, str))
        }
    if isinstance(node, list):
        return [_inline_refs(v, defs) for v in node]
    return node


def schema_for(model: type[BaseModel]) -> dict[str, Any]:
    """Self-contained JSON schema (`type/properties/required`) for a params model."""
    raw = model.model_json_schema()
    schema = _inline_refs(raw, raw.get("$defs", {}))
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    schema.setdefault("required", [])
    return schema


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Immutable catalog entry for an invocable tool.

    Attributes:
        name: Unique identifier (snake_case, e.g., "ask_gemini")
        description: What the tool does (shown to the client LLM)
        params_schema: Pydantic model validating the invocation parameters
        handler: `async (backend, params) -> payload`
        stream_handler: Optional `async (backend, params) -> AsyncIterator[str]`
        category: Grouping category for listings
    """
    name: str
    description: str
    params_schema: type[BaseModel]
    handler: ToolHandler
    stream_handler: StreamHandler | None = None
    category: str = "general"

    def __post_init__(self) -> None:
        if not _NAME_PATTERN.match(self.name):
            raise ValueError(f"Tool name '{self.name}' must be snake_case")
        if len(self.description) < _MIN_DESCRIPTION:
            raise ValueError(f"Tool '{self.name}' description too short for LLM selection.")

    @property
    def streaming(self) -> bool:
        return self.stream_handler is not None

    def parameters(self) -> dict[str, Any]:
        return schema_for(self.params_schema)

    def describe(self) -> dict[str, Any]:
        """Discovery payload for `/tools`, `get_tools` and `tools/list`."""
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "streaming": self.streaming,
            "parameters": self.parameters(),
        }


@dataclass(frozen=True, slots=True)
class ResourceDefinition:
    """Immutable catalog entry for a readable resource."""
    name: str
    uri: str
    description: str
    reader: Callable[[], str]
    mime_type: str = "application/json"

    def describe(self) -> dict[str, str]:
        return {
            "name": self.name,
            "uri": self.uri,
            "description": self.description,
            "mimeType": self.mime_type,
        }


@dataclass(frozen=True, slots=True)
class InvocationRequest:
    """One decoded client invocation, consumed exactly once by the dispatcher."""
    tool_name: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    id: str | int | None = None
