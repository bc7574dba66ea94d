"""Process-wide catalog of tools and resources.

The catalog provides:
- Registration with duplicate detection
- Lookup by name (resources also by URI)
- Ordered listings for discovery (`/tools`, `get_tools`, `tools/list`)
- A one-time build barrier: after `freeze()` the catalog is read-only and
  may be shared by every connection without locking
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from gemini_mcp.foundation.core import ResourceDefinition, ToolDefinition
from gemini_mcp.foundation.errors import CatalogFrozenError, DuplicateToolError


class ToolCatalog:
    """Registry of tool and resource definitions in registration order.

    Example:
        >>> catalog = ToolCatalog()
        >>> catalog.register(ask_tool)
        >>> catalog.freeze()
        >>> catalog.lookup("ask_gemini") is ask_tool
        True
        >>> [t.name for t in catalog.list_all()]
        ['ask_gemini']
    """

    __slots__ = ("_tools", "_resources", "_frozen")

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._resources: dict[str, ResourceDefinition] = {}
        self._frozen = False

    def _check_open(self) -> None:
        if self._frozen:
            raise CatalogFrozenError("Catalog is frozen; register definitions before serving")

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool. Raises DuplicateToolError if the name exists."""
        self._check_open()
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def register_resource(self, resource: ResourceDefinition) -> None:
        """Register a resource. Raises DuplicateToolError if the name exists."""
        self._check_open()
        if resource.name in self._resources:
            raise DuplicateToolError(resource.name)
        self._resources[resource.name] = resource

    def freeze(self) -> ToolCatalog:
        """Close registration. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def lookup_resource(self, key: str) -> ResourceDefinition | None:
        """Find a resource by name or URI."""
        if (found := self._resources.get(key)) is not None:
            return found
        return next((r for r in self._resources.values() if r.uri == key), None)

    def list_all(self) -> tuple[ToolDefinition, ...]:
        return tuple(self._tools.values())

    def list_resources(self) -> tuple[ResourceDefinition, ...]:
        return tuple(self._resources.values())

    def describe(self) -> list[dict[str, Any]]:
        """Discovery payload for every tool, in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())
