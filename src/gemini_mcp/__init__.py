"""Gemini MCP - Model Context Protocol server for Google Gemini models.

Exposes Gemini generation, multi-turn chat and function calling as MCP tools
over stdio (JSON-RPC), HTTP/REST with Server-Sent Events, and WebSocket. All
transports share one dispatcher, one frozen tool catalog and one retrying
backend facade.

Quick Start (stdio, for Claude Desktop and other MCP clients):
    $ export GEMINI_API_KEY=...
    $ gemini-mcp serve --transport stdio

HTTP / WebSocket:
    $ gemini-mcp serve --transport http --port 3002
    $ curl -X POST localhost:3002/tools/ask_gemini \\
        -d '{"model": "gemini-2.0-flash", "query": "What is 2+2?"}'
    {"success": true, "result": "4"}

Programmatic:
    >>> from gemini_mcp import Dispatcher, InvocationRequest, build_catalog
    >>> from gemini_mcp.backend.gemini import GeminiBackend
    >>>
    >>> dispatcher = Dispatcher(build_catalog(), GeminiBackend(api_key=key))
    >>> await dispatcher.handle(InvocationRequest(
    ...     "ask_gemini", {"model": "gemini-2.0-flash", "query": "What is 2+2?"}
    ... ))
    Success(payload='4')

Testing without network access:
    >>> from gemini_mcp.foundation.testing import StubBackend
    >>> dispatcher = Dispatcher(build_catalog(), StubBackend(text="4"))
"""

from __future__ import annotations

__version__ = "1.0.0"

# Backend facade
from .backend import Backend, ConversationTurn, FunctionCall, FunctionSpec, GenerationOptions

# Core records
from .foundation.core import InvocationRequest, ResourceDefinition, ToolDefinition

# Errors
from .foundation.errors import BackendError, ErrorKind, Failure, InvocationResult, RetriesExhaustedError, Success

# Catalog
from .foundation.registry import ToolCatalog

# Config
from .foundation.config import ServerSettings, get_settings

# Runtime
from .runtime import Dispatcher, ResilienceWrapper, RetryPolicy

# Built-in tools
from .tools import build_catalog

__all__ = [
    "__version__",
    # Backend
    "Backend", "ConversationTurn", "FunctionCall", "FunctionSpec", "GenerationOptions",
    # Core
    "ToolDefinition", "ResourceDefinition", "InvocationRequest",
    # Errors
    "ErrorKind", "BackendError", "RetriesExhaustedError", "Success", "Failure", "InvocationResult",
    # Catalog
    "ToolCatalog",
    # Config
    "ServerSettings", "get_settings",
    # Runtime
    "Dispatcher", "RetryPolicy", "ResilienceWrapper",
    # Tools
    "build_catalog",
]
