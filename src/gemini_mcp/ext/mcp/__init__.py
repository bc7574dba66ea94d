"""Transport adapters exposing the dispatcher.

1. **stdio** - MCP JSON-RPC 2.0 for clients that spawn the server (Claude Desktop, Cursor)
2. **HTTP/REST + SSE** - simple endpoints for web backends
3. **WebSocket** - typed messages on `/ws`, served by the HTTP app

Example:
    >>> from gemini_mcp.ext.mcp import HTTPToolServer, StdioServer
    >>> StdioServer(dispatcher).run()
    >>> HTTPToolServer(dispatcher).run(port=3002)
"""

from .auth import BearerAuthMiddleware
from .base import ConnectionSession, ToolServer, TransportKind
from .http import HTTPToolServer, create_http_app
from .stdio import JsonRpcError, StdioServer
from .websocket import WebSocketConnection, websocket_endpoint

__all__ = [
    # Base
    "ToolServer", "ConnectionSession", "TransportKind",
    # Adapters
    "StdioServer", "JsonRpcError",
    "HTTPToolServer", "create_http_app",
    "WebSocketConnection", "websocket_endpoint",
    # Auth
    "BearerAuthMiddleware",
]
