"""MCP over stdio: newline-delimited JSON-RPC 2.0.

Requests are read from stdin and processed one at a time in arrival order;
each response is written to stdout as a single line. Lines up to
`MAX_MESSAGE_BYTES` are accepted; a longer line is skipped and answered with
a parse error. Logging goes to stderr.

Methods:
    initialize                 -> protocolVersion, capabilities, serverInfo
    notifications/initialized  -> (no response)
    ping                       -> {}
    tools/list                 -> {tools: [{name, description, inputSchema}]}
    tools/call                 -> {content: [{type: "text", text}], isError}
    resources/list             -> {resources: [{uri, name, description, mimeType}]}
    resources/read             -> {contents: [{uri, mimeType, text}]}

Example:
    >>> server = StdioServer(dispatcher)
    >>> server.run()
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import orjson

from gemini_mcp.foundation.errors import ErrorKind, Failure
from gemini_mcp.io.streaming import decode, encode
from gemini_mcp.runtime import as_text

from .base import ConnectionSession, ToolServer, TransportKind

if TYPE_CHECKING:
    from gemini_mcp.runtime import Dispatcher


logger = logging.getLogger("gemini_mcp.transport.stdio")

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
RESOURCE_NOT_FOUND = -32002

# Largest accepted request line; long prompts and conversations are normal input
MAX_MESSAGE_BYTES = 32 * 1024 * 1024


class JsonRpcError(Exception):
    """Raised inside a method handler to answer with a JSON-RPC error."""

    __slots__ = ("code", "message", "data")

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        err: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            err["data"] = self.data
        return err


def _response(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error(request_id: Any, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


async def _read_line(reader: asyncio.StreamReader) -> bytes | None:
    """Next newline-terminated line, b"" at EOF, or None when the line exceeded the limit."""
    try:
        return await reader.readuntil(b"\n")
    except asyncio.IncompleteReadError as e:
        return e.partial
    except asyncio.LimitOverrunError as e:
        overrun = e.consumed
    while True:
        await reader.readexactly(overrun)
        try:
            await reader.readuntil(b"\n")
            return None
        except asyncio.IncompleteReadError:
            return None
        except asyncio.LimitOverrunError as e:
            overrun = e.consumed


class StdioServer(ToolServer):
    """JSON-RPC 2.0 adapter for MCP clients that spawn the server as a subprocess."""

    __slots__ = ("_session", "_methods")

    def __init__(self, dispatcher: Dispatcher) -> None:
        super().__init__(dispatcher)
        self._session = ConnectionSession(TransportKind.STDIO)
        self._methods: dict[str, Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
        }

    @property
    def session(self) -> ConnectionSession:
        return self._session

    # ─────────────────────────────────────────────────────────────────
    # Message handling
    # ─────────────────────────────────────────────────────────────────

    async def handle_line(self, line: bytes | str) -> dict[str, Any] | None:
        """Decode one line and produce its response (None for notifications)."""
        try:
            message = decode(line)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Undecodable input: {e}")
            return _error(None, JsonRpcError(PARSE_ERROR, "Parse error", {"kind": ErrorKind.TRANSPORT_DECODE_ERROR.value}))
        if not isinstance(message, dict):
            return _error(None, JsonRpcError(INVALID_REQUEST, "Invalid request: expected a JSON object"))
        return await self.handle_message(message)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        request_id = message.get("id")
        method = message.get("method")
        is_notification = "id" not in message

        if not isinstance(method, str):
            return _error(request_id, JsonRpcError(INVALID_REQUEST, "Invalid request: missing method"))
        if is_notification:
            logger.debug(f"Notification: {method}")
            return None
        if (handler := self._methods.get(method)) is None:
            return _error(request_id, JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}"))

        params = message.get("params") or {}
        if not isinstance(params, dict):
            return _error(request_id, JsonRpcError(INVALID_PARAMS, "params must be an object"))
        try:
            return _response(request_id, await handler(params))
        except JsonRpcError as e:
            return _error(request_id, e)

    # ─────────────────────────────────────────────────────────────────
    # Methods
    # ─────────────────────────────────────────────────────────────────

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        info = self._dispatcher.server_info()
        self._session.sent_server_info = True
        return {
            "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
            "capabilities": {"tools": {"listChanged": False}, "resources": {"listChanged": False}},
            "serverInfo": {"name": info["name"], "version": info["version"]},
            "instructions": info["description"],
        }

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "tools": [
                {"name": t["name"], "description": t["description"], "inputSchema": t["parameters"]}
                for t in self._dispatcher.list_tools()
            ]
        }

    async def _tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise JsonRpcError(INVALID_PARAMS, "tools/call requires a tool name")
        result = await self.invoke(name, params.get("arguments") or {})
        if isinstance(result, Failure):
            if result.kind is ErrorKind.UNKNOWN_TOOL:
                raise JsonRpcError(INVALID_PARAMS, result.message, {"kind": result.kind.value})
            return {
                "content": [{"type": "text", "text": f"Error: {result.message}"}],
                "structuredContent": {"error": result.to_dict()},
                "isError": True,
            }
        return {"content": [{"type": "text", "text": as_text(result.payload)}], "isError": False}

    async def _resources_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"resources": self._dispatcher.list_resources()}

    async def _resources_read(self, params: dict[str, Any]) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or (found := self._dispatcher.read_resource(uri)) is None:
            raise JsonRpcError(RESOURCE_NOT_FOUND, f"Resource not found: {uri}")
        resource, text = found
        return {"contents": [{"uri": resource.uri, "mimeType": resource.mime_type, "text": text}]}

    # ─────────────────────────────────────────────────────────────────
    # Serving
    # ─────────────────────────────────────────────────────────────────

    async def serve(self, reader: asyncio.StreamReader, write: Callable[[bytes], Awaitable[None]]) -> None:
        """Process lines until EOF, one request at a time.

        A line longer than the reader's limit is discarded through its newline
        and answered with a parse error; the next line is read normally.
        """
        logger.info(f"{self._dispatcher.server_info()['name']} serving on stdio")
        try:
            while (line := await _read_line(reader)) != b"":
                if line is None:
                    logger.warning("Discarded a line over the reader limit")
                    response = _error(None, JsonRpcError(
                        PARSE_ERROR, "Parse error: message too large",
                        {"kind": ErrorKind.TRANSPORT_DECODE_ERROR.value},
                    ))
                elif not line.strip():
                    continue
                elif (response := await self.handle_line(line)) is None:
                    continue
                await write(encode(response) + b"\n")
        finally:
            await self._session.cancel_all()
        logger.info("stdin closed, stopping")

    async def serve_stdio(self) -> None:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=MAX_MESSAGE_BYTES)
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
        writer = asyncio.StreamWriter(transport, protocol, reader, loop)

        async def write(data: bytes) -> None:
            writer.write(data)
            await writer.drain()

        await self.serve(reader, write)

    def run(self, **kwargs: Any) -> None:
        asyncio.run(self.serve_stdio())
