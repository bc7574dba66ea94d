"""HTTP/REST adapter with Server-Sent Events streaming and the `/ws` socket.

Endpoints:
    GET  /health               -> {status: "ok", timestamp}
    GET  /info                 -> server info
    GET  /tools                -> tool descriptions, in registration order
    GET  /tools/{name}/schema  -> one tool's parameter schema
    POST /tools/{name}         -> {success: true, result} | {success: false, error}
    POST /tools/{name}/stream  -> text/event-stream
    POST /api/generate         -> {success: true, text}
    POST /api/generate/stream  -> text/event-stream
    POST /api/chat             -> {success: true, text}
    GET  /resources            -> resource descriptions
    GET  /resources/{name}     -> resource content
    WS   /ws                   -> see gemini_mcp.ext.mcp.websocket

Failure statuses follow the error kind: 400 InvalidParameters and
TransportDecodeError, 404 UnknownTool and UnknownResource, 401 Unauthorized,
500 otherwise.

Example:
    >>> server = HTTPToolServer(dispatcher, auth_token="secret")
    >>> server.run(host="0.0.0.0", port=3002)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route, WebSocketRoute

from gemini_mcp.foundation.core import InvocationRequest
from gemini_mcp.foundation.errors import ErrorKind, Failure, TransportDecodeError
from gemini_mcp.io.streaming import adapt_sse, decode_object, encode, sse_adapter

from .auth import BearerAuthMiddleware
from .base import ToolServer
from .websocket import websocket_endpoint

if TYPE_CHECKING:
    from gemini_mcp.foundation.config import ServerSettings
    from gemini_mcp.runtime import Dispatcher


logger = logging.getLogger("gemini_mcp.transport.http")


class OrjsonResponse(JSONResponse):
    """JSONResponse rendered with orjson."""

    def render(self, content: Any) -> bytes:
        return encode(content)


def failure_response(failure: Failure) -> Response:
    return OrjsonResponse({"success": False, "error": failure.to_dict()}, status_code=failure.status_code)


def _bad_request(message: str) -> Response:
    return failure_response(Failure(ErrorKind.INVALID_PARAMETERS, message))


async def _json_body(request: Request) -> dict[str, Any]:
    """Request body as an object; an empty body is `{}`."""
    raw = await request.body()
    return decode_object(raw) if raw.strip() else {}


class HTTPToolServer(ToolServer):
    """Starlette app exposing the dispatcher over HTTP, SSE and WebSocket."""

    __slots__ = ("_auth_token", "_app")

    def __init__(self, dispatcher: Dispatcher, *, auth_token: str | None = None) -> None:
        super().__init__(dispatcher)
        self._auth_token = auth_token
        self._app = self._create_app()

    @classmethod
    def from_settings(cls, dispatcher: Dispatcher, settings: ServerSettings) -> HTTPToolServer:
        token = settings.auth_token.get_secret_value() if settings.auth_token else None
        return cls(dispatcher, auth_token=token)

    @property
    def app(self) -> Starlette:
        """Access ASGI app for embedding in larger applications."""
        return self._app

    def _create_app(self) -> Starlette:
        routes = [
            Route("/health", self.health, methods=["GET"]),
            Route("/info", self.info, methods=["GET"]),
            Route("/tools", self.list_tools, methods=["GET"]),
            Route("/tools/{name}/schema", self.tool_schema, methods=["GET"]),
            Route("/tools/{name}/stream", self.stream_tool, methods=["POST"]),
            Route("/tools/{name}", self.invoke_tool, methods=["POST"]),
            Route("/api/generate/stream", self.api_generate_stream, methods=["POST"]),
            Route("/api/generate", self.api_generate, methods=["POST"]),
            Route("/api/chat", self.api_chat, methods=["POST"]),
            Route("/resources", self.list_resources, methods=["GET"]),
            Route("/resources/{name}", self.read_resource, methods=["GET"]),
            WebSocketRoute("/ws", websocket_endpoint(self._dispatcher)),
        ]
        middleware = [Middleware(BearerAuthMiddleware, token=self._auth_token)]
        return Starlette(routes=routes, middleware=middleware)

    # ─────────────────────────────────────────────────────────────────
    # Discovery
    # ─────────────────────────────────────────────────────────────────

    async def health(self, request: Request) -> Response:
        return OrjsonResponse({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})

    async def info(self, request: Request) -> Response:
        return OrjsonResponse(self._dispatcher.server_info())

    async def list_tools(self, request: Request) -> Response:
        return OrjsonResponse(self._dispatcher.list_tools())

    async def tool_schema(self, request: Request) -> Response:
        name = request.path_params["name"]
        if (tool := self._dispatcher.catalog.lookup(name)) is None:
            return failure_response(Failure.unknown_tool(name))
        return OrjsonResponse({"name": tool.name, "description": tool.description, "parameters": tool.parameters()})

    async def list_resources(self, request: Request) -> Response:
        return OrjsonResponse(self._dispatcher.list_resources())

    async def read_resource(self, request: Request) -> Response:
        name = request.path_params["name"]
        if (found := self._dispatcher.read_resource(name)) is None:
            return failure_response(Failure(ErrorKind.UNKNOWN_RESOURCE, f"Resource '{name}' not found"))
        resource, text = found
        return Response(text, media_type=resource.mime_type)

    # ─────────────────────────────────────────────────────────────────
    # Invocation
    # ─────────────────────────────────────────────────────────────────

    async def _run(self, request: InvocationRequest, key: str) -> Response:
        result = await self._dispatcher.handle(request)
        if isinstance(result, Failure):
            return failure_response(result)
        return OrjsonResponse({"success": True, key: result.payload})

    def _sse(self, request: InvocationRequest) -> Response:
        """Validate up front so client errors get a plain 4xx instead of an event stream."""
        checked = self._dispatcher.validate(request)
        if isinstance(checked, Failure):
            return failure_response(checked)
        return StreamingResponse(
            adapt_sse(self._dispatcher.stream_validated(checked)),
            media_type=sse_adapter.media_type,
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    async def invoke_tool(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except TransportDecodeError as e:
            return failure_response(Failure.decode_error(str(e)))
        return await self._run(InvocationRequest(request.path_params["name"], body), "result")

    async def stream_tool(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except TransportDecodeError as e:
            return failure_response(Failure.decode_error(str(e)))
        return self._sse(InvocationRequest(request.path_params["name"], body))

    # ─────────────────────────────────────────────────────────────────
    # Direct API
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _generate_request(body: dict[str, Any]) -> InvocationRequest | None:
        model, prompt = body.get("model"), body.get("prompt")
        if not model or not prompt:
            return None
        params: dict[str, Any] = {"model": model, "query": prompt}
        if body.get("options") is not None:
            params["options"] = body["options"]
        return InvocationRequest("ask_gemini", params)

    async def api_generate(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except TransportDecodeError as e:
            return failure_response(Failure.decode_error(str(e)))
        if (call := self._generate_request(body)) is None:
            return _bad_request("Model and prompt are required")
        return await self._run(call, "text")

    async def api_generate_stream(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except TransportDecodeError as e:
            return failure_response(Failure.decode_error(str(e)))
        if (call := self._generate_request(body)) is None:
            return _bad_request("Model and prompt are required")
        return self._sse(call)

    async def api_chat(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except TransportDecodeError as e:
            return failure_response(Failure.decode_error(str(e)))
        model, messages = body.get("model"), body.get("messages")
        if not model or not isinstance(messages, list) or not messages or not isinstance(messages[-1], dict):
            return _bad_request("Model and valid messages array are required")
        params: dict[str, Any] = {
            "model": model,
            "conversation": messages[:-1],
            "message": messages[-1].get("content"),
        }
        if body.get("options") is not None:
            params["options"] = body["options"]
        return await self._run(InvocationRequest("chat_with_gemini", params), "text")

    def run(self, host: str = "127.0.0.1", port: int = 3002, **kwargs: Any) -> None:
        """Start HTTP server."""
        import uvicorn

        logger.info(f"{self._dispatcher.server_info()['name']} listening on http://{host}:{port}")
        uvicorn.run(self._app, host=host, port=port, log_config=None, **kwargs)


def create_http_app(dispatcher: Dispatcher, settings: ServerSettings | None = None) -> Starlette:
    """Create the ASGI app without running it."""
    if settings is None:
        return HTTPToolServer(dispatcher).app
    return HTTPToolServer.from_settings(dispatcher, settings).app
