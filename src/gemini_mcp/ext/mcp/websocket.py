"""WebSocket adapter: typed JSON messages on `/ws`.

Client -> server:
    {"type": "get_tools"}
    {"type": "tool_call", "id": ..., "tool": "ask_gemini", "parameters": {...}, "stream": false}

Server -> client:
    {"type": "server_info", "server": {...}}            (once, on connect)
    {"type": "tools", "tools": [...]}
    {"type": "tool_result", "id": ..., "result": ...}
    {"type": "tool_error", "id": ..., "error": {"kind", "message"}}
    {"type": "tool_chunk", "id": ..., "text": ...}      (stream: true)
    {"type": "tool_done", "id": ...}                    (stream: true)
    {"type": "error", "error": {"kind", "message"}}

Text and binary frames are both accepted; either must hold one JSON object.
Each tool call runs as its own task, so a slow call never blocks the next
message. Sends are serialized per socket. Closing the socket cancels every
call still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import anyio
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from gemini_mcp.foundation.core import InvocationRequest
from gemini_mcp.foundation.errors import ErrorKind, Failure, TransportDecodeError
from gemini_mcp.io.streaming import decode_object, encode_str, ws_adapter

from .base import ConnectionSession, TransportKind

if TYPE_CHECKING:
    from gemini_mcp.runtime import Dispatcher


logger = logging.getLogger("gemini_mcp.transport.websocket")

# Raised by send on a socket the peer already closed
_CLOSED_ERRORS = (WebSocketDisconnect, RuntimeError, OSError, anyio.ClosedResourceError, anyio.BrokenResourceError)


def error_message(failure: Failure) -> dict[str, Any]:
    return {"type": "error", "error": failure.to_dict()}


def _frame_payload(frame: dict[str, Any]) -> str | bytes:
    """Text or binary payload of a received frame; empty when it carries neither."""
    if (text := frame.get("text")) is not None:
        return text
    return frame.get("bytes") or b""


class WebSocketConnection:
    """One accepted socket and its session."""

    __slots__ = ("_dispatcher", "_ws", "_session", "_send_lock")

    def __init__(self, dispatcher: Dispatcher, websocket: WebSocket) -> None:
        self._dispatcher = dispatcher
        self._ws = websocket
        self._session = ConnectionSession(TransportKind.WEBSOCKET)
        self._send_lock = asyncio.Lock()

    @property
    def session(self) -> ConnectionSession:
        return self._session

    async def send(self, message: dict[str, Any]) -> None:
        async with self._send_lock:
            if self._ws.client_state is not WebSocketState.CONNECTED:
                return
            try:
                await self._ws.send_text(encode_str(message))
            except _CLOSED_ERRORS as e:
                logger.debug(f"Dropped {message.get('type')} for closed socket: {e}")

    async def run(self) -> None:
        await self._ws.accept()
        logger.info("Client connected")
        await self.send({"type": "server_info", "server": self._dispatcher.server_info()})
        self._session.sent_server_info = True
        try:
            while True:
                frame = await self._ws.receive()
                if frame["type"] == "websocket.disconnect":
                    logger.info(f"Client disconnected (code={frame.get('code')})")
                    break
                await self.on_message(_frame_payload(frame))
        finally:
            await self._session.cancel_all()

    async def on_message(self, raw: str | bytes) -> None:
        try:
            message = decode_object(raw)
        except TransportDecodeError as e:
            await self.send(error_message(Failure.decode_error(str(e))))
            return

        match message.get("type"):
            case "get_tools":
                await self.send({"type": "tools", "tools": self._dispatcher.list_tools()})
            case "tool_call":
                self._start_call(message)
            case other:
                await self.send(error_message(
                    Failure(ErrorKind.UNKNOWN_MESSAGE_TYPE, f"Unknown message type: {other}")
                ))

    def _start_call(self, message: dict[str, Any]) -> None:
        request = InvocationRequest(
            tool_name=str(message.get("tool", "")),
            parameters=message.get("parameters") or {},
            id=message.get("id"),
        )
        run = self._stream_call if message.get("stream") else self._call
        self._session.track(asyncio.create_task(run(request), name=f"ws-call-{request.tool_name}"))

    async def _call(self, request: InvocationRequest) -> None:
        result = await self._dispatcher.handle(request)
        if isinstance(result, Failure):
            await self.send({"type": "tool_error", "id": request.id, "error": result.to_dict()})
        else:
            await self.send({"type": "tool_result", "id": request.id, "result": result.payload})

    async def _stream_call(self, request: InvocationRequest) -> None:
        events = self._dispatcher.stream(request)
        try:
            async for event in events:
                await self.send(ws_adapter.format_event(event, request.id))
        finally:
            await events.aclose()


def websocket_endpoint(dispatcher: Dispatcher):
    """Starlette WebSocket endpoint bound to `dispatcher`."""

    async def endpoint(websocket: WebSocket) -> None:
        await WebSocketConnection(dispatcher, websocket).run()

    return endpoint
