"""Transport formatting for dispatcher streams.

Provides the Server-Sent Events and WebSocket renderings of `StreamEvent`:

SSE:
    data: {"text": "<chunk>"}

    data: {"done": true}

WebSocket:
    {"type": "tool_chunk", "id": ..., "text": "<chunk>"}
    {"type": "tool_done", "id": ...}
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from .codec import encode_str
from .stream import StreamEvent, StreamEventKind


class SSEAdapter:
    """Format streams as Server-Sent Events data lines."""

    __slots__ = ()

    media_type = "text/event-stream"

    def payload(self, event: StreamEvent) -> dict[str, Any]:
        match event.kind:
            case StreamEventKind.CHUNK:
                return {"text": event.text}
            case StreamEventKind.DONE:
                return {"done": True}
            case _:
                return {"error": event.failure.to_dict() if event.failure else None}

    def format_event(self, event: StreamEvent) -> str:
        return f"data: {encode_str(self.payload(event))}\n\n"


class WebSocketAdapter:
    """Format streams as typed WebSocket messages correlated by request id."""

    __slots__ = ()

    def format_event(self, event: StreamEvent, request_id: object) -> dict[str, Any]:
        match event.kind:
            case StreamEventKind.CHUNK:
                return {"type": "tool_chunk", "id": request_id, "text": event.text}
            case StreamEventKind.DONE:
                return {"type": "tool_done", "id": request_id}
            case _:
                return {
                    "type": "tool_error",
                    "id": request_id,
                    "error": event.failure.to_dict() if event.failure else None,
                }


sse_adapter = SSEAdapter()
ws_adapter = WebSocketAdapter()


async def adapt_sse(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Render a dispatcher stream as SSE text, stopping at the terminal event."""
    async for event in events:
        yield sse_adapter.format_event(event)
        if event.terminal:
            return
