"""Streaming events, JSON codec and transport formatting."""

from .adapters import SSEAdapter, WebSocketAdapter, adapt_sse, sse_adapter, ws_adapter
from .codec import decode, decode_object, encode, encode_str
from .stream import StreamEvent, StreamEventKind, stream_chunk, stream_done, stream_error

__all__ = [
    # Events
    "StreamEvent", "StreamEventKind", "stream_chunk", "stream_done", "stream_error",
    # Codec
    "encode", "encode_str", "decode", "decode_object",
    # Transport formatting
    "SSEAdapter", "WebSocketAdapter", "sse_adapter", "ws_adapter", "adapt_sse",
]
