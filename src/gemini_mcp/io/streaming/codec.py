"""orjson codec for every wire encoding (JSON-RPC lines, WebSocket frames, SSE data).

Usage:
    >>> from gemini_mcp.io.streaming import encode, decode
    >>> encoded = encode({"key": "value"})
    >>> decode(encoded)
    {'key': 'value'}
"""

from __future__ import annotations

from typing import Any

import orjson

from gemini_mcp.foundation.errors import TransportDecodeError


def encode(data: Any) -> bytes:
    """Encode to JSON bytes."""
    return orjson.dumps(data, option=orjson.OPT_UTC_Z)


def encode_str(data: Any) -> str:
    """Encode to JSON string."""
    return orjson.dumps(data, option=orjson.OPT_UTC_Z).decode()


def decode(data: bytes | str) -> Any:
    """Decode JSON bytes/str."""
    return orjson.loads(data)


def decode_object(data: bytes | str) -> dict[str, Any]:
    """Decode a JSON object, raising TransportDecodeError on anything else."""
    try:
        value = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise TransportDecodeError(f"Malformed JSON: {e}") from e
    if not isinstance(value, dict):
        raise TransportDecodeError(f"Expected a JSON object, got {type(value).__name__}")
    return value
