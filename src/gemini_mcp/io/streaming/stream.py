"""Core streaming types for incremental result delivery.

A dispatcher stream is a sequence of `chunk` events terminated by exactly one
`done` event, or by one `error` event when the stream fails at any point.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gemini_mcp.foundation.errors import Failure


class StreamEventKind(StrEnum):
    """Types of streaming events."""
    CHUNK = "chunk"  # Content chunk
    DONE = "done"    # Stream finished successfully
    ERROR = "error"  # Stream terminated by a failure


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """One event of a dispatcher stream.

    Attributes:
        kind: Event type (chunk, done, error)
        index: Chunk sequence number (0-indexed); chunk count on done
        text: Chunk content (chunk events only)
        failure: Terminal failure (error events only)
    """
    kind: StreamEventKind
    index: int = 0
    text: str | None = None
    failure: Failure | None = None

    @property
    def terminal(self) -> bool:
        return self.kind is not StreamEventKind.CHUNK


def stream_chunk(text: str, index: int) -> StreamEvent:
    return StreamEvent(StreamEventKind.CHUNK, index=index, text=text)


def stream_done(count: int) -> StreamEvent:
    return StreamEvent(StreamEventKind.DONE, index=count)


def stream_error(failure: Failure, index: int = 0) -> StreamEvent:
    return StreamEvent(StreamEventKind.ERROR, index=index, failure=failure)
