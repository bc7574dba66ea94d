"""Shared transport plumbing: connection sessions and the server base class.

Every adapter holds the one `Dispatcher` and owns a `ConnectionSession` per
connection. Adapters decode and encode; they never route or validate.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from gemini_mcp.foundation.core import InvocationRequest

if TYPE_CHECKING:
    from gemini_mcp.foundation.errors import InvocationResult
    from gemini_mcp.runtime import Dispatcher


logger = logging.getLogger("gemini_mcp.transport")


class TransportKind(StrEnum):
    STDIO = "stdio"
    WEBSOCKET = "websocket"
    HTTP = "http"


@dataclass(slots=True)
class ConnectionSession:
    """Per-connection state, created on connect and discarded on close.

    Attributes:
        transport_kind: Which adapter owns the connection
        sent_server_info: Whether the server_info envelope has gone out
        open_streams: In-flight call tasks. Client ids are opaque and may be
            unhashable or repeated, so tasks are tracked by identity.
    """
    transport_kind: TransportKind
    sent_server_info: bool = False
    open_streams: set[asyncio.Task[None]] = field(default_factory=set)

    def track(self, task: asyncio.Task[None]) -> None:
        self.open_streams.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task[None]) -> None:
        self.open_streams.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            logger.error(f"Call task {task.get_name()} failed: {exc!r}", exc_info=exc)

    async def cancel_all(self) -> None:
        """Cancel every in-flight call and wait for them to unwind."""
        tasks = list(self.open_streams)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.open_streams.clear()


class ToolServer(ABC):
    """Abstract base for transport adapters.

    Subclasses implement different transports while sharing the same
    dispatcher.
    """

    __slots__ = ("_dispatcher",)

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @abstractmethod
    def run(self, **kwargs: Any) -> None:
        """Start the server (blocking)."""
        ...

    async def invoke(self, tool_name: str, params: Any, request_id: Any = None) -> InvocationResult:
        """Hand one decoded call to the dispatcher."""
        return await self._dispatcher.handle(InvocationRequest(tool_name, params, request_id))
