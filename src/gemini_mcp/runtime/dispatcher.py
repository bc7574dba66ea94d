"""Dispatcher: the per-request state machine shared by every transport.

Request lifecycle:

    Received -> Validated -> InFlight (<-> Retrying) -> Completed | Failed

- Received -> Failed(UnknownTool): name missing from the catalog
- Received -> Failed(InvalidParameters): parameters rejected by the tool's
  schema; the message carries the first violated constraint
- Validated -> InFlight: the tool handler runs under the resilience wrapper
- InFlight -> Completed: `Success(payload)`
- InFlight -> Failed: `BackendUnavailable` (retries exhausted or transient
  mid-stream failure), `BackendRejected` (fatal backend error) or
  `InternalError` (handler bug)

Exactly one terminal result is produced per request. Streams emit `chunk`
events followed by one `done` event, or one `error` event on failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from gemini_mcp.foundation.core import InvocationRequest, ResourceDefinition, ToolDefinition
from gemini_mcp.foundation.errors import (
    BackendError,
    ErrorKind,
    Failure,
    InvocationResult,
    RetriesExhaustedError,
    Success,
)
from gemini_mcp.io.streaming import StreamEvent, encode_str, stream_chunk, stream_done, stream_error
from gemini_mcp.runtime.retry import ResilienceWrapper, RetryPolicy

if TYPE_CHECKING:
    from gemini_mcp.backend import Backend
    from gemini_mcp.foundation.config import ServerSettings
    from gemini_mcp.foundation.registry import ToolCatalog


logger = logging.getLogger("gemini_mcp.dispatch")


@dataclass(frozen=True, slots=True)
class ValidatedCall:
    """A request whose tool exists and whose parameters passed validation."""
    request: InvocationRequest
    tool: ToolDefinition
    params: BaseModel


def first_violation(exc: ValidationError) -> str:
    """`<location>: <message>` for the first error Pydantic reports."""
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def as_text(payload: Any) -> str:
    """Render a success payload as text for text-only channels."""
    return payload if isinstance(payload, str) else encode_str(payload)


class Dispatcher:
    """Validates and routes invocations to the backend.

    The catalog is frozen on construction, so every connection may share one
    dispatcher. The backend is injected; nothing here is process-global.

    Example:
        >>> dispatcher = Dispatcher(build_catalog(), GeminiBackend(api_key=key))
        >>> await dispatcher.handle(InvocationRequest("ask_gemini", {"model": "gemini-2.0-flash", "query": "2+2"}))
        Success(payload='4')
    """

    __slots__ = ("_catalog", "_backend", "_resilience", "_name", "_version", "_description")

    def __init__(
        self,
        catalog: ToolCatalog,
        backend: Backend,
        *,
        resilience: ResilienceWrapper | None = None,
        name: str = "gemini-mcp-server",
        version: str = "1.0.0",
        description: str = "MCP server for interacting with Google Gemini models",
    ) -> None:
        self._catalog = catalog.freeze()
        self._backend = backend
        self._resilience = resilience or ResilienceWrapper()
        self._name = name
        self._version = version
        self._description = description

    @classmethod
    def from_settings(cls, catalog: ToolCatalog, backend: Backend, settings: ServerSettings) -> Dispatcher:
        return cls(
            catalog,
            backend,
            resilience=ResilienceWrapper(RetryPolicy.from_settings(settings.retry)),
            name=settings.name,
            version=settings.version,
            description=settings.description,
        )

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    # ─────────────────────────────────────────────────────────────────
    # Discovery
    # ─────────────────────────────────────────────────────────────────

    def server_info(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "version": self._version,
            "description": self._description,
            "capabilities": {
                "tools": [t.name for t in self._catalog.list_all()],
                "resources": [r.name for r in self._catalog.list_resources()],
            },
        }

    def list_tools(self) -> list[dict[str, Any]]:
        return self._catalog.describe()

    def list_resources(self) -> list[dict[str, str]]:
        return [r.describe() for r in self._catalog.list_resources()]

    def read_resource(self, key: str) -> tuple[ResourceDefinition, str] | None:
        """Resolve a resource by name or URI and read its content."""
        if (resource := self._catalog.lookup_resource(key)) is None:
            return None
        return resource, resource.reader()

    # ─────────────────────────────────────────────────────────────────
    # Invocation
    # ─────────────────────────────────────────────────────────────────

    def validate(self, request: InvocationRequest) -> ValidatedCall | Failure:
        """Received -> Validated, or the validation failure."""
        if (tool := self._catalog.lookup(request.tool_name)) is None:
            logger.info(f"[{request.tool_name}] Unknown tool (id={request.id})")
            return Failure.unknown_tool(request.tool_name)
        if not isinstance(request.parameters, Mapping):
            return Failure(ErrorKind.INVALID_PARAMETERS, "Invalid parameters: expected an object")
        try:
            params = tool.params_schema.model_validate(dict(request.parameters))
        except ValidationError as e:
            return Failure(ErrorKind.INVALID_PARAMETERS, f"Invalid parameters: {first_violation(e)}")
        return ValidatedCall(request, tool, params)

    async def handle(self, request: InvocationRequest) -> InvocationResult:
        """Run one request to its terminal result. Never raises except on cancellation."""
        checked = self.validate(request)
        if isinstance(checked, Failure):
            return checked
        return await self.execute(checked)

    async def execute(self, call: ValidatedCall) -> InvocationResult:
        tool, params = call.tool, call.params
        start = time.perf_counter()
        logger.info(f"[{tool.name}] Starting (id={call.request.id})")
        try:
            payload = await self._resilience.call(lambda: tool.handler(self._backend, params), name=tool.name)
        except Exception as e:
            failure = self._failure_from(e, tool.name)
            logger.warning(f"[{tool.name}] {failure.kind} ({_elapsed(start)}): {failure.message}")
            return failure
        logger.info(f"[{tool.name}] OK ({_elapsed(start)})")
        return Success(payload)

    async def stream(self, request: InvocationRequest) -> AsyncIterator[StreamEvent]:
        """Validate then stream; validation failures become a single error event."""
        checked = self.validate(request)
        if isinstance(checked, Failure):
            yield stream_error(checked)
            return
        async for event in self.stream_validated(checked):
            yield event

    async def stream_validated(self, call: ValidatedCall) -> AsyncIterator[StreamEvent]:
        """Yield chunks as the backend produces them, then one terminal event.

        Tools without a stream handler emit their single-shot payload as one
        chunk. Opening the stream is retried; a failure after the first chunk
        is not, and ends the stream with an error event.
        """
        tool = call.tool
        if tool.stream_handler is None:
            result = await self.execute(call)
            if isinstance(result, Failure):
                yield stream_error(result)
            else:
                yield stream_chunk(as_text(result.payload), 0)
                yield stream_done(1)
            return

        start = time.perf_counter()
        logger.info(f"[{tool.name}] Opening stream (id={call.request.id})")
        try:
            chunks = await self._resilience.call(
                lambda: tool.stream_handler(self._backend, call.params), name=tool.name,
            )
        except Exception as e:
            yield stream_error(self._failure_from(e, tool.name))
            return

        index = 0
        try:
            async for text in chunks:
                yield stream_chunk(text, index)
                index += 1
        except Exception as e:
            failure = self._failure_from(e, tool.name)
            logger.warning(f"[{tool.name}] Stream failed after {index} chunks: {failure.message}")
            yield stream_error(failure, index)
            return
        finally:
            if (aclose := getattr(chunks, "aclose", None)) is not None:
                await aclose()
        logger.info(f"[{tool.name}] Stream OK, {index} chunks ({_elapsed(start)})")
        yield stream_done(index)

    @staticmethod
    def _failure_from(exc: Exception, tool_name: str) -> Failure:
        if isinstance(exc, RetriesExhaustedError):
            return Failure(ErrorKind.BACKEND_UNAVAILABLE, exc.message)
        if isinstance(exc, BackendError):
            kind = ErrorKind.BACKEND_UNAVAILABLE if exc.is_transient else ErrorKind.BACKEND_REJECTED
            return Failure(kind, exc.message)
        logger.exception(f"[{tool_name}] Unexpected handler error: {exc}")
        return Failure(ErrorKind.INTERNAL_ERROR, f"Internal error: {exc}")


def _elapsed(start: float) -> str:
    return f"{(time.perf_counter() - start) * 1000:.1f}ms"
