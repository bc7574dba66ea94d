"""Gemini implementation of the backend facade on the google-genai SDK.

Translates the canonical `ConversationTurn` history into Gemini contents
(`{role, parts: [{text}]}`) and every SDK or transport failure into
`BackendError` with an explicit status:

- google.genai APIError        -> its HTTP code
- httpx timeout                -> 504
- other httpx transport errors -> 503
- anything else                -> None (not retryable)

Example:
    >>> backend = GeminiBackend(api_key="...")
    >>> await backend.generate("gemini-2.0-flash", "2+2")
    '4'
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from gemini_mcp.foundation.errors import BackendError

from .base import ConversationTurn, FunctionCall, FunctionSpec, GenerationOptions, extend_conversation

if TYPE_CHECKING:
    from gemini_mcp.foundation.config import ServerSettings


logger = logging.getLogger("gemini_mcp.backend")


@contextmanager
def _translated(operation: str) -> Iterator[None]:
    """Re-raise SDK and transport failures as BackendError."""
    try:
        yield
    except BackendError:
        raise
    except genai_errors.APIError as e:
        logger.warning(f"{operation} rejected by backend: {e.code} {e.message}")
        raise BackendError(e.code, e.message or str(e)) from e
    except httpx.TimeoutException as e:
        raise BackendError(504, f"{operation} timed out: {e}") from e
    except httpx.TransportError as e:
        raise BackendError(503, f"{operation} failed to reach backend: {e}") from e
    except Exception as e:
        logger.exception(f"{operation} failed unexpectedly")
        raise BackendError(None, f"{operation} failed: {e}") from e


def _to_contents(contents: str | Sequence[ConversationTurn]) -> str | list[types.Content]:
    if isinstance(contents, str):
        return contents
    return [
        types.Content(role=turn.role, parts=[types.Part.from_text(text=turn.content)])
        for turn in contents
    ]


def _to_config(
    options: GenerationOptions | None,
    tools: list[types.Tool] | None = None,
) -> types.GenerateContentConfig | None:
    fields = options.as_config() if options else {}
    if tools:
        fields["tools"] = tools
    return types.GenerateContentConfig(**fields) if fields else None


class GeminiBackend:
    """Backend facade over `google.genai.Client`.

    Stateless per call; the underlying client is safe to share between
    concurrent connections.
    """

    __slots__ = ("_client",)

    def __init__(self, api_key: str | None = None, *, client: genai.Client | None = None) -> None:
        self._client = client if client is not None else genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> GeminiBackend:
        key = settings.api_key.get_secret_value() if settings.api_key else None
        return cls(api_key=key)

    async def generate(self, model: str, prompt: str, options: GenerationOptions | None = None) -> str:
        with _translated("generate"):
            response = await self._client.aio.models.generate_content(
                model=model, contents=prompt, config=_to_config(options),
            )
        return response.text or ""

    async def generate_stream(
        self,
        model: str,
        contents: str | Sequence[ConversationTurn],
        options: GenerationOptions | None = None,
    ) -> AsyncIterator[str]:
        with _translated("generate_stream"):
            stream = await self._client.aio.models.generate_content_stream(
                model=model, contents=_to_contents(contents), config=_to_config(options),
            )
        return self._iter_text(stream)

    async def _iter_text(self, stream: AsyncIterator[types.GenerateContentResponse]) -> AsyncIterator[str]:
        with _translated("generate_stream"):
            async for chunk in stream:
                if text := chunk.text:
                    yield text

    async def chat_turn(
        self,
        model: str,
        history: Sequence[ConversationTurn],
        message: str,
        options: GenerationOptions | None = None,
    ) -> str:
        with _translated("chat_turn"):
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=_to_contents(extend_conversation(history, message)),
                config=_to_config(options),
            )
        return response.text or ""

    async def invoke_with_functions(
        self,
        model: str,
        prompt: str,
        functions: Sequence[FunctionSpec],
        options: GenerationOptions | None = None,
    ) -> FunctionCall | str:
        declarations = [
            types.FunctionDeclaration(name=f.name, description=f.description, parameters_json_schema=f.parameters)
            for f in functions
        ]
        with _translated("invoke_with_functions"):
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=_to_config(options, [types.Tool(function_declarations=declarations)]),
            )
        if calls := response.function_calls:
            return FunctionCall(calls[0].name or "", dict(calls[0].args or {}))
        return response.text or ""
