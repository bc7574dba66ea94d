"""Built-in Gemini tools.

Each tool is a `ToolDefinition` whose handler maps validated parameters onto
one backend facade operation:

- ask_gemini           -> generate (streamable)
- chat_with_gemini     -> chat_turn (streamable)
- gemini_function_call -> invoke_with_functions

Handlers never retry or catch backend errors; the dispatcher runs them under
the resilience wrapper and turns exceptions into failures.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from gemini_mcp.backend import ConversationTurn, FunctionCall, FunctionSpec, GenerationOptions, extend_conversation
from gemini_mcp.foundation.core import ToolDefinition
from gemini_mcp.foundation.registry import ToolCatalog

from .resources import MODEL_IDS, models_resource

if TYPE_CHECKING:
    from gemini_mcp.backend import Backend


def _model_field() -> Any:
    return Field(..., min_length=1, description="The Gemini model to use", examples=list(MODEL_IDS))


def _options_field() -> Any:
    return Field(default=None, description="Optional parameters for generation")


class AskParams(BaseModel):
    """Parameters for ask_gemini."""

    model_config = ConfigDict(extra="forbid")

    model: str = _model_field()
    query: str = Field(..., description="The question or prompt to send to Gemini")
    options: GenerationOptions | None = _options_field()


class ChatParams(BaseModel):
    """Parameters for chat_with_gemini."""

    model_config = ConfigDict(extra="forbid")

    model: str = _model_field()
    conversation: list[ConversationTurn] = Field(..., description="Previous conversation history")
    message: str = Field(..., description="New message to add to the conversation")
    options: GenerationOptions | None = _options_field()


class FunctionCallParams(BaseModel):
    """Parameters for gemini_function_call."""

    model_config = ConfigDict(extra="forbid")

    model: str = _model_field()
    prompt: str = Field(..., description="The prompt to send to Gemini")
    functions: list[FunctionSpec] = Field(..., min_length=1, description="Function definitions")
    options: GenerationOptions | None = _options_field()


# ─────────────────────────────────────────────────────────────────────────────
# Handlers
# ─────────────────────────────────────────────────────────────────────────────


async def ask(backend: Backend, params: AskParams) -> str:
    return await backend.generate(params.model, params.query, params.options)


async def ask_stream(backend: Backend, params: AskParams) -> AsyncIterator[str]:
    return await backend.generate_stream(params.model, params.query, params.options)


async def chat(backend: Backend, params: ChatParams) -> str:
    return await backend.chat_turn(params.model, params.conversation, params.message, params.options)


async def chat_stream(backend: Backend, params: ChatParams) -> AsyncIterator[str]:
    contents = extend_conversation(params.conversation, params.message)
    return await backend.generate_stream(params.model, contents, params.options)


async def call_function(backend: Backend, params: FunctionCallParams) -> dict[str, Any]:
    outcome = await backend.invoke_with_functions(params.model, params.prompt, params.functions, params.options)
    return outcome.to_dict() if isinstance(outcome, FunctionCall) else {"text": outcome}


ask_gemini = ToolDefinition(
    name="ask_gemini",
    description="Ask a question to Google's Gemini AI model and get a response",
    params_schema=AskParams,
    handler=ask,
    stream_handler=ask_stream,
    category="generation",
)

chat_with_gemini = ToolDefinition(
    name="chat_with_gemini",
    description="Have a multi-turn conversation with Google's Gemini AI",
    params_schema=ChatParams,
    handler=chat,
    stream_handler=chat_stream,
    category="generation",
)

gemini_function_call = ToolDefinition(
    name="gemini_function_call",
    description="Call a function using Gemini's function calling capability",
    params_schema=FunctionCallParams,
    handler=call_function,
    category="functions",
)

BUILTIN_TOOLS: tuple[ToolDefinition, ...] = (ask_gemini, chat_with_gemini, gemini_function_call)


def build_catalog() -> ToolCatalog:
    """Catalog with every built-in tool and resource, ready to freeze."""
    catalog = ToolCatalog()
    for tool in BUILTIN_TOOLS:
        catalog.register(tool)
    catalog.register_resource(models_resource)
    return catalog
