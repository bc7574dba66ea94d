"""Backend client facade: the single abstraction over the model backend.

Every operation is asynchronous, takes a model id plus its content and an
optional `GenerationOptions`, and raises `BackendError` on failure. The facade
never retries; retry is applied by the caller through the resilience layer.

Implementations:
    - GeminiBackend (gemini_mcp.backend.gemini): google-genai client
    - StubBackend (gemini_mcp.foundation.testing): recording stub for tests
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class GenerationOptions(BaseModel):
    """Recognized generation options. Unknown keys are rejected."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        json_schema_extra={"examples": [{"temperature": 0.2, "maxOutputTokens": 256}]},
    )

    temperature: float | None = Field(default=None, ge=0.0, le=1.0, description="Controls randomness (0-1)")
    max_output_tokens: PositiveInt | None = Field(
        default=None, alias="maxOutputTokens", description="Maximum tokens to generate",
    )
    top_k: PositiveInt | None = Field(
        default=None, alias="topK", description="Number of most likely tokens to consider",
    )
    top_p: float | None = Field(
        default=None, ge=0.0, le=1.0, alias="topP", description="Cumulative probability of tokens to consider",
    )

    def as_config(self) -> dict[str, float | int]:
        """Set fields only, in backend (snake_case) naming."""
        return self.model_dump(exclude_none=True)


class ConversationTurn(BaseModel):
    """One message of a conversation history."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Literal["user", "model"]
    content: str


class FunctionSpec(BaseModel):
    """Function declaration offered to the model for function calling."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Function name")
    description: str | None = Field(default=None, description="What the function does")
    parameters: dict[str, Any] | None = Field(default=None, description="JSON schema of the arguments")


@dataclass(frozen=True, slots=True)
class FunctionCall:
    """The backend chose to call a declared function instead of answering."""
    function_name: str
    function_args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"functionName": self.function_name, "functionArgs": self.function_args}


def extend_conversation(history: Sequence[ConversationTurn], message: str) -> tuple[ConversationTurn, ...]:
    """New history with one `user` turn appended; the input is left untouched."""
    return (*history, ConversationTurn(role="user", content=message))


@runtime_checkable
class Backend(Protocol):
    """Protocol implemented by every backend client."""

    async def generate(self, model: str, prompt: str, options: GenerationOptions | None = None) -> str:
        """Single-shot text generation."""
        ...

    async def generate_stream(
        self,
        model: str,
        contents: str | Sequence[ConversationTurn],
        options: GenerationOptions | None = None,
    ) -> AsyncIterator[str]:
        """Open a stream; the returned iterator yields text chunks as produced."""
        ...

    async def chat_turn(
        self,
        model: str,
        history: Sequence[ConversationTurn],
        message: str,
        options: GenerationOptions | None = None,
    ) -> str:
        """Answer `message` given the prior `history`."""
        ...

    async def invoke_with_functions(
        self,
        model: str,
        prompt: str,
        functions: Sequence[FunctionSpec],
        options: GenerationOptions | None = None,
    ) -> FunctionCall | str:
        """Generate with function declarations; returns a call or plain text."""
        ...
