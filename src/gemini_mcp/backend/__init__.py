"""Backend client facade over the generative-model service.

The Gemini implementation lives in `gemini_mcp.backend.gemini` and is
imported on demand so the protocol types stay usable without google-genai
configured.
"""

from .base import (
    Backend,
    ConversationTurn,
    FunctionCall,
    FunctionSpec,
    GenerationOptions,
    extend_conversation,
)

__all__ = [
    "Backend",
    "ConversationTurn",
    "FunctionCall",
    "FunctionSpec",
    "GenerationOptions",
    "extend_conversation",
]
