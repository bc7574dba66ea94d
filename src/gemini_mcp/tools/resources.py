"""Readable resources: the known Gemini model list."""

from __future__ import annotations

from typing import Any

from gemini_mcp.foundation.core import ResourceDefinition
from gemini_mcp.io.streaming import encode_str

KNOWN_MODELS: tuple[dict[str, Any], ...] = (
    {
        "id": "gemini-2.5-pro-exp-03-25",
        "name": "Gemini 2.5 Pro",
        "description": "Advanced multimodal model with strong reasoning capabilities",
        "features": ["Text", "Images", "Function calling"],
        "contextWindow": 1_000_000,
    },
    {
        "id": "gemini-2.0-flash",
        "name": "Gemini 2.0 Flash",
        "description": "Efficient general-purpose model",
        "features": ["Text"],
        "contextWindow": 32_000,
    },
    {
        "id": "gemini-2.0-flash-lite",
        "name": "Gemini 2.0 Flash Lite",
        "description": "Lightweight version of Gemini 2.0 Flash",
        "features": ["Text"],
        "contextWindow": 16_000,
    },
)

MODEL_IDS: tuple[str, ...] = tuple(m["id"] for m in KNOWN_MODELS)


def read_models() -> str:
    return encode_str(list(KNOWN_MODELS))


models_resource = ResourceDefinition(
    name="gemini_models",
    uri="gemini://models",
    description="Available Gemini models with their features and context windows",
    reader=read_models,
)
