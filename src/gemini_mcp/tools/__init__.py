"""Built-in tools and resources.

Includes:
- ask_gemini, chat_with_gemini, gemini_function_call
- gemini_models resource
- build_catalog: catalog populated with all of the above
"""

from .gemini import (
    BUILTIN_TOOLS,
    AskParams,
    ChatParams,
    FunctionCallParams,
    ask_gemini,
    build_catalog,
    chat_with_gemini,
    gemini_function_call,
)
from .resources import KNOWN_MODELS, MODEL_IDS, models_resource, read_models

__all__ = [
    # Tools
    "ask_gemini", "chat_with_gemini", "gemini_function_call", "BUILTIN_TOOLS",
    "AskParams", "ChatParams", "FunctionCallParams",
    # Resources
    "models_resource", "read_models", "KNOWN_MODELS", "MODEL_IDS",
    # Catalog
    "build_catalog",
]
