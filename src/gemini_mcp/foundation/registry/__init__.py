"""Tool and resource catalog."""

from .registry import ToolCatalog

__all__ = ["ToolCatalog"]
