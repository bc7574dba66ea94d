"""Observability: process logging configuration."""

from .logging import JsonFormatter, build_formatter, configure_logging

__all__ = ["JsonFormatter", "build_formatter", "configure_logging"]
