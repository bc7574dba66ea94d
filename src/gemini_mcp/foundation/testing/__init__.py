"""Testing utilities: a recording backend stub."""

from .stub import Call, StubBackend

__all__ = ["Call", "StubBackend"]
