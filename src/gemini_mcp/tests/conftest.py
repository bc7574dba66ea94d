"""Shared fixtures: a recording stub backend and a dispatcher that never sleeps."""

from __future__ import annotations

import logging

import pytest
from starlette.testclient import TestClient

from gemini_mcp.ext.mcp import HTTPToolServer
from gemini_mcp.foundation.testing import StubBackend
from gemini_mcp.runtime import Dispatcher, ResilienceWrapper, RetryPolicy
from gemini_mcp.tools import build_catalog


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo `configure_logging` so handlers never outlive their test streams."""
    root = logging.getLogger("gemini_mcp")
    handlers, level, propagate = root.handlers[:], root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


class SleepRecorder:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def stub() -> StubBackend:
    return StubBackend(text="4")


@pytest.fixture
def dispatcher(stub: StubBackend, sleeps: SleepRecorder) -> Dispatcher:
    return Dispatcher(build_catalog(), stub, resilience=ResilienceWrapper(RetryPolicy(), sleep=sleeps))


@pytest.fixture
def client(dispatcher: Dispatcher) -> TestClient:
    return TestClient(HTTPToolServer(dispatcher).app)
