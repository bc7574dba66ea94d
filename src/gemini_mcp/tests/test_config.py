"""Tests for environment-based settings and logging setup."""

from __future__ import annotations

import io
import logging

import orjson
import pytest

from gemini_mcp import __version__
from gemini_mcp.foundation.config import LoggingSettings, ServerSettings, clear_settings_cache, get_settings
from gemini_mcp.runtime.observability import configure_logging

ENV_VARS = (
    "GEMINI_API_KEY", "GEMINI_MCP_API_KEY", "GEMINI_MCP_PORT", "GEMINI_MCP_HOST", "GEMINI_MCP_AUTH_TOKEN",
    "GEMINI_MCP_LOG_LEVEL", "GEMINI_MCP_LOG_FORMAT", "GEMINI_MCP_RETRY_MAX_ATTEMPTS", "GEMINI_MCP_ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# ═════════════════════════════════════════════════════════════════════════════
# Settings
# ═════════════════════════════════════════════════════════════════════════════


def test_defaults() -> None:
    settings = ServerSettings()

    assert settings.version == __version__
    assert settings.host == "127.0.0.1"
    assert settings.port == 3002
    assert settings.api_key is None
    assert not settings.auth_enabled
    assert settings.retry.max_attempts == 3
    assert settings.retry.base_delay == 1.0
    assert settings.logging.format == "text"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-test")
    monkeypatch.setenv("GEMINI_MCP_PORT", "8080")
    monkeypatch.setenv("GEMINI_MCP_AUTH_TOKEN", "s3cret")
    monkeypatch.setenv("GEMINI_MCP_LOG_LEVEL", "debug")
    monkeypatch.setenv("GEMINI_MCP_RETRY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("GEMINI_MCP_ENVIRONMENT", "PRODUCTION")

    settings = ServerSettings()

    assert settings.api_key.get_secret_value() == "AIza-test"
    assert settings.port == 8080
    assert settings.auth_enabled
    assert settings.logging.level == "DEBUG"
    assert settings.retry.max_attempts == 5
    assert settings.environment == "production"


def test_empty_auth_token_disables_auth(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_MCP_AUTH_TOKEN", "")
    assert ServerSettings().auth_token is None


def test_secrets_are_masked(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-test")
    assert "AIza-test" not in repr(ServerSettings())


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    monkeypatch.setenv("GEMINI_MCP_PORT", "9000")
    assert get_settings() is first

    clear_settings_cache()
    assert get_settings().port == 9000


# ═════════════════════════════════════════════════════════════════════════════
# Logging
# ═════════════════════════════════════════════════════════════════════════════


def test_json_logging() -> None:
    stream = io.StringIO()
    configure_logging(LoggingSettings(level="INFO", format="json"), stream=stream)

    logging.getLogger("gemini_mcp.dispatch").info("[ask_gemini] Starting")
    logging.getLogger("gemini_mcp.dispatch").debug("hidden")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    entry = orjson.loads(lines[0])
    assert entry["level"] == "info"
    assert entry["logger"] == "gemini_mcp.dispatch"
    assert entry["event"] == "[ask_gemini] Starting"


def test_configure_logging_is_idempotent() -> None:
    stream = io.StringIO()
    settings = LoggingSettings(level="WARNING", format="text")

    configure_logging(settings, stream=stream)
    root = configure_logging(settings, stream=stream)
    root.getChild("retry").warning("[ask_gemini] Giving up")

    assert stream.getvalue().count("Giving up") == 1
    assert "[WARNING] gemini_mcp.retry:" in stream.getvalue()
