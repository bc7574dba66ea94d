"""Tests for the click command line."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from gemini_mcp import __version__
from gemini_mcp.cli import cli
from gemini_mcp.foundation.config import clear_settings_cache


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_tools_listing(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["tools"])

    assert result.exit_code == 0
    assert "ask_gemini (streaming)" in result.output
    assert "gemini_function_call:" in result.output


def test_serve_without_api_key_exits(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_MCP_API_KEY", raising=False)
    clear_settings_cache()
    try:
        result = runner.invoke(cli, ["serve", "--transport", "http"])
    finally:
        clear_settings_cache()

    assert result.exit_code == 1
    assert "GEMINI_API_KEY" in result.output
