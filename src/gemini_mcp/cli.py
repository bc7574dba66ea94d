"""CLI entry point for the Gemini MCP server."""

from __future__ import annotations

import logging
import sys

import click

from gemini_mcp import __version__
from gemini_mcp.foundation.config import ServerSettings, get_settings
from gemini_mcp.runtime import Dispatcher
from gemini_mcp.runtime.observability import configure_logging
from gemini_mcp.tools import build_catalog

logger = logging.getLogger("gemini_mcp.cli")


def build_dispatcher(settings: ServerSettings) -> Dispatcher:
    """Gemini backend and built-in catalog, wired from settings."""
    from gemini_mcp.backend.gemini import GeminiBackend

    return Dispatcher.from_settings(build_catalog(), GeminiBackend.from_settings(settings), settings)


@click.group()
@click.version_option(version=__version__, prog_name="gemini-mcp")
def cli() -> None:
    """Gemini MCP - expose Google Gemini models as MCP tools."""


@cli.command()
@click.option(
    "--transport", "-t",
    type=click.Choice(["stdio", "http"]),
    default="stdio",
    show_default=True,
    help="stdio for MCP clients that spawn the server; http for REST, SSE and WebSocket.",
)
@click.option("--host", default=None, help="Bind address (http only). Defaults to GEMINI_MCP_HOST.")
@click.option("--port", "-p", type=int, default=None, help="Port (http only). Defaults to GEMINI_MCP_PORT.")
def serve(transport: str, host: str | None, port: int | None) -> None:
    """Start the server."""
    settings = get_settings()
    configure_logging(settings.logging)

    if settings.api_key is None:
        click.echo("Error: GEMINI_API_KEY is not set.", err=True)
        sys.exit(1)

    dispatcher = build_dispatcher(settings)

    if transport == "stdio":
        from gemini_mcp.ext.mcp import StdioServer

        StdioServer(dispatcher).run()
        return

    from gemini_mcp.ext.mcp import HTTPToolServer

    if settings.auth_token is None and settings.environment == "production":
        logger.warning("GEMINI_MCP_AUTH_TOKEN is not set; network transports are unauthenticated")
    HTTPToolServer.from_settings(dispatcher, settings).run(
        host=host or settings.host,
        port=port or settings.port,
    )


@cli.command("tools")
def list_tools() -> None:
    """List the built-in tools."""
    for tool in build_catalog():
        marker = " (streaming)" if tool.streaming else ""
        click.echo(f"{tool.name}{marker}: {tool.description}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
