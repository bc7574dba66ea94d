"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from gemini_mcp.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_attempts
    3
    >>> settings.logging.level
    'INFO'

    # Or with environment variables:
    # GEMINI_API_KEY=...
    # GEMINI_MCP_PORT=8080
    # GEMINI_MCP_RETRY_BASE_DELAY=0.5
    # GEMINI_MCP_LOG_FORMAT=json
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import (
    AliasChoices,
    Field,
    PositiveFloat,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from gemini_mcp import __version__


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_MCP_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RetrySettings(BaseSettings):
    """Backend retry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_MCP_RETRY_",
        extra="ignore",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    base_delay: PositiveFloat = Field(default=1.0, description="Base delay in seconds")
    max_delay: PositiveFloat = Field(default=30.0, description="Maximum delay in seconds")
    jitter: bool = True


class ServerSettings(BaseSettings):
    """Root settings for the Gemini MCP server.

    Loads configuration from environment variables with GEMINI_MCP_ prefix.
    The backend credential is read from GEMINI_API_KEY.

    Example environment variables:
        GEMINI_API_KEY=AIza...
        GEMINI_MCP_HOST=0.0.0.0
        GEMINI_MCP_PORT=3002
        GEMINI_MCP_AUTH_TOKEN=secret
        GEMINI_MCP_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
        validate_default=True,
    )

    name: str = "gemini-mcp-server"
    version: str = __version__
    description: str = "MCP server for interacting with Google Gemini models"
    environment: Literal["development", "staging", "production"] = "development"

    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GEMINI_MCP_API_KEY"),
        description="Gemini API credential",
    )
    host: str = "127.0.0.1"
    port: Annotated[int, Field(ge=1, le=65535)] = 3002
    auth_token: SecretStr | None = Field(
        default=None,
        description="Bearer token required by the network transports",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        """Normalize environment name to lowercase."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("auth_token", mode="before")
    @classmethod
    def _empty_token_is_none(cls, v: object) -> object:
        return None if v == "" else v

    @computed_field
    @property
    def auth_enabled(self) -> bool:
        """Whether network transports require a bearer token."""
        return self.auth_token is not None


@lru_cache(maxsize=1)
def get_settings() -> ServerSettings:
    """Get the global settings instance (cached)."""
    return ServerSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
