"""Configuration management for tabletop_mcp.

Loads settings from environment variables with sensible defaults.
"""

import os

from pydantic import BaseModel, Field


def _float_env(name: str, default: float) -> float:
    """Parse a float from the environment, falling back on empty values."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric") from exc


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    base_url: str = Field(
        default_factory=lambda: os.getenv("KANKA_BASE_URL", "https://api.kanka.io/1.0"),
        description="Base URL of the campaign wiki REST API",
    )
    api_token: str | None = Field(
        default_factory=lambda: os.getenv("KANKA_API_TOKEN") or None,
        description="Process-wide default Bearer token for the wiki API",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: _float_env("TABLETOP_MCP_TIMEOUT_S", 30.0),
        description="HTTP request timeout in seconds",
    )
    data_dir: str = Field(
        default_factory=lambda: os.getenv("TABLETOP_MCP_DATA_DIR", "data/characters"),
        description="Directory holding one JSON file per imported character",
    )
    session_grace_seconds: float = Field(
        default_factory=lambda: _float_env("TABLETOP_MCP_SESSION_GRACE_S", 30.0),
        description="How long a closed streaming session is retained before eviction",
    )
    keepalive_seconds: float = Field(
        default_factory=lambda: _float_env("TABLETOP_MCP_KEEPALIVE_S", 15.0),
        description="Interval between keep-alive frames on a streaming session",
    )
    stream_provider: str = Field(
        default_factory=lambda: os.getenv("TABLETOP_MCP_STREAM_PROVIDER", "kanka"),
        description="Provider bound to streaming sessions when none is requested",
    )

    model_config = {"frozen": True}


def get_settings() -> Settings:
    """Create settings instance from current environment.

    Returns:
        Settings instance with values from environment variables.
    """
    return Settings()
