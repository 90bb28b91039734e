from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FR_",
        case_sensitive=False,
    )

    # ── Groq LLM ────────────────────────────────────────────────
    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    groq_temperature: float = 0.1
    groq_max_tokens: int = 8096

    # ── Incident memory ─────────────────────────────────────────
    memory_dir: str = "investigations"

    # ── Log-query MCP server ────────────────────────────────────
    mcp_command: str = "npx"
    mcp_args: list[str] = Field(
        default_factory=lambda: ["-y", "@google-cloud/observability-mcp"]
    )

    # ── Deadlines ───────────────────────────────────────────────
    # Maximum silence between two streamed chunks from the LLM.
    oracle_timeout_seconds: float = 120.0
    tool_timeout_seconds: float = 90.0

    # ── Logging ─────────────────────────────────────────────────
    log_json: bool = False
    log_level: str = "WARNING"


# Singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
