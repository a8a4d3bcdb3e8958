"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Generation backend
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None
    reasoning_model: str = "gpt-4o-mini"
    coding_model: str = "gpt-4o"
    allow_offline_generation: bool = False

    # Retry policy for transient backend overload
    generation_max_retries: int = 3
    generation_initial_delay_ms: int = 1000

    # Analysis preview bounds
    analysis_preview_lines: int = 10
    analysis_preview_chars: int = 8000

    # Conversation
    max_upload_files: int = 3
    design_prompt_delay_ms: int = 1000

    # Live conversations kept in memory (least recently used idle ones go first)
    max_conversations: int = 500
    conversation_idle_ttl_seconds: int = 3600

    # Persistence
    database_url: str | None = None
    save_policy: Literal["insert", "overwrite"] = "insert"

    # Export
    export_filename: str = "dashboard.html"

    # Rate limiting (requests per minute, per conversation)
    redis_url: str | None = None
    generation_requests_per_min: int = 10


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
