"""Configuration and environment loading for Parallax."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Anthropic
    anthropic_api_key: str

    # Supabase
    supabase_url: str
    supabase_key: str

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Claude model config
    claude_model: str = "claude-sonnet-4-5-20250929"
    claude_max_tokens: int = 1024

    # Conductor generation
    conductor_max_tokens: int = 512
    generation_timeout_seconds: float = 30.0  # Timeout counts as a generation failure
    generation_max_retries: int = 3


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
