"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Assistant configuration. All values come from environment variables."""

    # Anthropic (reply generation)
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")
    reply_max_tokens: int = Field(default=1000)

    # Mem0 (long-term personalization memory)
    mem0_api_key: str = Field(default="")
    memory_timeout_seconds: float = Field(default=3.0)
    memory_extraction_enabled: bool = Field(default=True)

    # Tavily (web search)
    tavily_api_key: str = Field(default="")
    search_timeout_seconds: float = Field(default=20.0)

    # Database
    database_path: Path = Field(default=Path("data/assistant.db"))

    # Conversation
    conversation_history_limit: int = Field(default=50)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
