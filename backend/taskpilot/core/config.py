"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "TaskPilot Assistant"
    debug: bool = False
    log_level: str = "INFO"

    openai_api_key: str | None = None
    openai_api_base: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_BASE", "OPENAI_BASE_URL"),
    )
    openai_org_id: str | None = None
    openai_project_id: str | None = None
    openai_model: str | None = None
    openai_fallback_model: str = "gpt-4o"
    openai_timeout_seconds: float = 60.0

    mood_log_path: str = "mood_log.json"

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "taskpilot"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
