from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _key(name: str) -> Any:
    # Keys are read under their bare name or the EXPO_PUBLIC_ variant the mobile build uses.
    return Field(default=None, validation_alias=AliasChoices(name, f"EXPO_PUBLIC_{name}"))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # Extraction providers, tried in this order
    ANTHROPIC_API_KEY: Optional[str] = _key("ANTHROPIC_API_KEY")
    OPENAI_API_KEY: Optional[str] = _key("OPENAI_API_KEY")
    GEMINI_API_KEY: Optional[str] = _key("GEMINI_API_KEY")
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    OPENAI_MODEL: str = "gpt-4o-mini"
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # Transcript acquisition
    ASSEMBLYAI_API_KEY: Optional[str] = _key("ASSEMBLYAI_API_KEY")
    TRANSCRIPTAPI_API_KEY: Optional[str] = _key("TRANSCRIPTAPI_API_KEY")
    AUDIO_EXTRACTION_ENABLED: bool = False
    TRANSCRIPT_POLL_INTERVAL_SECONDS: float = 3.0
    TRANSCRIPT_POLL_TIMEOUT_SECONDS: float = 300.0
    TRANSCRIPT_MIN_CHARS: int = 32

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0
    USER_AGENT: str = "Mozilla/5.0 (compatible; CookedApp/1.0)"

    # Local library
    RECIPES_STORE_PATH: str = "data/recipes.json"
    FREE_RECIPE_LIMIT: int = 10

    @field_validator(
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "ASSEMBLYAI_API_KEY",
        "TRANSCRIPTAPI_API_KEY",
        mode="before",
    )
    @classmethod
    def _blank_key_is_absent(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


settings = Settings()
