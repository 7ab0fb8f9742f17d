from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
    )

    # Base URL used by the plagiarism checker to reach the proxy endpoint
    API_BASE_URL: str = "http://localhost:8000/api"

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-4-turbo-preview"

    RECRAFT_API_KEY: Optional[str] = None
    RECRAFT_API_URL: str = "https://external.api.recraft.ai/v1"
    RECRAFT_RATE_LIMIT_PER_MINUTE: int = 100
    RECRAFT_OPERATION_SPACING_SECONDS: float = 0.6

    FLUX_API_KEY: Optional[str] = None
    FLUX_API_URL: str = "https://api.bfl.ml/v1"
    FLUX_POLL_INTERVAL_SECONDS: float = 0.5
    FLUX_MAX_POLL_ATTEMPTS: int = 120

    WINSTON_API_KEY: Optional[str] = None
    WINSTON_API_URL: str = "https://api.gowinston.ai/v2/plagiarism"
    PLAGIARISM_TIMEOUT_SECONDS: float = 180.0

    PAYPAL_CLIENT_ID: Optional[str] = None
    PAYPAL_CLIENT_SECRET: Optional[str] = None
    PAYPAL_API_URL: str = "https://api-m.sandbox.paypal.com"

    CORS_IMAGE_PROXY_URL: str = "https://api.allorigins.win/raw"
    CORS_RESTRICTED_HOSTS: list[str] = Field(default_factory=lambda: ["bfl.ai"])

    RECIPE_HISTORY_PATH: str = "data/recipe_history.json"


settings = Settings()
