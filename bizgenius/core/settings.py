"""Конфигурация BizGenius через переменные окружения (pydantic-settings).

Читает `.env` в рабочей директории и переменные с префиксом `BG_`.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Value shipped in the example .env; treated the same as a missing key
PLACEHOLDER_API_KEY = "your_openrouter_api_key_here"


class Settings(BaseSettings):
    """Pydantic-класс настроек сервиса."""
    # Read from .env in the working directory, use BG_* prefix for vars
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="BG_",
        case_sensitive=False,
    )

    # OpenAI-compatible provider (BG_API_KEY, BG_BASE_URL)
    api_key: str = Field("", description="API key for the chat-completion provider")
    base_url: str = Field("https://openrouter.ai/api/v1", description="OpenAI-compatible base URL")
    plan_model: str = Field("tngtech/deepseek-r1t2-chimera:free", description="Model used for business plans")
    chat_model: str = Field("gpt-3.5-turbo", description="Model used by the chat assistant")

    plan_max_tokens: int = 4000
    chat_max_tokens: int = 1000
    temperature: float = 0.7

    # Attribution headers understood by OpenRouter
    app_title: str = "BizGenius Business Plan Generator"
    app_referer: str = "http://localhost:8000"

    # HTTP client timeout (seconds) and provider call policy
    http_timeout: int = 120
    max_concurrent: int = Field(5, ge=1, description="Maximum number of parallel requests to the provider")
    max_retry_provider: int = Field(2, ge=0, description="Retries on transient provider errors")

    # Database connection string (BG_DATABASE_URL)
    database_url: str = "sqlite:///./bizgenius.db"

    # Logging configuration
    log_level: str = "INFO"   # BG_LOG_LEVEL
    log_json: bool = False    # BG_LOG_JSON
    request_id_header: str = "X-Request-ID"

    @property
    def api_key_configured(self) -> bool:
        key = (self.api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


@lru_cache
def get_settings() -> Settings:
    """Вернуть закешированный экземпляр настроек (используется как FastAPI‑зависимость)."""
    return Settings()
