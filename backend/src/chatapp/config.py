"""Chat backend — Application Configuration."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS = ("gemini", "openrouter")


class Environment(str, enum.Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Centralised, validated configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "chatapp"
    app_env: Environment = Environment.DEVELOPMENT
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # ── Database ─────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./chatapp.db"
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_auto_create: bool = True

    # ── File storage (Supabase) ──────────────────────────────
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_bucket: str = "chat-files"

    # ── LLM providers ────────────────────────────────────────
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    openrouter_api_key: str = ""
    openrouter_model: str = "meta-llama/llama-3.2-3b-instruct:free"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_referer: str = "http://localhost:3000"
    openrouter_title: str = "chatapp"

    # First entry is the primary provider, second the fallback
    llm_provider_priority: str = "gemini,openrouter"

    # ── Provider resilience ──────────────────────────────────
    provider_timeout_seconds: float = 30.0
    health_check_ttl_seconds: float = 30.0
    reply_max_output_tokens: int = 2048

    # ── Chat ─────────────────────────────────────────────────
    chat_context_window: int = 10
    chat_rate_limit_max_requests: int = 20
    chat_rate_limit_window_seconds: float = 60.0
    rate_limit_sweep_interval_seconds: float = 300.0

    # ── Observability ────────────────────────────────────────
    prometheus_enabled: bool = True

    # ── Derived helpers ──────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @property
    def provider_priority(self) -> list[str]:
        return [p.strip().lower() for p in self.llm_provider_priority.split(",") if p.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, v: str) -> str:
        if not v.startswith(("postgresql", "sqlite")):
            raise ValueError("database_url must start with 'postgresql' or 'sqlite'")
        return v

    @field_validator(
        "provider_timeout_seconds",
        "health_check_ttl_seconds",
        "chat_rate_limit_window_seconds",
        "rate_limit_sweep_interval_seconds",
    )
    @classmethod
    def _positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("chat_context_window", "chat_rate_limit_max_requests", "reply_max_output_tokens")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @model_validator(mode="after")
    def _validate_provider_priority(self) -> Settings:
        priority = self.provider_priority
        if sorted(priority) != sorted(KNOWN_PROVIDERS):
            raise ValueError(
                f"llm_provider_priority must list each of {', '.join(KNOWN_PROVIDERS)} exactly once"
            )
        return self


def get_settings(**overrides: Any) -> Settings:
    """Factory that allows test-time overrides."""
    return Settings(**overrides)
