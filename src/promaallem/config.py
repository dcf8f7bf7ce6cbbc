"""Configuration for the backend using pydantic-settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/promaallem/ → project root

GITHUB_KEY_PREFIX = "github_"


class Settings(BaseSettings):
    """All backend settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Marketplace store (SQLite)
    # ------------------------------------------------------------------
    database_path: Path = _PROJECT_ROOT / "database" / "promaallem.sqlite"
    seed_catalog: bool = True
    default_city: str = "Casablanca"

    # ------------------------------------------------------------------
    # Language model (DeepSeek or GitHub Models, detected from the key)
    # ------------------------------------------------------------------
    deepseek_api_key: str = ""
    llm_timeout_seconds: float = 30.0

    # ------------------------------------------------------------------
    # Auth (JWT)
    # ------------------------------------------------------------------
    jwt_secret: str = "dev-secret-change-in-production!!"
    jwt_expiry_hours: int = 24

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------------
    # Observability ("off", "logfire" or "otel")
    # ------------------------------------------------------------------
    observability: Literal["off", "logfire", "otel"] = "off"
    otel_service_name: str = "promaallem-backend"
    otel_exporter_otlp_endpoint: str = "http://localhost:4318"
    otel_console_exporter: bool = False

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def validate_runtime(self) -> None:
        """Check that all required values are present.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        if not self.deepseek_api_key:
            raise ValueError("DEEPSEEK_API_KEY not set. Add it to .env")
        if self.llm_timeout_seconds <= 0:
            raise ValueError("LLM_TIMEOUT_SECONDS must be positive.")


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()


# ---------------------------------------------------------------------------
# Language-model provider resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LLMProviderConfig:
    """Which OpenAI-compatible endpoint and model to talk to."""

    provider: Literal["github", "deepseek"]
    base_url: str
    model_id: str
    api_key: str = field(repr=False)


def resolve_llm_provider(api_key: str) -> LLMProviderConfig:
    """Pick the provider from the key prefix.

    GitHub Models tokens start with ``github_``; every other key is sent to
    the DeepSeek API. Resolved once at startup, never per request.
    """
    if api_key.startswith(GITHUB_KEY_PREFIX):
        return LLMProviderConfig(
            provider="github",
            base_url="https://models.inference.ai.azure.com",
            model_id="DeepSeek-R1",
            api_key=api_key,
        )
    return LLMProviderConfig(
        provider="deepseek",
        base_url="https://api.deepseek.com",
        model_id="deepseek-chat",
        api_key=api_key,
    )
