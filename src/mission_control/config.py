"""Application configuration contract."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mission_control.errors import ConfigError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")
    mc_root: str = Field(alias="MC_ROOT", default=".")

    # Model backend
    openai_api_key: str = Field(alias="OPENAI_API_KEY", default="")
    openai_base_url: str = Field(alias="OPENAI_BASE_URL", default="https://api.openai.com/v1")
    default_model: str = Field(alias="DEFAULT_MODEL", default="gpt-4o")
    model_temperature: float = Field(alias="MODEL_TEMPERATURE", default=0.7)
    model_max_tokens: int = Field(alias="MODEL_MAX_TOKENS", default=2048)
    model_timeout_seconds: int = Field(alias="MODEL_TIMEOUT_SECONDS", default=120)

    # Coordination store; empty means offline mode
    convex_url: str = Field(alias="CONVEX_URL", default="")
    convex_timeout_seconds: int = Field(alias="CONVEX_TIMEOUT_SECONDS", default=30)

    # Scheduling
    agent_interval_minutes: int = Field(alias="AGENT_INTERVAL", default=15)
    shutdown_grace_seconds: float = Field(alias="SHUTDOWN_GRACE_SECONDS", default=2.0)

    # Rate limiting
    rate_limit_chat_per_minute: int = Field(alias="RATE_LIMIT_CHAT_PER_MINUTE", default=30)
    rate_limit_default_per_minute: int = Field(
        alias="RATE_LIMIT_DEFAULT_PER_MINUTE", default=60
    )

    @property
    def root_path(self) -> Path:
        return Path(self.mc_root).expanduser().resolve()

    @property
    def interval_seconds(self) -> float:
        return float(self.agent_interval_minutes) * 60.0

    @property
    def store_configured(self) -> bool:
        return bool(self.convex_url.strip())


def convex_url_is_valid(url: str) -> bool:
    value = url.strip()
    return value.startswith("https://") or value.startswith("http://")


def validate_settings_for_env(settings: Settings) -> None:
    import logging as _logging

    _logger = _logging.getLogger(__name__)

    missing: list[str] = []
    if not settings.openai_api_key.strip():
        missing.append("OPENAI_API_KEY")
    if settings.agent_interval_minutes <= 0:
        missing.append("AGENT_INTERVAL(positive minutes required)")
    if settings.rate_limit_chat_per_minute <= 0:
        missing.append("RATE_LIMIT_CHAT_PER_MINUTE(positive value required)")
    if settings.rate_limit_default_per_minute <= 0:
        missing.append("RATE_LIMIT_DEFAULT_PER_MINUTE(positive value required)")
    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ConfigError(f"invalid configuration: {keys}")

    if not settings.openai_api_key.startswith("sk-"):
        _logger.warning("OPENAI_API_KEY does not look like an OpenAI key (expected 'sk-' prefix)")

    if settings.store_configured and not convex_url_is_valid(settings.convex_url):
        # The store is optional, so a bad endpoint downgrades to offline mode.
        _logger.error("CONVEX_URL must start with https:// or http://; running offline")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
