"""Provider construction helpers."""

from mission_control.config import Settings
from mission_control.errors import ConfigError
from mission_control.providers.base import ModelProvider
from mission_control.providers.openai import OpenAIChatProvider


def build_provider(settings: Settings) -> ModelProvider:
    api_key = settings.openai_api_key.strip()
    if not api_key:
        raise ConfigError("OPENAI_API_KEY is not set; cannot reach the model backend")
    return OpenAIChatProvider(
        settings.default_model,
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.model_timeout_seconds,
    )
