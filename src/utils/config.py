"""Translator configuration with JSON persistence."""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .logger import logger as LOGGER


CONFIG_PATH = Path("data") / "config.json"

API_KEY_ENV_VARS = ("MANGATL_API_KEY", "API_KEY")

PROVIDER_ENDPOINTS = {
    "Google": "https://generativelanguage.googleapis.com/v1beta/openai",
    "OpenAI": "https://api.openai.com/v1",
    "OpenRouter": "https://openrouter.ai/api/v1",
    "Grok": "https://api.x.ai/v1",
}


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""

    pass


@dataclass
class TranslatorConfig:
    """Settings for the translation collaborator and the bulk scheduler."""

    provider: str = "Google"
    api_key: str = ""
    endpoint: str = ""
    model: str = "gemini-2.5-flash"
    search_model: str = ""
    chat_model: str = "gemini-2.5-pro"
    image_model: str = "imagen-4.0-generate-001"
    web_search: bool = False
    temperature: float = 0.4
    request_timeout: float = 60.0
    throttle_delay: float = 0.5
    poll_interval: float = 1.0
    proxy: str = ""
    target_language: str = "English"

    @property
    def base_url(self) -> Optional[str]:
        """Endpoint to use, falling back to the provider default."""
        if self.endpoint:
            return self.endpoint
        return PROVIDER_ENDPOINTS.get(self.provider)

    @property
    def masked_key(self) -> str:
        key = self.api_key
        return key[:4] + "..." + key[-4:] if len(key) > 8 else key


def _api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def load_config(path: Optional[Path] = None) -> TranslatorConfig:
    """Load configuration from disk.

    Missing files yield the defaults. Unknown keys are dropped with a warning.
    An API key from the environment always wins over the file.

    Args:
        path: Config file path, defaults to data/config.json

    Returns:
        Loaded TranslatorConfig

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    config_path = Path(path) if path else CONFIG_PATH
    values = {}

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                values = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config {config_path}: {e}") from e

        if not isinstance(values, dict):
            raise ConfigError(f"Config {config_path} must contain a JSON object")

    known = {f.name for f in fields(TranslatorConfig)}
    for key in list(values):
        if key not in known:
            LOGGER.warning(f"Ignoring unknown config key: {key}")
            values.pop(key)

    config = TranslatorConfig(**values)

    env_key = _api_key_from_env()
    if env_key:
        config.api_key = env_key

    if config.provider not in PROVIDER_ENDPOINTS and not config.endpoint:
        LOGGER.warning(f"Unknown provider {config.provider} and no endpoint configured")

    return config


def save_config(config: TranslatorConfig, path: Optional[Path] = None) -> None:
    """Write configuration to disk. The API key is never persisted."""
    config_path = Path(path) if path else CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    values = asdict(config)
    values["api_key"] = ""

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(values, f, indent=2, ensure_ascii=False)
