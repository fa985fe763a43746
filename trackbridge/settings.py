"""Settings resolution: environment and .env first, then ~/.config/trackbridge/config.toml."""

from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "trackbridge" / "config.toml"

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class BridgeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # JIRA
    jira_url: str | None = None
    jira_email: str | None = None
    jira_token: SecretStr | None = None
    jira_project: str | None = None  # default project key for create / list

    # GitLab
    gitlab_url: str | None = None
    gitlab_token: SecretStr | None = None
    gitlab_project_id: str | None = None  # numeric id or "group/project"

    # Bridge
    default_platform: str = "jira"
    log_level: str = "info"
    environment: str = "development"  # "dev" turns on per-request tracing

    # LLM-assisted commands
    anthropic_api_key: SecretStr | None = None
    anthropic_model: str = DEFAULT_MODEL

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() == "dev"

    @property
    def trace_requests(self) -> bool:
        return self.is_dev and self.log_level.lower() == "debug"


def secret_value(secret: SecretStr | None) -> str:
    return secret.get_secret_value() if secret else ""


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/trackbridge/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def get_settings() -> BridgeSettings:
    """Return settings with the config file filling only what the environment left unset.

    Precedence (highest to lowest):
    1. Process environment
    2. .env in cwd
    3. Flat keys in ~/.config/trackbridge/config.toml
    4. Field defaults
    """
    settings = BridgeSettings()
    file_values = _load_toml().unwrap()
    file_defaults = {
        key: value
        for key, value in file_values.items()
        if key in BridgeSettings.model_fields and key not in settings.model_fields_set
    }
    if not file_defaults:
        return settings
    # init kwargs outrank env in pydantic-settings, so only pass keys env did not set
    return BridgeSettings(**file_defaults)
