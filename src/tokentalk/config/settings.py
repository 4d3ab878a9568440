"""Configuration management for tokentalk using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class StorageSettings(BaseModel):
    """Where tokens, history and pending state live."""

    model_config = ConfigDict(extra="ignore")

    data_dir: str = "~/.tokentalk"
    tokens_file: str = "tokens.json"
    history_file: str = "interactions.json"
    pending_file: str = "pending.json"
    pending_ttl: int = 600  # Seconds a half-finished create flow keeps its id
    pending_maxsize: int = 1024

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def tokens_path(self) -> Path:
        return self.data_path / self.tokens_file

    @property
    def history_path(self) -> Path:
        return self.data_path / self.history_file

    @property
    def pending_path(self) -> Path:
        return self.data_path / self.pending_file


class ConversationSettings(BaseModel):
    """Conversation engine configuration."""

    model_config = ConfigDict(extra="ignore")

    namespace: str = "drupai_token"
    keyword: str = "token"
    default_session: str = "default"


class LogLevel(str, Enum):
    """Accepted logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="ignore")

    level: LogLevel = LogLevel.WARNING
    show_path: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value


class Settings(BaseSettings):
    """Main tokentalk configuration.

    Configuration is loaded from:
    1. Environment variables (TOKENTALK_* prefix)
    2. Config file (~/.tokentalk/config.yml)
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="TOKENTALK_",
        env_nested_delimiter="__",
        extra="ignore",  # Ignore extra fields in config file
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; environment wins over them
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def get_config_path() -> Path:
    """Get the config file path."""
    return Path.home() / ".tokentalk" / "config.yml"


def load_config_file() -> dict:
    """Load configuration from YAML file if it exists."""
    config_path = get_config_path()
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


def save_config_file(config: dict) -> None:
    """Save configuration to YAML file."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False)


def create_default_config() -> None:
    """Create a default config file if it doesn't exist."""
    config_path = get_config_path()
    if not config_path.exists():
        # Section defaults only; the environment is not read here
        default_config = {
            "storage": StorageSettings().model_dump(mode="json"),
            "conversation": ConversationSettings().model_dump(mode="json"),
            "logging": LoggingSettings().model_dump(mode="json"),
        }
        save_config_file(default_config)


@lru_cache
def get_settings() -> Settings:
    """Get the application settings (cached).

    Loads from environment variables and config file.
    """
    file_config = load_config_file()
    return Settings(**file_config)


def reset_settings_cache() -> None:
    """Clear the settings cache to reload configuration."""
    get_settings.cache_clear()
