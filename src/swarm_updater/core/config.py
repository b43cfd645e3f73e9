"""
config.py
- Defines the process configuration, built once at start-up and passed explicitly
  to the app, the Docker client and the update executor.
- Sources, later wins:
    - Built-in defaults
    - config.toml, then config.json, then config.yaml in the CONFIG_PATH directory
    - UPDATER_* environment variables (plus SENTRY_DSN)
- A config file that exists but cannot be read is an error, never skipped.
- Also sets up loguru for the whole process.
"""

import os
import sys
from contextvars import ContextVar
from typing import Annotated, Optional, Tuple

from loguru import logger
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    SettingsConfigDict,
    TomlConfigSettingsSource,
    YamlConfigSettingsSource,
)

ENV_PREFIX = "UPDATER_"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
LOG_LEVELS = {
    "trace": "TRACE",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}

# Directory the file sources read from; set by load_config for one build.
_config_dir: ContextVar[Optional[str]] = ContextVar("config_dir", default=None)


class ConfigError(Exception):
    pass


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # --- Logging ---
    log_level: str = "debug"

    # --- HTTP Server ---
    host: str = "0.0.0.0"
    port: int = 3000
    http_request_timeout: int = 30  # seconds
    http_body_limit: int = 1024 * 1024  # bytes
    graceful_shutdown_timeout: int = 10  # seconds
    tokens: Annotated[Tuple[str, ...], NoDecode] = ()

    # --- Docker Engine ---
    docker_url: str = "http://localhost:8080"
    docker_timeout: int = 30  # seconds, per call

    # --- Runtime Behavior Flags ---
    dry_run: bool = False
    sentry_dsn: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sentry_dsn", "updater_sentry_dsn"),
    )

    @field_validator("tokens", mode="before")
    @classmethod
    def split_tokens(cls, value):
        # Environment gives "a, b"; files give a list.
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @property
    def loguru_level(self):
        return LOG_LEVELS.get(self.log_level.lower(), "INFO")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        directory = _config_dir.get() or os.environ.get("CONFIG_PATH", "./")
        # Earlier sources take precedence.
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=os.path.join(directory, "config.yaml")),
            JsonConfigSettingsSource(settings_cls, json_file=os.path.join(directory, "config.json")),
            TomlConfigSettingsSource(settings_cls, toml_file=os.path.join(directory, "config.toml")),
        )


def load_config(config_path=None):
    """
    Build the configuration from defaults, files and environment.

    Args:
        config_path (str): Directory holding config files. Defaults to $CONFIG_PATH or "./".

    Raises:
        ConfigError: A config file could not be parsed or a value has the wrong type.
    """
    directory = config_path or os.environ.get("CONFIG_PATH", "./")
    token = _config_dir.set(directory)
    try:
        config = Config()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    except Exception as e:
        # Unparsable file, or a file whose top level is not a mapping.
        raise ConfigError(f"Cannot read config files in '{directory}': {e}") from e
    finally:
        _config_dir.reset(token)

    logger.debug(f"[config] Loaded configuration from '{directory}' and environment")
    return config


def configure_logging(config):
    logger.remove()
    logger.add(
        sink=sys.stderr,
        level=config.loguru_level,
        format=LOG_FORMAT,
        colorize=True,
    )
