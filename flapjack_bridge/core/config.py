"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, model_validator

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class ConfigurationError(Exception):
    """Settings are malformed — raised at startup, fatal."""


class SentinelEndpoint(BaseModel):
    """A single Redis Sentinel address."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 26379


class FlapjackConfig(BaseModel):
    """Queue connection, protocol version and alert defaults."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 6379
    channel: str = "events"
    db: int = 0
    password: SecretStr | None = None
    initial_failure_delay: int = 30
    repeat_failure_delay: int = 60
    flapjack_version: int = 1
    enabled: bool = True
    # Sentinel topology; replaces host/port when master is set.
    master: str | None = None
    sentinels: tuple[SentinelEndpoint, ...] = ()
    auto_reconnect: bool = True
    socket_timeout: float = 5.0
    reconnect_base_secs: float = 1.0
    reconnect_cap_secs: float = 30.0
    reconnect_attempts: int = 3

    @model_validator(mode="after")
    def _check_sentinel_topology(self) -> FlapjackConfig:
        if self.master is not None and not self.sentinels:
            raise ValueError("'master' requires at least one entry in 'sentinels'")
        return self

    @property
    def uses_sentinel(self) -> bool:
        return self.master is not None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    model_config = ConfigDict(frozen=True)

    flapjack: FlapjackConfig = FlapjackConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML (or JSON) file.

    Args:
        path: Path to the config file. Defaults to config/settings.yaml.

    Returns:
        Parsed, immutable Settings instance.

    Raises:
        ConfigurationError: The file is not valid YAML or a value fails
            validation.
    """
    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
            if isinstance(raw, dict):
                data = raw
            elif raw is not None:
                raise ConfigurationError(
                    f"{config_path} must contain a mapping, got {type(raw).__name__}"
                )

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings in {config_path}: {exc}") from exc
