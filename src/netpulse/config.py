"""Configuration management with Pydantic Settings.

Two layers are loaded at startup:

- Process settings from environment variables (and an optional ``.env``
  file) via :class:`Settings`.
- The fleet file, a TOML document holding monitor settings and the device
  list, via :func:`load_fleet_config`.
"""

from __future__ import annotations

import logging
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from netpulse.checker.admission import DEFAULT_MAX_CONCURRENT_CONNECTIONS
from netpulse.checker.models import CheckItem, Device

logger = logging.getLogger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_CONFIG_PATH = "config.toml"
WEBHOOK_PLACEHOLDER = "${WEBHOOK_URL}"

MIN_INTERVAL_SECONDS = 5
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 30


class ConfigError(Exception):
    """Raised when the fleet file cannot be read or parsed."""


def normalize_log_level(v: object) -> object:
    """Upper-case a level name and map the short "warn" alias to WARNING."""
    if isinstance(v, str):
        level = v.strip().upper()
        return "WARNING" if level == "WARN" else level
    return v


class Settings(BaseSettings):
    """Process-level settings.

    Example:
        ```python
        from netpulse.config import get_settings

        settings = get_settings()
        fleet = load_fleet_config(settings.config_path)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: Path = Field(
        default=Path(DEFAULT_CONFIG_PATH),
        alias="NETPULSE_CONFIG",
        description="Path to the fleet TOML file",
    )
    log_level: LogLevel | None = Field(
        default=None,
        alias="LOG_LEVEL",
        description="Logging level override",
    )
    webhook_url: SecretStr | None = Field(
        default=None,
        alias="WEBHOOK_URL",
        description="Substituted for ${WEBHOOK_URL} in the fleet file",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log alerts instead of sending them",
    )
    metrics_port: int | None = Field(
        default=None,
        alias="METRICS_PORT",
        description="Port for the Prometheus exporter",
        ge=1,
        le=65535,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_env_log_level(cls, v: object) -> object:
        """Accept lower-case level names; an empty value means unset."""
        level = normalize_log_level(v)
        return level or None


class MonitorSettings(BaseModel):
    """The ``[settings]`` table of the fleet file."""

    model_config = ConfigDict(frozen=True)

    interval: int = Field(ge=MIN_INTERVAL_SECONDS, description="Seconds between rounds")
    timeout: int = Field(
        ge=MIN_TIMEOUT_SECONDS,
        le=MAX_TIMEOUT_SECONDS,
        description="Per-probe connect deadline in seconds",
    )
    alert_cooldown: int = Field(ge=0, description="Minimum seconds between alerts per device")
    webhook: str = Field(description="Alert webhook URL")
    log_level: LogLevel = "INFO"
    max_concurrent_connections: int = Field(default=DEFAULT_MAX_CONCURRENT_CONNECTIONS, ge=1)

    @field_validator("webhook")
    @classmethod
    def validate_webhook(cls, v: str) -> str:
        """Trim the webhook and require an HTTP(S) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"webhook must be an http:// or https:// URL, got {v!r}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_file_log_level(cls, v: object) -> object:
        """Accept lower-case level names; the fleet file uses them."""
        return normalize_log_level(v)


class CheckItemConfig(BaseModel):
    """A ``[[device.checks]]`` entry."""

    port: int = Field(ge=1, le=65535)
    name: str = ""

    def to_check_item(self) -> CheckItem:
        return CheckItem(port=self.port, name=self.name.strip())


class DeviceConfig(BaseModel):
    """A ``[[device]]`` entry."""

    id: str = Field(min_length=1)
    name: str
    group: str
    priority: str
    ips: list[str] = Field(min_length=1)
    os: str
    location: str
    checks: list[CheckItemConfig] = Field(min_length=1)

    @field_validator("ips")
    @classmethod
    def validate_ips(cls, v: list[str]) -> list[str]:
        """Strip addresses and reject blanks."""
        cleaned = [ip.strip() for ip in v]
        if any(not ip for ip in cleaned):
            raise ValueError("ips must not contain empty entries")
        return cleaned

    def to_device(self) -> Device:
        return Device(
            id=self.id,
            name=self.name,
            group=self.group,
            priority=self.priority,
            ips=tuple(self.ips),
            os=self.os,
            location=self.location,
            checks=tuple(c.to_check_item() for c in self.checks),
        )


class FleetConfig(BaseModel):
    """The complete fleet file."""

    settings: MonitorSettings
    device_configs: list[DeviceConfig] = Field(alias="device", min_length=1)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> FleetConfig:
        """Device ids key the alert state, so they must be unique."""
        seen: set[str] = set()
        duplicates: set[str] = set()
        for device in self.device_configs:
            if device.id in seen:
                duplicates.add(device.id)
            seen.add(device.id)
        if duplicates:
            raise ValueError(f"duplicate device ids: {', '.join(sorted(duplicates))}")
        return self

    @property
    def devices(self) -> list[Device]:
        """Devices as immutable domain objects."""
        return [d.to_device() for d in self.device_configs]

    def redacted_summary(self) -> dict[str, str]:
        """Get a summary of the configuration with the webhook redacted."""
        return {
            "devices": str(len(self.device_configs)),
            "interval": f"{self.settings.interval}s",
            "timeout": f"{self.settings.timeout}s",
            "alert_cooldown": f"{self.settings.alert_cooldown}s",
            "max_concurrent_connections": str(self.settings.max_concurrent_connections),
            "webhook": redact_url(self.settings.webhook),
        }


def redact_url(url: str) -> str:
    """Reduce a URL to scheme and host; webhook paths and queries carry keys."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return "***"
    return f"{parts.scheme}://{parts.hostname}/***"


def substitute_placeholders(content: str, webhook_url: str | None) -> str:
    """Replace the webhook placeholder when a value is available."""
    if webhook_url is None:
        return content
    return content.replace(WEBHOOK_PLACEHOLDER, webhook_url)


def load_fleet_config(path: str | Path, *, webhook_url: str | None = None) -> FleetConfig:
    """Load and validate the fleet file.

    Args:
        path: Path to the TOML file.
        webhook_url: Value for ``${WEBHOOK_URL}``. Defaults to the
            ``WEBHOOK_URL`` environment variable.

    Returns:
        Validated FleetConfig.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
        ValidationError: If the content violates the schema.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e

    if webhook_url is None:
        webhook_url = os.environ.get("WEBHOOK_URL")
    content = substitute_placeholders(content, webhook_url)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {path}: {e}") from e

    config = FleetConfig.model_validate(data)
    logger.debug("Loaded %d devices from %s", len(config.device_configs), path)
    return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process settings singleton.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
