"""Engine settings for the USSD flow engine.

Settings are read from ``USSD_*`` environment variables (and a ``.env``
file when present) by pydantic-settings, e.g. ``USSD_SESSION_TIMEOUT_SECONDS``
or ``USSD_LOG_FORMAT``. They can also be built directly with keyword
arguments, which take precedence over the environment.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .loader import ConfigurationError


class LogFormat(str, Enum):
    """Log output format."""

    CONSOLE = "console"
    JSON = "json"


class EngineSettings(BaseSettings):
    """Runtime settings for the session engine, sweeper and API."""

    model_config = SettingsConfigDict(
        env_prefix="USSD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    session_timeout_seconds: int = Field(
        default=1800,
        gt=0,
        description="Inactivity window after which a session expires (renewed on each input)",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the expiry sweeper scans for stale sessions",
    )
    session_retention_seconds: int = Field(
        default=3600,
        gt=0,
        description="How long finished sessions stay in the store before the sweeper drops them",
    )
    action_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound on a payment/api call before it counts as a failure",
    )
    max_prompt_length: int = Field(
        default=182,
        gt=0,
        description="USSD page size used when checking prompt lengths",
    )
    action_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook that payment/api nodes call; simulated when unset",
    )
    flows_dir: Optional[str] = Field(
        default=None,
        description="Directory of flow definitions published at startup",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: LogFormat = Field(default=LogFormat.CONSOLE, description="Log renderer")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        level = v.strip().upper()
        supported = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if level not in supported:
            raise ValueError(f"Log level '{v}' not supported. Must be one of: {supported}")
        return level


def load_settings_from_env() -> EngineSettings:
    """Build engine settings from the environment.

    Returns:
        Validated EngineSettings instance

    Raises:
        ConfigurationError: If a variable holds an invalid value
    """
    try:
        return EngineSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid engine settings: {e}") from e
