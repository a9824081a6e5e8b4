"""Process settings for the webhook fan-out proxy.

This module provides centralized settings management:
- Load settings from environment variables (prefix FANOUT_) and .env files
- Validate settings using pydantic
- Provide typed access to all settings

Routes themselves live in the YAML file named by ``config_path`` and are
loaded by fanout.adapters.routes.yaml_loader.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv. Command-line flags override
    these values.
    """

    model_config = SettingsConfigDict(
        env_prefix="FANOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    log_level: LogLevel = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Routes
    config_path: str = Field(
        default="/etc/webhook-fanout-proxy/config.yaml",
        description="Absolute path to the webhook config file",
    )

    # HTTP listener
    http_bind_address: str = Field(
        default=":9001",
        description="The address the web server binds to",
    )
    request_read_timeout_seconds: float = Field(
        default=5.0,
        description="Socket timeout for reading an inbound request",
    )

    # Forwarding
    forward_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for one forward attempt to a target",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("forward_timeout_seconds", "request_read_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure timeouts are positive."""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["LogLevel", "Settings", "load_settings"]
