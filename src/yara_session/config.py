"""Configuration for the YARA-X session layer, read from the environment."""

import os
from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "YARA_SESSION_"


class Environment(Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseModel):
    """Settings for library loading, scanner defaults and logging."""

    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Deployment environment"
    )
    library_path: Optional[str] = Field(
        default=None, description="Explicit path to libyara_x_capi, tried before the defaults"
    )
    default_timeout_ms: Optional[int] = Field(
        default=None, ge=0, description="Timeout applied to every new scanner"
    )
    strict_globals: bool = Field(
        default=True, description="Default strictness of Scanner.set_globals"
    )
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Validated settings
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        environment = env.get("ENVIRONMENT")
        if environment:
            values["environment"] = environment.lower()

        library_path = env.get(f"{ENV_PREFIX}LIBRARY_PATH")
        if library_path:
            values["library_path"] = library_path

        timeout = env.get(f"{ENV_PREFIX}DEFAULT_TIMEOUT_MS")
        if timeout:
            values["default_timeout_ms"] = timeout

        strict = env.get(f"{ENV_PREFIX}STRICT_GLOBALS")
        if strict is not None:
            values["strict_globals"] = strict.lower() == "true"

        level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
        if level:
            values["log_level"] = level

        json_logs = env.get(f"{ENV_PREFIX}JSON_LOGS")
        if json_logs is not None:
            values["json_logs"] = json_logs.lower() == "true"

        return cls(**values)


# Global configuration instance
_config: Optional[Settings] = None


def get_config() -> Settings:
    """Get or create the global settings, read from the environment on first use."""
    global _config
    if _config is None:
        _config = Settings.from_env()
    return _config


def set_config(settings: Settings) -> None:
    """Install explicit settings, replacing the environment-derived ones."""
    global _config
    _config = settings


def reset_config() -> None:
    """Drop cached settings so the next get_config() re-reads the environment."""
    global _config
    _config = None
