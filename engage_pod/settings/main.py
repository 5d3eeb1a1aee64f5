"""Pydantic settings models for API connection and logging configuration."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from engage_pod.enums.logging import LogLevel

DEFAULT_BASE_URL_TEMPLATE = "http://api{server}.silverpop.com/XMLAPI"

# Construction option name -> environment alias
_OPTION_ALIASES = {
    "engage_server": "ENGAGE_SERVER",
    "username": "ENGAGE_USERNAME",
    "password": "ENGAGE_PASSWORD",
    "timeout": "ENGAGE_TIMEOUT",
    "base_url_template": "ENGAGE_BASE_URL_TEMPLATE",
    "session_file": "ENGAGE_SESSION_FILE",
}


class EngageSettings(BaseSettings):
    """Connection settings for one Engage pod."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Pod number, selects the api<N> host
    engage_server: str = Field(alias="ENGAGE_SERVER")

    # Login credentials
    username: str = Field(alias="ENGAGE_USERNAME")
    password: str = Field(alias="ENGAGE_PASSWORD")

    # Seconds, passed to httpx
    timeout: int = Field(default=30, alias="ENGAGE_TIMEOUT")

    # {server} is replaced with engage_server
    base_url_template: str = Field(default=DEFAULT_BASE_URL_TEMPLATE, alias="ENGAGE_BASE_URL_TEMPLATE")

    # Optional JSON file for reusing a session between runs
    session_file: str | None = Field(default=None, alias="ENGAGE_SESSION_FILE")

    @field_validator("engage_server", mode="before")
    @classmethod
    def _server_to_str(cls, value: Any) -> Any:
        """Accept pod numbers given as integers."""
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def base_url(self) -> str:
        """Endpoint URL without any session encoding."""
        return self.base_url_template.format(server=self.engage_server)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> EngageSettings:
        """Build settings from construction options keyed by field name.

        Unknown option names are rejected so that typos do not silently fall
        back to environment values.
        """
        unknown = set(options) - set(_OPTION_ALIASES)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        return cls(**{_OPTION_ALIASES[key]: value for key, value in options.items()})


class LogSettings(BaseSettings):
    """Cross-cutting logging behavior settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: LogLevel = Field(default=LogLevel.INFO, alias="ENGAGE_LOG_LEVEL")

    @field_validator("log_level", mode="before")
    @classmethod
    def _level_by_name(cls, value: Any) -> Any:
        """Allow level names such as ``debug`` besides numeric values."""
        return LogLevel.parse(value)
