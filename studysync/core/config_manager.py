"""Configuration management for the studysync server and CLI."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "https://api.allorigins.win/get"
DEFAULT_USER_ID = "local-user"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class StudySyncSettings(BaseModel):
    """Validated runtime settings.

    ``user_id`` and ``theme`` are passed explicitly to the components that
    need them instead of living in module-level state.
    """

    server_bind: str = Field(default="127.0.0.1", description="Address the API binds to")
    server_port: int = Field(default=3001, ge=0, le=65535, description="API port")
    relay_url: str = Field(
        default=DEFAULT_RELAY_URL,
        description="CORS relay endpoint returning a JSON envelope; empty to fetch directly",
    )
    request_timeout: int = Field(default=30, gt=0, description="HTTP read timeout in seconds")
    default_timezone: str = Field(default="UTC", description="IANA timezone for display times")
    store_path: str | None = Field(default=None, description="JSON file backing the event store")
    user_id: str = Field(default=DEFAULT_USER_ID, description="Owner of the event collection")
    theme: str = Field(default="light", description="UI theme preference")
    default_duration_minutes: int = Field(
        default=60, gt=0, description="Assumed duration of a new event"
    )
    google_api_key: str | None = Field(default=None, description="Calendar provider API key")
    log_level: str | None = None

    @field_validator("theme")
    @classmethod
    def _check_theme(cls, value: str) -> str:
        if value not in ("light", "dark"):
            raise ValueError(f"theme must be 'light' or 'dark', got {value!r}")
        return value

    @field_validator("default_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - STUDYSYNC_WEB_HOST -> 'server_bind'
        - STUDYSYNC_WEB_PORT -> 'server_port' (int)
        - STUDYSYNC_RELAY_URL -> 'relay_url' (empty string disables the relay)
        - STUDYSYNC_REQUEST_TIMEOUT -> 'request_timeout' (int)
        - STUDYSYNC_DEFAULT_TIMEZONE -> 'default_timezone'
        - STUDYSYNC_STORE_PATH -> 'store_path'
        - STUDYSYNC_USER_ID -> 'user_id'
        - STUDYSYNC_THEME -> 'theme'
        - STUDYSYNC_DEFAULT_DURATION -> 'default_duration_minutes' (int)
        - STUDYSYNC_GOOGLE_API_KEY -> 'google_api_key'
        - STUDYSYNC_LOG_LEVEL -> 'log_level'

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg: dict[str, Any] = {}

        string_keys = {
            "STUDYSYNC_WEB_HOST": "server_bind",
            "STUDYSYNC_DEFAULT_TIMEZONE": "default_timezone",
            "STUDYSYNC_STORE_PATH": "store_path",
            "STUDYSYNC_USER_ID": "user_id",
            "STUDYSYNC_THEME": "theme",
            "STUDYSYNC_GOOGLE_API_KEY": "google_api_key",
            "STUDYSYNC_LOG_LEVEL": "log_level",
        }
        for env_key, cfg_key in string_keys.items():
            value = os.environ.get(env_key)
            if value:
                cfg[cfg_key] = value

        # An explicitly empty relay URL is meaningful (fetch directly)
        if "STUDYSYNC_RELAY_URL" in os.environ:
            cfg["relay_url"] = os.environ["STUDYSYNC_RELAY_URL"].strip()

        int_keys = {
            "STUDYSYNC_WEB_PORT": "server_port",
            "STUDYSYNC_REQUEST_TIMEOUT": "request_timeout",
            "STUDYSYNC_DEFAULT_DURATION": "default_duration_minutes",
        }
        for env_key, cfg_key in int_keys.items():
            value = os.environ.get(env_key)
            if not value:
                continue
            try:
                cfg[cfg_key] = int(value)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, value)

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()

    def load_settings(self) -> StudySyncSettings:
        """Load configuration and validate it into settings."""
        return StudySyncSettings(**self.load_full_config())


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)


def ensure_settings(config: Any) -> StudySyncSettings:
    """Coerce a config dict (or settings) into StudySyncSettings."""
    if isinstance(config, StudySyncSettings):
        return config
    if config is None:
        return StudySyncSettings()
    if isinstance(config, dict):
        return StudySyncSettings(**config)
    return StudySyncSettings.model_validate(config, from_attributes=True)
