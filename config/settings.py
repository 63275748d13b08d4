"""
Configuration settings with environment variable loading.

The Moodle web-service token MUST be provided via the environment.
Never log or expose tokens in any output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://cms7.ict.nitech.ac.jp/moodle40a"
REST_ENDPOINT = "/webservice/rest/server.php"
UPLOAD_ENDPOINT = "/webservice/upload.php"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class MoodleConfig:
    """Moodle web-service configuration."""
    token: str
    base_url: str = DEFAULT_BASE_URL
    lang: str = "ja"

    def __post_init__(self):
        if not self.token:
            raise ConfigurationError("MOODLE_TOKEN is required")
        if not self.base_url:
            raise ConfigurationError("MOODLE_BASE_URL is required")
        if not self.base_url.startswith("https://"):
            raise ConfigurationError("MOODLE_BASE_URL must use HTTPS")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def rest_url(self) -> str:
        return self.base_url + REST_ENDPOINT

    @property
    def upload_url(self) -> str:
        return self.base_url + UPLOAD_ENDPOINT

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return (
            f"MoodleConfig(base_url='{self.base_url}', lang='{self.lang}', "
            f"token='***REDACTED***')"
        )


@dataclass(frozen=True)
class ServerConfig:
    """MCP server and presentation configuration."""
    name: str = "nitech-moodle"
    timezone: str = "Asia/Tokyo"

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"MOODLE_TIMEZONE is not a known time zone: '{self.timezone}'"
            ) from e


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    Secrets are never logged or exposed.
    """
    moodle: MoodleConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(\n"
            f"  moodle={self.moodle},\n"
            f"  server={self.server},\n"
            f"  log_level='{self.log_level}'\n"
            f")"
        )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If required configuration is missing
    """
    if env_file and env_file.exists():
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        moodle = MoodleConfig(
            token=os.getenv("MOODLE_TOKEN", ""),
            base_url=os.getenv("MOODLE_BASE_URL", DEFAULT_BASE_URL),
            lang=os.getenv("MOODLE_LANG", "ja"),
        )

        server = ServerConfig(
            name=os.getenv("MCP_SERVER_NAME", "nitech-moodle"),
            timezone=os.getenv("MOODLE_TIMEZONE", "Asia/Tokyo"),
        )

        settings = Settings(
            moodle=moodle,
            server=server,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

        logger.info("Configuration loaded successfully")
        logger.debug(f"Settings: {settings}")

        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _load_env_file(path: Path) -> None:
    """
    Load environment variables from a file.

    Simple .env parser that handles:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    logger.debug(f"Loading environment from {path}")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning(f"Invalid line {line_num} in {path}: no '=' found")
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Environment variables take precedence
            if key not in os.environ:
                os.environ[key] = value
