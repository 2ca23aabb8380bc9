"""
iptvcatalog settings.

Values come from ``config.yaml`` (working directory first, then the project
root) and may be overridden by ``IPTVCATALOG_*`` environment variables.
Every section is a pydantic model, so a bad value fails at load time.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

CONFIG_FILE_NAME = "config.yaml"
ENV_PREFIX = "IPTVCATALOG_"

# Loaded lazily by get_config()
_config: Optional["IPTVCatalogConfig"] = None


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "VLC/3.0.18 LibVLC/3.0.18",
    "Lavf/60.3.100",
    "Dalvik/2.1.0 (Linux; U; Android 9; AFTMM Build/PS7285)",
    "IPTVnator/0.8.4",
    "Kodi/20.0",
]

DEFAULT_BLOCKED_GROUP_PATTERNS = [
    "18|",
    "FOR ADULTS",
    "XXX",
    "ADULT",
    "PORN",
    "18+",
    "+18",
    "X-RATED",
    "XRATED",
]


class ServerConfig(BaseModel):
    """Server configuration."""
    host: str = "0.0.0.0"
    port: int = 8420
    debug: bool = False
    log_level: str = "INFO"


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = "sqlite:///./iptvcatalog.db"
    echo: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    max_size: str = "10MB"
    backup_count: int = 5


class IngestConfig(BaseModel):
    """M3U ingestion tuning."""
    batch_size: int = Field(default=5000, gt=0)
    yield_interval: int = Field(default=100000, gt=0)
    blocked_group_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_GROUP_PATTERNS)
    )


class FetchConfig(BaseModel):
    """
    Remote playlist download settings.

    Delays are in seconds. The per-agent delays apply between user agents
    inside one download attempt; retry_backoff_seconds is multiplied by the
    attempt number between whole download+parse attempts.
    """
    user_agents: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    max_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = 3.0
    connect_timeout: float = 30.0
    read_timeout: float = 120.0
    staging_dir: Optional[str] = None  # Defaults to the system temp dir

    server_error_delay: float = 0.5
    auth_error_delay: float = 0.3
    timeout_delay: float = 1.0
    reset_delay: float = 2.0
    network_error_delay: float = 1.0


class XtreamConfig(BaseModel):
    """Xtream Codes API client settings."""
    timeout: float = 60.0


class IPTVCatalogConfig(BaseModel):
    """Main iptvcatalog configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    xtream: XtreamConfig = Field(default_factory=XtreamConfig)


# Environment variable suffix -> dotted config path
ENV_OVERRIDES = {
    "HOST": "server.host",
    "PORT": "server.port",
    "DEBUG": "server.debug",
    "DATABASE_URL": "database.url",
    "LOG_LEVEL": "logging.level",
    "LOG_FILE": "logging.file",
    "BATCH_SIZE": "ingest.batch_size",
    "STAGING_DIR": "fetch.staging_dir",
    "MAX_ATTEMPTS": "fetch.max_attempts",
    "RETRY_BACKOFF": "fetch.retry_backoff_seconds",
    "XTREAM_TIMEOUT": "xtream.timeout",
}


def find_config_file() -> Optional[Path]:
    """First existing config.yaml in the working directory or the project root."""
    candidates = (Path.cwd() / CONFIG_FILE_NAME, Path(__file__).parent.parent / CONFIG_FILE_NAME)
    return next((path for path in candidates if path.is_file()), None)


def load_config(config_path: Optional[str] = None) -> IPTVCatalogConfig:
    """
    Load, validate and cache the configuration.

    Args:
        config_path: Explicit YAML file. When omitted, ``find_config_file()``
            decides; a missing file means defaults plus env overrides.
    """
    global _config

    path = Path(config_path) if config_path else find_config_file()
    data: dict[str, Any] = {}
    if path is not None and path.is_file():
        data = yaml.safe_load(path.read_text()) or {}

    for suffix, dotted in ENV_OVERRIDES.items():
        raw = os.environ.get(ENV_PREFIX + suffix)
        if raw is None:
            continue
        section, key = dotted.split(".")
        section_data = data.get(section)
        if not isinstance(section_data, dict):
            section_data = data[section] = {}
        section_data[key] = _coerce_env_value(raw)

    _config = IPTVCatalogConfig.model_validate(data)
    return _config


def get_config() -> IPTVCatalogConfig:
    """Return the cached configuration, loading it on first use."""
    if _config is None:
        return load_config()
    return _config


def reload_config() -> IPTVCatalogConfig:
    """Drop the cached configuration and load it again from disk."""
    global _config
    _config = None
    return load_config()


def _coerce_env_value(raw: str) -> Any:
    # pydantic converts numeric strings itself; only booleans need mapping
    lowered = raw.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    return raw


class _LazyConfig:
    """
    Module-level stand-in for the cached configuration.

    ``from iptvcatalog.config import config`` works at import time; the YAML
    file is only read on the first attribute access, and a later
    ``reload_config()`` is picked up without re-importing.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_config(), name)

    def __repr__(self) -> str:
        state = "unloaded" if _config is None else "loaded"
        return f"<iptvcatalog config ({state})>"


config = _LazyConfig()
