"""Typed dictionaries for the global configuration."""

from pathlib import Path
from typing import TypedDict


class NetworkConfig(TypedDict):
    """Network section of settings.conf."""

    retry_attempts: int
    timeout_seconds: int
    concurrency: int
    rate_limit: int
    cache_validity_minutes: int
    registry: str
    osv_api_url: str


class DirectoryConfig(TypedDict):
    """Directory section of settings.conf."""

    settings: Path
    logs: Path
    cache: Path


class GlobalConfig(TypedDict):
    """Global configuration loaded from settings.conf."""

    config_version: str
    log_level: str
    console_log_level: str
    network: NetworkConfig
    directory: DirectoryConfig
