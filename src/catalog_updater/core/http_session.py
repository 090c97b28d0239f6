"""HTTP session utilities for pnpm-catalog-updater.

This module provides utilities for creating configured HTTP sessions
with proper timeout and connection settings.
"""

import aiohttp

from catalog_updater import __version__
from catalog_updater.constants import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT_SECONDS
from catalog_updater.types import GlobalConfig

USER_AGENT = f"pnpm-catalog-updater/{__version__}"


def build_session(global_config: GlobalConfig | None = None) -> aiohttp.ClientSession:
    """Create a configured session; the caller owns closing it.

    Args:
        global_config: Global configuration dictionary

    Returns:
        aiohttp.ClientSession with timeout and connection limits applied

    """
    network_cfg = (global_config or {}).get("network", {})
    timeout_seconds = int(
        network_cfg.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    )
    concurrency = int(network_cfg.get("concurrency", DEFAULT_CONCURRENCY))

    timeout = aiohttp.ClientTimeout(
        total=timeout_seconds,
        sock_connect=timeout_seconds,
    )
    connector = aiohttp.TCPConnector(
        limit=max(10, concurrency * 2),
        limit_per_host=concurrency,
    )
    return aiohttp.ClientSession(
        timeout=timeout,
        connector=connector,
        headers={"User-Agent": USER_AGENT},
    )
