"""Logging utilities for pnpm-catalog-updater.

Architecture:
    Application → QueueHandler → Queue → QueueListener Thread
                                              ↓
                                    Console + File Handlers

Usage:
    >>> from catalog_updater.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Checking %s", package_name)

Rules for contributors:
    1. Always use: logger = get_logger(__name__)
    2. Never call logging.basicConfig()
    3. Never attach handlers to child loggers
    4. Use %-formatting in log calls, never f-strings
    5. Never log registry tokens; use mask_token() from core.token

Environment Variables:
    PCU_LOG_DIR: Override the log directory (used by the test suite)
"""

from catalog_updater.logger.config import (
    update_logger_from_config as _update_config,
)
from catalog_updater.logger.formatters import (
    ColoredConsoleFormatter,
    HybridConsoleFormatter,
)
from catalog_updater.logger.handlers import LoggingSetupError
from catalog_updater.logger.logger import (
    clear_logger_state,
    flush_all_handlers,
    get_logger,
    set_console_level,
    setup_logging,
)
from catalog_updater.logger.state import get_state

__all__ = [
    "ColoredConsoleFormatter",
    "HybridConsoleFormatter",
    "LoggingSetupError",
    "clear_logger_state",
    "flush_all_handlers",
    "get_logger",
    "set_console_level",
    "setup_logging",
    "update_logger_from_config",
]


def update_logger_from_config(config_manager=None) -> None:
    """Apply settings.conf log levels to the running handlers.

    Args:
        config_manager: Optional ConfigManager to read settings from

    """
    _update_config(get_state(), config_manager)
