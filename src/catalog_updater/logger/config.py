"""Log level bootstrap and runtime update from settings.conf.

The logger is created before the configuration package is importable
(config modules log too), so bootstrap values are hardcoded and the INI
levels are applied afterwards with update_logger_from_config().
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from catalog_updater.constants import (
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    LOG_DIR_ENV,
    LOG_FILE_NAME,
)

if TYPE_CHECKING:
    from catalog_updater.config import ConfigManager
    from catalog_updater.logger.state import _LoggerState


def load_log_settings() -> tuple[str, str, Path]:
    """Load bootstrap console level, file level, and file path.

    PCU_LOG_DIR overrides the log directory; the test suite points it at
    a temporary directory so runs never touch ~/.config/pcu/logs.

    Returns:
        Tuple of (console_level, file_level, log_path)

    """
    env_log_dir = os.getenv(LOG_DIR_ENV)
    if env_log_dir:
        log_path = Path(env_log_dir).expanduser() / LOG_FILE_NAME
    else:
        log_path = Path.home() / ".config" / "pcu" / "logs" / LOG_FILE_NAME

    return DEFAULT_CONSOLE_LOG_LEVEL, DEFAULT_LOG_LEVEL, log_path


def update_logger_from_config(
    state: "_LoggerState",
    config_manager: "ConfigManager | None" = None,
) -> None:
    """Apply handler levels from the global INI settings.

    Only handler levels change; handlers are never added or removed.

    Args:
        state: Logger state object (from logger.state module)
        config_manager: Configuration manager to read from; a default one
            is created when omitted

    """
    if config_manager is None:
        # Import here to avoid circular dependency
        from catalog_updater.config import ConfigManager  # noqa: PLC0415

        config_manager = ConfigManager()

    config = config_manager.load_global_config()
    console_level = getattr(
        logging, config["console_log_level"], logging.WARNING
    )
    file_level = getattr(logging, config["log_level"], logging.INFO)

    if state.queue_listener is not None:
        for handler in state.queue_listener.handlers:
            if isinstance(handler, RotatingFileHandler):
                handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                handler.setLevel(console_level)

    state.config_applied = True
