"""Public logging API: setup_logging, get_logger and test helpers."""

import atexit
import contextlib
import logging
import time
from pathlib import Path

from catalog_updater.logger.config import load_log_settings
from catalog_updater.logger.handlers import ROOT_LOGGER_NAME, setup_root_logger
from catalog_updater.logger.state import get_state


def flush_all_handlers() -> None:
    """Wait for the log queue to drain and flush every handler.

    Used before reading the log file in tests and at interpreter exit.
    """
    state = get_state()
    if state.queue_listener is None or state.log_queue is None:
        return

    deadline = time.monotonic() + 5.0
    while not state.log_queue.empty() and time.monotonic() < deadline:
        time.sleep(0.01)
    # Listener thread may still be writing the last dequeued record
    time.sleep(0.1)

    for handler in state.queue_listener.handlers:
        with contextlib.suppress(OSError, ValueError):
            handler.flush()


def _cleanup_logging() -> None:
    """Stop the QueueListener on interpreter exit."""
    state = get_state()
    if state.queue_listener is not None:
        flush_all_handlers()
        state.queue_listener.stop()
        state.queue_listener = None


atexit.register(_cleanup_logging)


def setup_logging(
    name: str = ROOT_LOGGER_NAME,
    console_level: str | None = None,
    file_level: str | None = None,
    log_file: Path | None = None,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Configure logging and return the named logger.

    The root ``catalog_updater`` logger is initialized once; child loggers
    (``catalog_updater.core.registry.client``) propagate to it.

    Args:
        name: Logger name, typically __name__
        console_level: Console log level ("DEBUG", "INFO", "WARNING")
        file_level: File log level ("DEBUG", "INFO")
        log_file: Path to log file (default: ~/.config/pcu/logs/pcu.log)
        enable_file_logging: Whether to enable file logging

    Returns:
        Logger instance

    Raises:
        LoggingSetupError: If file logging setup fails

    """
    state = get_state()
    with state.lock:
        if not state.root_initialized:
            cfg_console, cfg_file, cfg_path = load_log_settings()
            setup_root_logger(
                state,
                console_level or cfg_console,
                file_level or cfg_file,
                log_file or cfg_path,
                enable_file_logging,
            )

    return logging.getLogger(name)


def get_logger(
    name: str = ROOT_LOGGER_NAME,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Get a logger, initializing the root logger on first use.

    Use __name__ as the logger name:
        >>> logger = get_logger(__name__)
        >>> logger.info("Checking %d packages", count)

    Args:
        name: Logger name, typically __name__
        enable_file_logging: Whether to enable file logging

    Returns:
        Configured logger instance

    """
    return setup_logging(name=name, enable_file_logging=enable_file_logging)


def clear_logger_state() -> None:
    """Reset global logger state. Intended for tests only.

    Stops the listener, closes handlers of ``catalog_updater`` loggers and
    resets the initialization flags.
    """
    state = get_state()
    with state.lock:
        if state.queue_listener is not None:
            flush_all_handlers()
            state.queue_listener.stop()
            state.queue_listener = None

        state.log_queue = None
        state.root_initialized = False
        state.config_applied = False

        for logger_name in list(logging.Logger.manager.loggerDict):
            if logger_name.startswith(ROOT_LOGGER_NAME):
                log_instance = logging.getLogger(logger_name)
                for handler in log_instance.handlers[:]:
                    handler.close()
                    log_instance.removeHandler(handler)


def set_console_level(level: str | int) -> int | None:
    """Change the console handler level at runtime.

    Args:
        level: Level name ("DEBUG") or number

    Returns:
        The previous console level, or None before logging is set up

    """
    state = get_state()
    if state.queue_listener is None:
        return None
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    previous = None
    for handler in state.queue_listener.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            previous = handler.level
            handler.setLevel(level)
    return previous
