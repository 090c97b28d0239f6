"""Path constants and utilities for catalog updater configuration."""

from pathlib import Path

from catalog_updater.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONFIG_SUBDIR,
)


class Paths:
    """Application paths and directory structure."""

    HOME_DIR = Path.home()
    CONFIG_DIR = HOME_DIR / CONFIG_DIR_NAME / DEFAULT_CONFIG_SUBDIR

    CACHE_DIR = CONFIG_DIR / "cache"
    LOGS_DIR = CONFIG_DIR / "logs"

    GLOBAL_CONFIG_FILE = CONFIG_DIR / CONFIG_FILE_NAME

    @classmethod
    def expand_path(cls, path_str: str | Path) -> Path:
        """Expand and resolve path with ~ and relative path support.

        Args:
            path_str: Path string to expand (e.g., "~/cache" or "./tmp")

        Returns:
            Expanded and resolved Path object

        """
        return Path(path_str).expanduser().resolve(strict=False)

    @classmethod
    def ensure_directories(cls) -> None:
        """Create the default user directories if they don't exist."""
        for directory in (cls.CONFIG_DIR, cls.CACHE_DIR, cls.LOGS_DIR):
            directory.mkdir(parents=True, exist_ok=True)
