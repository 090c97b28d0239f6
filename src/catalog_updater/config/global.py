"""Global configuration manager for INI settings."""

import configparser
import logging
from pathlib import Path

from catalog_updater.config.parser import (
    ConfigCommentManager,
    _strip_inline_comment,
)
from catalog_updater.config.paths import Paths
from catalog_updater.constants import (
    DEFAULT_CACHE_VALIDITY_MINUTES,
    DEFAULT_CONCURRENCY,
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RATE_LIMIT,
    DEFAULT_REGISTRY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    DIRECTORY_KEYS,
    GLOBAL_CONFIG_VERSION,
    KEY_CONFIG_VERSION,
    KEY_CONSOLE_LOG_LEVEL,
    KEY_LOG_LEVEL,
    OSV_API_URL,
    SECTION_DEFAULT,
    SECTION_DIRECTORY,
    SECTION_NETWORK,
)
from catalog_updater.types import DirectoryConfig, GlobalConfig, NetworkConfig

logger = logging.getLogger(__name__)

# Type alias for raw INI config dictionary
RawConfigDict = dict[str, str | dict[str, str]]

_NETWORK_INT_DEFAULTS: dict[str, int] = {
    "retry_attempts": DEFAULT_RETRIES,
    "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
    "concurrency": DEFAULT_CONCURRENCY,
    "rate_limit": DEFAULT_RATE_LIMIT,
    "cache_validity_minutes": DEFAULT_CACHE_VALIDITY_MINUTES,
}


class GlobalConfigManager:
    """Manages global INI configuration."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize global config manager.

        Args:
            config_dir: Configuration directory path
                (defaults to Paths.CONFIG_DIR)

        """
        self.config_dir = config_dir or Paths.CONFIG_DIR
        self.settings_file = self.config_dir / "settings.conf"

    def get_default_global_config(self) -> RawConfigDict:
        """Get default global configuration values.

        Returns:
            Default configuration dictionary

        """
        network = {key: str(value) for key, value in _NETWORK_INT_DEFAULTS.items()}
        network["registry"] = DEFAULT_REGISTRY
        network["osv_api_url"] = OSV_API_URL
        return {
            KEY_CONFIG_VERSION: GLOBAL_CONFIG_VERSION,
            KEY_LOG_LEVEL: DEFAULT_LOG_LEVEL,
            KEY_CONSOLE_LOG_LEVEL: DEFAULT_CONSOLE_LOG_LEVEL,
            SECTION_NETWORK: network,
            SECTION_DIRECTORY: {
                "settings": str(self.config_dir),
                "logs": str(self.config_dir / "logs"),
                "cache": str(self.config_dir / "cache"),
            },
        }

    def _create_config_from_defaults(
        self, defaults: RawConfigDict
    ) -> configparser.ConfigParser:
        """Create ConfigParser from defaults dictionary.

        Args:
            defaults: Default configuration values

        Returns:
            ConfigParser populated with defaults

        """
        config = configparser.ConfigParser(
            inline_comment_prefixes=("#", ";"),
            interpolation=None,
        )
        flat_defaults = {
            key: str(value)
            for key, value in defaults.items()
            if not isinstance(value, dict)
        }
        config.read_dict({SECTION_DEFAULT: flat_defaults})

        for key, value in defaults.items():
            if isinstance(value, dict):
                config.add_section(key)
                for subkey, subvalue in value.items():
                    config.set(key, subkey, str(subvalue))

        return config

    def load_global_config(self) -> GlobalConfig:
        """Load global configuration from INI file.

        A missing settings file is created from the defaults.

        Returns:
            Loaded global configuration

        """
        defaults = self.get_default_global_config()
        config = self._create_config_from_defaults(defaults)

        if self.settings_file.exists():
            try:
                config.read(self.settings_file)
            except configparser.Error as e:
                logger.warning(
                    "Ignoring unreadable settings file %s: %s",
                    self.settings_file,
                    e,
                )
                config = self._create_config_from_defaults(defaults)
        else:
            try:
                self.save_global_config(self._convert_to_global_config(config))
            except OSError as e:
                logger.debug("Could not write default settings: %s", e)

        return self._convert_to_global_config(config)

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration to INI file with comments.

        Args:
            config: Global configuration to save

        """
        comment_manager = ConfigCommentManager()
        section_comments = comment_manager.get_section_comments()
        key_comments = comment_manager.get_key_comments()

        sections: dict[str, dict[str, str]] = {
            SECTION_DEFAULT: {
                KEY_CONFIG_VERSION: config["config_version"],
                KEY_LOG_LEVEL: config["log_level"],
                KEY_CONSOLE_LOG_LEVEL: config["console_log_level"],
            },
            SECTION_NETWORK: {
                key: str(value) for key, value in config["network"].items()
            },
            SECTION_DIRECTORY: {
                key: str(path) for key, path in config["directory"].items()
            },
        }

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.settings_file.open("w", encoding="utf-8") as f:
            f.write(comment_manager.get_file_header())
            for section, values in sections.items():
                f.write(section_comments[section])
                f.write(f"[{section}]\n")
                for key, value in values.items():
                    inline_comment = key_comments[section].get(key, "")
                    if inline_comment:
                        f.write(f"{key} = {value}  {inline_comment}\n")
                    else:
                        f.write(f"{key} = {value}\n")

    def _convert_to_global_config(
        self, config: configparser.ConfigParser
    ) -> GlobalConfig:
        """Convert configparser to typed GlobalConfig.

        Args:
            config: Parsed configuration

        Returns:
            Typed global configuration

        """
        defaults = config.defaults()

        def get_scalar(key: str, default: str) -> str:
            return _strip_inline_comment(defaults.get(key, default))

        network_section = (
            config[SECTION_NETWORK] if config.has_section(SECTION_NETWORK) else {}
        )

        def get_network_int(key: str) -> int:
            raw = network_section.get(key, str(_NETWORK_INT_DEFAULTS[key]))
            try:
                return int(_strip_inline_comment(raw))
            except ValueError:
                logger.warning(
                    "Invalid integer for network.%s: %r, using default",
                    key,
                    raw,
                )
                return _NETWORK_INT_DEFAULTS[key]

        network = NetworkConfig(
            retry_attempts=max(1, get_network_int("retry_attempts")),
            timeout_seconds=get_network_int("timeout_seconds"),
            concurrency=max(1, get_network_int("concurrency")),
            rate_limit=get_network_int("rate_limit"),
            cache_validity_minutes=get_network_int("cache_validity_minutes"),
            registry=_strip_inline_comment(
                network_section.get("registry", DEFAULT_REGISTRY)
            ),
            osv_api_url=_strip_inline_comment(
                network_section.get("osv_api_url", OSV_API_URL)
            ),
        )

        directories: dict[str, Path] = {}
        if config.has_section(SECTION_DIRECTORY):
            for key in DIRECTORY_KEYS:
                value = config.get(SECTION_DIRECTORY, key, fallback=None)
                if value:
                    directories[key] = Paths.expand_path(
                        _strip_inline_comment(value)
                    )

        return GlobalConfig(
            config_version=get_scalar(KEY_CONFIG_VERSION, GLOBAL_CONFIG_VERSION),
            log_level=get_scalar(KEY_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper(),
            console_log_level=get_scalar(
                KEY_CONSOLE_LOG_LEVEL, DEFAULT_CONSOLE_LOG_LEVEL
            ).upper(),
            network=network,
            directory=DirectoryConfig(
                settings=directories.get("settings", self.config_dir),
                logs=directories.get("logs", self.config_dir / "logs"),
                cache=directories.get("cache", self.config_dir / "cache"),
            ),
        )
