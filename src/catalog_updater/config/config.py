"""Configuration facade for pnpm-catalog-updater.

This module provides a lightweight facade that coordinates the
configuration sources. The actual implementations live in specialized
modules:
- global.py: GlobalConfigManager for the INI settings
- package_rules.py: project rules from .pcurc.json / pcu.config.json
- npmrc.py: registry and auth resolution from .npmrc/.pnpmrc
- paths.py: Path constants and utilities
"""

import importlib
import logging
from pathlib import Path

from catalog_updater.config.npmrc import NpmrcConfig, load_npmrc_config
from catalog_updater.config.package_rules import (
    PackageRulesConfig,
    load_package_rules,
)
from catalog_updater.config.paths import Paths
from catalog_updater.config.schemas import ConfigValidator
from catalog_updater.types import GlobalConfig

logger = logging.getLogger(__name__)

# Import from global module (avoiding keyword conflict)
_global_module = importlib.import_module("catalog_updater.config.global")
GlobalConfigManager = _global_module.GlobalConfigManager


class ConfigManager:
    """Facade that coordinates all configuration sources."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            config_dir: Optional custom config directory.
                Defaults to Paths.CONFIG_DIR

        """
        self._config_dir = config_dir or Paths.CONFIG_DIR
        self.global_config_manager = GlobalConfigManager(self._config_dir)
        self._validator: ConfigValidator | None = None

        if config_dir:
            self._config_dir.mkdir(parents=True, exist_ok=True)
        else:
            Paths.ensure_directories()

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self._config_dir

    @property
    def settings_file(self) -> Path:
        """Get the settings file path."""
        return self.global_config_manager.settings_file

    @property
    def validator(self) -> ConfigValidator:
        """Schema validator, created on first use."""
        if self._validator is None:
            self._validator = ConfigValidator()
        return self._validator

    # Global config manager delegates
    def load_global_config(self) -> GlobalConfig:
        """Load global configuration from INI file."""
        return self.global_config_manager.load_global_config()

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration to INI file."""
        self.global_config_manager.save_global_config(config)

    # Project sources
    def load_package_rules(self, workspace_path: Path) -> PackageRulesConfig:
        """Load the merged package rules for a workspace.

        Raises:
            ConfigurationError: If the project file is invalid

        """
        return load_package_rules(workspace_path, self.validator)

    def load_npmrc(self, workspace_path: Path) -> NpmrcConfig:
        """Resolve the registry configuration for a workspace."""
        return load_npmrc_config(workspace_path)
