"""Configuration management - settings, project rules, and registry config.

This package provides:
- ConfigManager: Unified facade for all configuration operations
- GlobalConfigManager: INI configuration management (from global.py)
- PackageRulesConfig: Merged project package rules (from package_rules.py)
- NpmrcConfig: Registry and auth resolution (from npmrc.py)
- Paths: Path constants and utilities (from paths.py)
"""

# Import from global module (avoiding keyword conflict)
import importlib

from catalog_updater.config.config import ConfigManager
from catalog_updater.config.npmrc import NpmrcConfig, load_npmrc_config
from catalog_updater.config.package_rules import (
    PackageConfig,
    PackageRule,
    PackageRulesConfig,
    load_package_rules,
    matches_pattern,
)
from catalog_updater.config.parser import ConfigCommentManager
from catalog_updater.config.paths import Paths
from catalog_updater.types import GlobalConfig

_global_module = importlib.import_module("catalog_updater.config.global")
GlobalConfigManager = _global_module.GlobalConfigManager

__all__ = [
    "ConfigCommentManager",
    "ConfigManager",
    "GlobalConfig",
    "GlobalConfigManager",
    "NpmrcConfig",
    "PackageConfig",
    "PackageRule",
    "PackageRulesConfig",
    "Paths",
    "load_npmrc_config",
    "load_package_rules",
    "matches_pattern",
]
