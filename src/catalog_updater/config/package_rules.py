"""Project package rules (.pcurc.json / pcu.config.json).

The project file is merged over built-in defaults:

- ``exclude``/``include`` lists are appended
- ``defaults``/``security``/``advanced`` objects are merged key by key
- ``monorepo`` lists are replaced
- user ``packageRules`` drop built-in rules whose patterns overlap
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

import orjson

from catalog_updater.config.schemas.validator import ConfigValidator
from catalog_updater.constants import (
    DEFAULT_CATALOG_NAME,
    PROJECT_CONFIG_FILE_NAMES,
)
from catalog_updater.exceptions import ConfigurationError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

UPDATE_TARGETS = ("latest", "greatest", "minor", "patch", "newest")


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def matches_pattern(package_name: str, pattern: str) -> bool:
    """Glob match a package name: ``*`` any run, ``?`` one character.

    >>> matches_pattern("@types/node", "@types/*")
    True
    """
    return _compile_pattern(pattern).match(package_name) is not None


def patterns_overlap(first: str, second: str) -> bool:
    """Check whether two patterns could match the same package."""
    return matches_pattern(first.replace("*", "x"), second) or matches_pattern(
        second.replace("*", "x"), first
    )


@dataclass(frozen=True)
class PackageRule:
    """Update policy for packages matching a set of patterns."""

    patterns: tuple[str, ...]
    target: str | None = None
    auto_update: bool = False
    require_confirmation: bool = False
    group_update: bool = False
    related_packages: tuple[str, ...] = ()

    def matches(self, package_name: str) -> bool:
        return any(matches_pattern(package_name, p) for p in self.patterns)

    def matches_related(self, package_name: str) -> bool:
        return any(
            matches_pattern(package_name, p) for p in self.related_packages
        )


@dataclass(frozen=True)
class PackageConfig:
    """Effective policy for one package."""

    should_update: bool
    target: str
    require_confirmation: bool = False
    auto_update: bool = False
    group_update: bool = False


@dataclass(frozen=True)
class DefaultsConfig:
    target: str = "latest"
    include_prerelease: bool = False
    create_backup: bool = False


@dataclass(frozen=True)
class SecurityConfig:
    auto_fix_vulnerabilities: bool = True
    allow_major_for_security: bool = True
    notify_on_security_update: bool = False
    cache_minutes: int = 60
    enable_check: bool = True
    backend: str = "audit"


@dataclass(frozen=True)
class AdvancedConfig:
    """Per-project network overrides.

    ``None`` means "use the value from settings.conf".
    """

    concurrency: int | None = None
    timeout: int | None = None
    retries: int | None = None
    cache_validity_minutes: int | None = None
    rate_limit: int | None = None
    registry: str | None = None


@dataclass(frozen=True)
class MonorepoConfig:
    sync_versions: tuple[str, ...] = ()
    catalog_priority: tuple[str, ...] = (DEFAULT_CATALOG_NAME,)


DEFAULT_PACKAGE_RULES: tuple[PackageRule, ...] = (
    PackageRule(
        patterns=("react", "react-dom"),
        target="minor",
        require_confirmation=True,
        group_update=True,
        related_packages=("@types/react", "@types/react-dom"),
    ),
    PackageRule(
        patterns=("vue",),
        target="minor",
        require_confirmation=True,
        related_packages=("@vue/compiler-sfc", "@vue/runtime-core"),
    ),
    PackageRule(
        patterns=("@types/node",),
        target="minor",
        require_confirmation=True,
    ),
    PackageRule(patterns=("@types/*",), target="latest", auto_update=True),
    PackageRule(
        patterns=(
            "eslint*",
            "prettier",
            "@typescript-eslint/*",
            "vitest",
            "jest",
        ),
        target="minor",
        group_update=True,
    ),
    PackageRule(
        patterns=("typescript", "webpack*", "vite*", "rollup*"),
        target="minor",
        require_confirmation=True,
    ),
)


@dataclass(frozen=True)
class PackageRulesConfig:
    """Merged project configuration."""

    exclude: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    package_rules: tuple[PackageRule, ...] = DEFAULT_PACKAGE_RULES
    security: SecurityConfig = field(default_factory=SecurityConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    monorepo: MonorepoConfig = field(default_factory=MonorepoConfig)
    source: Path | None = None

    def find_rule(self, package_name: str) -> PackageRule | None:
        """Find the rule for a package.

        A rule listing the package under ``relatedPackages`` wins over a
        rule matching it directly.
        """
        for rule in self.package_rules:
            if rule.matches_related(package_name):
                return rule
        for rule in self.package_rules:
            if rule.matches(package_name):
                return rule
        return None

    def get_package_config(self, package_name: str) -> PackageConfig:
        """Resolve the effective policy for a package.

        Args:
            package_name: Package to resolve

        Returns:
            PackageConfig; ``should_update`` is False when the package is
            excluded or missing from a non-empty include list

        """
        default_target = self.defaults.target
        if any(matches_pattern(package_name, p) for p in self.exclude):
            return PackageConfig(should_update=False, target=default_target)
        if self.include and not any(
            matches_pattern(package_name, p) for p in self.include
        ):
            return PackageConfig(should_update=False, target=default_target)

        rule = self.find_rule(package_name)
        if rule is None:
            return PackageConfig(should_update=True, target=default_target)
        return PackageConfig(
            should_update=True,
            target=rule.target or default_target,
            require_confirmation=rule.require_confirmation,
            auto_update=rule.auto_update,
            group_update=rule.group_update,
        )

    def with_patterns(
        self,
        include: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> PackageRulesConfig:
        """Return a copy with extra include/exclude patterns appended."""
        return replace(
            self,
            include=self.include + tuple(include or ()),
            exclude=self.exclude + tuple(exclude or ()),
        )


_SECTION_KEYS: dict[str, dict[str, str]] = {
    "defaults": {
        "target": "target",
        "includePrerelease": "include_prerelease",
        "createBackup": "create_backup",
    },
    "security": {
        "autoFixVulnerabilities": "auto_fix_vulnerabilities",
        "allowMajorForSecurity": "allow_major_for_security",
        "notifyOnSecurityUpdate": "notify_on_security_update",
        "cacheMinutes": "cache_minutes",
        "enableCheck": "enable_check",
        "backend": "backend",
    },
    "advanced": {
        "concurrency": "concurrency",
        "timeout": "timeout",
        "retries": "retries",
        "cacheValidityMinutes": "cache_validity_minutes",
        "rateLimit": "rate_limit",
        "registry": "registry",
    },
}


def _merge_section(base: Any, section: str, values: dict[str, Any]) -> Any:
    known = {f.name for f in fields(base)}
    updates = {}
    for json_key, value in values.items():
        attr = _SECTION_KEYS[section].get(json_key)
        if attr in known:
            updates[attr] = value
    return replace(base, **updates)


def _rule_from_dict(data: dict[str, Any]) -> PackageRule:
    return PackageRule(
        patterns=tuple(data["patterns"]),
        target=data.get("target"),
        auto_update=bool(data.get("autoUpdate", False)),
        require_confirmation=bool(data.get("requireConfirmation", False)),
        group_update=bool(data.get("groupUpdate", False)),
        related_packages=tuple(data.get("relatedPackages", ())),
    )


def _merge_rules(
    defaults: tuple[PackageRule, ...], user_rules: list[PackageRule]
) -> tuple[PackageRule, ...]:
    def overridden(default_rule: PackageRule) -> bool:
        for user_rule in user_rules:
            for user_pattern in user_rule.patterns:
                for default_pattern in default_rule.patterns:
                    if user_pattern == default_pattern:
                        return True
                    if "*" in user_pattern and patterns_overlap(
                        user_pattern, default_pattern
                    ):
                        return True
                    if "*" in default_pattern and patterns_overlap(
                        default_pattern, user_pattern
                    ):
                        return True
        return False

    kept = tuple(rule for rule in defaults if not overridden(rule))
    return kept + tuple(user_rules)


def merge_with_defaults(
    user_config: dict[str, Any], source: Path | None = None
) -> PackageRulesConfig:
    """Merge a parsed project document over the built-in defaults.

    Args:
        user_config: Parsed (and validated) project configuration
        source: File the document was read from

    Returns:
        Merged configuration

    """
    merged = PackageRulesConfig(source=source)
    updates: dict[str, Any] = {}

    if user_config.get("exclude"):
        updates["exclude"] = merged.exclude + tuple(user_config["exclude"])
    if user_config.get("include"):
        updates["include"] = merged.include + tuple(user_config["include"])

    for section in ("defaults", "security", "advanced"):
        if isinstance(user_config.get(section), dict):
            updates[section] = _merge_section(
                getattr(merged, section), section, user_config[section]
            )

    monorepo = user_config.get("monorepo")
    if isinstance(monorepo, dict):
        monorepo_config = merged.monorepo
        if "syncVersions" in monorepo:
            monorepo_config = replace(
                monorepo_config, sync_versions=tuple(monorepo["syncVersions"])
            )
        if "catalogPriority" in monorepo:
            monorepo_config = replace(
                monorepo_config,
                catalog_priority=tuple(monorepo["catalogPriority"]),
            )
        updates["monorepo"] = monorepo_config

    if user_config.get("packageRules"):
        user_rules = [_rule_from_dict(r) for r in user_config["packageRules"]]
        updates["package_rules"] = _merge_rules(merged.package_rules, user_rules)

    return replace(merged, **updates)


def find_project_config(workspace_path: Path) -> Path | None:
    """Return the first project config file present in a workspace."""
    for file_name in PROJECT_CONFIG_FILE_NAMES:
        candidate = workspace_path / file_name
        if candidate.is_file():
            return candidate
    return None


def load_package_rules(
    workspace_path: Path, validator: ConfigValidator | None = None
) -> PackageRulesConfig:
    """Load and merge the project package rules for a workspace.

    Args:
        workspace_path: Workspace root directory
        validator: Schema validator (created when omitted)

    Returns:
        Merged configuration; the built-in defaults when no file exists

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or fails
            schema validation

    """
    config_path = find_project_config(workspace_path)
    if config_path is None:
        logger.debug("No project config in %s, using defaults", workspace_path)
        return PackageRulesConfig()

    try:
        data = orjson.loads(config_path.read_bytes())
    except OSError as e:
        raise ConfigurationError(str(e), str(config_path)) from e
    except orjson.JSONDecodeError as e:
        raise ConfigurationError(f"invalid JSON: {e}", str(config_path)) from e

    validator = validator or ConfigValidator()
    validator.validate_project_config(data, str(config_path))

    logger.debug("Loaded project config from %s", config_path)
    return merge_with_defaults(data, config_path)
