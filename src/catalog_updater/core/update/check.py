"""Outdated dependency detection for workspace catalogs.

Every catalog entry is resolved against the registry according to its
update target, then optionally checked for vulnerabilities. Entries run
concurrently through one ConcurrencyController shared by all catalogs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from catalog_updater.config.package_rules import (
    UPDATE_TARGETS,
    PackageRulesConfig,
)
from catalog_updater.constants import DEFAULT_CONCURRENCY, DEFAULT_RATE_LIMIT
from catalog_updater.core.concurrency import ConcurrencyController
from catalog_updater.core.protocols.progress import (
    NullProgressReporter,
    ProgressReporter,
)
from catalog_updater.core.registry.client import RegistryClient
from catalog_updater.core.security.signal import SecuritySignal
from catalog_updater.core.workspace.repository import WorkspaceRepository
from catalog_updater.domain.catalog import Catalog
from catalog_updater.domain.types import (
    CatalogUpdateInfo,
    OutdatedDependencyInfo,
    OutdatedReport,
    WorkspaceInfo,
)
from catalog_updater.domain.version import Version, VersionRange
from catalog_updater.domain.workspace import Workspace
from catalog_updater.logger import get_logger

if TYPE_CHECKING:
    from catalog_updater.config.config import ConfigManager

logger = get_logger(__name__)

_CONSTRAINED_DIFFERENCES = {
    "patch": ("same", "prerelease", "patch"),
    "minor": ("same", "prerelease", "patch", "minor"),
}


@dataclass
class CheckOptions:
    """Options for a check run.

    Attributes:
        workspace_path: Workspace root
        catalog_name: Only check this catalog
        target: Update target overriding the configured default
        include_prerelease: Allow prerelease targets
        include: Extra include patterns
        exclude: Extra exclude patterns
        check_security: Query the security backend for current versions

    """

    workspace_path: Path = field(default_factory=Path.cwd)
    catalog_name: str | None = None
    target: str | None = None
    include_prerelease: bool = False
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    check_security: bool = True


@dataclass(frozen=True)
class _CheckItem:
    catalog_name: str
    package_name: str
    version_range: VersionRange

    def __str__(self) -> str:
        return f"{self.catalog_name}:{self.package_name}"


class ConcurrentProgressTracker:
    """Owns the completed count of a concurrent run.

    Worker callbacks only call ``record``; nothing else writes the count.
    """

    def __init__(self, reporter: ProgressReporter, total: int) -> None:
        self.reporter = reporter
        self.total = total
        self._completed = 0
        self._failed = 0

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def failed(self) -> int:
        return self._failed

    def record(self, item: str, *, failed: bool = False) -> None:
        self._completed += 1
        if failed:
            self._failed += 1
        self.reporter.advance(self._completed, item, failed=failed)


class CheckEngine:
    """Finds outdated catalog entries."""

    def __init__(
        self,
        registry_client: RegistryClient,
        repository: WorkspaceRepository,
        config_manager: ConfigManager,
        security_signals: Mapping[str, SecuritySignal] | None = None,
        progress: ProgressReporter | None = None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        rate_limit: int | None = DEFAULT_RATE_LIMIT,
    ) -> None:
        """Initialize the check engine.

        Args:
            registry_client: Registry access
            repository: Workspace loader
            config_manager: Source of the project package rules
            security_signals: Security backends keyed by name
            progress: Progress reporter (no-op when omitted)
            concurrency: Default parallelism when the project sets none
            rate_limit: Default request starts per second

        """
        self.registry_client = registry_client
        self.repository = repository
        self.config_manager = config_manager
        self.security_signals = dict(security_signals or {})
        self.progress = progress or NullProgressReporter()
        self.concurrency = concurrency
        self.rate_limit = rate_limit

    async def check_outdated_dependencies(
        self, options: CheckOptions
    ) -> OutdatedReport:
        """Load a workspace and report its outdated catalog entries.

        Raises:
            WorkspaceNotFoundError: If the workspace does not exist
            CatalogNotFoundError: If options.catalog_name is unknown
            ConfigurationError: If the project config is invalid

        """
        workspace = await self.repository.load(options.workspace_path)
        rules = self.config_manager.load_package_rules(workspace.path)
        return await self.check_workspace(workspace, rules, options)

    def _select_catalogs(
        self, workspace: Workspace, catalog_name: str | None
    ) -> list[Catalog]:
        if catalog_name:
            return [workspace.get_catalog(catalog_name)]
        return list(workspace.catalogs.values())

    def _select_security_signal(
        self, rules: PackageRulesConfig, options: CheckOptions
    ) -> SecuritySignal | None:
        if not options.check_security or not rules.security.enable_check:
            return None
        signal = self.security_signals.get(rules.security.backend)
        if signal is None:
            signal = self.security_signals.get("audit")
        return signal

    async def check_workspace(
        self,
        workspace: Workspace,
        rules: PackageRulesConfig,
        options: CheckOptions,
    ) -> OutdatedReport:
        """Report outdated entries of an already loaded workspace.

        Args:
            workspace: Loaded workspace
            rules: Project package rules
            options: Check options

        Returns:
            OutdatedReport with one CatalogUpdateInfo per checked catalog

        """
        catalogs = self._select_catalogs(workspace, options.catalog_name)
        rules = rules.with_patterns(options.include, options.exclude)

        items = [
            _CheckItem(catalog.name, name, version_range)
            for catalog in catalogs
            for name, version_range in catalog
            if rules.get_package_config(name).should_update
        ]
        signal = self._select_security_signal(rules, options)
        include_prerelease = (
            options.include_prerelease or rules.defaults.include_prerelease
        )

        controller = ConcurrencyController(
            rules.advanced.concurrency or self.concurrency,
            rules.advanced.rate_limit or self.rate_limit,
        )
        tracker = ConcurrentProgressTracker(self.progress, len(items))
        if items:
            self.progress.start(
                len(items), f"Checking {len(items)} dependencies"
            )

        async def check_item(item: _CheckItem) -> OutdatedDependencyInfo | None:
            return await self._check_entry(
                workspace, rules, options, item, signal, include_prerelease
            )

        def on_progress(
            _completed: int, _total: int, item: _CheckItem, error: Exception | None
        ) -> None:
            tracker.record(str(item), failed=error is not None)

        outcomes = await controller.run(items, check_item, on_progress)

        found: dict[str, list[OutdatedDependencyInfo]] = {
            catalog.name: [] for catalog in catalogs
        }
        for outcome in outcomes:
            if outcome.error is not None:
                logger.warning(
                    "Failed to check %s: %s",
                    outcome.item.package_name,
                    outcome.error,
                )
                continue
            if outcome.result is not None:
                found[outcome.item.catalog_name].append(outcome.result)

        report = OutdatedReport(
            workspace=WorkspaceInfo(workspace.path, workspace.name),
            catalogs=[
                CatalogUpdateInfo(
                    catalog_name=catalog.name,
                    outdated_dependencies=sorted(
                        found[catalog.name], key=lambda d: d.package_name
                    ),
                    total_packages=len(catalog),
                )
                for catalog in catalogs
            ],
        )
        if items:
            self.progress.finish(
                success=tracker.failed == 0,
                message=(
                    f"Found {report.total_outdated} outdated dependencies"
                    if report.has_updates
                    else "All dependencies are up to date"
                ),
            )
        return report

    def _resolve_target(
        self,
        rules: PackageRulesConfig,
        options: CheckOptions,
        package_name: str,
    ) -> str:
        rule = rules.find_rule(package_name)
        if rule is not None and rule.target:
            return rule.target
        return options.target or rules.defaults.target

    async def _check_entry(
        self,
        workspace: Workspace,
        rules: PackageRulesConfig,
        options: CheckOptions,
        item: _CheckItem,
        signal: SecuritySignal | None,
        include_prerelease: bool,
    ) -> OutdatedDependencyInfo | None:
        current = item.version_range.get_min_version()
        if current is None:
            logger.debug(
                "Cannot determine current version of %s from %s",
                item.package_name,
                item.version_range,
            )
            return None

        target = self._resolve_target(rules, options, item.package_name)
        wanted = await self.resolve_target_version(
            item.package_name, current, target, include_prerelease
        )
        if wanted is None:
            return None

        vulnerabilities = 0
        if signal is not None:
            report = await signal.check_vulnerabilities(
                item.package_name, str(current)
            )
            vulnerabilities = len(report.vulnerabilities)
            if vulnerabilities and rules.security.allow_major_for_security:
                wanted = (
                    await self.resolve_target_version(
                        item.package_name, current, "latest", include_prerelease
                    )
                    or wanted
                )
            if vulnerabilities and rules.security.notify_on_security_update:
                logger.warning(
                    "Security vulnerability detected in %s@%s",
                    item.package_name,
                    current,
                )

        latest = await self.registry_client.get_latest_version(item.package_name)
        return OutdatedDependencyInfo(
            package_name=item.package_name,
            current_version=str(current),
            latest_version=str(max(latest, wanted)),
            wanted_version=str(wanted),
            update_type=current.get_difference_type(wanted),
            is_security_update=vulnerabilities > 0,
            affected_packages=tuple(
                workspace.get_packages_using_catalog_dependency(
                    item.catalog_name, item.package_name
                )
            ),
            security_vulnerabilities=vulnerabilities,
        )

    async def resolve_target_version(
        self,
        package_name: str,
        current: Version,
        target: str,
        include_prerelease: bool = False,
    ) -> Version | None:
        """Resolve the version a target strategy points at.

        Args:
            package_name: Package to resolve
            current: Current (minimum) version of the catalog range
            target: One of latest, greatest, minor, patch, newest
            include_prerelease: Whether prerelease targets are allowed

        Returns:
            The target version when it is newer than current, else None

        """
        if target not in UPDATE_TARGETS:
            logger.warning(
                "Unknown update target %r for %s, using latest", target, package_name
            )
            target = "latest"

        if target == "greatest":
            candidate = await self.registry_client.get_greatest_version(package_name)
        elif target == "newest":
            newest = await self.registry_client.get_newest_versions(package_name, 1)
            candidate = newest[0] if newest else None
        elif target in _CONSTRAINED_DIFFERENCES:
            candidate = await self._constrained_version(
                package_name, current, target, include_prerelease
            )
        else:
            candidate = await self.registry_client.get_latest_version(package_name)

        if candidate is None:
            return None
        if candidate.is_prerelease() and not include_prerelease:
            return None
        if not candidate.is_newer_than(current):
            return None
        return candidate

    async def _constrained_version(
        self,
        package_name: str,
        current: Version,
        constraint: str,
        include_prerelease: bool,
    ) -> Version | None:
        allowed = _CONSTRAINED_DIFFERENCES[constraint]
        versions = await self.registry_client.get_package_versions(package_name)
        for text in versions.versions:
            candidate = Version.parse(text)
            if candidate.is_prerelease() and not include_prerelease:
                continue
            if current.get_difference_type(candidate) in allowed:
                return candidate
        return None
