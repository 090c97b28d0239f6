"""Update planning: outdated report to a conflict-resolved plan.

Planning runs three passes over the outdated report:

1. build one PlannedUpdate per outdated entry
2. synchronize ``monorepo.syncVersions`` packages across catalogs
3. resolve packages proposed at different versions by catalog priority
"""

from __future__ import annotations

from dataclasses import dataclass

from catalog_updater.config.package_rules import PackageRulesConfig
from catalog_updater.constants import (
    PRIORITY_REASON,
    PRIORITY_RECOMMENDATION,
    SYNC_EXISTING_REASON,
    SYNC_NEW_REASON,
)
from catalog_updater.core.registry.client import RegistryClient
from catalog_updater.domain.types import (
    ConflictingCatalog,
    OutdatedDependencyInfo,
    OutdatedReport,
    PlannedUpdate,
    UpdatePlan,
    VersionConflict,
)
from catalog_updater.domain.version import Version
from catalog_updater.domain.workspace import Workspace
from catalog_updater.exceptions import InvalidVersionError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

_REASONS = {
    "major": "Major version update",
    "minor": "Minor version update",
    "patch": "Patch version update",
}


@dataclass
class PlanOptions:
    """Toggles for the optional planning passes."""

    sync_versions: bool = True
    resolve_conflicts: bool = True


def update_reason(outdated: OutdatedDependencyInfo) -> str:
    if outdated.is_security_update:
        return "Security update available"
    return _REASONS.get(outdated.update_type, "Version update")


def retarget(update: PlannedUpdate, new_version: str) -> None:
    """Point an update at another version and reclassify the change."""
    update.new_version = new_version
    try:
        current = Version.parse(update.current_version)
        update.update_type = current.get_difference_type(Version.parse(new_version))
    except InvalidVersionError as e:
        logger.debug("Keeping update type of %s: %s", update.package_name, e)


class UpdatePlanner:
    """Turns an OutdatedReport into an UpdatePlan."""

    def __init__(self, registry_client: RegistryClient | None = None) -> None:
        """Initialize the planner.

        Args:
            registry_client: Used to look up latest versions for
                synchronized packages that have no update yet

        """
        self.registry_client = registry_client

    async def plan_updates(
        self,
        report: OutdatedReport,
        workspace: Workspace,
        rules: PackageRulesConfig,
        options: PlanOptions | None = None,
    ) -> UpdatePlan:
        """Build an update plan.

        Args:
            report: Result of a check run
            workspace: The checked workspace
            rules: Project package rules
            options: Planning toggles

        Returns:
            UpdatePlan whose conflicts are resolved by catalog priority

        """
        options = options or PlanOptions()
        updates = self._build_updates(report, rules)

        if options.sync_versions and rules.monorepo.sync_versions:
            updates.extend(
                await self._sync_versions(
                    list(rules.monorepo.sync_versions), workspace, updates
                )
            )

        conflicts: list[VersionConflict] = []
        if options.resolve_conflicts:
            conflicts = self._resolve_conflicts(
                updates, list(rules.monorepo.catalog_priority)
            )

        plan = UpdatePlan(workspace=report.workspace, updates=updates, conflicts=conflicts)
        logger.debug(
            "Planned %d updates with %d conflicts",
            plan.total_updates,
            len(conflicts),
        )
        return plan

    @staticmethod
    def _build_updates(
        report: OutdatedReport, rules: PackageRulesConfig
    ) -> list[PlannedUpdate]:
        updates: list[PlannedUpdate] = []
        for catalog_info in report.catalogs:
            for outdated in catalog_info.outdated_dependencies:
                package_config = rules.get_package_config(outdated.package_name)
                updates.append(
                    PlannedUpdate(
                        catalog_name=catalog_info.catalog_name,
                        package_name=outdated.package_name,
                        current_version=outdated.current_version,
                        new_version=outdated.wanted_version,
                        update_type=outdated.update_type,
                        reason=update_reason(outdated),
                        affected_packages=list(outdated.affected_packages),
                        require_confirmation=package_config.require_confirmation,
                        auto_update=package_config.auto_update,
                        group_update=package_config.group_update,
                        is_security_update=outdated.is_security_update,
                    )
                )
        return updates

    async def _latest_versions(self, package_names: list[str]) -> dict[str, str]:
        if not package_names or self.registry_client is None:
            return {}
        result = await self.registry_client.batch_query_versions(package_names)
        for name, error in result.failures.items():
            logger.warning("Cannot sync %s: %s", name, error)
        return {
            name: versions.latest_version
            for name, versions in result.results.items()
        }

    async def _sync_versions(
        self,
        sync_names: list[str],
        workspace: Workspace,
        updates: list[PlannedUpdate],
    ) -> list[PlannedUpdate]:
        """Align synchronized packages on one version across catalogs.

        Existing updates are rewritten in place; the returned list holds
        updates for catalogs that had none.
        """
        candidates = {
            name: [c for c in workspace.catalogs.values() if c.has_dependency(name)]
            for name in sync_names
        }
        candidates = {name: cats for name, cats in candidates.items() if len(cats) > 1}
        if not candidates:
            return []

        existing_by_name: dict[str, PlannedUpdate] = {}
        for update in updates:
            existing_by_name.setdefault(update.package_name, update)
        targets = {
            name: existing_by_name[name].new_version
            for name in candidates
            if name in existing_by_name
        }
        targets.update(
            await self._latest_versions(
                [name for name in candidates if name not in targets]
            )
        )

        added: list[PlannedUpdate] = []
        for name, catalogs in candidates.items():
            target = targets.get(name)
            if not target:
                continue
            try:
                target_version = Version.parse(target)
            except InvalidVersionError:
                logger.warning("Cannot sync %s to invalid version %s", name, target)
                continue

            for catalog in catalogs:
                current = catalog.get_dependency_version(name).get_min_version()
                if current is None or current == target_version:
                    continue
                existing = next(
                    (
                        u
                        for u in updates
                        if u.package_name == name
                        and u.catalog_name == catalog.name
                    ),
                    None,
                )
                if existing is not None:
                    retarget(existing, target)
                    existing.reason = SYNC_EXISTING_REASON.format(
                        reason=existing.reason
                    )
                    existing.require_confirmation = True
                    existing.group_update = True
                    continue
                added.append(
                    PlannedUpdate(
                        catalog_name=catalog.name,
                        package_name=name,
                        current_version=str(current),
                        new_version=target,
                        update_type=current.get_difference_type(target_version),
                        reason=SYNC_NEW_REASON,
                        affected_packages=workspace.get_packages_using_catalog_dependency(
                            catalog.name, name
                        ),
                        require_confirmation=True,
                        auto_update=False,
                        group_update=True,
                    )
                )
        return added

    @staticmethod
    def _resolve_conflicts(
        updates: list[PlannedUpdate], catalog_priority: list[str]
    ) -> list[VersionConflict]:
        by_package: dict[str, list[PlannedUpdate]] = {}
        for update in updates:
            by_package.setdefault(update.package_name, []).append(update)

        conflicts: list[VersionConflict] = []
        for package_name, group in by_package.items():
            if len({u.new_version for u in group}) <= 1:
                continue

            original = [
                ConflictingCatalog(u.catalog_name, u.current_version, u.new_version)
                for u in group
            ]
            winner = next(
                (
                    u
                    for catalog_name in catalog_priority
                    for u in group
                    if u.catalog_name == catalog_name
                ),
                group[0],
            )
            for update in group:
                if update is not winner:
                    retarget(update, winner.new_version)
                    update.reason = PRIORITY_REASON.format(
                        catalog=winner.catalog_name, reason=update.reason
                    )

            remaining = {u.new_version for u in group}
            conflicts.append(
                VersionConflict(
                    package_name=package_name,
                    catalogs=original,
                    recommendation=PRIORITY_RECOMMENDATION.format(
                        catalog=winner.catalog_name, version=winner.new_version
                    ),
                    resolved=len(remaining) == 1,
                    resolved_version=winner.new_version
                    if len(remaining) == 1
                    else None,
                )
            )
            logger.info(
                "Resolved %s to %s using catalog %s",
                package_name,
                winner.new_version,
                winner.catalog_name,
            )
        return conflicts
