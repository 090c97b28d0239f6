"""Plan execution: apply planned updates to the workspace file."""

from __future__ import annotations

from dataclasses import dataclass

from catalog_updater.constants import CONFLICT_SKIP_REASON, SAVE_FAILED_MESSAGE
from catalog_updater.core.backup.service import BackupService
from catalog_updater.core.workspace.repository import WorkspaceRepository
from catalog_updater.domain.types import (
    PlannedUpdate,
    SkippedDependency,
    UpdatedDependency,
    UpdateError,
    UpdatePlan,
    UpdateResult,
)
from catalog_updater.domain.version import Version, VersionRange
from catalog_updater.domain.workspace import Workspace
from catalog_updater.exceptions import CatalogUpdaterError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ExecuteOptions:
    """Options for applying a plan.

    Attributes:
        force: Apply updates of packages with unresolved conflicts
        dry_run: Compute the result without writing anything
        create_backup: Back up pnpm-workspace.yaml before saving
        notify_on_security_update: Log applied security fixes

    """

    force: bool = False
    dry_run: bool = False
    create_backup: bool = False
    notify_on_security_update: bool = False


def stored_range(current: VersionRange | None, new_version: str) -> str:
    """Render the range to store, keeping the current operator prefix.

    >>> stored_range(VersionRange.parse("^4.17.20"), "4.17.21")
    '^4.17.21'
    """
    if current is None:
        return new_version
    return str(current.with_version(Version.parse(new_version)))


class UpdateExecutor:
    """Applies an UpdatePlan and persists the workspace."""

    def __init__(
        self,
        repository: WorkspaceRepository,
        backup_service: BackupService | None = None,
    ) -> None:
        self.repository = repository
        self.backup_service = backup_service or BackupService.create_default()

    async def execute_updates(
        self,
        plan: UpdatePlan,
        options: ExecuteOptions | None = None,
        workspace: Workspace | None = None,
    ) -> UpdateResult:
        """Apply a plan in order.

        Single-update failures are recorded as non-fatal errors. Only a
        failed save is fatal.

        Args:
            plan: Plan to apply; treated as read-only
            options: Execution options
            workspace: Loaded workspace (loaded from the plan path if omitted)

        Returns:
            UpdateResult

        """
        options = options or ExecuteOptions()
        if workspace is None:
            workspace = await self.repository.load(plan.workspace.path)

        result = UpdateResult(workspace=plan.workspace)
        conflicted = plan.unresolved_packages() if not options.force else set()

        if options.notify_on_security_update:
            self._log_security_updates(plan.updates)

        for update in plan.updates:
            if update.package_name in conflicted:
                result.skipped_dependencies.append(
                    SkippedDependency(
                        update.catalog_name, update.package_name, CONFLICT_SKIP_REASON
                    )
                )
                continue
            try:
                self._apply(workspace, update)
            except CatalogUpdaterError as e:
                logger.warning(
                    "Failed to update %s in %s: %s",
                    update.package_name,
                    update.catalog_name,
                    e,
                )
                result.errors.append(
                    UpdateError(update.catalog_name, update.package_name, str(e))
                )
                continue
            result.updated_dependencies.append(
                UpdatedDependency(
                    catalog_name=update.catalog_name,
                    package_name=update.package_name,
                    from_version=update.current_version,
                    to_version=update.new_version,
                    update_type=update.update_type,
                )
            )

        if options.dry_run or not result.updated_dependencies:
            return result

        if options.create_backup:
            try:
                result.backup_path = self.backup_service.create_backup(
                    workspace.workspace_file
                )
            except CatalogUpdaterError as e:
                logger.warning("Continuing without backup: %s", e)

        try:
            await self.repository.save(workspace)
        except OSError as e:
            logger.error("Failed to save %s: %s", workspace.workspace_file, e)
            result.errors.append(
                UpdateError("", "", SAVE_FAILED_MESSAGE.format(error=e), fatal=True)
            )
            return result

        self._log_summary(plan)
        return result

    @staticmethod
    def _apply(workspace: Workspace, update: PlannedUpdate) -> None:
        catalog = workspace.get_catalog(update.catalog_name)
        new_range = stored_range(
            catalog.get_dependency_version(update.package_name), update.new_version
        )
        workspace.update_catalog_dependency(
            update.catalog_name, update.package_name, new_range
        )

    @staticmethod
    def _log_security_updates(updates: list[PlannedUpdate]) -> None:
        security = [u for u in updates if u.is_security_update]
        for update in security:
            logger.warning(
                "Security fix: %s@%s -> %s",
                update.package_name,
                update.current_version,
                update.new_version,
            )

    @staticmethod
    def _log_summary(plan: UpdatePlan) -> None:
        synced: dict[str, list[str]] = {}
        for update in plan.updates:
            if update.reason.startswith("Sync version"):
                synced.setdefault(update.package_name, []).append(update.catalog_name)
        for package_name, catalogs in synced.items():
            logger.info(
                "Synchronized %s across catalogs: %s",
                package_name,
                ", ".join(catalogs),
            )
        for conflict in plan.conflicts:
            if conflict.resolved:
                logger.info("%s: %s", conflict.package_name, conflict.recommendation)
