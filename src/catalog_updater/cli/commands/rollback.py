"""Rollback command coordinator.

Restores pnpm-workspace.yaml from the newest backup written by
``pcu update --backup``.
"""

from argparse import Namespace

from catalog_updater.core.workspace import WorkspaceRepository
from catalog_updater.logger import get_logger
from catalog_updater.ui.display import print_backups

from .base import BaseCommandHandler

logger = get_logger(__name__)


class RollbackHandler(BaseCommandHandler):
    """Thin coordinator for the rollback command."""

    async def execute(self, args: Namespace) -> int:
        service = self.container.backup_service
        workspace_file = WorkspaceRepository.workspace_file_for(args.workspace)

        if args.list:
            print_backups(service.list_backups(workspace_file))
            return 0

        restored = service.restore_latest(workspace_file)
        if restored is None:
            print(f"No backups found for {workspace_file}")  # noqa: T201
            return 1

        restored_from, pre_restore = restored
        print(f"Restored {workspace_file.name} from {restored_from.name}")  # noqa: T201
        print(f"Previous content saved to {pre_restore.name}")  # noqa: T201
        return 0
