"""Update command coordinator.

Runs check, plan and execute against a single loaded workspace.
"""

from argparse import Namespace

from catalog_updater.core.update import ExecuteOptions
from catalog_updater.logger import get_logger
from catalog_updater.ui.display import (
    print_json,
    print_update_plan,
    print_update_result,
)

from .base import BaseCommandHandler
from .check import check_options_from_args

logger = get_logger(__name__)


class UpdateHandler(BaseCommandHandler):
    """Thin coordinator for the update command."""

    async def execute(self, args: Namespace) -> int:
        container = self.container
        options = check_options_from_args(args)

        workspace = await container.workspace_repository.load(options.workspace_path)
        rules = self.config_manager.load_package_rules(workspace.path)

        report = await container.check_engine.check_workspace(
            workspace, rules, options
        )
        plan = await container.update_planner.plan_updates(report, workspace, rules)
        if plan.has_conflicts and not args.force:
            logger.warning(
                "Unresolved version conflicts for: %s",
                ", ".join(sorted(plan.unresolved_packages())),
            )

        result = await container.update_executor.execute_updates(
            plan,
            ExecuteOptions(
                force=args.force,
                dry_run=args.dry_run,
                create_backup=args.backup,
                notify_on_security_update=rules.security.notify_on_security_update,
            ),
            workspace,
        )

        if args.json:
            print_json({"plan": plan.to_dict(), "result": result.to_dict()})
        else:
            print_update_plan(plan)
            if plan.updates:
                print()  # noqa: T201
                print_update_result(result, dry_run=args.dry_run)

        if not result.success:
            logger.error("Update failed for %s", workspace.workspace_file)
            return 1
        return 0
