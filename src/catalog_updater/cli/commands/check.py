"""Check command coordinator.

Thin coordinator that runs the check engine and renders the report.
"""

from argparse import Namespace

from catalog_updater.core.update import CheckOptions
from catalog_updater.logger import get_logger
from catalog_updater.ui.display import print_json, print_outdated_report

from .base import BaseCommandHandler

logger = get_logger(__name__)


def check_options_from_args(args: Namespace) -> CheckOptions:
    """Build CheckOptions from the shared selection flags."""
    return CheckOptions(
        workspace_path=args.workspace,
        catalog_name=args.catalog,
        target=args.target,
        include_prerelease=args.include_prerelease,
        include=list(args.include),
        exclude=list(args.exclude),
        check_security=not getattr(args, "no_security", False),
    )


class CheckHandler(BaseCommandHandler):
    """Thin coordinator for the check command."""

    async def execute(self, args: Namespace) -> int:
        options = check_options_from_args(args)
        report = await self.container.check_engine.check_outdated_dependencies(
            options
        )
        logger.info(
            "Check finished: %d outdated in %d catalogs",
            report.total_outdated,
            len(report.catalogs),
        )
        if args.json:
            print_json(report.to_dict())
        else:
            print_outdated_report(report)
        return 0
