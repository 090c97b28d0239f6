"""Security command coordinator."""

from argparse import Namespace

from catalog_updater.logger import get_logger
from catalog_updater.ui.display import print_json, print_security_report

from .base import BaseCommandHandler

logger = get_logger(__name__)


class SecurityHandler(BaseCommandHandler):
    """Query OSV for one package version and optionally a safe version."""

    async def execute(self, args: Namespace) -> int:
        client = self.container.advisory_client
        client.check_ecosystem = args.ecosystem

        report = await client.query_vulnerabilities(args.name, args.version)
        safe_version = None
        if args.safe and report.has_high_vulnerabilities:
            safe_version = await client.find_safe_version(args.name, args.version)
            if safe_version is None:
                logger.warning(
                    "No safe version found above %s@%s", args.name, args.version
                )

        if args.json:
            print_json(
                {
                    "report": report.to_dict(),
                    "safeVersion": safe_version.to_dict() if safe_version else None,
                }
            )
        elif args.summary:
            print(client.format_for_prompt(report))  # noqa: T201
            if safe_version is not None:
                print(f"Safe version: {safe_version.version}")  # noqa: T201
        else:
            print_security_report(report, safe_version)
        return 0
