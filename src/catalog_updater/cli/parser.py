"""CLI argument parser for pnpm-catalog-updater.

Handles parsing of command-line arguments and provides a clean
interface for defining CLI commands and their options.
"""

import argparse
from argparse import Namespace
from collections.abc import Sequence
from pathlib import Path

from catalog_updater.config.package_rules import UPDATE_TARGETS
from catalog_updater.core.registry.client import CACHE_TYPES
from catalog_updater.types import GlobalConfig


class CLIParser:
    """Command-line argument parser for pcu."""

    def __init__(self, global_config: GlobalConfig | None = None) -> None:
        """Initialize the CLI parser with global configuration.

        Args:
            global_config: Global configuration; only used for help text
                defaults

        """
        self.global_config = global_config

    def parse_args(self, argv: Sequence[str] | None = None) -> Namespace:
        """Parse command-line arguments.

        Args:
            argv: Arguments to parse (sys.argv[1:] when None)

        Returns:
            Parsed arguments namespace

        """
        parser = self.build_parser()
        return parser.parse_args(argv)

    def build_parser(self) -> argparse.ArgumentParser:
        parser = self._create_main_parser()
        self._add_global_options(parser)
        self._add_subcommands(parser)
        return parser

    def _create_main_parser(self) -> argparse.ArgumentParser:
        return argparse.ArgumentParser(
            prog="pcu",
            description="Keep pnpm workspace catalogs up to date",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Report outdated catalog entries
  %(prog)s check
  %(prog)s check --catalog react17 --target minor

  # Apply updates, keeping a backup of pnpm-workspace.yaml
  %(prog)s update --backup
  %(prog)s update --dry-run --json

  # Look up advisories for a package version
  %(prog)s security lodash 4.17.20 --safe

  # Undo the last update
  %(prog)s rollback --list
  %(prog)s rollback
            """,
        )

    def _add_global_options(self, parser: argparse.ArgumentParser) -> None:
        # Long form only to avoid colliding with -v / --verbose
        parser.add_argument(
            "--version",
            action="store_true",
            help="Show pcu version and exit",
        )

    def _add_subcommands(self, parser: argparse.ArgumentParser) -> None:
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands"
        )
        self._add_check_command(subparsers)
        self._add_update_command(subparsers)
        self._add_security_command(subparsers)
        self._add_rollback_command(subparsers)
        self._add_cache_command(subparsers)

    @staticmethod
    def _add_common_options(command_parser: argparse.ArgumentParser) -> None:
        command_parser.add_argument(
            "--workspace",
            type=Path,
            default=Path.cwd(),
            help="Workspace root (default: current directory)",
        )
        command_parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show debug logging on the console",
        )

    @staticmethod
    def _add_selection_options(command_parser: argparse.ArgumentParser) -> None:
        command_parser.add_argument(
            "--catalog",
            help="Only process this catalog",
        )
        command_parser.add_argument(
            "--target",
            choices=UPDATE_TARGETS,
            help="Update target overriding the configured default",
        )
        command_parser.add_argument(
            "--include-prerelease",
            action="store_true",
            help="Allow prerelease versions as targets",
        )
        command_parser.add_argument(
            "--include",
            action="append",
            default=[],
            metavar="PATTERN",
            help="Only process packages matching PATTERN (repeatable)",
        )
        command_parser.add_argument(
            "--exclude",
            action="append",
            default=[],
            metavar="PATTERN",
            help="Skip packages matching PATTERN (repeatable)",
        )
        command_parser.add_argument(
            "--json",
            action="store_true",
            help="Print JSON instead of tables",
        )

    def _add_check_command(self, subparsers) -> None:
        check_parser = subparsers.add_parser(
            "check",
            help="Report outdated catalog dependencies",
        )
        self._add_common_options(check_parser)
        self._add_selection_options(check_parser)
        check_parser.add_argument(
            "--no-security",
            action="store_true",
            help="Skip vulnerability lookups",
        )

    def _add_update_command(self, subparsers) -> None:
        update_parser = subparsers.add_parser(
            "update",
            help="Update catalog dependencies in pnpm-workspace.yaml",
        )
        self._add_common_options(update_parser)
        self._add_selection_options(update_parser)
        update_parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would change without writing",
        )
        update_parser.add_argument(
            "--force",
            action="store_true",
            help="Apply updates of packages with unresolved version conflicts",
        )
        update_parser.add_argument(
            "--backup",
            action="store_true",
            help="Back up pnpm-workspace.yaml before writing",
        )

    def _add_security_command(self, subparsers) -> None:
        security_parser = subparsers.add_parser(
            "security",
            help="Query OSV advisories for a package version",
        )
        self._add_common_options(security_parser)
        security_parser.add_argument("name", help="npm package name")
        security_parser.add_argument("version", help="Exact version")
        security_parser.add_argument(
            "--ecosystem",
            action="store_true",
            help="Also query dependencies and monorepo siblings",
        )
        security_parser.add_argument(
            "--safe",
            action="store_true",
            help="Find the nearest newer version without high/critical issues",
        )
        security_parser.add_argument(
            "--summary",
            action="store_true",
            help="Print a compact plain-text summary instead of tables",
        )
        security_parser.add_argument(
            "--json",
            action="store_true",
            help="Print JSON instead of tables",
        )

    def _add_rollback_command(self, subparsers) -> None:
        rollback_parser = subparsers.add_parser(
            "rollback",
            help="Restore pnpm-workspace.yaml from its latest backup",
        )
        self._add_common_options(rollback_parser)
        rollback_parser.add_argument(
            "--list",
            action="store_true",
            help="List backups instead of restoring",
        )

    def _add_cache_command(self, subparsers) -> None:
        cache_parser = subparsers.add_parser(
            "cache",
            help="Inspect or clear the registry cache",
        )
        self._add_common_options(cache_parser)
        cache_parser.add_argument(
            "--clear",
            nargs="?",
            const="all",
            choices=(*CACHE_TYPES, "all"),
            help="Clear cached entries (all types when no type is given)",
        )
        cache_parser.add_argument(
            "--stats",
            action="store_true",
            help="Show cache statistics (default)",
        )
