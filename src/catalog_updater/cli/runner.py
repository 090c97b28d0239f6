"""CLI runner for pnpm-catalog-updater.

Orchestrates the execution of CLI commands by routing parsed
arguments to the appropriate command handlers.
"""

from argparse import Namespace
from collections.abc import Sequence

from catalog_updater import __version__
from catalog_updater.cli.commands import (
    BaseCommandHandler,
    CacheHandler,
    CheckHandler,
    RollbackHandler,
    SecurityHandler,
    UpdateHandler,
)
from catalog_updater.cli.container import ServiceContainer
from catalog_updater.cli.parser import CLIParser
from catalog_updater.config import ConfigManager
from catalog_updater.core.protocols.progress import ProgressReporter
from catalog_updater.logger import (
    get_logger,
    set_console_level,
    update_logger_from_config,
)
from catalog_updater.ui.progress import AsciiProgressReporter

logger = get_logger(__name__)

COMMAND_HANDLERS: dict[str, type[BaseCommandHandler]] = {
    "check": CheckHandler,
    "update": UpdateHandler,
    "security": SecurityHandler,
    "rollback": RollbackHandler,
    "cache": CacheHandler,
}


class CLIRunner:
    """CLI command runner and orchestrator."""

    def __init__(
        self,
        config_manager: ConfigManager | None = None,
        progress_reporter: ProgressReporter | None = None,
    ) -> None:
        """Initialize CLI runner with shared dependencies.

        Args:
            config_manager: Configuration manager (default one if omitted)
            progress_reporter: Progress display (ASCII bar on stderr if
                omitted)

        """
        self.config_manager = config_manager or ConfigManager()
        self.global_config = self.config_manager.load_global_config()
        self.progress = progress_reporter or AsciiProgressReporter()
        update_logger_from_config(self.config_manager)

    async def run(self, argv: Sequence[str] | None = None) -> int:
        """Parse arguments and run the selected command.

        Args:
            argv: Arguments to parse (sys.argv[1:] when None)

        Returns:
            Process exit code

        Raises:
            CatalogUpdaterError: Propagated from the command handler

        """
        args = CLIParser(self.global_config).parse_args(argv)

        if args.version:
            print(__version__)  # noqa: T201
            return 0

        if not args.command:
            print("No command specified. Use --help.")  # noqa: T201
            return 1

        return await self._execute_command(args)

    async def _execute_command(self, args: Namespace) -> int:
        """Execute the specified command with the appropriate handler.

        Args:
            args: Parsed command-line arguments namespace

        Returns:
            Exit code reported by the handler

        """
        handler_cls = COMMAND_HANDLERS.get(args.command)
        if handler_cls is None:
            print(f"Unknown command: {args.command}")  # noqa: T201
            return 1

        container = ServiceContainer(
            self.config_manager,
            self.progress,
            workspace_path=args.workspace,
        )
        previous_level = set_console_level("DEBUG") if args.verbose else None
        logger.debug("Running %s in %s", args.command, args.workspace)
        try:
            await container.start()
            return await handler_cls(container).execute(args)
        finally:
            await container.cleanup()
            if previous_level is not None:
                set_console_level(previous_level)
