"""Main CLI entry point for pnpm-catalog-updater.

This module provides the minimal entry point for the command-line
interface, delegating all functionality to specialized command
handlers and CLI components.
"""

import sys

import uvloop

from catalog_updater.cli.runner import CLIRunner
from catalog_updater.exceptions import CatalogUpdaterError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)


async def async_main() -> int:
    """Run the CLI asynchronously.

    Returns:
        Process exit code

    """
    logger.info("CLI started")
    runner = CLIRunner()
    try:
        exit_code = await runner.run()
    except Exception:
        logger.exception("CLI encountered an error")
        raise
    logger.debug("CLI completed with exit code %d", exit_code)
    return exit_code


def main() -> None:
    """Run the CLI application.

    Run the CLI on a uvloop event loop. Library errors and
    cancellation exit with status 1.
    """
    try:
        exit_code = uvloop.run(async_main())
    except KeyboardInterrupt:
        logger.info("CLI cancelled by user")
        print("\nOperation cancelled by user", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    except CatalogUpdaterError as e:
        print(f"Error: {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
