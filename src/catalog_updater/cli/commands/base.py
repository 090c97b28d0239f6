"""Base command handler for pcu CLI commands.

This module provides the abstract base class that all command handlers
inherit from, ensuring a consistent interface across commands.
"""

from abc import ABC, abstractmethod
from argparse import Namespace

from catalog_updater.cli.container import ServiceContainer
from catalog_updater.logger import get_logger

logger = get_logger(__name__)


class BaseCommandHandler(ABC):
    """Abstract base class for all command handlers.

    Handlers receive a ServiceContainer and pull the services they need
    from it. CLIRunner acts as the composition root and owns the
    container lifecycle.

    Usage:
        container = ServiceContainer(ConfigManager(), workspace_path=path)
        handler = CheckHandler(container)
        exit_code = await handler.execute(args)
    """

    def __init__(self, container: ServiceContainer) -> None:
        """Initialize the command handler.

        Args:
            container: Service container for this command run

        """
        self.container = container
        self.config_manager = container.config

    @abstractmethod
    async def execute(self, args: Namespace) -> int:
        """Execute the command with the given arguments.

        Args:
            args: Parsed command-line arguments

        Returns:
            Process exit code

        """
