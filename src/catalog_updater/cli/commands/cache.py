"""Cache command coordinator."""

from argparse import Namespace

from catalog_updater.logger import get_logger
from catalog_updater.ui.display import print_cache_stats

from .base import BaseCommandHandler

logger = get_logger(__name__)


class CacheHandler(BaseCommandHandler):
    """Show or clear the persisted registry cache."""

    async def execute(self, args: Namespace) -> int:
        # Wait for the persisted index to load before counting or clearing
        await self.container.registry_cache.flush()
        client = self.container.registry_client

        if args.clear:
            removed = client.clear_cache_by_type(args.clear)
            print(f"Removed {removed} {args.clear} cache entries")  # noqa: T201
            if not args.stats:
                return 0

        print_cache_stats(client.get_cache_stats())
        return 0
