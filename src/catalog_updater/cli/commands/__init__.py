"""Command handlers for the pcu CLI."""

from .base import BaseCommandHandler
from .cache import CacheHandler
from .check import CheckHandler
from .rollback import RollbackHandler
from .security import SecurityHandler
from .update import UpdateHandler

__all__ = [
    "BaseCommandHandler",
    "CacheHandler",
    "CheckHandler",
    "RollbackHandler",
    "SecurityHandler",
    "UpdateHandler",
]
