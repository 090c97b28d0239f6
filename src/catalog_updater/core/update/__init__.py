"""Check, plan and execute catalog updates."""

from catalog_updater.core.update.check import (
    CheckEngine,
    CheckOptions,
    ConcurrentProgressTracker,
)
from catalog_updater.core.update.executor import ExecuteOptions, UpdateExecutor
from catalog_updater.core.update.planner import PlanOptions, UpdatePlanner

__all__ = [
    "CheckEngine",
    "CheckOptions",
    "ConcurrentProgressTracker",
    "ExecuteOptions",
    "PlanOptions",
    "UpdateExecutor",
    "UpdatePlanner",
]
