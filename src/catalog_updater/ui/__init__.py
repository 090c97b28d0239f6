"""Console rendering for the command line interface."""

from catalog_updater.ui.display import (
    format_table,
    print_backups,
    print_cache_stats,
    print_json,
    print_outdated_report,
    print_security_report,
    print_update_plan,
    print_update_result,
)
from catalog_updater.ui.progress import AsciiProgressReporter

__all__ = [
    "AsciiProgressReporter",
    "format_table",
    "print_backups",
    "print_cache_stats",
    "print_json",
    "print_outdated_report",
    "print_security_report",
    "print_update_plan",
    "print_update_result",
]
