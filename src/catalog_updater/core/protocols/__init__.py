"""Core protocols for dependency injection and interface abstraction.

Available protocols:
    ProgressReporter: Abstract interface for progress reporting

Usage:
    from catalog_updater.core.protocols import ProgressReporter

"""

from .progress import NullProgressReporter, ProgressReporter

__all__ = ["NullProgressReporter", "ProgressReporter"]
