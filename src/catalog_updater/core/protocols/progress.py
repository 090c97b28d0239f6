"""Progress reporting protocol for core services.

Core services report progress through this interface so they never import
the UI package. Pass NullProgressReporter (or nothing) when no display is
wanted.

Usage in services::

    from catalog_updater.core.protocols import (
        NullProgressReporter,
        ProgressReporter,
    )

    class CheckEngine:
        def __init__(self, progress: ProgressReporter | None = None):
            self.progress = progress or NullProgressReporter()

        async def check(self, names: list[str]) -> None:
            self.progress.start(len(names), "Checking packages")
            for i, name in enumerate(names, start=1):
                ...
                self.progress.advance(i, name)
            self.progress.finish()

"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressReporter(Protocol):
    """Abstract interface for reporting progress of a counted operation.

    Calls are synchronous: they happen from event-loop callbacks and must
    never suspend.
    """

    def is_active(self) -> bool:
        """Check if progress reporting is currently active.

        Returns:
            True if progress is being displayed, False otherwise.

        """
        ...

    def start(self, total: int, description: str) -> None:
        """Begin tracking an operation.

        Args:
            total: Number of units the operation will complete.
            description: Label shown next to the progress.

        """
        ...

    def advance(
        self, completed: int, item: str | None = None, *, failed: bool = False
    ) -> None:
        """Report the new completed count.

        Args:
            completed: Units completed so far.
            item: Name of the unit that just finished.
            failed: Whether that unit failed.

        """
        ...

    def finish(self, *, success: bool = True, message: str | None = None) -> None:
        """Mark the operation as done.

        Args:
            success: Whether the operation succeeded overall.
            message: Final status message.

        """
        ...


class NullProgressReporter:
    """No-op progress reporter for when progress display is disabled.

    Implements the null object pattern to eliminate None checks in core
    code.
    """

    def is_active(self) -> bool:
        return False

    def start(self, total: int, description: str) -> None:  # noqa: ARG002
        return None

    def advance(
        self,
        completed: int,  # noqa: ARG002
        item: str | None = None,  # noqa: ARG002
        *,
        failed: bool = False,  # noqa: ARG002
    ) -> None:
        return None

    def finish(
        self,
        *,
        success: bool = True,  # noqa: ARG002
        message: str | None = None,  # noqa: ARG002
    ) -> None:
        return None
