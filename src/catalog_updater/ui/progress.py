"""ASCII progress bar implementing the ProgressReporter protocol.

The bar is a single line redrawn in place on stderr so that stdout stays
clean for tables and JSON output.

Usage:

    from catalog_updater.ui.progress import AsciiProgressReporter

    progress = AsciiProgressReporter()
    engine = CheckEngine(..., progress=progress)

"""

from __future__ import annotations

import sys
import time
from typing import TextIO

BAR_WIDTH = 30
ITEM_WIDTH = 32
MIN_REDRAW_INTERVAL = 0.05


def render_bar(completed: int, total: int, width: int = BAR_WIDTH) -> str:
    """Render ``[#####-----]`` for a completed/total ratio.

    >>> render_bar(1, 2, 10)
    '[#####-----]'
    """
    ratio = completed / total if total > 0 else 1.0
    filled = min(width, int(round(ratio * width)))
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def _truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


class AsciiProgressReporter:
    """Single-line text progress bar."""

    def __init__(
        self, stream: TextIO | None = None, *, enabled: bool | None = None
    ) -> None:
        """Initialize the reporter.

        Args:
            stream: Output stream (stderr by default)
            enabled: Force drawing on or off; defaults to whether the
                stream is a terminal

        """
        self.stream = stream or sys.stderr
        if enabled is None:
            enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self.enabled = enabled
        self._active = False
        self._total = 0
        self._completed = 0
        self._failed = 0
        self._description = ""
        self._last_draw = 0.0

    def is_active(self) -> bool:
        return self._active

    def start(self, total: int, description: str) -> None:
        self._active = True
        self._total = total
        self._completed = 0
        self._failed = 0
        self._description = description
        self._draw(force=True)

    def advance(
        self, completed: int, item: str | None = None, *, failed: bool = False
    ) -> None:
        if not self._active:
            return
        self._completed = completed
        if failed:
            self._failed += 1
        self._draw(item, force=completed >= self._total)

    def finish(self, *, success: bool = True, message: str | None = None) -> None:
        if not self._active:
            return
        self._active = False
        if not self.enabled:
            return
        status = "done" if success else f"done with {self._failed} failed"
        line = message or self._description
        self._write(f"\r\033[K{line} ({status})\n")

    def format_line(self, item: str | None = None) -> str:
        """Format the current progress line without drawing it."""
        line = (
            f"{self._description} {render_bar(self._completed, self._total)} "
            f"{self._completed}/{self._total}"
        )
        if self._failed:
            line += f" ({self._failed} failed)"
        if item:
            line += f" {_truncate(item, ITEM_WIDTH)}"
        return line

    def _draw(self, item: str | None = None, *, force: bool = False) -> None:
        if not self.enabled:
            return
        now = time.monotonic()
        if not force and now - self._last_draw < MIN_REDRAW_INTERVAL:
            return
        self._last_draw = now
        self._write(f"\r\033[K{self.format_line(item)}")

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()
