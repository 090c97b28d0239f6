"""Bounded-parallelism task runner with optional start-rate limiting."""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from catalog_updater.logger import get_logger

logger = get_logger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")

ProgressCallback = Callable[[int, int, object, BaseException | None], None]


@dataclass(frozen=True)
class TaskOutcome(Generic[ItemT, ResultT]):
    """Result of one item: exactly one of result/error is meaningful."""

    item: ItemT
    result: ResultT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _StartRateLimiter:
    """Sliding-window limiter on operation starts."""

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._starts: deque[float] = deque()

    async def acquire(self) -> None:
        while True:
            now = self._clock()
            while self._starts and now - self._starts[0] >= self.window:
                self._starts.popleft()
            if len(self._starts) < self.limit:
                self._starts.append(now)
                return
            await asyncio.sleep(self.window - (now - self._starts[0]))


class ConcurrencyController:
    """Run an async operation over many items with bounded parallelism.

    Every item is attempted exactly once. A failing item never cancels its
    siblings; its exception is captured in the TaskOutcome instead.
    """

    def __init__(
        self,
        concurrency: int,
        rate_limit: int | None = None,
        rate_window: float = 1.0,
    ) -> None:
        """Initialize the controller.

        Args:
            concurrency: Maximum operations in flight
            rate_limit: Maximum operation starts per rate_window, or None
            rate_window: Rate window in seconds

        """
        if concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)
        self.concurrency = concurrency
        self.rate_limit = rate_limit
        self.rate_window = rate_window

    async def run(
        self,
        items: Iterable[ItemT],
        operation: Callable[[ItemT], Awaitable[ResultT]],
        on_progress: ProgressCallback | None = None,
    ) -> list[TaskOutcome[ItemT, ResultT]]:
        """Run operation for every item.

        Args:
            items: Items to process
            operation: Coroutine function applied to each item
            on_progress: Called once per finished item with
                (completed, total, item, error)

        Returns:
            Outcomes in input order

        """
        item_list = list(items)
        total = len(item_list)
        semaphore = asyncio.Semaphore(self.concurrency)
        limiter = (
            _StartRateLimiter(self.rate_limit, self.rate_window)
            if self.rate_limit
            else None
        )
        completed = 0

        async def run_one(item: ItemT) -> TaskOutcome[ItemT, ResultT]:
            nonlocal completed
            async with semaphore:
                if limiter is not None:
                    await limiter.acquire()
                try:
                    result = await operation(item)
                except Exception as e:
                    logger.debug("Operation failed for %s: %s", item, e)
                    outcome = TaskOutcome(item=item, error=e)
                else:
                    outcome = TaskOutcome(item=item, result=result)
            completed += 1
            if on_progress is not None:
                on_progress(completed, total, item, outcome.error)
            return outcome

        return list(await asyncio.gather(*(run_one(i) for i in item_list)))
