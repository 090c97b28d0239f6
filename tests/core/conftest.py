"""Fixtures shared by the core tests."""

from collections.abc import AsyncGenerator

import aiohttp
import pytest
import pytest_asyncio

from catalog_updater.core.cache import ResponseCache


class RecordingProgressReporter:
    """Progress reporter that records every call."""

    def __init__(self) -> None:
        self.started: list[tuple[int, str]] = []
        self.advanced: list[tuple[int, str | None, bool]] = []
        self.finished: list[tuple[bool, str | None]] = []

    def is_active(self) -> bool:
        return True

    def start(self, total: int, description: str) -> None:
        self.started.append((total, description))

    def advance(
        self, completed: int, item: str | None = None, *, failed: bool = False
    ) -> None:
        self.advanced.append((completed, item, failed))

    def finish(self, *, success: bool = True, message: str | None = None) -> None:
        self.finished.append((success, message))


@pytest.fixture
def progress() -> RecordingProgressReporter:
    return RecordingProgressReporter()


@pytest_asyncio.fixture
async def session() -> AsyncGenerator[aiohttp.ClientSession, None]:
    async with aiohttp.ClientSession() as client_session:
        yield client_session


@pytest_asyncio.fixture
async def registry_cache() -> AsyncGenerator[ResponseCache, None]:
    cache: ResponseCache = ResponseCache("registry", cleanup_interval=0)
    yield cache
    await cache.destroy()
