"""In-memory response cache with TTL, capacity limits and disk persistence.

Two instances are used at runtime:

- the registry cache (disk backed, 10 MB / 500 entries) holds version
  lists, package metadata and security reports
- the workspace cache (memory only, 5 minutes, 5 MB / 200 entries) holds
  parsed pnpm-workspace.yaml documents

Expiry is tracked in a heap ordered by expiry time, so a cleanup tick only
touches expired entries. Re-sets and deletes leave stale heap nodes which
are discarded lazily when they reach the top.

Disk persistence is fire-and-forget: each entry is written to
``<dir>/<md5(key)>.json`` and the key list to ``index.json``. Disk errors
are logged at debug level and never raised.
"""

import asyncio
import contextlib
import hashlib
import heapq
import inspect
import shutil
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

import orjson

from catalog_updater.constants import (
    CACHE_CLEANUP_INTERVAL_SECONDS,
    CACHE_DEFAULT_MAX_ENTRIES,
    CACHE_DEFAULT_MAX_SIZE_BYTES,
    CACHE_DEFAULT_TTL_SECONDS,
    CACHE_INDEX_FILE,
    REGISTRY_CACHE_MAX_ENTRIES,
    REGISTRY_CACHE_MAX_SIZE_BYTES,
    REGISTRY_CACHE_NAME,
    WORKSPACE_CACHE_MAX_ENTRIES,
    WORKSPACE_CACHE_MAX_SIZE_BYTES,
    WORKSPACE_CACHE_NAME,
    WORKSPACE_CACHE_TTL_SECONDS,
)
from catalog_updater.exceptions import CacheDestroyedError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Size assumed for values orjson cannot encode
_UNSERIALIZABLE_SIZE = 1000


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its bookkeeping."""

    key: str
    value: T
    timestamp: float
    ttl: float
    size: int
    sequence: int = field(default=0, compare=False)

    @property
    def expires_at(self) -> float:
        return self.timestamp + self.ttl

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl

    def to_disk(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "timestamp": self.timestamp,
            "ttl": self.ttl,
            "size": self.size,
        }


def estimate_size(value: Any) -> int:
    """Estimate the in-memory size of a value as 2 bytes per JSON char."""
    try:
        return len(orjson.dumps(value).decode("utf-8")) * 2
    except TypeError:
        return _UNSERIALIZABLE_SIZE


class ResponseCache(Generic[T]):
    """Key/value cache with per-entry TTL and insertion-order eviction.

    Usage:
        cache = ResponseCache("registry", persist_dir=Path("~/.config/pcu/cache"))
        await cache.start()
        cache.set("versions:lodash", payload, ttl=600)
        ...
        await cache.destroy()

    All bookkeeping is synchronous, so no locks are needed on the event
    loop. Timestamps and TTLs are in seconds.
    """

    def __init__(
        self,
        name: str,
        *,
        default_ttl: float = CACHE_DEFAULT_TTL_SECONDS,
        max_size: int = CACHE_DEFAULT_MAX_SIZE_BYTES,
        max_entries: int = CACHE_DEFAULT_MAX_ENTRIES,
        cleanup_interval: float = CACHE_CLEANUP_INTERVAL_SECONDS,
        persist_dir: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            name: Instance name; also the disk subdirectory
            default_ttl: TTL used when set() gets none
            max_size: Aggregate estimated size limit in bytes
            max_entries: Entry count limit
            cleanup_interval: Seconds between expiry sweeps after start()
            persist_dir: Parent directory for disk persistence; None keeps
                the cache in memory only
            clock: Time source returning epoch seconds

        """
        self.name = name
        self.default_ttl = default_ttl
        self.max_size = max_size
        self.max_entries = max_entries
        self.cleanup_interval = cleanup_interval
        self.cache_dir = persist_dir / name if persist_dir else None
        self._clock = clock

        self._entries: dict[str, CacheEntry[T]] = {}
        self._expiry_heap: list[tuple[float, int, str]] = []
        self._sequence = 0
        self._total_size = 0
        self._hits = 0
        self._misses = 0

        self._destroyed = False
        self._cleanup_task: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None
        self._pending_writes: set[asyncio.Task] = set()

    @property
    def persistent(self) -> bool:
        return self.cache_dir is not None

    def _check_alive(self) -> None:
        if self._destroyed:
            raise CacheDestroyedError(
                "cache used after destroy()", self.name
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> T | None:
        """Return a live value, or None (counted as a miss).

        Raises:
            CacheDestroyedError: If the cache was destroyed

        """
        self._check_alive()
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired(self._clock()):
            self._remove(key)
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Store a value, evicting the oldest insertions to make room.

        Args:
            key: Cache key
            value: Value to store; must be JSON-serializable to persist
            ttl: Seconds to live (defaults to default_ttl)

        Raises:
            CacheDestroyedError: If the cache was destroyed

        """
        self._check_alive()
        entry_ttl = self.default_ttl if ttl is None else ttl
        size = estimate_size(value)
        if size > self.max_size:
            logger.debug(
                "Not caching %s in %s: %d bytes exceeds limit",
                key,
                self.name,
                size,
            )
            return

        if key in self._entries:
            self._drop(key)
        self._ensure_capacity(size)

        self._sequence += 1
        entry = CacheEntry(
            key=key,
            value=value,
            timestamp=self._clock(),
            ttl=entry_ttl,
            size=size,
            sequence=self._sequence,
        )
        self._insert(entry)

        if self.persistent:
            self._schedule_write(self._write_entry, entry)

    def has(self, key: str) -> bool:
        """Check for a live entry without touching hit/miss counters."""
        self._check_alive()
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            self._remove(key)
            return False
        return True

    def delete(self, key: str) -> bool:
        self._check_alive()
        if key not in self._entries:
            return False
        self._remove(key)
        return True

    def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        self._check_alive()
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            self._remove(key)
        return len(keys)

    def clear(self) -> None:
        """Remove all entries and reset statistics."""
        self._check_alive()
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._entries.clear()
        self._expiry_heap.clear()
        self._total_size = 0
        self._hits = 0
        self._misses = 0
        if self.persistent:
            self._schedule_write(self._clear_disk)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[T] | T],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value or compute, store and return it.

        Concurrent misses on the same key both run the factory; the last
        write wins.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        if inspect.isawaitable(value):
            value = await value
        self.set(key, value, ttl)
        return value

    def get_stats(self) -> dict[str, float | int]:
        """Return entry count, total size and hit/miss statistics."""
        self._check_alive()
        total = self._hits + self._misses
        return {
            "total_entries": len(self._entries),
            "total_size": self._total_size,
            "hit_rate": self._hits / total if total else 0.0,
            "miss_rate": self._misses / total if total else 0.0,
            "hits": self._hits,
            "misses": self._misses,
        }

    def cleanup(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed

        """
        self._check_alive()
        now = self._clock()
        removed = 0
        while self._expiry_heap and self._expiry_heap[0][0] < now:
            _, sequence, key = heapq.heappop(self._expiry_heap)
            entry = self._entries.get(key)
            if entry is None or entry.sequence != sequence:
                continue
            if entry.is_expired(now):
                self._remove(key)
                removed += 1
        if removed:
            logger.debug("Removed %d expired entries from %s", removed, self.name)
        return removed

    def keys(self) -> list[str]:
        """Return the keys currently held, expired or not."""
        self._check_alive()
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the cleanup tick and, when persistent, load the index."""
        self._check_alive()
        if self.persistent and self._load_task is None:
            self._load_task = asyncio.create_task(self._load_from_disk())
        if self._cleanup_task is None and self.cleanup_interval > 0:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def flush(self) -> None:
        """Wait for the index load and all pending disk writes."""
        if self._load_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._load_task
        while self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    async def destroy(self) -> None:
        """Stop background work and drop all entries.

        Pending disk writes are allowed to finish first. Any later call
        raises CacheDestroyedError.
        """
        if self._destroyed:
            return
        for task in (self._cleanup_task, self._load_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._cleanup_task = None
        self._load_task = None
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)
        self._entries.clear()
        self._expiry_heap.clear()
        self._total_size = 0
        self._destroyed = True
        logger.debug("Cache %s destroyed", self.name)

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _insert(self, entry: CacheEntry[T]) -> None:
        self._entries[entry.key] = entry
        self._total_size += entry.size
        heapq.heappush(
            self._expiry_heap, (entry.expires_at, entry.sequence, entry.key)
        )

    def _drop(self, key: str) -> CacheEntry[T] | None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._total_size -= entry.size
        return entry

    def _remove(self, key: str) -> None:
        if self._drop(key) is not None and self.persistent:
            self._schedule_write(self._delete_entry_file, key)

    def _ensure_capacity(self, incoming_size: int) -> None:
        while self._entries and (
            len(self._entries) >= self.max_entries
            or self._total_size + incoming_size > self.max_size
        ):
            oldest = next(iter(self._entries))
            logger.debug("Evicting %s from %s", oldest, self.name)
            self._remove(oldest)

    # ------------------------------------------------------------------
    # Disk persistence
    # ------------------------------------------------------------------

    def _entry_path(self, key: str) -> Path:
        digest = hashlib.md5(key.encode("utf-8"), usedforsecurity=False)
        return self.cache_dir / f"{digest.hexdigest()}.json"

    def _schedule_write(self, func: Callable[..., None], *args: Any) -> None:
        """Run a disk operation off the event loop without awaiting it.

        Outside a running loop the operation runs inline.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            func(*args, keys=list(self._entries))
            return
        task = loop.create_task(self._write_after_load(func, *args))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_after_load(self, func: Callable[..., None], *args: Any) -> None:
        # The index must not be rewritten while it is still being restored
        if self._load_task is not None and not self._load_task.done():
            await asyncio.wait({self._load_task})
        await asyncio.to_thread(func, *args, keys=list(self._entries))

    def _write_index(self, keys: list[str]) -> None:
        index = {"keys": keys, "lastUpdated": self._clock()}
        (self.cache_dir / CACHE_INDEX_FILE).write_bytes(orjson.dumps(index))

    def _write_entry(self, entry: CacheEntry[T], keys: list[str]) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path = self._entry_path(entry.key)
            temp_path = path.with_suffix(".tmp")
            temp_path.write_bytes(orjson.dumps(entry.to_disk()))
            temp_path.replace(path)
            self._write_index(keys)
        except (OSError, TypeError) as e:
            logger.debug("Failed to persist %s: %s", entry.key, e)

    def _delete_entry_file(self, key: str, keys: list[str]) -> None:
        try:
            self._entry_path(key).unlink(missing_ok=True)
            if self.cache_dir.exists():
                self._write_index(keys)
        except OSError as e:
            logger.debug("Failed to delete cache file for %s: %s", key, e)

    def _clear_disk(self, keys: list[str]) -> None:
        try:
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
        except OSError as e:
            logger.debug("Failed to clear cache dir %s: %s", self.cache_dir, e)

    def _read_disk_entries(self) -> list[CacheEntry[T]]:
        index_path = self.cache_dir / CACHE_INDEX_FILE
        if not index_path.exists():
            return []
        try:
            index = orjson.loads(index_path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.debug("Ignoring unreadable cache index %s: %s", index_path, e)
            return []
        if not isinstance(index, dict) or not isinstance(index.get("keys"), list):
            logger.debug("Ignoring malformed cache index %s", index_path)
            return []

        now = self._clock()
        loaded: list[CacheEntry[T]] = []
        for key in index["keys"]:
            if not isinstance(key, str):
                continue
            path = self._entry_path(key)
            try:
                data = orjson.loads(path.read_bytes())
                entry = CacheEntry(
                    key=data["key"],
                    value=data["value"],
                    timestamp=float(data["timestamp"]),
                    ttl=float(data["ttl"]),
                    size=int(data["size"]),
                )
            except (OSError, KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping cache entry %s: %s", key, e)
                continue
            if entry.key == key and not entry.is_expired(now):
                loaded.append(entry)
        return loaded

    async def _load_from_disk(self) -> None:
        """Restore persisted entries that still fit next to the live ones.

        Restored entries were written before anything set since start(),
        so they are placed ahead of live entries in eviction order.
        """
        entries = await asyncio.to_thread(self._read_disk_entries)
        if self._destroyed:
            return
        room_entries = self.max_entries - len(self._entries)
        room_size = self.max_size - self._total_size
        restored: list[CacheEntry[T]] = []
        # Newest first so the freshest entries win when room runs out
        for entry in sorted(entries, key=lambda e: e.timestamp, reverse=True):
            if entry.key in self._entries:
                continue
            if len(restored) >= room_entries or entry.size > room_size:
                break
            room_size -= entry.size
            restored.append(entry)

        live = self._entries
        self._entries = {}
        for entry in reversed(restored):
            self._sequence += 1
            entry.sequence = self._sequence
            self._insert(entry)
        self._entries.update(live)
        logger.debug("Restored %d entries into %s cache", len(restored), self.name)


def create_registry_cache(
    cache_dir: Path | None, default_ttl: float = CACHE_DEFAULT_TTL_SECONDS
) -> ResponseCache[Any]:
    """Create the disk-backed registry response cache.

    Args:
        cache_dir: Parent cache directory; None keeps it in memory
        default_ttl: Fallback TTL in seconds

    """
    return ResponseCache(
        REGISTRY_CACHE_NAME,
        default_ttl=default_ttl,
        max_size=REGISTRY_CACHE_MAX_SIZE_BYTES,
        max_entries=REGISTRY_CACHE_MAX_ENTRIES,
        persist_dir=cache_dir,
    )


def create_workspace_cache() -> ResponseCache[Any]:
    """Create the in-memory workspace document cache."""
    return ResponseCache(
        WORKSPACE_CACHE_NAME,
        default_ttl=WORKSPACE_CACHE_TTL_SECONDS,
        max_size=WORKSPACE_CACHE_MAX_SIZE_BYTES,
        max_entries=WORKSPACE_CACHE_MAX_ENTRIES,
    )
