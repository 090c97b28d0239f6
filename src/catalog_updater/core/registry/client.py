"""npm registry client.

Handles packument fetches, version resolution, the npm audit endpoint and
package search. Every request goes through a retry loop with exponential
backoff; results are cached as plain JSON in the injected registry cache.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any
from urllib.parse import quote

import aiohttp
import orjson

from catalog_updater.config.npmrc import NpmrcConfig, normalize_registry_url
from catalog_updater.constants import (
    ABBREVIATED_METADATA_ACCEPT,
    AUDIT_ENDPOINT,
    DEFAULT_CACHE_VALIDITY_MINUTES,
    DEFAULT_CONCURRENCY,
    DEFAULT_RATE_LIMIT,
    DEFAULT_REGISTRY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    HTTP_NOT_FOUND,
    PACKAGE_INFO_TTL_MULTIPLIER,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_DELAY_MS,
    SEARCH_ENDPOINT,
    SEARCH_RESULT_SIZE,
    SECURITY_TTL_MULTIPLIER,
    VERSIONS_TTL_MULTIPLIER,
)
from catalog_updater.core.cache import ResponseCache
from catalog_updater.core.concurrency import ConcurrencyController
from catalog_updater.core.registry.auth import RegistryAuthManager
from catalog_updater.core.registry.models import (
    BatchQueryResult,
    PackageInfo,
    PackageVersions,
    SecurityReport,
    Vulnerability,
)
from catalog_updater.domain.version import Version, VersionRange
from catalog_updater.exceptions import (
    NoSatisfyingVersionError,
    PackageNotFoundError,
    RegistryError,
)
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

CACHE_TYPES = ("versions", "info", "security")

BatchProgressCallback = Callable[[int, int, str], None]

_EPOCH = datetime.min.isoformat()


class RegistryClient:
    """Async client for an npm-compatible registry."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        npmrc: NpmrcConfig | None = None,
        cache: ResponseCache | None = None,
        *,
        registry: str | None = None,
        auth_manager: RegistryAuthManager | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
        cache_validity_minutes: int = DEFAULT_CACHE_VALIDITY_MINUTES,
        rate_limit: int | None = DEFAULT_RATE_LIMIT,
        retry_base_delay_ms: int = RETRY_BASE_DELAY_MS,
    ) -> None:
        """Initialize the registry client.

        Args:
            session: Shared aiohttp session
            npmrc: Resolved npmrc configuration
            cache: Registry response cache; None disables caching
            registry: Explicit registry overriding the npmrc default
            auth_manager: Token resolver (built from npmrc when omitted)
            concurrency: Parallel requests for batch queries
            timeout: Per-request timeout in seconds
            retries: Attempts per request
            cache_validity_minutes: Base TTL; 0 disables caching
            rate_limit: Request starts per second for batch queries
            retry_base_delay_ms: First backoff delay

        """
        npmrc = npmrc or NpmrcConfig()
        if registry:
            normalized = normalize_registry_url(registry)
            if normalized != DEFAULT_REGISTRY:
                npmrc = replace(npmrc, registry=normalized)
        self.npmrc = npmrc
        self.session = session
        self.cache = cache
        self.auth_manager = auth_manager or RegistryAuthManager(npmrc)
        self.concurrency = max(1, concurrency)
        self.retries = max(1, retries)
        self.rate_limit = rate_limit
        self.cache_validity_minutes = cache_validity_minutes
        self.retry_base_delay_ms = retry_base_delay_ms
        self._timeout = aiohttp.ClientTimeout(
            total=timeout, sock_connect=timeout
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def caching_enabled(self) -> bool:
        return self.cache is not None and self.cache_validity_minutes > 0

    def _ttl(self, multiplier: int) -> float:
        return self.cache_validity_minutes * multiplier * 60

    def _cache_get(self, key: str) -> Any | None:
        if not self.caching_enabled:
            return None
        return self.cache.get(key)

    def _cache_set(self, key: str, value: Any, multiplier: int) -> None:
        if self.caching_enabled:
            self.cache.set(key, value, ttl=self._ttl(multiplier))

    def _package_url(self, package_name: str, *parts: str) -> str:
        registry = self.npmrc.registry_for(package_name)
        url = registry + quote(package_name, safe="@")
        for part in parts:
            url += "/" + quote(part, safe="")
        return url

    def _backoff_seconds(self, attempt: int) -> float:
        delay_ms = min(
            self.retry_base_delay_ms * 2 ** (attempt - 1), RETRY_MAX_DELAY_MS
        )
        return delay_ms / 1000

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        *,
        package_name: str,
        operation: str,
        registry: str,
        accept: str = "application/json",
        body: Any | None = None,
    ) -> Any:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method
            url: Request URL
            package_name: Package the request is about
            operation: Client operation name for error context
            registry: Registry base URL, used for auth
            accept: Accept header value
            body: JSON body for POST requests

        Returns:
            Decoded JSON response

        Raises:
            PackageNotFoundError: On HTTP 404
            RegistryError: When every attempt failed

        """
        headers = self.auth_manager.apply_auth({"Accept": accept}, registry)
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = orjson.dumps(body)

        last_error: Exception | None = None
        status_code: int | None = None
        for attempt in range(1, self.retries + 1):
            try:
                async with self.session.request(
                    method, url, headers=headers, data=data, timeout=self._timeout
                ) as response:
                    if response.status == HTTP_NOT_FOUND:
                        raise PackageNotFoundError(package_name, registry)
                    response.raise_for_status()
                    return orjson.loads(await response.read())
            except (aiohttp.ClientError, TimeoutError, orjson.JSONDecodeError) as e:
                last_error = e
                if isinstance(e, aiohttp.ClientResponseError):
                    status_code = e.status
                logger.warning(
                    "Attempt %d/%d for %s failed: %s",
                    attempt,
                    self.retries,
                    url,
                    e,
                )
                if attempt < self.retries:
                    await asyncio.sleep(self._backoff_seconds(attempt))

        raise RegistryError(
            package_name,
            operation,
            f"failed after {self.retries} attempts: {last_error}",
            status_code,
        )

    # ------------------------------------------------------------------
    # Version queries
    # ------------------------------------------------------------------

    async def get_package_versions(self, package_name: str) -> PackageVersions:
        """Fetch the published versions of a package.

        Uses the abbreviated packument, so ``time`` is usually empty.

        Raises:
            PackageNotFoundError: If the registry does not know the package
            RegistryError: If the request keeps failing

        """
        registry = self.npmrc.registry_for(package_name)
        cache_key = f"versions:{registry}:{package_name}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return PackageVersions.from_dict(cached)

        data = await self._execute_with_retry(
            "GET",
            self._package_url(package_name),
            package_name=package_name,
            operation="get_package_versions",
            registry=registry,
            accept=ABBREVIATED_METADATA_ACCEPT,
        )
        result = PackageVersions.from_packument(package_name, data)
        self._cache_set(cache_key, result.to_dict(), VERSIONS_TTL_MULTIPLIER)
        return result

    async def get_package_info(self, package_name: str) -> PackageInfo:
        """Fetch the full packument metadata of a package."""
        registry = self.npmrc.registry_for(package_name)
        cache_key = f"info:{registry}:{package_name}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return PackageInfo.from_dict(cached)

        data = await self._execute_with_retry(
            "GET",
            self._package_url(package_name),
            package_name=package_name,
            operation="get_package_info",
            registry=registry,
        )
        result = PackageInfo.from_packument(package_name, data)
        self._cache_set(cache_key, result.to_dict(), PACKAGE_INFO_TTL_MULTIPLIER)
        return result

    async def get_latest_version(self, package_name: str) -> Version:
        versions = await self.get_package_versions(package_name)
        return Version.parse(versions.latest_version)

    async def get_greatest_version(
        self, package_name: str, version_range: str | VersionRange | None = None
    ) -> Version:
        """Resolve the highest version satisfying a range.

        Args:
            package_name: Package to resolve
            version_range: Range to satisfy; None returns the latest tag

        Returns:
            Resolved version

        Raises:
            NoSatisfyingVersionError: If no published version matches

        """
        versions = await self.get_package_versions(package_name)
        if version_range is None:
            return Version.parse(versions.latest_version)

        if isinstance(version_range, str):
            version_range = VersionRange.parse(version_range)
        for text in versions.versions:
            candidate = Version.parse(text)
            if version_range.includes(candidate):
                return candidate
        raise NoSatisfyingVersionError(package_name, str(version_range))

    async def get_newest_versions(
        self, package_name: str, count: int = 10
    ) -> list[Version]:
        """Return the most recently published versions, newest first."""
        info = await self.get_package_info(package_name)
        ranked = sorted(
            info.versions,
            key=lambda v: info.time.get(v, _EPOCH),
            reverse=True,
        )
        return [Version.parse(v) for v in ranked[:count]]

    async def get_version_manifest(
        self, package_name: str, version: str
    ) -> dict[str, Any]:
        """Fetch the manifest of one published version."""
        registry = self.npmrc.registry_for(package_name)
        return await self._execute_with_retry(
            "GET",
            self._package_url(package_name, version),
            package_name=package_name,
            operation="get_version_manifest",
            registry=registry,
        )

    async def search(
        self, text: str, size: int = SEARCH_RESULT_SIZE
    ) -> list[dict[str, Any]]:
        """Search the registry.

        Returns:
            The ``package`` objects of the search results

        """
        registry = self.npmrc.registry
        url = f"{registry}{SEARCH_ENDPOINT}?text={quote(text)}&size={size}"
        data = await self._execute_with_retry(
            "GET",
            url,
            package_name=text,
            operation="search",
            registry=registry,
        )
        return [
            obj["package"]
            for obj in data.get("objects", [])
            if isinstance(obj, dict) and isinstance(obj.get("package"), dict)
        ]

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------

    async def check_security_vulnerabilities(
        self, package_name: str, version: str
    ) -> SecurityReport:
        """Query the npm audit endpoint for one package version.

        Never raises: any failure yields an empty report.
        """
        cache_key = f"security:{package_name}@{version}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return SecurityReport.from_dict(cached)

        registry = self.npmrc.registry_for(package_name)
        body = {
            "name": package_name,
            "version": version,
            "requires": {package_name: version},
            "dependencies": {package_name: {"version": version}},
        }
        try:
            data = await self._execute_with_retry(
                "POST",
                registry + AUDIT_ENDPOINT,
                package_name=package_name,
                operation="check_security_vulnerabilities",
                registry=registry,
                body=body,
            )
        except (PackageNotFoundError, RegistryError) as e:
            logger.debug(
                "Security check failed for %s@%s: %s", package_name, version, e
            )
            return SecurityReport.empty(package_name, version)

        advisories = data.get("advisories") if isinstance(data, dict) else None
        vulnerabilities = tuple(
            Vulnerability.from_advisory(advisory)
            for advisory in (advisories or {}).values()
            if isinstance(advisory, dict)
        )
        report = SecurityReport(package_name, version, vulnerabilities)
        self._cache_set(cache_key, report.to_dict(), SECURITY_TTL_MULTIPLIER)
        return report

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def batch_query_versions(
        self,
        package_names: list[str],
        on_progress: BatchProgressCallback | None = None,
    ) -> BatchQueryResult:
        """Fetch versions for many packages concurrently.

        Args:
            package_names: Packages to query
            on_progress: Called with (completed, total, package_name)

        Returns:
            BatchQueryResult with per-package results and failures

        """
        controller = ConcurrencyController(self.concurrency, self.rate_limit)

        def report(
            completed: int, total: int, name: str, _error: Exception | None
        ) -> None:
            if on_progress is not None:
                on_progress(completed, total, name)

        outcomes = await controller.run(
            package_names, self.get_package_versions, report
        )
        result = BatchQueryResult()
        for outcome in outcomes:
            if outcome.ok:
                result.results[outcome.item] = outcome.result
            else:
                result.failures[outcome.item] = outcome.error
        if result.failures:
            logger.debug(
                "Batch query: %d succeeded, %d failed",
                result.succeeded,
                result.failed,
            )
        return result

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def clear_cache_by_type(self, cache_type: str = "all") -> int:
        """Drop cached responses of one kind.

        Args:
            cache_type: ``versions``, ``info``, ``security`` or ``all``

        Returns:
            Number of entries removed

        """
        if self.cache is None:
            return 0
        if cache_type == "all":
            types = CACHE_TYPES
        elif cache_type in CACHE_TYPES:
            types = (cache_type,)
        else:
            msg = f"Unknown cache type: {cache_type}"
            raise ValueError(msg)
        removed = sum(self.cache.delete_prefix(f"{t}:") for t in types)
        logger.debug("Cleared %d %s cache entries", removed, cache_type)
        return removed

    def get_cache_stats(self) -> dict[str, Any]:
        """Count cached entries per kind alongside the cache statistics."""
        if self.cache is None:
            return {"total": 0, "versions": 0, "info": 0, "security": 0}
        keys = self.cache.keys()
        stats: dict[str, Any] = {"total": len(keys)}
        for cache_type in CACHE_TYPES:
            stats[cache_type] = sum(
                1 for key in keys if key.startswith(f"{cache_type}:")
            )
        stats.update(self.cache.get_stats())
        return stats
