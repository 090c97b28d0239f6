"""OSV (Open Source Vulnerabilities) advisory client.

Queries https://api.osv.dev for known vulnerabilities of npm package
versions, optionally widening the search to the package's ecosystem:
its dependencies and monorepo siblings published from the same
repository. All lookups are best effort; failures yield empty reports.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import aiohttp
import orjson

from catalog_updater.constants import (
    ECOSYSTEM_PACKAGE_LIMIT,
    ECOSYSTEM_TIMEOUT_FACTOR,
    MONOREPO_SIBLING_SUFFIXES,
    OSV_API_URL,
    OSV_BATCH_SIZE,
    OSV_ECOSYSTEM,
    OSV_FALLBACK_CONCURRENCY,
    SAFE_VERSION_SEARCH_LIMIT,
)
from catalog_updater.core.cache import ResponseCache
from catalog_updater.core.concurrency import ConcurrencyController
from catalog_updater.core.registry.client import RegistryClient
from catalog_updater.core.security.models import (
    OsvReport,
    OsvVulnerability,
    SafeVersionResult,
    SkippedVersion,
    sort_by_severity,
)
from catalog_updater.domain.version import Version
from catalog_updater.exceptions import CatalogUpdaterError, NetworkError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

_REPO_PREFIX_RE = re.compile(r"^(git\+)?((https?|git|ssh)://)?(git@)?")


def normalize_repository_url(url: str) -> str:
    """Reduce a repository URL to ``host/owner/repo`` for comparison.

    >>> normalize_repository_url("git+https://github.com/facebook/react.git")
    'github.com/facebook/react'
    """
    url = _REPO_PREFIX_RE.sub("", url.strip().lower())
    # scp-style git@host:owner/repo
    url = url.replace(":", "/", 1)
    return url.removesuffix("/").removesuffix(".git")


def _repository_fields(manifest: dict[str, Any]) -> tuple[str | None, str | None]:
    repository = manifest.get("repository")
    if isinstance(repository, str):
        return repository, None
    if isinstance(repository, dict):
        return repository.get("url"), repository.get("directory")
    return None, None


class SecurityAdvisoryClient:
    """Async client for the OSV API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        registry_client: RegistryClient | None = None,
        cache: ResponseCache | None = None,
        *,
        api_url: str = OSV_API_URL,
        timeout: float = 10,
        cache_minutes: int = 60,
        check_ecosystem: bool = False,
        max_ecosystem_packages: int = ECOSYSTEM_PACKAGE_LIMIT,
        max_versions_to_check: int = SAFE_VERSION_SEARCH_LIMIT,
        concurrency: int = OSV_FALLBACK_CONCURRENCY,
    ) -> None:
        """Initialize the advisory client.

        Args:
            session: Shared aiohttp session
            registry_client: Used for ecosystem discovery and safe versions
            cache: Response cache for reports; None disables caching
            api_url: OSV API base URL
            timeout: Request timeout in seconds
            cache_minutes: Report TTL
            check_ecosystem: Whether to also query related packages
            max_ecosystem_packages: Cap on related packages queried
            max_versions_to_check: Default limit for find_safe_version
            concurrency: Parallel queries when a batch falls back

        """
        self.session = session
        self.registry_client = registry_client
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.discovery_timeout = timeout * ECOSYSTEM_TIMEOUT_FACTOR
        self.cache_ttl = cache_minutes * 60
        self.check_ecosystem = check_ecosystem
        self.max_ecosystem_packages = max_ecosystem_packages
        self.max_versions_to_check = max_versions_to_check
        self.concurrency = concurrency

    @staticmethod
    def _cache_key(package_name: str, version: str) -> str:
        return f"osv:{package_name}@{version}"

    def _cached_report(self, package_name: str, version: str) -> OsvReport | None:
        if self.cache is None or self.cache_ttl <= 0:
            return None
        cached = self.cache.get(self._cache_key(package_name, version))
        return OsvReport.from_dict(cached) if cached is not None else None

    def _store_report(self, report: OsvReport) -> None:
        if self.cache is not None and self.cache_ttl > 0:
            self.cache.set(
                self._cache_key(report.package_name, report.version),
                report.to_dict(),
                ttl=self.cache_ttl,
            )

    async def _post(self, endpoint: str, body: dict[str, Any]) -> Any:
        """POST JSON to the OSV API.

        Raises:
            NetworkError: On transport errors, timeouts and non-2xx replies

        """
        url = f"{self.api_url}/{endpoint}"
        try:
            async with self.session.post(
                url,
                data=orjson.dumps(body),
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                response.raise_for_status()
                return orjson.loads(await response.read())
        except TimeoutError as e:
            msg = f"request timed out after {self.timeout}s"
            raise NetworkError(msg, url) from e
        except (aiohttp.ClientError, orjson.JSONDecodeError) as e:
            raise NetworkError(str(e), url) from e

    async def _query_osv(self, package_name: str, version: str) -> OsvReport:
        data = await self._post(
            "query",
            {
                "package": {"name": package_name, "ecosystem": OSV_ECOSYSTEM},
                "version": version,
            },
        )
        return OsvReport.from_osv(package_name, version, data or {})

    async def query_vulnerabilities(
        self, package_name: str, version: str
    ) -> OsvReport:
        """Query vulnerabilities of one package version.

        With ecosystem checking enabled, advisories of related packages are
        merged in with a ``[package]`` prefix. Never raises.

        Args:
            package_name: npm package name
            version: Exact version

        Returns:
            OsvReport, empty when the query failed

        """
        cached = self._cached_report(package_name, version)
        if cached is not None:
            return cached

        try:
            report = await self._query_osv(package_name, version)
        except NetworkError as e:
            logger.error(
                "Security advisory query failed for %s@%s: %s",
                package_name,
                version,
                e,
            )
            return OsvReport(package_name, version)

        if self.check_ecosystem:
            report = await self._merge_ecosystem(report)

        self._store_report(report)
        return report

    async def _merge_ecosystem(self, report: OsvReport) -> OsvReport:
        related = await self.discover_ecosystem_packages(
            report.package_name, report.version
        )
        related = related[: self.max_ecosystem_packages]
        if not related:
            return report

        async def query(name: str) -> OsvReport:
            return await self._query_osv(name, report.version)

        outcomes = await ConcurrencyController(len(related)).run(related, query)
        merged = list(report.vulnerabilities)
        seen = {v.id for v in merged}
        for outcome in outcomes:
            if not outcome.ok:
                logger.debug(
                    "Ecosystem query failed for %s: %s",
                    outcome.item,
                    outcome.error,
                )
                continue
            for vuln in outcome.result.vulnerabilities:
                if vuln.id not in seen:
                    seen.add(vuln.id)
                    merged.append(vuln.with_source(outcome.item))
        return OsvReport(
            report.package_name,
            report.version,
            tuple(sort_by_severity(merged)),
            report.queried_at,
        )

    async def discover_ecosystem_packages(
        self, package_name: str, version: str
    ) -> list[str]:
        """Find packages related to a package version.

        Collects dependencies, peer and optional dependencies of the
        published manifest and, for packages living in a monorepo
        subdirectory, sibling packages from the same repository.
        Failures are logged and yield what was found so far.
        """
        if self.registry_client is None:
            return []

        related: list[str] = []
        try:
            manifest = await asyncio.wait_for(
                self.registry_client.get_version_manifest(package_name, version),
                self.discovery_timeout,
            )
        except (CatalogUpdaterError, TimeoutError) as e:
            logger.debug(
                "Failed to discover ecosystem of %s@%s: %s",
                package_name,
                version,
                e,
            )
            return related

        for key in ("dependencies", "peerDependencies", "optionalDependencies"):
            for dep in manifest.get(key) or {}:
                if dep not in related:
                    related.append(dep)

        repo_url, repo_dir = _repository_fields(manifest)
        if repo_url and repo_dir:
            for sibling in await self._find_monorepo_siblings(
                package_name, repo_url, version
            ):
                if sibling not in related:
                    related.append(sibling)
        return related

    async def _find_monorepo_siblings(
        self, package_name: str, repo_url: str, version: str
    ) -> list[str]:
        target_repo = normalize_repository_url(repo_url)
        search_timeout = self.discovery_timeout / 2

        async def search(query: str) -> list[dict[str, Any]]:
            return await asyncio.wait_for(
                self.registry_client.search(query), search_timeout
            )

        queries = [package_name + suffix for suffix in MONOREPO_SIBLING_SUFFIXES]
        controller = ConcurrencyController(len(queries))
        candidates: list[str] = []
        for outcome in await controller.run(queries, search):
            if not outcome.ok:
                logger.debug(
                    "Sibling search %s failed: %s", outcome.item, outcome.error
                )
                continue
            for package in outcome.result:
                name = package.get("name", "")
                if name.startswith(f"{package_name}-") and name not in candidates:
                    candidates.append(name)

        if not candidates:
            return []

        async def same_repository(name: str) -> bool:
            manifest = await asyncio.wait_for(
                self.registry_client.get_version_manifest(name, version),
                search_timeout,
            )
            url, _ = _repository_fields(manifest)
            return bool(url) and normalize_repository_url(url) == target_repo

        verified = await ConcurrencyController(len(candidates)).run(
            candidates, same_repository
        )
        return [outcome.item for outcome in verified if outcome.ok and outcome.result]

    async def query_multiple_packages(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, OsvReport]:
        """Query many package versions through the batch endpoint.

        Batches hold at most 100 queries. A failed batch falls back to
        individual queries with bounded concurrency.

        Args:
            packages: (name, version) pairs

        Returns:
            Reports keyed by ``name@version``

        """
        results: dict[str, OsvReport] = {}
        pending: list[tuple[str, str]] = []
        for name, version in packages:
            cached = self._cached_report(name, version)
            if cached is not None:
                results[f"{name}@{version}"] = cached
            else:
                pending.append((name, version))

        for start in range(0, len(pending), OSV_BATCH_SIZE):
            batch = pending[start : start + OSV_BATCH_SIZE]
            try:
                results.update(await self._query_batch(batch))
            except NetworkError as e:
                logger.warning(
                    "OSV batch query failed for %d packages, "
                    "falling back to individual queries: %s",
                    len(batch),
                    e,
                )
                results.update(await self._query_individually(batch))
        return results

    async def _query_batch(
        self, batch: list[tuple[str, str]]
    ) -> dict[str, OsvReport]:
        data = await self._post(
            "querybatch",
            {
                "queries": [
                    {
                        "package": {"name": name, "ecosystem": OSV_ECOSYSTEM},
                        "version": version,
                    }
                    for name, version in batch
                ]
            },
        )
        responses = (data or {}).get("results") or []
        reports: dict[str, OsvReport] = {}
        for index, (name, version) in enumerate(batch):
            response = responses[index] if index < len(responses) else {}
            report = OsvReport.from_osv(name, version, response or {})
            self._store_report(report)
            reports[f"{name}@{version}"] = report
        return reports

    async def _query_individually(
        self, batch: list[tuple[str, str]]
    ) -> dict[str, OsvReport]:
        async def query(item: tuple[str, str]) -> OsvReport:
            return await self.query_vulnerabilities(*item)

        outcomes = await ConcurrencyController(self.concurrency).run(batch, query)
        reports: dict[str, OsvReport] = {}
        for outcome in outcomes:
            if outcome.ok:
                name, version = outcome.item
                reports[f"{name}@{version}"] = outcome.result
        return reports

    async def find_safe_version(
        self,
        package_name: str,
        from_version: str,
        max_versions: int | None = None,
    ) -> SafeVersionResult | None:
        """Find the first newer stable version without critical/high issues.

        Args:
            package_name: npm package name
            from_version: Vulnerable version to move away from
            max_versions: Candidates to check (defaults to the client limit)

        Returns:
            SafeVersionResult, or None when nothing safe was found

        """
        if self.registry_client is None:
            return None
        try:
            current = Version.parse(from_version)
            published = await self.registry_client.get_package_versions(
                package_name
            )
        except CatalogUpdaterError as e:
            logger.error(
                "Failed to find safe version for %s@%s: %s",
                package_name,
                from_version,
                e,
            )
            return None

        limit = max_versions or self.max_versions_to_check
        candidates = sorted(
            v
            for v in (Version.parse(text) for text in published.versions)
            if not v.is_prerelease() and v > current
        )[:limit]

        skipped: list[SkippedVersion] = []
        for checked, candidate in enumerate(candidates, start=1):
            report = await self.query_vulnerabilities(package_name, str(candidate))
            if not report.has_high_vulnerabilities:
                return SafeVersionResult(
                    version=str(candidate),
                    same_major=candidate.major == current.major,
                    same_minor=(
                        candidate.major == current.major
                        and candidate.minor == current.minor
                    ),
                    versions_checked=checked,
                    skipped_versions=tuple(skipped),
                )
            skipped.append(SkippedVersion(str(candidate), report.vulnerabilities))
        return None

    @staticmethod
    def format_for_prompt(report: OsvReport) -> str:
        """Render a compact plain-text summary of a report."""
        if not report.total_vulnerabilities:
            return (
                f"No known vulnerabilities found for "
                f"{report.package_name}@{report.version}"
            )

        lines = [
            f"SECURITY ALERT: {report.total_vulnerabilities} "
            f"vulnerability(ies) found for {report.package_name}@{report.version}:"
        ]
        for vuln in report.vulnerabilities:
            lines.append(_format_vulnerability(vuln))
            if vuln.fixed_versions:
                lines.append(f"    Fixed in: {', '.join(vuln.fixed_versions)}")

        if report.has_critical_vulnerabilities:
            lines.append(
                "\nCRITICAL: This version has CRITICAL security "
                "vulnerabilities. Do not update to this version."
            )
        elif report.has_high_vulnerabilities:
            lines.append(
                "\nHIGH RISK: This version has HIGH severity "
                "vulnerabilities. Consider alternative versions."
            )
        return "\n".join(lines)


def _format_vulnerability(vuln: OsvVulnerability) -> str:
    cve_ids = ", ".join(a for a in vuln.aliases if a.startswith("CVE-")) or vuln.id
    score = f" (CVSS: {vuln.cvss_score})" if vuln.cvss_score else ""
    return f"  - [{vuln.severity.upper()}]{score} {cve_ids}: {vuln.summary}"
