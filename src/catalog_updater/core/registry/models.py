"""Registry data models.

Raw packument JSON is converted into these dataclasses at the client
boundary. Each model round-trips through ``to_dict``/``from_dict`` so the
registry cache can persist plain JSON.
"""

from dataclasses import dataclass, field
from typing import Any

from catalog_updater.domain.version import Version
from catalog_updater.exceptions import InvalidVersionError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

SEVERITY_ORDER = ("low", "moderate", "high", "critical")


def sort_versions_descending(versions: list[str]) -> list[str]:
    """Sort version strings newest first, dropping invalid entries.

    Args:
        versions: Version strings as published

    Returns:
        Valid versions ordered by semver precedence, highest first

    """
    parsed: list[Version] = []
    for text in versions:
        try:
            parsed.append(Version.parse(text))
        except InvalidVersionError:
            logger.debug("Skipping unparseable version %s", text)
    parsed.sort(reverse=True)
    return [str(v) for v in parsed]


def _repository_url(repository: Any) -> str | None:
    if isinstance(repository, str):
        return repository or None
    if isinstance(repository, dict):
        return repository.get("url") or None
    return None


def _author_name(author: Any) -> str | None:
    if isinstance(author, str):
        return author or None
    if isinstance(author, dict):
        return author.get("name") or None
    return None


@dataclass(slots=True, frozen=True)
class PackageVersions:
    """Published versions of a package.

    Attributes:
        name: Package name
        versions: Valid versions, newest first
        latest_version: ``dist-tags.latest`` or the highest version
        tags: All dist-tags
        time: Publish times keyed by version (empty for abbreviated data)

    """

    name: str
    versions: list[str]
    latest_version: str
    tags: dict[str, str] = field(default_factory=dict)
    time: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_packument(
        cls, name: str, data: dict[str, Any]
    ) -> "PackageVersions":
        """Build from a (full or abbreviated) packument.

        Args:
            name: Requested package name
            data: Packument JSON

        Returns:
            PackageVersions

        """
        versions = sort_versions_descending(list(data.get("versions") or {}))
        tags = dict(data.get("dist-tags") or {})
        latest = tags.get("latest") or (versions[0] if versions else "")
        return cls(
            name=data.get("name") or name,
            versions=versions,
            latest_version=latest,
            tags=tags,
            time=dict(data.get("time") or {}),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageVersions":
        return cls(
            name=data["name"],
            versions=list(data["versions"]),
            latest_version=data["latestVersion"],
            tags=dict(data.get("tags", {})),
            time=dict(data.get("time", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "versions": self.versions,
            "latestVersion": self.latest_version,
            "tags": self.tags,
            "time": self.time,
        }


@dataclass(slots=True, frozen=True)
class PackageInfo:
    """Descriptive metadata from the full packument."""

    name: str
    latest_version: str
    versions: list[str]
    description: str | None = None
    homepage: str | None = None
    repository_url: str | None = None
    license: str | None = None
    author: str | None = None
    keywords: list[str] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    time: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_packument(cls, name: str, data: dict[str, Any]) -> "PackageInfo":
        package_versions = PackageVersions.from_packument(name, data)
        license_value = data.get("license")
        if isinstance(license_value, dict):
            license_value = license_value.get("type")
        return cls(
            name=package_versions.name,
            latest_version=package_versions.latest_version,
            versions=package_versions.versions,
            description=data.get("description"),
            homepage=data.get("homepage"),
            repository_url=_repository_url(data.get("repository")),
            license=license_value,
            author=_author_name(data.get("author")),
            keywords=list(data.get("keywords") or []),
            tags=package_versions.tags,
            time=package_versions.time,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageInfo":
        return cls(
            name=data["name"],
            latest_version=data["latestVersion"],
            versions=list(data["versions"]),
            description=data.get("description"),
            homepage=data.get("homepage"),
            repository_url=data.get("repositoryUrl"),
            license=data.get("license"),
            author=data.get("author"),
            keywords=list(data.get("keywords", [])),
            tags=dict(data.get("tags", {})),
            time=dict(data.get("time", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "latestVersion": self.latest_version,
            "versions": self.versions,
            "description": self.description,
            "homepage": self.homepage,
            "repositoryUrl": self.repository_url,
            "license": self.license,
            "author": self.author,
            "keywords": self.keywords,
            "tags": self.tags,
            "time": self.time,
        }


@dataclass(slots=True, frozen=True)
class Vulnerability:
    """One advisory affecting a package version."""

    id: str
    title: str
    severity: str
    description: str = ""
    reference: str = ""
    vulnerable_versions: str = ""
    patched_versions: str = ""
    recommendation: str = ""

    @classmethod
    def from_advisory(cls, advisory: dict[str, Any]) -> "Vulnerability":
        """Build from an entry of the audit response ``advisories`` map."""
        return cls(
            id=str(advisory.get("id", "")),
            title=advisory.get("title", ""),
            severity=str(advisory.get("severity", "low")).lower(),
            description=advisory.get("overview", ""),
            reference=advisory.get("url", ""),
            vulnerable_versions=advisory.get("vulnerable_versions", ""),
            patched_versions=advisory.get("patched_versions", ""),
            recommendation=advisory.get("recommendation", ""),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Vulnerability":
        return cls(
            id=data["id"],
            title=data["title"],
            severity=data["severity"],
            description=data.get("description", ""),
            reference=data.get("reference", ""),
            vulnerable_versions=data.get("vulnerableVersions", ""),
            patched_versions=data.get("patchedVersions", ""),
            recommendation=data.get("recommendation", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "severity": self.severity,
            "description": self.description,
            "reference": self.reference,
            "vulnerableVersions": self.vulnerable_versions,
            "patchedVersions": self.patched_versions,
            "recommendation": self.recommendation,
        }


@dataclass(slots=True, frozen=True)
class SecurityReport:
    """Vulnerabilities known for one package version."""

    package: str
    version: str
    vulnerabilities: tuple[Vulnerability, ...] = ()

    @property
    def has_vulnerabilities(self) -> bool:
        return bool(self.vulnerabilities)

    def highest_severity(self) -> str | None:
        """Return the most severe level present, or None."""
        ranks = [
            SEVERITY_ORDER.index(v.severity)
            for v in self.vulnerabilities
            if v.severity in SEVERITY_ORDER
        ]
        return SEVERITY_ORDER[max(ranks)] if ranks else None

    @classmethod
    def empty(cls, package: str, version: str) -> "SecurityReport":
        return cls(package=package, version=version)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecurityReport":
        return cls(
            package=data["package"],
            version=data["version"],
            vulnerabilities=tuple(
                Vulnerability.from_dict(v)
                for v in data.get("vulnerabilities", [])
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "version": self.version,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "hasVulnerabilities": self.has_vulnerabilities,
        }


@dataclass(slots=True)
class BatchQueryResult:
    """Outcome of querying many packages concurrently."""

    results: dict[str, PackageVersions] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.failures)
