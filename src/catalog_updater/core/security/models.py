"""OSV advisory models."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from catalog_updater.constants import (
    CVSS_CRITICAL,
    CVSS_HIGH,
    CVSS_MODERATE,
    OSV_MAX_REFERENCES,
)
from catalog_updater.core.registry.models import Vulnerability

SEVERITY_RANK = {"critical": 0, "high": 1, "moderate": 2, "low": 3, "unknown": 4}
_KNOWN_LABELS = ("critical", "high", "moderate", "low")


def severity_from_score(score: float) -> str:
    """Map a CVSS base score onto a severity label."""
    if score >= CVSS_CRITICAL:
        return "critical"
    if score >= CVSS_HIGH:
        return "high"
    if score >= CVSS_MODERATE:
        return "moderate"
    return "low"


def extract_cvss_score(vuln: dict[str, Any]) -> float | None:
    """Find a numeric CVSS score in an OSV record.

    ``database_specific.cvss.score`` wins; otherwise a ``CVSS_V3`` entry
    whose score is a plain number is used. Vector strings are ignored.
    """
    database = vuln.get("database_specific") or {}
    cvss = database.get("cvss") if isinstance(database, dict) else None
    if isinstance(cvss, dict) and isinstance(cvss.get("score"), int | float):
        return float(cvss["score"])

    for entry in vuln.get("severity") or []:
        if entry.get("type") != "CVSS_V3":
            continue
        try:
            return float(entry.get("score", ""))
        except ValueError:
            continue
    return None


def extract_severity(vuln: dict[str, Any]) -> str:
    score = extract_cvss_score(vuln)
    if score is not None:
        return severity_from_score(score)
    database = vuln.get("database_specific") or {}
    label = str(database.get("severity", "")).lower()
    if label in _KNOWN_LABELS:
        return label
    return "unknown"


def extract_affected_versions(vuln: dict[str, Any]) -> str:
    """Render affected ranges as ``>=introduced <fixed`` joined by ``||``."""
    ranges: list[str] = []
    for affected in vuln.get("affected") or []:
        for version_range in affected.get("ranges") or []:
            introduced = fixed = ""
            for event in version_range.get("events") or []:
                introduced = event.get("introduced", introduced)
                fixed = event.get("fixed", fixed)
            if introduced and fixed:
                ranges.append(f">={introduced} <{fixed}")
            elif introduced:
                ranges.append(f">={introduced}")
        versions = affected.get("versions") or []
        if versions:
            ranges.append(", ".join(versions[:5]))
    return " || ".join(ranges) if ranges else "Unknown"


def extract_fixed_versions(vuln: dict[str, Any]) -> list[str]:
    fixed: list[str] = []
    for affected in vuln.get("affected") or []:
        for version_range in affected.get("ranges") or []:
            for event in version_range.get("events") or []:
                if event.get("fixed") and event["fixed"] not in fixed:
                    fixed.append(event["fixed"])
    return fixed


@dataclass(slots=True, frozen=True)
class OsvVulnerability:
    """One OSV advisory."""

    id: str
    summary: str
    severity: str
    aliases: tuple[str, ...] = ()
    details: str = ""
    cvss_score: float | None = None
    affected_versions: str = "Unknown"
    fixed_versions: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    published_at: str | None = None

    @classmethod
    def from_osv(cls, vuln: dict[str, Any]) -> "OsvVulnerability":
        """Build from a raw OSV vulnerability record."""
        references = [
            ref["url"] for ref in vuln.get("references") or [] if ref.get("url")
        ]
        return cls(
            id=vuln.get("id", ""),
            summary=vuln.get("summary") or "No summary available",
            severity=extract_severity(vuln),
            aliases=tuple(vuln.get("aliases") or ()),
            details=vuln.get("details") or "",
            cvss_score=extract_cvss_score(vuln),
            affected_versions=extract_affected_versions(vuln),
            fixed_versions=tuple(extract_fixed_versions(vuln)),
            references=tuple(references[:OSV_MAX_REFERENCES]),
            published_at=vuln.get("published"),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OsvVulnerability":
        return cls(
            id=data["id"],
            summary=data["summary"],
            severity=data["severity"],
            aliases=tuple(data.get("aliases", ())),
            details=data.get("details", ""),
            cvss_score=data.get("cvssScore"),
            affected_versions=data.get("affectedVersions", "Unknown"),
            fixed_versions=tuple(data.get("fixedVersions", ())),
            references=tuple(data.get("references", ())),
            published_at=data.get("publishedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "summary": self.summary,
            "severity": self.severity,
            "aliases": list(self.aliases),
            "details": self.details,
            "cvssScore": self.cvss_score,
            "affectedVersions": self.affected_versions,
            "fixedVersions": list(self.fixed_versions),
            "references": list(self.references),
            "publishedAt": self.published_at,
        }

    def with_source(self, package_name: str) -> "OsvVulnerability":
        """Prefix the summary with the package the advisory belongs to."""
        return replace(self, summary=f"[{package_name}] {self.summary}")

    def to_vulnerability(self) -> Vulnerability:
        """Convert to the backend-neutral vulnerability model."""
        return Vulnerability(
            id=self.id,
            title=self.summary,
            severity=self.severity,
            description=self.details,
            reference=self.references[0] if self.references else "",
            vulnerable_versions=self.affected_versions,
            patched_versions=", ".join(self.fixed_versions),
            recommendation=(
                f"Upgrade to {self.fixed_versions[0]} or later"
                if self.fixed_versions
                else ""
            ),
        )


def sort_by_severity(
    vulnerabilities: list[OsvVulnerability],
) -> list[OsvVulnerability]:
    return sorted(vulnerabilities, key=lambda v: SEVERITY_RANK.get(v.severity, 4))


@dataclass(slots=True, frozen=True)
class OsvReport:
    """Vulnerabilities OSV knows for one package version."""

    package_name: str
    version: str
    vulnerabilities: tuple[OsvVulnerability, ...] = ()
    queried_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def total_vulnerabilities(self) -> int:
        return len(self.vulnerabilities)

    @property
    def has_critical_vulnerabilities(self) -> bool:
        return any(v.severity == "critical" for v in self.vulnerabilities)

    @property
    def has_high_vulnerabilities(self) -> bool:
        """True when any vulnerability is high or critical."""
        return any(
            v.severity in ("critical", "high") for v in self.vulnerabilities
        )

    @classmethod
    def from_osv(
        cls, package_name: str, version: str, response: dict[str, Any]
    ) -> "OsvReport":
        vulnerabilities = [
            OsvVulnerability.from_osv(v) for v in response.get("vulns") or []
        ]
        return cls(package_name, version, tuple(sort_by_severity(vulnerabilities)))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OsvReport":
        return cls(
            package_name=data["packageName"],
            version=data["version"],
            vulnerabilities=tuple(
                OsvVulnerability.from_dict(v) for v in data["vulnerabilities"]
            ),
            queried_at=datetime.fromisoformat(data["queriedAt"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "packageName": self.package_name,
            "version": self.version,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "hasCriticalVulnerabilities": self.has_critical_vulnerabilities,
            "hasHighVulnerabilities": self.has_high_vulnerabilities,
            "totalVulnerabilities": self.total_vulnerabilities,
            "queriedAt": self.queried_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class SkippedVersion:
    version: str
    vulnerabilities: tuple[OsvVulnerability, ...]


@dataclass(slots=True, frozen=True)
class SafeVersionResult:
    """First version above a vulnerable one without critical/high issues."""

    version: str
    same_major: bool
    same_minor: bool
    versions_checked: int
    skipped_versions: tuple[SkippedVersion, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sameMajor": self.same_major,
            "sameMinor": self.same_minor,
            "versionsChecked": self.versions_checked,
            "skippedVersions": [
                {
                    "version": s.version,
                    "vulnerabilities": [
                        {"id": v.id, "severity": v.severity, "summary": v.summary}
                        for v in s.vulnerabilities
                    ],
                }
                for s in self.skipped_versions
            ],
        }
