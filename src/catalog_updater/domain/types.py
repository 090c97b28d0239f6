"""Report, plan and result types for the check → plan → execute pipeline.

All types serialize with ``to_dict()`` using camelCase keys so the JSON
artifacts match what pnpm tooling emits.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

UpdateType = Literal["major", "minor", "patch", "prerelease", "same"]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _serialize(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): _serialize(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class WorkspaceInfo:
    path: Path
    name: str


@dataclass(frozen=True)
class OutdatedDependencyInfo:
    """One outdated catalog entry."""

    package_name: str
    current_version: str
    latest_version: str
    wanted_version: str
    update_type: UpdateType
    is_security_update: bool = False
    affected_packages: tuple[str, ...] = ()
    security_vulnerabilities: int = 0

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass
class CatalogUpdateInfo:
    catalog_name: str
    outdated_dependencies: list[OutdatedDependencyInfo]
    total_packages: int

    @property
    def outdated_count(self) -> int:
        return len(self.outdated_dependencies)

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self)
        data["outdatedCount"] = self.outdated_count
        return data


@dataclass
class OutdatedReport:
    """Result of a check run."""

    workspace: WorkspaceInfo
    catalogs: list[CatalogUpdateInfo]
    timestamp: datetime = field(default_factory=_now)

    @property
    def total_outdated(self) -> int:
        return sum(c.outdated_count for c in self.catalogs)

    @property
    def has_updates(self) -> bool:
        return self.total_outdated > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace": _serialize(self.workspace),
            "catalogs": [c.to_dict() for c in self.catalogs],
            "totalOutdated": self.total_outdated,
            "hasUpdates": self.has_updates,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class PlannedUpdate:
    """A single catalog entry change.

    Mutable only while the planner runs its sync and conflict passes.
    """

    catalog_name: str
    package_name: str
    current_version: str
    new_version: str
    update_type: UpdateType
    reason: str
    affected_packages: list[str] = field(default_factory=list)
    require_confirmation: bool = False
    auto_update: bool = False
    group_update: bool = False
    is_security_update: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class ConflictingCatalog:
    catalog_name: str
    current_version: str
    proposed_version: str


@dataclass
class VersionConflict:
    package_name: str
    catalogs: list[ConflictingCatalog]
    recommendation: str
    resolved: bool = False
    resolved_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass
class UpdatePlan:
    """Conflict-resolved set of updates for one workspace."""

    workspace: WorkspaceInfo
    updates: list[PlannedUpdate]
    conflicts: list[VersionConflict] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_now)

    @property
    def has_conflicts(self) -> bool:
        """True iff at least one conflict is still unresolved."""
        return any(not c.resolved for c in self.conflicts)

    @property
    def total_updates(self) -> int:
        return len(self.updates)

    def unresolved_packages(self) -> set[str]:
        return {c.package_name for c in self.conflicts if not c.resolved}

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace": _serialize(self.workspace),
            "updates": [u.to_dict() for u in self.updates],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "hasConflicts": self.has_conflicts,
            "totalUpdates": self.total_updates,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class UpdatedDependency:
    catalog_name: str
    package_name: str
    from_version: str
    to_version: str
    update_type: UpdateType


@dataclass(frozen=True)
class SkippedDependency:
    catalog_name: str
    package_name: str
    reason: str


@dataclass(frozen=True)
class UpdateError:
    """Failure while applying a plan; fatal errors fail the whole run."""

    catalog_name: str
    package_name: str
    error: str
    fatal: bool = False


@dataclass
class UpdateResult:
    workspace: WorkspaceInfo
    updated_dependencies: list[UpdatedDependency] = field(default_factory=list)
    skipped_dependencies: list[SkippedDependency] = field(default_factory=list)
    errors: list[UpdateError] = field(default_factory=list)
    backup_path: Path | None = None
    timestamp: datetime = field(default_factory=_now)

    @property
    def success(self) -> bool:
        return not any(e.fatal for e in self.errors)

    @property
    def total_updated(self) -> int:
        return len(self.updated_dependencies)

    @property
    def total_skipped(self) -> int:
        return len(self.skipped_dependencies)

    @property
    def total_errors(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self)
        data.update(
            success=self.success,
            totalUpdated=self.total_updated,
            totalSkipped=self.total_skipped,
            totalErrors=self.total_errors,
        )
        return data
