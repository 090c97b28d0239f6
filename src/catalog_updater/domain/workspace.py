"""Workspace aggregate and package model."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from catalog_updater.constants import (
    CATALOG_PROTOCOL,
    DEFAULT_CATALOG_NAME,
    WORKSPACE_FILE_NAME,
)
from catalog_updater.domain.catalog import Catalog, ValidationResult
from catalog_updater.domain.version import VersionRange
from catalog_updater.exceptions import CatalogNotFoundError

DEPENDENCY_TYPES = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


@dataclass(frozen=True)
class CatalogReference:
    """A package.json dependency that points at a catalog entry."""

    package_name: str
    catalog_name: str
    dependency_type: str


@dataclass
class Package:
    """A workspace package (one package.json)."""

    name: str
    path: Path
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    optional_dependencies: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_package_json(cls, path: Path, data: dict[str, Any]) -> Package:
        """Build a Package from parsed package.json data.

        Args:
            path: Directory containing package.json
            data: Parsed package.json

        """

        def deps(key: str) -> dict[str, str]:
            value = data.get(key) or {}
            if not isinstance(value, dict):
                return {}
            return {k: str(v) for k, v in value.items()}

        return cls(
            name=str(data.get("name") or path.name),
            path=path,
            dependencies=deps("dependencies"),
            dev_dependencies=deps("devDependencies"),
            peer_dependencies=deps("peerDependencies"),
            optional_dependencies=deps("optionalDependencies"),
        )

    def dependencies_by_type(self, dependency_type: str) -> dict[str, str]:
        return {
            "dependencies": self.dependencies,
            "devDependencies": self.dev_dependencies,
            "peerDependencies": self.peer_dependencies,
            "optionalDependencies": self.optional_dependencies,
        }[dependency_type]

    def catalog_references(self) -> Iterator[CatalogReference]:
        """Yield every ``catalog:`` / ``catalog:<name>`` dependency."""
        for dependency_type in DEPENDENCY_TYPES:
            for dep_name, spec in self.dependencies_by_type(
                dependency_type
            ).items():
                if not spec.startswith(CATALOG_PROTOCOL):
                    continue
                catalog_name = (
                    spec[len(CATALOG_PROTOCOL) :].strip()
                    or DEFAULT_CATALOG_NAME
                )
                yield CatalogReference(dep_name, catalog_name, dependency_type)

    def uses_catalog_dependency(
        self, catalog_name: str, package_name: str
    ) -> bool:
        return any(
            ref.catalog_name == catalog_name
            and ref.package_name == package_name
            for ref in self.catalog_references()
        )


class Workspace:
    """A pnpm workspace: catalogs, packages and the raw workspace document.

    The raw document is kept so saves re-emit everything the workspace
    file contains, not only the catalogs.
    """

    def __init__(
        self,
        path: Path,
        catalogs: dict[str, Catalog],
        packages: list[Package] | None = None,
        document: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        self.path = path
        self.catalogs = catalogs
        self.packages = packages or []
        self.document = document if document is not None else {}
        self.name = name or path.name

    @classmethod
    def from_document(
        cls,
        path: Path,
        document: dict[str, Any],
        packages: list[Package] | None = None,
        name: str | None = None,
    ) -> Workspace:
        """Build a workspace from a parsed pnpm-workspace.yaml document.

        The unnamed ``catalog`` key becomes the ``default`` catalog;
        ``catalogs`` holds the named ones.

        Raises:
            InvalidVersionRangeError: If a catalog holds an invalid range

        """
        catalogs: dict[str, Catalog] = {}
        default = document.get("catalog")
        if isinstance(default, dict):
            catalogs[DEFAULT_CATALOG_NAME] = Catalog(
                DEFAULT_CATALOG_NAME, {k: str(v) for k, v in default.items()}
            )
        named = document.get("catalogs")
        if isinstance(named, dict):
            for catalog_name, entries in named.items():
                if not isinstance(entries, dict):
                    continue
                catalogs[str(catalog_name)] = Catalog(
                    str(catalog_name), {k: str(v) for k, v in entries.items()}
                )
        return cls(path, catalogs, packages, document, name)

    @property
    def workspace_file(self) -> Path:
        return self.path / WORKSPACE_FILE_NAME

    def catalog_names(self) -> list[str]:
        return list(self.catalogs)

    def get_catalog(self, catalog_name: str) -> Catalog:
        """Return a catalog by name.

        Raises:
            CatalogNotFoundError: If the workspace has no such catalog

        """
        catalog = self.catalogs.get(catalog_name)
        if catalog is None:
            raise CatalogNotFoundError(catalog_name, self.catalogs)
        return catalog

    def get_packages_using_catalog_dependency(
        self, catalog_name: str, package_name: str
    ) -> list[str]:
        return [
            pkg.name
            for pkg in self.packages
            if pkg.uses_catalog_dependency(catalog_name, package_name)
        ]

    def update_catalog_dependency(
        self,
        catalog_name: str,
        package_name: str,
        version_range: str | VersionRange,
    ) -> None:
        """Set a catalog entry in both the Catalog and the raw document.

        Raises:
            CatalogNotFoundError: If the catalog does not exist
            InvalidVersionRangeError: If the range is invalid

        """
        catalog = self.get_catalog(catalog_name)
        catalog.update_dependency_version(package_name, version_range)
        self._document_section(catalog_name)[package_name] = str(
            catalog.get_dependency_version(package_name)
        )

    def _document_section(self, catalog_name: str) -> dict[str, Any]:
        if catalog_name == DEFAULT_CATALOG_NAME and (
            isinstance(self.document.get("catalog"), dict)
            or DEFAULT_CATALOG_NAME
            not in (self.document.get("catalogs") or {})
        ):
            return self.document.setdefault("catalog", {})
        catalogs = self.document.setdefault("catalogs", {})
        return catalogs.setdefault(catalog_name, {})

    def validate_consistency(self) -> ValidationResult:
        """Check that every package catalog reference resolves."""
        errors: list[str] = []
        warnings: list[str] = []
        for pkg in self.packages:
            for ref in pkg.catalog_references():
                catalog = self.catalogs.get(ref.catalog_name)
                if catalog is None:
                    errors.append(
                        f'Package "{pkg.name}" references unknown catalog '
                        f'"{ref.catalog_name}"'
                    )
                elif not catalog.has_dependency(ref.package_name):
                    warnings.append(
                        f'Package "{pkg.name}" references '
                        f'"{ref.package_name}" from catalog '
                        f'"{ref.catalog_name}" but the catalog does not '
                        "define it"
                    )
        return ValidationResult(not errors, errors, warnings)

    def __repr__(self) -> str:
        return (
            f"Workspace({str(self.path)!r}, catalogs={self.catalog_names()})"
        )
