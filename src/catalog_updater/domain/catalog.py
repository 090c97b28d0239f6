"""Catalog entity: a named map of package name to version range."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from catalog_updater.domain.version import VersionRange
from catalog_updater.exceptions import InvalidVersionRangeError

_PACKAGE_NAME_RE = re.compile(
    r"^(?:@[a-z0-9][a-z0-9._~-]*/)?[a-z0-9][a-z0-9._~-]*$"
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a consistency check."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class Catalog:
    """Named set of centrally declared dependency ranges.

    Ranges are validated on construction and on every update, so a
    Catalog never holds an unparseable range.
    """

    def __init__(
        self, name: str, dependencies: Mapping[str, str | VersionRange]
    ) -> None:
        self.name = name
        self._dependencies: dict[str, VersionRange] = {}
        for package_name, version_range in dependencies.items():
            self._dependencies[package_name] = self._coerce(
                package_name, version_range
            )

    @staticmethod
    def _coerce(
        package_name: str, version_range: str | VersionRange
    ) -> VersionRange:
        if isinstance(version_range, VersionRange):
            return version_range
        try:
            return VersionRange.parse(str(version_range))
        except InvalidVersionRangeError as e:
            raise InvalidVersionRangeError(
                f"{e.message} (package {package_name})", e.target
            ) from e

    def dependencies(self) -> dict[str, VersionRange]:
        """Return a copy of the package → range mapping."""
        return dict(self._dependencies)

    def package_names(self) -> list[str]:
        return list(self._dependencies)

    def has_dependency(self, package_name: str) -> bool:
        return package_name in self._dependencies

    def get_dependency_version(self, package_name: str) -> VersionRange | None:
        return self._dependencies.get(package_name)

    def update_dependency_version(
        self, package_name: str, version_range: str | VersionRange
    ) -> None:
        """Set a package's range.

        Raises:
            InvalidVersionRangeError: If the new range is invalid

        """
        self._dependencies[package_name] = self._coerce(
            package_name, version_range
        )

    def validate(self) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        if not self._dependencies:
            warnings.append(f'Catalog "{self.name}" is empty')
        for package_name, version_range in self._dependencies.items():
            if not _PACKAGE_NAME_RE.match(package_name):
                errors.append(f'Invalid package name: "{package_name}"')
            if "*" in str(version_range):
                warnings.append(
                    f'Package "{package_name}" uses a wildcard version'
                )
        return ValidationResult(not errors, errors, warnings)

    def to_dict(self) -> dict[str, str]:
        return {name: str(rng) for name, rng in self._dependencies.items()}

    def __iter__(self) -> Iterator[tuple[str, VersionRange]]:
        return iter(self._dependencies.items())

    def __len__(self) -> int:
        return len(self._dependencies)

    def __repr__(self) -> str:
        return f"Catalog({self.name!r}, {len(self)} dependencies)"
