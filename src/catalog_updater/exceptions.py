"""Exception classes for catalog updater operations."""

from collections.abc import Iterable


class CatalogUpdaterError(Exception):
    """Base exception for catalog updater operations."""

    error_prefix: str = "Operation failed"

    def __init__(self, message: str, target: str | None = None) -> None:
        """Initialize error with message and optional target.

        Args:
            message: Error message describing the failure.
            target: Optional name of the target that failed.

        """
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.target:
            return f"{self.error_prefix} for '{self.target}': {self.message}"
        return f"{self.error_prefix}: {self.message}"


class InvalidVersionError(CatalogUpdaterError):
    """Raised when a version string is not valid semver."""

    error_prefix = "Invalid version"


class InvalidVersionRangeError(CatalogUpdaterError):
    """Raised when a version range string cannot be parsed."""

    error_prefix = "Invalid version range"


class CatalogNotFoundError(CatalogUpdaterError):
    """Raised when a requested catalog does not exist in the workspace."""

    error_prefix = "Catalog not found"

    def __init__(
        self, catalog_name: str, available: Iterable[str] = ()
    ) -> None:
        """Initialize with the missing catalog and the valid names.

        Args:
            catalog_name: Catalog the caller asked for.
            available: Catalog names that do exist.

        """
        self.catalog_name = catalog_name
        self.available_catalogs = list(available)
        if self.available_catalogs:
            message = "available catalogs: " + ", ".join(
                self.available_catalogs
            )
        else:
            message = "workspace defines no catalogs"
        super().__init__(message, catalog_name)


class PackageNotFoundError(CatalogUpdaterError):
    """Raised when the registry does not know a package."""

    error_prefix = "Package not found"

    def __init__(self, package_name: str, registry: str | None = None) -> None:
        """Initialize with the package and the registry that was asked."""
        self.package_name = package_name
        self.registry = registry
        message = f"not published on {registry}" if registry else "unknown"
        super().__init__(message, package_name)


class RegistryError(CatalogUpdaterError):
    """Raised when a registry request fails after all retries."""

    error_prefix = "Registry request failed"

    def __init__(
        self,
        package_name: str,
        operation: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize registry error with operation context.

        Args:
            package_name: Package being queried.
            operation: Client operation that failed.
            reason: Description of the last failure.
            status_code: HTTP status, when the server answered.

        """
        self.package_name = package_name
        self.operation = operation
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{operation}: {reason}", package_name)


class NetworkError(CatalogUpdaterError):
    """Raised for transport failures outside the registry client."""

    error_prefix = "Network error"


class NoSatisfyingVersionError(CatalogUpdaterError):
    """Raised when no published version satisfies a range."""

    error_prefix = "No satisfying version"

    def __init__(self, package_name: str, version_range: str) -> None:
        """Initialize with the package and the unsatisfied range."""
        self.package_name = package_name
        self.version_range = version_range
        super().__init__(
            f"no published version matches '{version_range}'", package_name
        )


class WorkspaceNotFoundError(CatalogUpdaterError):
    """Raised when no pnpm workspace exists at a path."""

    error_prefix = "Workspace not found"


class ConfigurationError(CatalogUpdaterError):
    """Raised when a configuration file is invalid."""

    error_prefix = "Invalid configuration"


class CacheDestroyedError(CatalogUpdaterError):
    """Raised when a destroyed cache is used."""

    error_prefix = "Cache destroyed"


class BackupError(CatalogUpdaterError):
    """Raised when a backup cannot be created or restored."""

    error_prefix = "Backup failed"
