"""npm registry access - client, auth and response models."""

from catalog_updater.core.registry.auth import RegistryAuthManager
from catalog_updater.core.registry.client import RegistryClient
from catalog_updater.core.registry.models import (
    BatchQueryResult,
    PackageInfo,
    PackageVersions,
    SecurityReport,
    Vulnerability,
)

__all__ = [
    "BatchQueryResult",
    "PackageInfo",
    "PackageVersions",
    "RegistryAuthManager",
    "RegistryClient",
    "SecurityReport",
    "Vulnerability",
]
