"""Vulnerability lookups - OSV advisories and security signal backends."""

from catalog_updater.core.security.advisory import (
    SecurityAdvisoryClient,
    normalize_repository_url,
)
from catalog_updater.core.security.models import (
    OsvReport,
    OsvVulnerability,
    SafeVersionResult,
)
from catalog_updater.core.security.signal import (
    SECURITY_BACKENDS,
    NpmAuditSignal,
    OsvSecuritySignal,
    SecuritySignal,
)

__all__ = [
    "SECURITY_BACKENDS",
    "NpmAuditSignal",
    "OsvReport",
    "OsvSecuritySignal",
    "OsvVulnerability",
    "SafeVersionResult",
    "SecurityAdvisoryClient",
    "SecuritySignal",
    "normalize_repository_url",
]
