"""Security signal backends used by the check engine.

A signal answers one question: which vulnerabilities affect this exact
package version. ``security.backend`` in the project config picks the
implementation.
"""

from typing import Protocol, runtime_checkable

from catalog_updater.core.registry.client import RegistryClient
from catalog_updater.core.registry.models import SecurityReport
from catalog_updater.core.security.advisory import SecurityAdvisoryClient

SECURITY_BACKENDS = ("audit", "osv")


@runtime_checkable
class SecuritySignal(Protocol):
    """Source of vulnerability reports. Implementations never raise."""

    async def check_vulnerabilities(
        self, package_name: str, version: str
    ) -> SecurityReport:
        """Return the vulnerabilities known for a package version."""
        ...


class NpmAuditSignal:
    """Signal backed by the registry's npm audit endpoint."""

    def __init__(self, registry_client: RegistryClient) -> None:
        self.registry_client = registry_client

    async def check_vulnerabilities(
        self, package_name: str, version: str
    ) -> SecurityReport:
        return await self.registry_client.check_security_vulnerabilities(
            package_name, version
        )


class OsvSecuritySignal:
    """Signal backed by the OSV advisory database."""

    def __init__(self, advisory_client: SecurityAdvisoryClient) -> None:
        self.advisory_client = advisory_client

    async def check_vulnerabilities(
        self, package_name: str, version: str
    ) -> SecurityReport:
        report = await self.advisory_client.query_vulnerabilities(
            package_name, version
        )
        return SecurityReport(
            package=package_name,
            version=version,
            vulnerabilities=tuple(
                v.to_vulnerability() for v in report.vulnerabilities
            ),
        )
