"""Tests for the OSV advisory client."""

import pytest
from aioresponses import aioresponses

from catalog_updater.core.registry import RegistryClient
from catalog_updater.core.security import SecurityAdvisoryClient
from catalog_updater.core.security.advisory import normalize_repository_url
from catalog_updater.core.security.models import (
    OsvReport,
    OsvVulnerability,
    extract_severity,
)
from tests.helpers import REGISTRY, packument

OSV_QUERY = "https://api.osv.dev/v1/query"
OSV_BATCH = "https://api.osv.dev/v1/querybatch"

HIGH_VULN = {
    "id": "GHSA-jf85-cpcp-j695",
    "summary": "Prototype Pollution in lodash",
    "aliases": ["CVE-2019-10744"],
    "database_specific": {"severity": "HIGH"},
    "affected": [
        {"ranges": [{"events": [{"introduced": "0"}, {"fixed": "4.17.12"}]}]}
    ],
}
LOW_VULN = {
    "id": "GHSA-low",
    "summary": "Minor issue",
    "database_specific": {"cvss": {"score": 2.1}},
}


@pytest.fixture
def registry_client(session) -> RegistryClient:
    return RegistryClient(session, retry_base_delay_ms=0, rate_limit=None)


@pytest.fixture
def client(session, registry_client, registry_cache) -> SecurityAdvisoryClient:
    return SecurityAdvisoryClient(session, registry_client, registry_cache)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("git+https://github.com/facebook/react.git", "github.com/facebook/react"),
        ("git@github.com:lodash/lodash.git", "github.com/lodash/lodash"),
        ("https://GitHub.com/vuejs/core/", "github.com/vuejs/core"),
    ],
)
def test_normalize_repository_url(url, expected):
    assert normalize_repository_url(url) == expected


def test_cvss_score_wins_over_label():
    vuln = {
        "database_specific": {"severity": "LOW", "cvss": {"score": 9.8}},
    }
    assert extract_severity(vuln) == "critical"
    assert extract_severity({}) == "unknown"


@pytest.mark.asyncio
async def test_query_vulnerabilities_sorted_by_severity(client):
    with aioresponses() as m:
        m.post(OSV_QUERY, payload={"vulns": [LOW_VULN, HIGH_VULN]})
        report = await client.query_vulnerabilities("lodash", "4.17.11")

    assert [v.id for v in report.vulnerabilities] == [
        "GHSA-jf85-cpcp-j695",
        "GHSA-low",
    ]
    assert report.has_high_vulnerabilities
    assert not report.has_critical_vulnerabilities
    assert report.vulnerabilities[0].fixed_versions == ("4.17.12",)
    assert report.vulnerabilities[0].affected_versions == ">=0 <4.17.12"


@pytest.mark.asyncio
async def test_query_failure_yields_empty_report(client):
    with aioresponses() as m:
        m.post(OSV_QUERY, status=500)
        report = await client.query_vulnerabilities("lodash", "4.17.11")

    assert report.total_vulnerabilities == 0


@pytest.mark.asyncio
async def test_reports_are_cached(client):
    with aioresponses() as m:
        m.post(OSV_QUERY, payload={"vulns": [HIGH_VULN]})
        await client.query_vulnerabilities("lodash", "4.17.11")
        cached = await client.query_vulnerabilities("lodash", "4.17.11")

    assert isinstance(cached, OsvReport)
    assert cached.total_vulnerabilities == 1


@pytest.mark.asyncio
async def test_batch_query(client):
    with aioresponses() as m:
        m.post(
            OSV_BATCH,
            payload={"results": [{"vulns": [HIGH_VULN]}, {}]},
        )
        reports = await client.query_multiple_packages(
            [("lodash", "4.17.11"), ("axios", "1.7.0")]
        )

    assert reports["lodash@4.17.11"].total_vulnerabilities == 1
    assert reports["axios@1.7.0"].total_vulnerabilities == 0


@pytest.mark.asyncio
async def test_batch_failure_falls_back_to_single_queries(client):
    with aioresponses() as m:
        m.post(OSV_BATCH, status=502)
        m.post(OSV_QUERY, payload={"vulns": []}, repeat=True)
        reports = await client.query_multiple_packages(
            [("lodash", "4.17.21"), ("axios", "1.7.0")]
        )

    assert set(reports) == {"lodash@4.17.21", "axios@1.7.0"}


@pytest.mark.asyncio
async def test_find_safe_version_skips_vulnerable_candidates(client):
    with aioresponses() as m:
        m.get(
            f"{REGISTRY}lodash",
            payload=packument(
                "lodash", ["4.17.20", "4.17.21", "4.17.22", "5.0.0-beta.1"]
            ),
        )
        m.post(OSV_QUERY, payload={"vulns": [HIGH_VULN]})
        m.post(OSV_QUERY, payload={"vulns": [LOW_VULN]})
        result = await client.find_safe_version("lodash", "4.17.20")

    assert result is not None
    assert result.version == "4.17.22"
    assert result.same_minor
    assert result.versions_checked == 2
    assert [s.version for s in result.skipped_versions] == ["4.17.21"]


@pytest.mark.asyncio
async def test_find_safe_version_none_when_all_vulnerable(client):
    with aioresponses() as m:
        m.get(f"{REGISTRY}lodash", payload=packument("lodash", ["1.0.0", "1.0.1"]))
        m.post(OSV_QUERY, payload={"vulns": [HIGH_VULN]}, repeat=True)
        result = await client.find_safe_version("lodash", "1.0.0")

    assert result is None


@pytest.mark.asyncio
async def test_ecosystem_merges_dependency_advisories(client):
    client.check_ecosystem = True
    with aioresponses() as m:
        m.post(OSV_QUERY, payload={"vulns": []})
        m.get(
            f"{REGISTRY}app-kit/1.0.0",
            payload={"name": "app-kit", "dependencies": {"lodash": "^4.17.0"}},
        )
        m.post(OSV_QUERY, payload={"vulns": [HIGH_VULN]})
        report = await client.query_vulnerabilities("app-kit", "1.0.0")

    assert report.total_vulnerabilities == 1
    assert report.vulnerabilities[0].summary.startswith("[lodash] ")


def test_format_for_prompt():
    clean = OsvReport("lodash", "4.17.21")
    assert SecurityAdvisoryClient.format_for_prompt(clean) == (
        "No known vulnerabilities found for lodash@4.17.21"
    )

    report = OsvReport(
        "lodash",
        "4.17.11",
        (OsvVulnerability.from_osv(HIGH_VULN), OsvVulnerability.from_osv(LOW_VULN)),
    )
    lines = SecurityAdvisoryClient.format_for_prompt(report).splitlines()

    assert lines[0] == "SECURITY ALERT: 2 vulnerability(ies) found for lodash@4.17.11:"
    assert lines[1] == (
        "  - [HIGH] CVE-2019-10744: Prototype Pollution in lodash"
    )
    assert lines[2] == "    Fixed in: 4.17.12"
    assert lines[3] == "  - [LOW] (CVSS: 2.1) GHSA-low: Minor issue"
    assert lines[-1].startswith("HIGH RISK")
