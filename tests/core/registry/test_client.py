"""Tests for the npm registry client."""

import asyncio

import pytest
from aioresponses import aioresponses
from yarl import URL

from catalog_updater.config.npmrc import NpmrcConfig
from catalog_updater.core.registry import RegistryClient
from catalog_updater.domain.version import Version
from catalog_updater.exceptions import (
    NoSatisfyingVersionError,
    PackageNotFoundError,
    RegistryError,
)
from tests.helpers import REGISTRY, packument

LODASH_URL = f"{REGISTRY}lodash"
AUDIT_URL = f"{REGISTRY}-/npm/v1/security/audits"


@pytest.fixture
def client(session, registry_cache) -> RegistryClient:
    return RegistryClient(
        session,
        NpmrcConfig(),
        registry_cache,
        retries=2,
        retry_base_delay_ms=0,
        rate_limit=None,
    )


@pytest.mark.asyncio
async def test_get_package_versions_sorted_newest_first(client):
    with aioresponses() as m:
        m.get(
            LODASH_URL,
            payload=packument(
                "lodash", ["4.17.20", "4.17.21", "4.17.3", "not-a-version"],
                latest="4.17.21",
            ),
        )
        versions = await client.get_package_versions("lodash")

    assert versions.versions == ["4.17.21", "4.17.20", "4.17.3"]
    assert versions.latest_version == "4.17.21"


@pytest.mark.asyncio
async def test_versions_are_cached(client, registry_cache):
    with aioresponses() as m:
        m.get(LODASH_URL, payload=packument("lodash", ["4.17.21"]))
        await client.get_package_versions("lodash")
        cached = await client.get_package_versions("lodash")

    assert cached.latest_version == "4.17.21"
    assert registry_cache.keys() == [f"versions:{REGISTRY}:lodash"]


@pytest.mark.asyncio
async def test_not_found_is_not_retried(client):
    with aioresponses() as m:
        m.get(f"{REGISTRY}missing-pkg", status=404)
        with pytest.raises(PackageNotFoundError) as exc_info:
            await client.get_package_versions("missing-pkg")
        calls = m.requests[("GET", URL(f"{REGISTRY}missing-pkg"))]

    assert exc_info.value.package_name == "missing-pkg"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried(client):
    with aioresponses() as m:
        m.get(LODASH_URL, status=500, repeat=True)
        with pytest.raises(RegistryError) as exc_info:
            await client.get_package_versions("lodash")
        calls = m.requests[("GET", URL(LODASH_URL))]

    assert len(calls) == 2
    assert exc_info.value.status_code == 500
    assert exc_info.value.operation == "get_package_versions"


@pytest.mark.asyncio
async def test_recovers_after_transient_failure(client):
    with aioresponses() as m:
        m.get(LODASH_URL, status=503)
        m.get(LODASH_URL, payload=packument("lodash", ["4.17.21"]))
        latest = await client.get_latest_version("lodash")

    assert latest == Version.parse("4.17.21")


@pytest.mark.asyncio
async def test_auth_token_is_sent(session):
    npmrc = NpmrcConfig(
        registry="https://npm.acme.dev/",
        auth_tokens={"npm.acme.dev": "s3cret"},
    )
    client = RegistryClient(session, npmrc, retry_base_delay_ms=0)
    with aioresponses() as m:
        m.get("https://npm.acme.dev/lodash", payload=packument("lodash", ["1.0.0"]))
        await client.get_package_versions("lodash")
        call = m.requests[("GET", URL("https://npm.acme.dev/lodash"))][0]

    assert call.kwargs["headers"]["Authorization"] == "Bearer s3cret"


@pytest.mark.asyncio
async def test_get_greatest_version(client):
    with aioresponses() as m:
        m.get(
            LODASH_URL,
            payload=packument("lodash", ["3.10.1", "4.17.20", "4.17.21", "5.0.0"]),
        )
        greatest = await client.get_greatest_version("lodash", "^4.0.0")
        with pytest.raises(NoSatisfyingVersionError):
            await client.get_greatest_version("lodash", "^6.0.0")

    assert str(greatest) == "4.17.21"


@pytest.mark.asyncio
async def test_get_newest_versions_orders_by_publish_time(client):
    time = {
        "1.0.0": "2020-01-01T00:00:00.000Z",
        "2.0.0": "2021-01-01T00:00:00.000Z",
        "1.0.1": "2022-01-01T00:00:00.000Z",
    }
    with aioresponses() as m:
        m.get(
            LODASH_URL,
            payload=packument("lodash", ["1.0.0", "1.0.1", "2.0.0"], time=time),
        )
        newest = await client.get_newest_versions("lodash", count=2)

    assert [str(v) for v in newest] == ["1.0.1", "2.0.0"]


@pytest.mark.asyncio
async def test_security_check_parses_advisories(client):
    with aioresponses() as m:
        m.post(
            AUDIT_URL,
            payload={
                "advisories": {
                    "1523": {
                        "id": 1523,
                        "title": "Prototype Pollution",
                        "severity": "High",
                        "patched_versions": ">=4.17.21",
                    }
                }
            },
        )
        report = await client.check_security_vulnerabilities("lodash", "4.17.20")

    assert report.has_vulnerabilities
    assert report.highest_severity() == "high"
    assert report.vulnerabilities[0].patched_versions == ">=4.17.21"


@pytest.mark.asyncio
async def test_security_check_never_raises(client):
    with aioresponses() as m:
        m.post(AUDIT_URL, status=500, repeat=True)
        report = await client.check_security_vulnerabilities("lodash", "4.17.20")

    assert not report.has_vulnerabilities
    assert report.package == "lodash"


@pytest.mark.asyncio
async def test_batch_query_collects_failures(client, progress):
    with aioresponses() as m:
        m.get(LODASH_URL, payload=packument("lodash", ["4.17.21"]))
        m.get(f"{REGISTRY}axios", payload=packument("axios", ["1.7.0"]))
        m.get(f"{REGISTRY}ghost", status=404)
        seen = []
        result = await client.batch_query_versions(
            ["lodash", "axios", "ghost"],
            on_progress=lambda done, total, name: seen.append((done, total)),
        )

    assert set(result.results) == {"lodash", "axios"}
    assert isinstance(result.failures["ghost"], PackageNotFoundError)
    assert sorted(seen) == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.asyncio
async def test_clear_cache_by_type(client, registry_cache):
    registry_cache.set("versions:x", 1)
    registry_cache.set("info:x", 2)
    registry_cache.set("security:x@1.0.0", 3)

    assert client.clear_cache_by_type("versions") == 1
    stats = client.get_cache_stats()
    assert stats["total"] == 2
    assert stats["versions"] == 0
    assert client.clear_cache_by_type() == 2
    with pytest.raises(ValueError):
        client.clear_cache_by_type("bogus")


@pytest.mark.asyncio
async def test_retry_backoff_doubles_up_to_cap(session, registry_cache, monkeypatch):
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def recording_sleep(delay, *args, **kwargs):
        if delay > 0:
            delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", recording_sleep)
    client = RegistryClient(
        session, NpmrcConfig(), registry_cache, retries=6, rate_limit=None
    )
    with aioresponses() as m:
        m.get(LODASH_URL, status=503, repeat=True)
        with pytest.raises(RegistryError) as exc_info:
            await client.get_package_versions("lodash")

    assert delays == [1.0, 2.0, 4.0, 8.0, 10.0]
    assert "6 attempts" in str(exc_info.value)
