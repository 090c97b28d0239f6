"""End-to-end tests of the command handlers with a fake registry."""

from argparse import Namespace
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest
import pytest_asyncio
import yaml
from aioresponses import aioresponses

from catalog_updater.cli.commands import (
    CacheHandler,
    CheckHandler,
    RollbackHandler,
    SecurityHandler,
    UpdateHandler,
)
from catalog_updater.cli.container import ServiceContainer
from catalog_updater.cli.parser import CLIParser
from catalog_updater.config import ConfigManager
from catalog_updater.core.registry.models import PackageVersions, SecurityReport
from catalog_updater.domain.version import Version

PUBLISHED = {
    "lodash": ["4.17.21", "4.17.20"],
    "axios": ["1.7.2", "1.7.0"],
}


def fake_registry():
    registry = MagicMock()

    async def versions(name):
        return PackageVersions(name, PUBLISHED[name], PUBLISHED[name][0])

    async def latest(name):
        return Version.parse(PUBLISHED[name][0])

    registry.get_package_versions = AsyncMock(side_effect=versions)
    registry.get_latest_version = AsyncMock(side_effect=latest)
    registry.check_security_vulnerabilities = AsyncMock(
        side_effect=lambda name, version: SecurityReport.empty(name, version)
    )
    return registry


@pytest.fixture
def root(make_workspace):
    return make_workspace(
        {
            "packages": ["packages/*"],
            "catalog": {"lodash": "^4.17.20", "axios": "^1.7.2"},
        },
        packages={
            "packages/app": {"name": "app", "dependencies": {"lodash": "catalog:"}}
        },
    )


@pytest_asyncio.fixture
async def container(tmp_path, root):
    services = ServiceContainer(
        ConfigManager(config_dir=tmp_path / "config"), workspace_path=root
    )
    services._registry_client = fake_registry()
    await services.start()
    yield services
    await services.cleanup()


def parse(*argv):
    return CLIParser().parse_args(list(argv))


@pytest.mark.asyncio
async def test_check_json(container, root, capsys):
    code = await CheckHandler(container).execute(
        parse("check", "--workspace", str(root), "--json")
    )

    assert code == 0
    data = orjson.loads(capsys.readouterr().out)
    [catalog] = data["catalogs"]
    [dep] = catalog["outdatedDependencies"]
    assert dep["packageName"] == "lodash"
    assert dep["wantedVersion"] == "4.17.21"
    assert dep["affectedPackages"] == ["app"]


@pytest.mark.asyncio
async def test_update_dry_run_leaves_file(container, root, capsys):
    before = (root / "pnpm-workspace.yaml").read_text("utf-8")
    code = await UpdateHandler(container).execute(
        parse("update", "--workspace", str(root), "--dry-run")
    )

    assert code == 0
    assert "Would update default:lodash 4.17.20 -> 4.17.21" in capsys.readouterr().out
    assert (root / "pnpm-workspace.yaml").read_text("utf-8") == before


@pytest.mark.asyncio
async def test_update_then_rollback(container, root, capsys):
    code = await UpdateHandler(container).execute(
        parse("update", "--workspace", str(root), "--backup")
    )
    assert code == 0
    document = yaml.safe_load((root / "pnpm-workspace.yaml").read_text("utf-8"))
    assert document["catalog"]["lodash"] == "^4.17.21"
    assert document["packages"] == ["packages/*"]

    code = await RollbackHandler(container).execute(
        parse("rollback", "--workspace", str(root))
    )
    assert code == 0
    document = yaml.safe_load((root / "pnpm-workspace.yaml").read_text("utf-8"))
    assert document["catalog"]["lodash"] == "^4.17.20"


@pytest.mark.asyncio
async def test_rollback_without_backups(container, root, capsys):
    code = await RollbackHandler(container).execute(
        parse("rollback", "--workspace", str(root))
    )
    assert code == 1
    assert "No backups found" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_cache_clear(tmp_path, root, capsys):
    container = ServiceContainer(
        ConfigManager(config_dir=tmp_path / "config"), workspace_path=root
    )
    await container.start()
    try:
        container.registry_cache.set("versions:x", [])
        container.registry_cache.set("info:x", {})
        code = await CacheHandler(container).execute(
            Namespace(clear="versions", stats=True, workspace=root)
        )
    finally:
        await container.cleanup()

    assert code == 0
    out = capsys.readouterr().out
    assert "Removed 1 versions cache entries" in out
    assert "total" in out


@pytest.mark.asyncio
async def test_security_summary(container, root, capsys):
    advisory = {
        "id": "GHSA-jf85-cpcp-j695",
        "summary": "Prototype Pollution in lodash",
        "aliases": ["CVE-2019-10744"],
        "database_specific": {"severity": "HIGH"},
        "affected": [
            {"ranges": [{"events": [{"introduced": "0"}, {"fixed": "4.17.12"}]}]}
        ],
    }
    with aioresponses() as m:
        m.post("https://api.osv.dev/v1/query", payload={"vulns": [advisory]})
        code = await SecurityHandler(container).execute(
            parse(
                "security", "lodash", "4.17.11", "--workspace", str(root), "--summary"
            )
        )

    assert code == 0
    out = capsys.readouterr().out
    assert "SECURITY ALERT: 1 vulnerability(ies) found for lodash@4.17.11" in out
    assert "CVE-2019-10744" in out
    assert "Fixed in: 4.17.12" in out
