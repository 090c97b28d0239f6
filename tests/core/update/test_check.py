"""Tests for outdated dependency detection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_updater.config import ConfigManager
from catalog_updater.core.registry.models import (
    PackageVersions,
    SecurityReport,
    Vulnerability,
)
from catalog_updater.core.update import CheckEngine, CheckOptions
from catalog_updater.core.workspace import WorkspaceRepository
from catalog_updater.domain.version import Version
from catalog_updater.exceptions import CatalogNotFoundError, PackageNotFoundError

PUBLISHED = {
    "lodash": ["5.0.0", "4.18.0", "4.17.21", "4.17.20"],
    "axios": ["1.7.2", "1.7.0", "0.27.2"],
    "left-pad": ["1.3.0"],
}


def fake_registry(published=PUBLISHED):
    registry = MagicMock()

    async def versions(name):
        if name not in published:
            raise PackageNotFoundError(name)
        return PackageVersions(name, published[name], published[name][0])

    async def latest(name):
        return Version.parse((await versions(name)).latest_version)

    registry.get_package_versions = AsyncMock(side_effect=versions)
    registry.get_latest_version = AsyncMock(side_effect=latest)
    registry.get_greatest_version = AsyncMock(side_effect=latest)
    return registry


@pytest.fixture
def config_manager(tmp_path):
    return ConfigManager(config_dir=tmp_path / "config")


@pytest.fixture
def engine(config_manager, progress):
    return CheckEngine(
        fake_registry(),
        WorkspaceRepository(),
        config_manager,
        progress=progress,
        rate_limit=None,
    )


@pytest.mark.asyncio
async def test_reports_outdated_entries(engine, make_workspace, progress):
    root = make_workspace(
        {"catalog": {"lodash": "^4.17.20", "axios": "^1.7.2", "left-pad": "1.3.0"}},
        packages={"app": {"name": "app", "dependencies": {"lodash": "catalog:"}}},
        root_package={"name": "root"},
    )
    report = await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root)
    )

    assert report.total_outdated == 1
    [dep] = report.catalogs[0].outdated_dependencies
    assert dep.package_name == "lodash"
    assert dep.current_version == "4.17.20"
    assert dep.wanted_version == "5.0.0"
    assert dep.update_type == "major"
    assert dep.affected_packages == ("app",)
    assert report.catalogs[0].total_packages == 3

    assert progress.started == [(3, "Checking 3 dependencies")]
    assert [a[0] for a in progress.advanced] == [1, 2, 3]
    assert progress.finished == [(True, "Found 1 outdated dependencies")]


@pytest.mark.asyncio
async def test_minor_target_stays_within_major(engine, make_workspace):
    root = make_workspace({"catalog": {"lodash": "^4.17.20"}})
    report = await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root, target="minor")
    )

    [dep] = report.catalogs[0].outdated_dependencies
    assert dep.wanted_version == "4.18.0"
    assert dep.latest_version == "5.0.0"
    assert dep.update_type == "minor"


@pytest.mark.asyncio
async def test_patch_target(engine):
    wanted = await engine.resolve_target_version(
        "lodash", Version.parse("4.17.20"), "patch"
    )
    assert str(wanted) == "4.17.21"


@pytest.mark.asyncio
async def test_failures_do_not_abort_the_check(engine, make_workspace, progress):
    root = make_workspace({"catalog": {"ghost": "^1.0.0", "lodash": "^4.17.20"}})
    report = await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root)
    )

    assert [d.package_name for d in report.catalogs[0].outdated_dependencies] == [
        "lodash"
    ]
    assert progress.finished[0][0] is False


@pytest.mark.asyncio
async def test_exclude_patterns(engine, make_workspace):
    root = make_workspace({"catalog": {"lodash": "^4.17.20"}})
    report = await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root, exclude=["lod*"])
    )
    assert not report.has_updates


@pytest.mark.asyncio
async def test_unknown_catalog(engine, make_workspace):
    root = make_workspace({"catalog": {"lodash": "^4.17.20"}})
    with pytest.raises(CatalogNotFoundError):
        await engine.check_outdated_dependencies(
            CheckOptions(workspace_path=root, catalog_name="react17")
        )


@pytest.mark.asyncio
async def test_security_signal_marks_vulnerable_entries(
    config_manager, make_workspace
):
    signal = MagicMock()
    signal.check_vulnerabilities = AsyncMock(
        return_value=SecurityReport(
            "axios",
            "0.27.2",
            (Vulnerability(id="1", title="SSRF", severity="high"),),
        )
    )
    engine = CheckEngine(
        fake_registry(),
        WorkspaceRepository(),
        config_manager,
        {"audit": signal},
        rate_limit=None,
    )
    root = make_workspace({"catalog": {"axios": "^0.27.2"}})
    report = await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root)
    )

    [dep] = report.catalogs[0].outdated_dependencies
    assert dep.is_security_update
    assert dep.security_vulnerabilities == 1
    assert dep.wanted_version == "1.7.2"
    signal.check_vulnerabilities.assert_awaited_once_with("axios", "0.27.2")


@pytest.mark.asyncio
async def test_security_check_can_be_disabled(config_manager, make_workspace):
    signal = MagicMock()
    signal.check_vulnerabilities = AsyncMock()
    engine = CheckEngine(
        fake_registry(),
        WorkspaceRepository(),
        config_manager,
        {"audit": signal},
        rate_limit=None,
    )
    root = make_workspace({"catalog": {"lodash": "^4.17.20"}})
    await engine.check_outdated_dependencies(
        CheckOptions(workspace_path=root, check_security=False)
    )
    signal.check_vulnerabilities.assert_not_awaited()
