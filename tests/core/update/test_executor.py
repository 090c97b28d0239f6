"""Tests for applying update plans."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from catalog_updater.core.backup import BackupService
from catalog_updater.core.update import ExecuteOptions, UpdateExecutor
from catalog_updater.core.update.executor import stored_range
from catalog_updater.core.workspace import WorkspaceRepository
from catalog_updater.domain.types import (
    ConflictingCatalog,
    PlannedUpdate,
    UpdatePlan,
    VersionConflict,
    WorkspaceInfo,
)
from catalog_updater.domain.version import VersionRange
from catalog_updater.exceptions import BackupError

DOCUMENT = {
    "packages": ["packages/*"],
    "catalog": {"lodash": "^4.17.20", "axios": "~1.7.0"},
    "catalogs": {"legacy": {"lodash": "4.17.15"}},
}


def planned(catalog, name, current, new, update_type="patch"):
    return PlannedUpdate(
        catalog_name=catalog,
        package_name=name,
        current_version=current,
        new_version=new,
        update_type=update_type,
        reason="Patch version update",
    )


@pytest.fixture
def root(make_workspace):
    return make_workspace(DOCUMENT)


@pytest.fixture
def executor():
    return UpdateExecutor(WorkspaceRepository(), BackupService())


def read_document(root):
    return yaml.safe_load((root / "pnpm-workspace.yaml").read_text("utf-8"))


@pytest.mark.parametrize(
    ("current", "new", "expected"),
    [("^4.17.20", "4.17.21", "^4.17.21"), ("~1.7.0", "1.7.2", "~1.7.2"),
     ("4.17.15", "4.17.21", "4.17.21")],
)
def test_stored_range_keeps_prefix(current, new, expected):
    assert stored_range(VersionRange.parse(current), new) == expected


@pytest.mark.asyncio
async def test_applies_updates_and_saves(executor, root):
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [
            planned("default", "lodash", "4.17.20", "4.17.21"),
            planned("default", "axios", "1.7.0", "1.7.2"),
        ],
    )
    result = await executor.execute_updates(plan)

    assert result.success
    assert result.total_updated == 2
    assert result.backup_path is None
    assert read_document(root)["catalog"] == {
        "lodash": "^4.17.21",
        "axios": "~1.7.2",
    }


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(executor, root):
    before = (root / "pnpm-workspace.yaml").read_text("utf-8")
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [planned("default", "lodash", "4.17.20", "4.17.21")],
    )
    result = await executor.execute_updates(plan, ExecuteOptions(dry_run=True))

    assert result.total_updated == 1
    assert (root / "pnpm-workspace.yaml").read_text("utf-8") == before


@pytest.mark.asyncio
async def test_unresolved_conflicts_are_skipped_unless_forced(executor, root):
    conflict = VersionConflict(
        package_name="lodash",
        catalogs=[
            ConflictingCatalog("default", "4.17.20", "4.17.21"),
            ConflictingCatalog("legacy", "4.17.15", "4.17.16"),
        ],
        recommendation="Pick one",
    )
    updates = [
        planned("default", "lodash", "4.17.20", "4.17.21"),
        planned("legacy", "lodash", "4.17.15", "4.17.16"),
        planned("default", "axios", "1.7.0", "1.7.2"),
    ]
    plan = UpdatePlan(WorkspaceInfo(root, "workspace"), updates, [conflict])

    result = await executor.execute_updates(plan)
    assert [d.package_name for d in result.updated_dependencies] == ["axios"]
    assert result.total_skipped == 2
    assert all("--force" in s.reason for s in result.skipped_dependencies)

    forced = await executor.execute_updates(plan, ExecuteOptions(force=True))
    assert forced.total_updated == 3
    assert read_document(root)["catalogs"]["legacy"]["lodash"] == "4.17.16"


@pytest.mark.asyncio
async def test_single_failure_is_not_fatal(executor, root):
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [
            planned("missing", "lodash", "4.17.20", "4.17.21"),
            planned("default", "lodash", "4.17.20", "4.17.21"),
        ],
    )
    result = await executor.execute_updates(plan)

    assert result.success
    assert result.total_updated == 1
    [error] = result.errors
    assert error.catalog_name == "missing"
    assert not error.fatal


@pytest.mark.asyncio
async def test_backup_created_before_save(executor, root):
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [planned("default", "lodash", "4.17.20", "4.17.21")],
    )
    result = await executor.execute_updates(
        plan, ExecuteOptions(create_backup=True)
    )

    assert result.backup_path is not None
    backup = yaml.safe_load(result.backup_path.read_text("utf-8"))
    assert backup["catalog"]["lodash"] == "^4.17.20"


@pytest.mark.asyncio
async def test_backup_failure_does_not_stop_the_update(root):
    backup_service = MagicMock()
    backup_service.create_backup.side_effect = BackupError("disk full")
    executor = UpdateExecutor(WorkspaceRepository(), backup_service)
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [planned("default", "lodash", "4.17.20", "4.17.21")],
    )
    result = await executor.execute_updates(
        plan, ExecuteOptions(create_backup=True)
    )

    assert result.success
    assert result.backup_path is None
    assert read_document(root)["catalog"]["lodash"] == "^4.17.21"


@pytest.mark.asyncio
async def test_save_failure_is_fatal(root):
    repository = WorkspaceRepository()
    workspace = await repository.load(root)
    repository.save = AsyncMock(side_effect=PermissionError("read-only"))
    executor = UpdateExecutor(repository, BackupService())
    plan = UpdatePlan(
        WorkspaceInfo(root, "workspace"),
        [planned("default", "lodash", "4.17.20", "4.17.21")],
    )
    result = await executor.execute_updates(plan, workspace=workspace)

    assert not result.success
    [error] = result.errors
    assert error.fatal
    assert "read-only" in error.error
