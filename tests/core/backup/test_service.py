"""Tests for workspace file backups."""

from datetime import UTC, datetime

import pytest

from catalog_updater.core.backup import BackupService
from catalog_updater.core.backup.service import (
    format_backup_timestamp,
    parse_backup_timestamp,
)
from catalog_updater.exceptions import BackupError


@pytest.fixture
def workspace_file(tmp_path):
    path = tmp_path / "pnpm-workspace.yaml"
    path.write_text("catalog:\n  lodash: ^4.17.20\n", encoding="utf-8")
    return path


def write_backup(file_path, moment, content="old\n"):
    backup = file_path.with_name(
        f"{file_path.name}.backup.{format_backup_timestamp(moment)}"
    )
    backup.write_text(content, encoding="utf-8")
    return backup


def test_timestamp_format():
    moment = datetime(2024, 5, 1, 12, 30, 5, 123000, UTC)
    assert format_backup_timestamp(moment) == "2024-05-01T12-30-05-123Z"
    assert parse_backup_timestamp("2024-05-01T12-30-05-123Z") == moment
    assert parse_backup_timestamp("yesterday") is None


def test_create_backup_copies_file(workspace_file):
    backup = BackupService().create_backup(workspace_file)

    assert backup.parent == workspace_file.parent
    assert backup.name.startswith("pnpm-workspace.yaml.backup.")
    assert backup.read_text("utf-8") == workspace_file.read_text("utf-8")


def test_create_backup_of_missing_file(tmp_path):
    with pytest.raises(BackupError):
        BackupService().create_backup(tmp_path / "pnpm-workspace.yaml")


def test_list_backups_newest_first(workspace_file):
    old = write_backup(workspace_file, datetime(2024, 1, 1, tzinfo=UTC))
    new = write_backup(workspace_file, datetime(2024, 6, 1, tzinfo=UTC))
    (workspace_file.parent / "pnpm-workspace.yaml.backup.garbage").write_text("x")

    backups = BackupService().list_backups(workspace_file)

    assert [b.path for b in backups] == [new, old]
    assert backups[0].formatted_time == "2024-06-01 00:00:00"


def test_old_backups_are_pruned(workspace_file):
    for month in range(1, 6):
        write_backup(workspace_file, datetime(2024, month, 1, tzinfo=UTC))

    service = BackupService(max_backups=3)
    service.create_backup(workspace_file)

    backups = service.list_backups(workspace_file)
    assert len(backups) == 3
    assert backups[-1].timestamp == datetime(2024, 4, 1, tzinfo=UTC)


def test_restore_latest(workspace_file):
    write_backup(workspace_file, datetime(2024, 1, 1, tzinfo=UTC), "first\n")
    latest = write_backup(workspace_file, datetime(2024, 6, 1, tzinfo=UTC), "second\n")
    service = BackupService()

    restored_from, pre_restore = service.restore_latest(workspace_file)

    assert restored_from == latest
    assert workspace_file.read_text("utf-8") == "second\n"
    assert "lodash" in pre_restore.read_text("utf-8")


def test_restore_latest_without_backups(workspace_file):
    assert BackupService().restore_latest(workspace_file) is None
