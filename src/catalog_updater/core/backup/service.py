"""BackupService for timestamped copies of workspace files.

Backups live next to the original as ``<name>.backup.<timestamp>`` where
the timestamp is an ISO-8601 UTC time with ``:`` and ``.`` replaced by
``-``, so lexical order equals chronological order.
"""

import shutil
import tempfile
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from catalog_updater.constants import (
    BACKUP_INFIX,
    BACKUP_TEMP_SUFFIX,
    DEFAULT_MAX_BACKUPS,
)
from catalog_updater.exceptions import BackupError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)


def format_backup_timestamp(moment: datetime) -> str:
    """Render a filename-safe timestamp.

    >>> format_backup_timestamp(datetime(2024, 5, 1, 12, 30, 5, 123000, UTC))
    '2024-05-01T12-30-05-123Z'
    """
    iso = moment.astimezone(UTC).isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z").replace(":", "-").replace(".", "-")


def parse_backup_timestamp(text: str) -> datetime | None:
    """Invert format_backup_timestamp; None for foreign suffixes."""
    try:
        return datetime.strptime(text, "%Y-%m-%dT%H-%M-%S-%fZ").replace(
            tzinfo=UTC
        )
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class BackupInfo:
    """A backup file on disk."""

    path: Path
    timestamp: datetime
    size: int

    @property
    def formatted_time(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S")


class BackupService:
    """Create, list and restore timestamped backups of single files."""

    def __init__(
        self,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        backup_dir: Path | None = None,
    ) -> None:
        """Initialize backup service.

        Args:
            max_backups: Backups kept per file; older ones are deleted
            backup_dir: Directory for backups (defaults to the file's own)

        """
        self.max_backups = max_backups
        self.backup_dir = backup_dir

    @classmethod
    def create_default(cls) -> "BackupService":
        """Create BackupService keeping backups beside the original file."""
        return cls()

    def _directory_for(self, file_path: Path) -> Path:
        return self.backup_dir or file_path.parent

    def create_backup(self, file_path: Path) -> Path:
        """Copy a file to a new timestamped backup.

        Args:
            file_path: File to back up

        Returns:
            Path of the backup

        Raises:
            BackupError: If the file is missing or the copy fails

        """
        if not file_path.is_file():
            raise BackupError("file does not exist", str(file_path))

        backup_dir = self._directory_for(file_path)
        moment = datetime.now(UTC)
        backup_name = f"{file_path.name}{BACKUP_INFIX}{format_backup_timestamp(moment)}"
        # Names must stay unique when two backups land in the same millisecond
        while (backup_dir / backup_name).exists():
            moment += timedelta(milliseconds=1)
            backup_name = (
                f"{file_path.name}{BACKUP_INFIX}{format_backup_timestamp(moment)}"
            )
        backup_path = backup_dir / backup_name

        temp_path: Path | None = None
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=backup_dir,
                prefix=f".{backup_name}_",
                suffix=BACKUP_TEMP_SUFFIX,
                delete=False,
            ) as tmp_file:
                temp_path = Path(tmp_file.name)
            shutil.copy2(file_path, temp_path)
            temp_path.replace(backup_path)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            logger.exception("Failed to create backup of %s", file_path)
            raise BackupError(str(e), str(file_path)) from e

        logger.info("Backup created: %s", backup_path)
        self._cleanup_old_backups(file_path)
        return backup_path

    def list_backups(self, file_path: Path) -> list[BackupInfo]:
        """List backups of a file, newest first."""
        backup_dir = self._directory_for(file_path)
        prefix = f"{file_path.name}{BACKUP_INFIX}"
        if not backup_dir.is_dir():
            return []

        backups: list[BackupInfo] = []
        for candidate in backup_dir.iterdir():
            if not candidate.name.startswith(prefix) or not candidate.is_file():
                continue
            timestamp = parse_backup_timestamp(candidate.name[len(prefix) :])
            if timestamp is None:
                logger.debug("Ignoring unrecognized backup %s", candidate)
                continue
            backups.append(
                BackupInfo(candidate, timestamp, candidate.stat().st_size)
            )
        backups.sort(key=lambda b: (b.timestamp, b.path.name), reverse=True)
        return backups

    def restore_from_backup(self, file_path: Path, backup_path: Path) -> Path:
        """Replace a file with one of its backups.

        The current file is backed up first so the restore can be undone.

        Args:
            file_path: File to restore
            backup_path: Backup to restore from

        Returns:
            Path of the pre-restore backup

        Raises:
            BackupError: If the backup is missing or the copy fails

        """
        if not backup_path.is_file():
            raise BackupError("backup does not exist", str(backup_path))

        pre_restore = self.create_backup(file_path)
        logger.info("Created pre-restore backup %s", pre_restore)
        try:
            shutil.copy2(backup_path, file_path)
        except OSError as e:
            logger.exception("Failed to restore %s", file_path)
            raise BackupError(str(e), str(file_path)) from e
        logger.info("Restored %s from %s", file_path, backup_path)
        return pre_restore

    def restore_latest(self, file_path: Path) -> tuple[Path, Path] | None:
        """Restore the newest backup.

        Returns:
            (restored-from path, pre-restore backup path), or None when no
            backup exists

        """
        backups = self.list_backups(file_path)
        if not backups:
            logger.warning("No backups found for %s", file_path)
            return None
        latest = backups[0].path
        return latest, self.restore_from_backup(file_path, latest)

    def delete_backup(self, backup_path: Path) -> None:
        backup_path.unlink()
        logger.debug("Deleted backup %s", backup_path)

    def _cleanup_old_backups(self, file_path: Path) -> None:
        for stale in self.list_backups(file_path)[self.max_backups :]:
            try:
                self.delete_backup(stale.path)
            except OSError as e:
                logger.warning("Failed to delete old backup %s: %s", stale.path, e)
