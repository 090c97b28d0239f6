"""Backup management for workspace files."""

from catalog_updater.core.backup.service import BackupInfo, BackupService

__all__ = ["BackupInfo", "BackupService"]
