"""Workspace persistence."""

from catalog_updater.core.workspace.repository import WorkspaceRepository

__all__ = ["WorkspaceRepository"]
