"""File-backed workspace repository.

Reads ``pnpm-workspace.yaml`` and the ``package.json`` files its
``packages`` globs select, and writes the workspace document back
atomically. File I/O runs in worker threads so the event loop stays free.
"""

import asyncio
import copy
import os
import tempfile
from pathlib import Path
from typing import Any

import orjson
import yaml

from catalog_updater.constants import PACKAGE_JSON_NAME, WORKSPACE_FILE_NAME
from catalog_updater.core.cache import ResponseCache
from catalog_updater.domain.workspace import Package, Workspace
from catalog_updater.exceptions import (
    ConfigurationError,
    WorkspaceNotFoundError,
)
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

_IGNORED_DIRS = ("node_modules",)


def _read_document(workspace_file: Path) -> dict[str, Any]:
    try:
        content = workspace_file.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkspaceNotFoundError(str(e), str(workspace_file)) from e
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", str(workspace_file)) from e
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigurationError(
            "workspace file must contain a mapping", str(workspace_file)
        )
    return document


def _read_package_json(path: Path) -> dict[str, Any] | None:
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.warning("Skipping unreadable %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def _match_package_dirs(root: Path, patterns: list[str]) -> list[Path]:
    """Resolve ``packages`` globs to directories holding a package.json.

    ``!``-prefixed patterns exclude. The workspace root is always included
    when it has a package.json.
    """
    included: list[Path] = []
    excluded: set[Path] = set()
    for pattern in patterns:
        negate = pattern.startswith("!")
        glob = pattern[1:] if negate else pattern
        glob = glob.removeprefix("./").rstrip("/")
        if not glob:
            continue
        matches = [
            manifest.parent
            for manifest in root.glob(f"{glob}/{PACKAGE_JSON_NAME}")
            if not any(part in _IGNORED_DIRS for part in manifest.parts)
        ]
        if negate:
            excluded.update(matches)
        else:
            included.extend(m for m in matches if m not in included)

    if (root / PACKAGE_JSON_NAME).is_file() and root not in included:
        included.insert(0, root)
    return [d for d in included if d not in excluded]


def _load_packages(root: Path, patterns: list[str]) -> list[Package]:
    packages: list[Package] = []
    for package_dir in _match_package_dirs(root, patterns):
        data = _read_package_json(package_dir / PACKAGE_JSON_NAME)
        if data is not None:
            packages.append(Package.from_package_json(package_dir, data))
    return packages


def _write_document(workspace_file: Path, document: dict[str, Any]) -> None:
    content = yaml.safe_dump(
        document, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    fd, temp_name = tempfile.mkstemp(
        dir=workspace_file.parent, prefix=f".{workspace_file.name}_", suffix=".tmp"
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        temp_path.replace(workspace_file)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise


class WorkspaceRepository:
    """Loads and saves pnpm workspaces."""

    def __init__(self, cache: ResponseCache | None = None) -> None:
        """Initialize the repository.

        Args:
            cache: Workspace document cache; None reads from disk every time

        """
        self.cache = cache

    @staticmethod
    def _cache_key(workspace_file: Path) -> str:
        return f"workspace:{workspace_file.resolve()}"

    @staticmethod
    def workspace_file_for(path: Path) -> Path:
        return path if path.name == WORKSPACE_FILE_NAME else path / WORKSPACE_FILE_NAME

    @staticmethod
    def discover(start: Path | None = None) -> Path | None:
        """Walk up from start to the nearest directory with a workspace file.

        Returns:
            The workspace root, or None if none exists up to the filesystem root

        """
        current = (start or Path.cwd()).resolve()
        for directory in (current, *current.parents):
            if (directory / WORKSPACE_FILE_NAME).is_file():
                return directory
        return None

    async def _load_document(self, workspace_file: Path) -> dict[str, Any]:
        key = self._cache_key(workspace_file)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Workspace document cache hit for %s", workspace_file)
                return copy.deepcopy(cached)

        document = await asyncio.to_thread(_read_document, workspace_file)
        if self.cache is not None:
            self.cache.set(key, copy.deepcopy(document))
        return document

    async def load(self, path: Path) -> Workspace:
        """Load a workspace.

        Args:
            path: Workspace root or the pnpm-workspace.yaml file itself

        Returns:
            Workspace with catalogs, packages and the raw document

        Raises:
            WorkspaceNotFoundError: If no workspace file exists
            ConfigurationError: If the workspace file is not valid YAML
            InvalidVersionRangeError: If a catalog holds an invalid range

        """
        workspace_file = self.workspace_file_for(path)
        if not workspace_file.is_file():
            raise WorkspaceNotFoundError(
                f"no {WORKSPACE_FILE_NAME} found", str(workspace_file.parent)
            )

        root = workspace_file.parent
        document = await self._load_document(workspace_file)
        patterns = [str(p) for p in document.get("packages") or []]
        packages = await asyncio.to_thread(_load_packages, root, patterns)

        root_package = next((p for p in packages if p.path == root), None)
        name = root_package.name if root_package and root_package.name else None
        workspace = Workspace.from_document(root, document, packages, name)
        logger.debug(
            "Loaded workspace %s: %d catalogs, %d packages",
            root,
            len(workspace.catalogs),
            len(packages),
        )
        return workspace

    async def save(self, workspace: Workspace) -> None:
        """Write the workspace document back atomically.

        Raises:
            OSError: If the file cannot be written

        """
        workspace_file = workspace.workspace_file
        await asyncio.to_thread(_write_document, workspace_file, workspace.document)
        if self.cache is not None:
            self.cache.delete(self._cache_key(workspace_file))
        logger.debug("Saved %s", workspace_file)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(self.workspace_file_for(path).is_file)
