"""Dependency injection container for service wiring.

This module provides a ServiceContainer that centralizes service
instantiation for CLI commands. It owns the shared resources (HTTP
session and response caches) and wires them into the services.

All services are created lazily on first access. Caches are created
here and injected; nothing in the core holds a process-wide instance.

Usage:
    >>> container = ServiceContainer(ConfigManager(), workspace_path=path)
    >>> await container.start()
    >>> try:
    ...     report = await container.check_engine.check_outdated_dependencies(
    ...         CheckOptions(workspace_path=path)
    ...     )
    ... finally:
    ...     await container.cleanup()
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp

from catalog_updater.config import ConfigManager
from catalog_updater.config.npmrc import NpmrcConfig
from catalog_updater.core.backup import BackupService
from catalog_updater.core.cache import (
    ResponseCache,
    create_registry_cache,
    create_workspace_cache,
)
from catalog_updater.core.http_session import build_session
from catalog_updater.core.protocols.progress import (
    NullProgressReporter,
    ProgressReporter,
)
from catalog_updater.core.registry import RegistryClient
from catalog_updater.core.security import (
    NpmAuditSignal,
    OsvSecuritySignal,
    SecurityAdvisoryClient,
    SecuritySignal,
)
from catalog_updater.core.update import CheckEngine, UpdateExecutor, UpdatePlanner
from catalog_updater.core.workspace import WorkspaceRepository
from catalog_updater.logger import get_logger

if TYPE_CHECKING:
    from catalog_updater.types import GlobalConfig, NetworkConfig

logger = get_logger(__name__)


class ServiceContainer:
    """Container for managing service lifecycle and dependencies.

    Attributes:
        config: Configuration manager for settings and project rules
        progress: Progress reporter injected into the check engine
        workspace_path: Workspace the command operates on

    Available Services (lazy-loaded, one per container):
        - session: aiohttp.ClientSession for registry and OSV calls
        - registry_cache / workspace_cache: ResponseCache instances
        - registry_client: RegistryClient
        - advisory_client: SecurityAdvisoryClient
        - security_signals: SecuritySignal implementations by backend name
        - workspace_repository: WorkspaceRepository
        - backup_service: BackupService
        - check_engine / update_planner / update_executor

    Each CLI command execution should use its own container instance.
    """

    def __init__(
        self,
        config_manager: ConfigManager | None = None,
        progress_reporter: ProgressReporter | None = None,
        *,
        workspace_path: Path | None = None,
    ) -> None:
        """Initialize container with required infrastructure.

        Args:
            config_manager: Configuration manager. Creates default if not
                provided.
            progress_reporter: UI progress implementation injected from
                the CLI. Uses NullProgressReporter if not provided.
            workspace_path: Workspace root (defaults to the current
                directory)

        """
        self.config = config_manager or ConfigManager()
        self.progress = progress_reporter or NullProgressReporter()
        self.workspace_path = workspace_path or Path.cwd()

        self._global_config: GlobalConfig | None = None
        self._npmrc: NpmrcConfig | None = None
        self._session: aiohttp.ClientSession | None = None
        self._registry_cache: ResponseCache[Any] | None = None
        self._workspace_cache: ResponseCache[Any] | None = None
        self._registry_client: RegistryClient | None = None
        self._advisory_client: SecurityAdvisoryClient | None = None
        self._security_signals: dict[str, SecuritySignal] | None = None
        self._workspace_repository: WorkspaceRepository | None = None
        self._backup_service: BackupService | None = None
        self._check_engine: CheckEngine | None = None
        self._update_planner: UpdatePlanner | None = None
        self._update_executor: UpdateExecutor | None = None

    @property
    def global_config(self) -> GlobalConfig:
        """Global configuration (loaded once)."""
        if self._global_config is None:
            self._global_config = self.config.load_global_config()
        return self._global_config

    @property
    def network(self) -> NetworkConfig:
        return self.global_config["network"]

    @property
    def npmrc(self) -> NpmrcConfig:
        """Registry configuration resolved for the workspace."""
        if self._npmrc is None:
            self._npmrc = self.config.load_npmrc(self.workspace_path)
        return self._npmrc

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = build_session(self.global_config)
            logger.debug("Created new HTTP session")
        return self._session

    @property
    def registry_cache(self) -> ResponseCache[Any]:
        """Disk-backed cache shared by the registry and OSV clients."""
        if self._registry_cache is None:
            self._registry_cache = create_registry_cache(
                self.global_config["directory"]["cache"],
                default_ttl=self.network["cache_validity_minutes"] * 60,
            )
        return self._registry_cache

    @property
    def workspace_cache(self) -> ResponseCache[Any]:
        if self._workspace_cache is None:
            self._workspace_cache = create_workspace_cache()
        return self._workspace_cache

    @property
    def registry_client(self) -> RegistryClient:
        if self._registry_client is None:
            network = self.network
            self._registry_client = RegistryClient(
                self.session,
                self.npmrc,
                self.registry_cache,
                registry=network["registry"],
                concurrency=network["concurrency"],
                timeout=network["timeout_seconds"],
                retries=network["retry_attempts"],
                cache_validity_minutes=network["cache_validity_minutes"],
                rate_limit=network["rate_limit"],
            )
        return self._registry_client

    @property
    def advisory_client(self) -> SecurityAdvisoryClient:
        if self._advisory_client is None:
            self._advisory_client = SecurityAdvisoryClient(
                self.session,
                self.registry_client,
                self.registry_cache,
                api_url=self.network["osv_api_url"],
                timeout=self.network["timeout_seconds"],
            )
        return self._advisory_client

    @property
    def security_signals(self) -> dict[str, SecuritySignal]:
        """Security backends keyed by their ``security.backend`` name."""
        if self._security_signals is None:
            self._security_signals = {
                "audit": NpmAuditSignal(self.registry_client),
                "osv": OsvSecuritySignal(self.advisory_client),
            }
        return self._security_signals

    @property
    def workspace_repository(self) -> WorkspaceRepository:
        if self._workspace_repository is None:
            self._workspace_repository = WorkspaceRepository(self.workspace_cache)
        return self._workspace_repository

    @property
    def backup_service(self) -> BackupService:
        if self._backup_service is None:
            self._backup_service = BackupService.create_default()
        return self._backup_service

    @property
    def check_engine(self) -> CheckEngine:
        if self._check_engine is None:
            self._check_engine = CheckEngine(
                self.registry_client,
                self.workspace_repository,
                self.config,
                self.security_signals,
                self.progress,
                concurrency=self.network["concurrency"],
                rate_limit=self.network["rate_limit"],
            )
        return self._check_engine

    @property
    def update_planner(self) -> UpdatePlanner:
        if self._update_planner is None:
            self._update_planner = UpdatePlanner(self.registry_client)
        return self._update_planner

    @property
    def update_executor(self) -> UpdateExecutor:
        if self._update_executor is None:
            self._update_executor = UpdateExecutor(
                self.workspace_repository, self.backup_service
            )
        return self._update_executor

    async def start(self) -> None:
        """Start the caches (loads the persisted registry cache)."""
        await self.registry_cache.start()
        await self.workspace_cache.start()

    async def cleanup(self) -> None:
        """Destroy the caches and close the HTTP session.

        Safe to call more than once.
        """
        for cache in (self._registry_cache, self._workspace_cache):
            if cache is not None:
                await cache.destroy()
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Closed HTTP session")
        self._session = None
