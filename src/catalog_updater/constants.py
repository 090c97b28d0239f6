"""Centralized constants module for pnpm-catalog-updater.

Constants are grouped by concern and use typing.Final annotations.

Usage:
    from catalog_updater.constants import DEFAULT_REGISTRY
"""

from typing import Final

# =============================================================================
# Configuration Constants
# =============================================================================

GLOBAL_CONFIG_VERSION: Final[str] = "1.0.0"
CONFIG_FILE_NAME: Final[str] = "settings.conf"
CONFIG_DIR_NAME: Final[str] = ".config"
DEFAULT_CONFIG_SUBDIR: Final[str] = "pcu"

DEFAULT_LOG_LEVEL: Final[str] = "INFO"
DEFAULT_CONSOLE_LOG_LEVEL: Final[str] = "WARNING"

ISO_DATETIME_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

SECTION_DEFAULT: Final[str] = "DEFAULT"
SECTION_NETWORK: Final[str] = "network"
SECTION_DIRECTORY: Final[str] = "directory"

KEY_CONFIG_VERSION: Final[str] = "config_version"
KEY_LOG_LEVEL: Final[str] = "log_level"
KEY_CONSOLE_LOG_LEVEL: Final[str] = "console_log_level"

DIRECTORY_KEYS: Final[tuple[str, ...]] = (
    "settings",
    "logs",
    "cache",
)

# Project-level package rule files, in lookup order
PROJECT_CONFIG_FILE_NAMES: Final[tuple[str, ...]] = (
    ".pcurc.json",
    "pcu.config.json",
)

# =============================================================================
# Registry Constants
# =============================================================================

DEFAULT_REGISTRY: Final[str] = "https://registry.npmjs.org/"
ABBREVIATED_METADATA_ACCEPT: Final[str] = (
    "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8"
)
AUDIT_ENDPOINT: Final[str] = "-/npm/v1/security/audits"
SEARCH_ENDPOINT: Final[str] = "-/v1/search"

DEFAULT_CONCURRENCY: Final[int] = 8
DEFAULT_TIMEOUT_SECONDS: Final[int] = 15
DEFAULT_RETRIES: Final[int] = 2
DEFAULT_RATE_LIMIT: Final[int] = 15
DEFAULT_CACHE_VALIDITY_MINUTES: Final[int] = 10

# TTL multipliers applied to the configured cache validity base
VERSIONS_TTL_MULTIPLIER: Final[int] = 1
PACKAGE_INFO_TTL_MULTIPLIER: Final[int] = 2
SECURITY_TTL_MULTIPLIER: Final[int] = 6

RETRY_BASE_DELAY_MS: Final[int] = 1000
RETRY_MAX_DELAY_MS: Final[int] = 10000

HTTP_NOT_FOUND: Final[int] = 404

# =============================================================================
# Cache Constants
# =============================================================================

CACHE_DEFAULT_TTL_SECONDS: Final[float] = 60 * 60
CACHE_DEFAULT_MAX_SIZE_BYTES: Final[int] = 50 * 1024 * 1024
CACHE_DEFAULT_MAX_ENTRIES: Final[int] = 1000
CACHE_CLEANUP_INTERVAL_SECONDS: Final[float] = 5 * 60

REGISTRY_CACHE_NAME: Final[str] = "registry"
REGISTRY_CACHE_MAX_SIZE_BYTES: Final[int] = 10 * 1024 * 1024
REGISTRY_CACHE_MAX_ENTRIES: Final[int] = 500

WORKSPACE_CACHE_NAME: Final[str] = "workspace"
WORKSPACE_CACHE_TTL_SECONDS: Final[float] = 5 * 60
WORKSPACE_CACHE_MAX_SIZE_BYTES: Final[int] = 5 * 1024 * 1024
WORKSPACE_CACHE_MAX_ENTRIES: Final[int] = 200

CACHE_INDEX_FILE: Final[str] = "index.json"

# =============================================================================
# Security Advisory Constants
# =============================================================================

OSV_API_URL: Final[str] = "https://api.osv.dev/v1"
OSV_ECOSYSTEM: Final[str] = "npm"
OSV_BATCH_SIZE: Final[int] = 100
OSV_FALLBACK_CONCURRENCY: Final[int] = 5
OSV_MAX_REFERENCES: Final[int] = 5
ECOSYSTEM_PACKAGE_LIMIT: Final[int] = 20
ECOSYSTEM_TIMEOUT_FACTOR: Final[float] = 0.8
SAFE_VERSION_SEARCH_LIMIT: Final[int] = 10
MONOREPO_SIBLING_SUFFIXES: Final[tuple[str, ...]] = (
    "-dom",
    "-server",
    "-server-dom",
    "-native",
    "-test",
    "-reconciler",
    "-refresh",
    "-devtools",
)
SEARCH_RESULT_SIZE: Final[int] = 50

CVSS_CRITICAL: Final[float] = 9.0
CVSS_HIGH: Final[float] = 7.0
CVSS_MODERATE: Final[float] = 4.0

# =============================================================================
# Workspace & Backup Constants
# =============================================================================

WORKSPACE_FILE_NAME: Final[str] = "pnpm-workspace.yaml"
PACKAGE_JSON_NAME: Final[str] = "package.json"
DEFAULT_CATALOG_NAME: Final[str] = "default"
CATALOG_PROTOCOL: Final[str] = "catalog:"

BACKUP_INFIX: Final[str] = ".backup."
BACKUP_TEMP_SUFFIX: Final[str] = ".tmp"
DEFAULT_MAX_BACKUPS: Final[int] = 10

# =============================================================================
# Update Messages
# =============================================================================

CONFLICT_SKIP_REASON: Final[str] = "Version conflict - use --force to override"
SYNC_NEW_REASON: Final[str] = "Sync version with other catalogs"
SYNC_EXISTING_REASON: Final[str] = "Sync version across catalogs: {reason}"
PRIORITY_REASON: Final[str] = (
    "Using version from priority catalog ({catalog}): {reason}"
)
PRIORITY_RECOMMENDATION: Final[str] = (
    "Resolved using catalog priority. Priority catalog '{catalog}' "
    "version '{version}' selected."
)
SAVE_FAILED_MESSAGE: Final[str] = "Failed to save workspace: {error}"

# =============================================================================
# Logging Constants
# =============================================================================

LOG_ROTATION_THRESHOLD_BYTES: Final[int] = 1024 * 1024
LOG_BACKUP_COUNT: Final[int] = 3
LOG_FILE_NAME: Final[str] = "pcu.log"
LOG_DIR_ENV: Final[str] = "PCU_LOG_DIR"

LOG_CONSOLE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_CONSOLE_DATE_FORMAT: Final[str] = "%H:%M:%S"
LOG_FILE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(funcName)s:%(lineno)d - %(message)s"
)
LOG_FILE_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
}

# Keyring service name for registry tokens
KEYRING_SERVICE_NAME: Final[str] = "pcu-registry"
