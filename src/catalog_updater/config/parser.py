"""INI parser utilities for catalog updater configuration."""

from datetime import UTC, datetime

from catalog_updater.constants import (
    GLOBAL_CONFIG_VERSION,
    ISO_DATETIME_FORMAT,
    KEY_CONFIG_VERSION,
    SECTION_DEFAULT,
    SECTION_DIRECTORY,
    SECTION_NETWORK,
)


def _strip_inline_comment(value: str) -> str:
    """Strip inline comments from configuration values.

    Args:
        value: Configuration value that may contain inline comment

    Returns:
        Value with inline comment removed (anything after '  #')

    """
    if "  #" in value:
        return value.split("  #")[0].strip()
    return value


class ConfigCommentManager:
    """Comments written into settings.conf."""

    @staticmethod
    def get_file_header() -> str:
        """Generate file header comment with timestamp.

        Returns:
            Header comment string for the configuration file

        """
        timestamp = datetime.now(tz=UTC).strftime(ISO_DATETIME_FORMAT)
        return f"""# pnpm-catalog-updater Configuration
# Settings for checking and updating pnpm workspace catalogs.
#
# Last updated: {timestamp}
# Configuration version: {GLOBAL_CONFIG_VERSION}

"""

    @staticmethod
    def get_section_comments() -> dict[str, str]:
        """Get comments for each configuration section.

        Returns:
            Dictionary mapping section names to their comment strings

        """
        return {
            SECTION_DEFAULT: """# ========================================
# MAIN CONFIGURATION
# ========================================
# config_version: Version of configuration format (DO NOT EDIT)
# log_level: Detail level for log files (DEBUG, INFO, WARNING, ERROR)
# console_log_level: Console output detail level (DEBUG, INFO, etc.)

""",
            SECTION_NETWORK: """
# ========================================
# NETWORK CONFIGURATION
# ========================================
# retry_attempts: Attempts per registry request (1-10)
# timeout_seconds: Per-request timeout in seconds
# concurrency: Registry requests in flight at once
# rate_limit: Maximum request starts per second (0 disables)
# cache_validity_minutes: Base TTL for registry responses (0 disables)
# registry: Default registry when no .npmrc sets one
# osv_api_url: Vulnerability database endpoint

""",
            SECTION_DIRECTORY: """
# ========================================
# DIRECTORY PATHS
# ========================================
# Use absolute paths or paths starting with ~ for home directory.
#
# settings: Configuration directory
# logs: Log files location
# cache: Registry response cache

""",
        }

    @staticmethod
    def get_key_comments() -> dict[str, dict[str, str]]:
        """Get inline comments for specific configuration keys.

        Returns:
            Nested dictionary mapping section -> key -> comment

        """
        return {
            SECTION_DEFAULT: {
                KEY_CONFIG_VERSION: "# DO NOT MODIFY - Config format version",
            },
            SECTION_NETWORK: {},
            SECTION_DIRECTORY: {},
        }
