"""JSON schemas for project configuration files."""

from catalog_updater.config.schemas.validator import ConfigValidator

__all__ = ["ConfigValidator"]
