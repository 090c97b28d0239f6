"""Tests for the INI settings manager."""

from pathlib import Path

import pytest

from catalog_updater.config import ConfigManager
from catalog_updater.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_REGISTRY,
    DEFAULT_RETRIES,
)


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    return ConfigManager(config_dir=tmp_path / "pcu")


def test_missing_settings_file_is_created(config_manager):
    config = config_manager.load_global_config()

    assert config_manager.settings_file.is_file()
    assert config["network"]["registry"] == DEFAULT_REGISTRY
    assert config["network"]["concurrency"] == DEFAULT_CONCURRENCY
    assert config["directory"]["cache"] == config_manager.config_dir / "cache"


def test_written_settings_round_trip(config_manager):
    first = config_manager.load_global_config()
    second = config_manager.load_global_config()
    assert first == second


def test_values_are_parsed(config_manager):
    config_manager.settings_file.write_text(
        "[DEFAULT]\n"
        "log_level = debug\n"
        "[network]\n"
        "concurrency = 3  # lower for CI\n"
        "timeout_seconds = 5\n"
        "registry = https://npm.example.com/\n",
        encoding="utf-8",
    )
    config = config_manager.load_global_config()

    assert config["log_level"] == "DEBUG"
    assert config["network"]["concurrency"] == 3
    assert config["network"]["timeout_seconds"] == 5
    assert config["network"]["registry"] == "https://npm.example.com/"
    assert config["network"]["retry_attempts"] == DEFAULT_RETRIES


def test_invalid_integer_uses_default(config_manager):
    config_manager.settings_file.write_text(
        "[network]\nconcurrency = many\nretry_attempts = 0\n",
        encoding="utf-8",
    )
    config = config_manager.load_global_config()

    assert config["network"]["concurrency"] == DEFAULT_CONCURRENCY
    assert config["network"]["retry_attempts"] == 1
