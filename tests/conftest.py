"""Pytest configuration and fixtures for pnpm-catalog-updater tests."""

import logging
import os
import tempfile
from pathlib import Path

import orjson
import pytest
import yaml

# Keep test runs out of ~/.config/pcu/logs; must be set before the first
# get_logger() call initializes the file handler.
os.environ.setdefault("PCU_LOG_DIR", tempfile.mkdtemp(prefix="pcu-test-logs-"))


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Enable log propagation for all loggers during tests.

    This allows pytest's caplog fixture to capture logs from all loggers,
    even those created with propagate=False in production code.
    """
    original_propagation = {}
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("catalog_updater"):
            logger = logging.getLogger(name)
            original_propagation[name] = logger.propagate
            logger.propagate = True

    yield

    for name, propagate_value in original_propagation.items():
        logger = logging.getLogger(name)
        logger.propagate = propagate_value


@pytest.fixture(autouse=True)
def isolated_npm_env(monkeypatch, tmp_path):
    """Hide the developer's npmrc files and registry variables."""
    home = tmp_path / "isolated-home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.lower().startswith("npm_config_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_workspace(tmp_path):
    """Write a pnpm workspace to disk and return its root.

    Usage:
        root = make_workspace(
            {"catalog": {"lodash": "^4.17.20"}},
            packages={"packages/app": {"name": "app", ...}},
        )
    """

    def _make(
        document: dict,
        packages: dict[str, dict] | None = None,
        root_package: dict | None = None,
        config: dict | None = None,
    ) -> Path:
        root = tmp_path / "workspace"
        root.mkdir(exist_ok=True)
        (root / "pnpm-workspace.yaml").write_text(
            yaml.safe_dump(document, sort_keys=False), encoding="utf-8"
        )
        if root_package is not None:
            (root / "package.json").write_bytes(orjson.dumps(root_package))
        for rel_path, manifest in (packages or {}).items():
            package_dir = root / rel_path
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / "package.json").write_bytes(orjson.dumps(manifest))
        if config is not None:
            (root / ".pcurc.json").write_bytes(orjson.dumps(config))
        return root

    return _make
