"""Registry and auth resolution from layered .npmrc/.pnpmrc files.

Files are read lowest priority first, so later files override earlier ones:

1. ~/.npmrc
2. ~/.pnpmrc
3. <project>/.npmrc
4. <project>/.pnpmrc

Environment variables are applied last: ``npm_config_registry`` replaces
the default registry and ``npm_config_<scope>_registry`` sets a scoped one.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from catalog_updater.constants import DEFAULT_REGISTRY
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

_AUTH_KEY_PATTERN = re.compile(r"//(.*?)/:")
_ENV_SCOPE_PATTERN = re.compile(r"^npm_config_(.+)_registry$", re.IGNORECASE)
_ENV_REFERENCE_PATTERN = re.compile(r"\$\{([^}]+)\}")

NPMRC_FILE_NAMES = (".npmrc", ".pnpmrc")


def normalize_registry_url(url: str) -> str:
    """Strip surrounding quotes and ensure a trailing slash.

    Args:
        url: Registry URL as written in a config file

    Returns:
        Normalized URL

    """
    url = url.strip().strip("\"'")
    if not url.endswith("/"):
        url += "/"
    return url


@dataclass
class NpmrcConfig:
    """Resolved registry configuration."""

    registry: str = DEFAULT_REGISTRY
    scoped_registries: dict[str, str] = field(default_factory=dict)
    auth_tokens: dict[str, str] = field(default_factory=dict)
    extra: dict[str, str] = field(default_factory=dict)

    def registry_for(self, package_name: str) -> str:
        """Return the registry serving a package.

        ``@scope/name`` uses the scope's registry when one is configured,
        everything else uses the default registry.
        """
        if package_name.startswith("@") and "/" in package_name:
            scope = package_name.split("/", 1)[0]
            scoped = self.scoped_registries.get(scope)
            if scoped:
                return scoped
        return self.registry

    def auth_token_for(self, registry_url: str) -> str | None:
        """Look up the auth token for a registry URL.

        Tokens keyed with a path (``//host/path/:_authToken``) win over
        host-only keys when the registry URL lives under that path.
        """
        parsed = urlparse(registry_url)
        host = parsed.hostname
        if not host:
            return None

        location = f"{parsed.netloc}{parsed.path}".rstrip("/")
        best_key = None
        for key in self.auth_tokens:
            if location == key or location.startswith(key + "/"):
                if best_key is None or len(key) > len(best_key):
                    best_key = key
        if best_key is not None:
            return self.auth_tokens[best_key]
        return self.auth_tokens.get(host)


def _expand_env(value: str, env: Mapping[str, str]) -> str:
    """Replace ``${VAR}`` references with environment values."""
    return _ENV_REFERENCE_PATTERN.sub(
        lambda match: env.get(match.group(1), ""), value
    )


def _parse_file(path: Path, config: NpmrcConfig, env: Mapping[str, str]) -> None:
    """Merge one npmrc file into config.

    Unreadable files are skipped with a debug log.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug("Failed to read %s: %s", path, e)
        return

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        key, separator, value = line.partition("=")
        if not separator:
            continue
        key = key.strip()
        value = _expand_env(value.strip(), env)

        if key.endswith(":registry"):
            scope = key[: -len(":registry")]
            config.scoped_registries[scope] = normalize_registry_url(value)
        elif key == "registry":
            config.registry = normalize_registry_url(value)
        elif key.endswith("_authToken"):
            match = _AUTH_KEY_PATTERN.search(key)
            if match and match.group(1):
                config.auth_tokens[match.group(1)] = value.strip("\"'")
        else:
            config.extra[key] = value


def _apply_environment(config: NpmrcConfig, env: Mapping[str, str]) -> None:
    """Apply npm_config_* registry overrides."""
    for key, value in env.items():
        if not value:
            continue
        if key.lower() == "npm_config_registry":
            config.registry = normalize_registry_url(value)
            continue
        match = _ENV_SCOPE_PATTERN.match(key)
        if match:
            scope = match.group(1)
            if not scope.startswith("@"):
                scope = f"@{scope}"
            config.scoped_registries[scope] = normalize_registry_url(value)


def load_npmrc_config(
    project_dir: Path,
    home_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    *,
    include_global: bool = True,
) -> NpmrcConfig:
    """Resolve registry configuration for a project.

    Args:
        project_dir: Workspace root
        home_dir: Home directory (defaults to Path.home())
        env: Environment mapping (defaults to os.environ)
        include_global: Whether to read home files and the environment

    Returns:
        Merged NpmrcConfig

    """
    env = os.environ if env is None else env
    home_dir = home_dir or Path.home()
    config = NpmrcConfig()

    paths: list[Path] = []
    if include_global:
        paths.extend(home_dir / name for name in NPMRC_FILE_NAMES)
    paths.extend(project_dir / name for name in NPMRC_FILE_NAMES)

    for path in paths:
        if path.is_file():
            _parse_file(path, config, env)

    if include_global:
        _apply_environment(config, env)

    logger.debug(
        "Resolved registry %s with %d scoped registries",
        config.registry,
        len(config.scoped_registries),
    )
    return config
