"""Top-level package for pnpm-catalog-updater."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pnpm-catalog-updater")
except PackageNotFoundError:
    # Source checkout without an installed distribution
    __version__ = "dev"
