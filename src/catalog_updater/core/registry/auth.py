"""Registry authentication.

Tokens come from the resolved npmrc configuration first and fall back to
the keyring-backed token store keyed by registry host.
"""

from urllib.parse import urlparse

from catalog_updater.config.npmrc import NpmrcConfig
from catalog_updater.core.token import RegistryTokenStore, mask_token
from catalog_updater.logger import get_logger

logger = get_logger(__name__)


class RegistryAuthManager:
    """Applies bearer tokens to registry requests."""

    def __init__(
        self,
        npmrc: NpmrcConfig,
        token_store: RegistryTokenStore | None = None,
    ) -> None:
        """Initialize the auth manager.

        Args:
            npmrc: Resolved registry configuration
            token_store: Keyring fallback; None disables it

        """
        self.npmrc = npmrc
        self.token_store = token_store
        self._logged_hosts: set[str] = set()

    @classmethod
    def create_default(cls, npmrc: NpmrcConfig) -> "RegistryAuthManager":
        return cls(npmrc, RegistryTokenStore())

    def get_token(self, registry_url: str) -> str | None:
        """Resolve the token for a registry URL.

        Args:
            registry_url: Registry base URL

        Returns:
            Token from npmrc, else from the keyring, else None

        """
        token = self.npmrc.auth_token_for(registry_url)
        if token:
            return token
        host = urlparse(registry_url).hostname
        if host and self.token_store is not None:
            return self.token_store.get(host)
        return None

    def apply_auth(
        self, headers: dict[str, str], registry_url: str
    ) -> dict[str, str]:
        """Set the Authorization header when a token is known.

        Args:
            headers: Request headers to update
            registry_url: Registry the request goes to

        Returns:
            The updated headers

        """
        token = self.get_token(registry_url)
        if token:
            headers["Authorization"] = f"Bearer {token}"
            if registry_url not in self._logged_hosts:
                self._logged_hosts.add(registry_url)
                logger.debug(
                    "Using token %s for %s", mask_token(token), registry_url
                )
        return headers
