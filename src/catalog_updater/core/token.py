"""Registry token storage using the system keyring.

Tokens are stored per registry host under the ``pcu-registry`` service,
so ``npm.pkg.github.com`` and ``registry.npmjs.org`` can hold different
tokens. Tokens found in .npmrc files take precedence; the keyring is the
fallback for users who keep secrets out of dotfiles.
"""

import keyring
import keyring.errors
from keyring.backends import fail

from catalog_updater.constants import KEYRING_SERVICE_NAME
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

_MASK_VISIBLE_CHARS = 4


def mask_token(token: str | None) -> str:
    """Return a log-safe form of a token.

    Args:
        token: Secret to mask

    Returns:
        ``abcd...wxyz`` for long tokens, ``****`` otherwise

    """
    if not token:
        return "<none>"
    if len(token) <= _MASK_VISIBLE_CHARS * 3:
        return "****"
    return f"{token[:_MASK_VISIBLE_CHARS]}...{token[-_MASK_VISIBLE_CHARS:]}"


class RegistryTokenStore:
    """Keyring-backed token storage keyed by registry host."""

    def __init__(self, service: str = KEYRING_SERVICE_NAME) -> None:
        """Initialize the token store.

        Args:
            service: Keyring service name

        """
        self.service = service
        self._initialized = False
        self._unavailable = False

    def _ensure_initialized(self) -> None:
        """Detect a usable keyring backend on first use."""
        if self._initialized or self._unavailable:
            return

        try:
            backend = keyring.get_keyring()
        except keyring.errors.KeyringError as e:
            self._unavailable = True
            logger.debug("Keyring backend unavailable: %s", e)
            return

        if isinstance(backend, fail.Keyring):
            self._unavailable = True
            logger.debug("No keyring backend configured")
            return
        self._initialized = True

    def is_available(self) -> bool:
        """Check if keyring is available for use."""
        self._ensure_initialized()
        return not self._unavailable

    def get(self, host: str) -> str | None:
        """Retrieve the token stored for a registry host.

        Args:
            host: Registry hostname

        Returns:
            The token, or None if none is stored or keyring is unavailable

        """
        self._ensure_initialized()
        if self._unavailable:
            return None

        try:
            token = keyring.get_password(self.service, host)
        except keyring.errors.KeyringError:
            # Security: Don't log exception details
            logger.debug("Keyring access failed for %s", host)
            return None

        if token:
            logger.debug("Registry token for %s retrieved from keyring", host)
            return token
        return None

    def set(self, host: str, token: str) -> None:
        """Store a token for a registry host.

        Raises:
            keyring.errors.KeyringError: If keyring storage fails

        """
        self._ensure_initialized()
        try:
            keyring.set_password(self.service, host, token)
        except keyring.errors.KeyringError:
            logger.exception("Failed to save registry token for %s", host)
            raise
        logger.debug("Saved registry token %s for %s", mask_token(token), host)

    def delete(self, host: str) -> None:
        """Remove the token for a registry host.

        Raises:
            keyring.errors.PasswordDeleteError: If no token is stored

        """
        self._ensure_initialized()
        try:
            keyring.delete_password(self.service, host)
        except keyring.errors.PasswordDeleteError:
            logger.debug("No registry token stored for %s", host)
            raise
        logger.debug("Removed registry token for %s", host)
