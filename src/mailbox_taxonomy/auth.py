"""Bearer credential handed to the provider clients.

Objective:
    Token acquisition belongs to the caller's OAuth flow. The engine only
    needs a valid access token and, optionally, a way to refresh it when the
    provider reports that the token has expired.

High-level call tree:
    - :class:`ProviderCredential`
        - :meth:`ProviderCredential.get_auth_headers`
        - :meth:`ProviderCredential.refresh` (called by
          :meth:`mailbox_taxonomy.provider.MailboxProvider._make_request` on
          HTTP 401)
"""

import logging
from typing import Callable, Optional

from .config import ProviderName

logger = logging.getLogger(__name__)


class ProviderCredential:
    """
    Refreshable bearer credential for one mailbox account.

    Attributes:
        provider: Provider the token was issued for.
        account_id: Caller-side account identifier, used for logging and as
            the mapping persistence key.
    """

    def __init__(
        self,
        provider: "ProviderName | str",
        access_token: str,
        refresher: Optional[Callable[[], str]] = None,
        account_id: Optional[str] = None,
    ) -> None:
        """
        Initialize the credential.

        Args:
            provider: Provider name (``gmail`` or ``outlook``).
            access_token: Current OAuth access token.
            refresher: Callable returning a fresh access token.
            account_id: Optional caller-side account identifier.

        Raises:
            ValueError: If the token is empty or the provider is unknown.
        """
        if not access_token:
            raise ValueError("access_token must be a non-empty string")

        self.provider = ProviderName(provider)
        self.account_id = account_id
        self._access_token = access_token
        self._refresher = refresher

    @property
    def can_refresh(self) -> bool:
        """Whether a refresh callback was supplied."""
        return self._refresher is not None

    def refresh(self) -> bool:
        """Replace the access token using the refresh callback.

        Returns:
            bool: True if a new token was obtained.
        """
        if not self._refresher:
            return False

        token = self._refresher()
        if not token:
            logger.warning(
                "Credential refresh returned an empty token (account_id=%s)",
                self.account_id,
            )
            return False

        self._access_token = token
        logger.debug("Refreshed %s access token", self.provider.value)
        return True

    def get_auth_headers(self) -> dict[str, str]:
        """
        Get HTTP headers with authorization for provider requests.

        Returns:
            dict[str, str]: Headers dictionary with Bearer token.
        """
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    def __repr__(self) -> str:
        return (
            f"ProviderCredential(provider={self.provider.value!r}, "
            f"account_id={self.account_id!r})"
        )
