"""Common base for mailbox provider clients.

Objective:
    Provide the narrow provider interface the engine depends on, plus the
    HTTP plumbing shared by the concrete clients:
    - :meth:`MailboxProvider.list_items` (every page, system items included)
    - :meth:`MailboxProvider.find_item_by_exact_name`
    - :meth:`MailboxProvider.create_item`

Responsibilities:
    - Issue authenticated HTTP requests (via :mod:`requests`).
    - Replay a request once after refreshing the credential on HTTP 401.
    - Raise ``requests.HTTPError`` for any other non-2xx response.

High-level call tree:
    - :class:`MailboxProvider`
        - :meth:`_make_request`
            - :meth:`ProviderCredential.get_auth_headers`
            - :meth:`ProviderCredential.refresh` (HTTP 401 only)

Error handling:
    - HTTP errors are logged and raised from :meth:`_make_request`; callers
      decide whether a failure is fatal (discovery) or item-level
      (provisioning).
    - A refresh callback that raises is reported as
      :class:`mailbox_taxonomy.exceptions.ProviderError` with status 401.
    - There is no retry loop besides the single post-refresh replay.
"""

import logging
from typing import AbstractSet, Optional

import requests

from .auth import ProviderCredential
from .config import ProviderConfig, Settings
from .exceptions import ProviderError
from .models import ProviderItem

logger = logging.getLogger(__name__)


class MailboxProvider:
    """
    Base class for provider clients.

    Subclasses set :attr:`base_url` from settings and implement
    :meth:`list_items` and :meth:`create_item`.

    Attributes:
        settings: Application settings.
        credential: Bearer credential for the account.
        provider_config: Native limits of the provider.
    """

    base_url = ""

    def __init__(
        self,
        settings: Settings,
        credential: ProviderCredential,
        provider_config: ProviderConfig,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Application settings.
            credential: Bearer credential for the account.
            provider_config: Native limits of the provider.
        """
        self.settings = settings
        self.credential = credential
        self.provider_config = provider_config

    @property
    def name(self) -> str:
        """Provider identifier."""
        return self.provider_config.name.value

    @property
    def delimiter(self) -> str:
        """Hierarchy delimiter used in full display names."""
        return self.provider_config.delimiter

    @property
    def supports_color(self) -> bool:
        """Whether :meth:`create_item` honours a color."""
        return self.provider_config.supports_color

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        suppress_statuses: Optional[AbstractSet[int]] = None,
    ) -> dict:
        """Make an authenticated request to the provider.

        This helper:
        - Adds auth headers (Bearer token).
        - Accepts an absolute URL (pagination links) or a path relative to
          :attr:`base_url`.
        - Refreshes the credential and replays once on HTTP 401.
        - Raises for non-2xx responses.
        - Returns decoded JSON or ``{}`` for 204 responses.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            endpoint: API endpoint path or absolute URL.
            params: Query parameters.
            json_data: JSON body data.
            suppress_statuses: Statuses logged at debug instead of error.

        Returns:
            dict: Response JSON data.

        Raises:
            requests.HTTPError: If request fails.
            ProviderError: If the credential refresh callback raises.
        """
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            url = endpoint
        else:
            url = f"{self.base_url}{endpoint}"

        response = self._send(method, url, params, json_data)

        if response.status_code == 401 and self.credential.can_refresh:
            logger.debug("%s returned 401; refreshing credential", self.name)
            try:
                refreshed = self.credential.refresh()
            except Exception as e:
                logger.error(f"{self.name} credential refresh failed: {e}")
                raise ProviderError(
                    f"{self.name} credential refresh failed: {e}", status_code=401
                ) from e
            if refreshed:
                response = self._send(method, url, params, json_data)

        if not response.ok:
            suppress = suppress_statuses and response.status_code in suppress_statuses
            if suppress:
                logger.debug(
                    "%s API expected non-2xx: %s - %s",
                    self.name,
                    response.status_code,
                    response.text,
                )
            else:
                logger.error(
                    f"{self.name} API error: {response.status_code} - {response.text}"
                )
            response.raise_for_status()

        if response.status_code == 204:
            return {}

        return response.json()

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[dict],
        json_data: Optional[dict],
    ) -> requests.Response:
        return requests.request(
            method=method,
            url=url,
            headers=self.credential.get_auth_headers(),
            params=params,
            json=json_data,
            timeout=self.settings.request_timeout,
        )

    def list_items(self) -> list[ProviderItem]:
        """Return every organizational item of the account, across all pages.

        Returns:
            list[ProviderItem]: Items with full display names.
        """
        raise NotImplementedError

    def find_item_by_exact_name(self, name: str) -> Optional[ProviderItem]:
        """Look up an item by its full display name (case-sensitive).

        The lookup always reads live provider state.

        Args:
            name: Full display name, segments joined with :attr:`delimiter`.

        Returns:
            Optional[ProviderItem]: The item, or None if it does not exist.
        """
        for item in self.list_items():
            if item.name == name:
                return item
        return None

    def create_item(self, name: str, color: Optional[str] = None) -> ProviderItem:
        """Create an item with a full display name.

        Args:
            name: Full display name, segments joined with :attr:`delimiter`.
            color: Validated ``#RRGGBB`` color, or None.

        Returns:
            ProviderItem: The created item.
        """
        raise NotImplementedError
