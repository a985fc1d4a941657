"""Microsoft Graph client for Outlook mail folder operations.

Objective:
    Expose Outlook mail folders through the
    :class:`mailbox_taxonomy.provider.MailboxProvider` interface. Graph
    nests folders by id rather than by name, so this client rebuilds full
    display names from the parent chain (``Team\\Sales``) and resolves the
    parent folder by path when creating a nested folder.
    Master categories are listed next to the folders as flat user items;
    provisioning only ever creates folders.

Graph endpoints used:
    - ``GET /me/mailFolders``
    - ``GET /me/mailFolders/{id}/childFolders``
    - ``GET /me/mailFolders/{well-known name}`` (system folder ids)
    - ``GET /me/outlook/masterCategories``
    - ``POST /me/mailFolders`` (create root folder)
    - ``POST /me/mailFolders/{id}/childFolders`` (create child folder)

System folders:
    Display names of built-in folders are localized (``Posteingang``), so
    they are recognized by id. The ids are resolved through Graph's
    well-known folder names on every listing; a name the mailbox does not
    have (404) is skipped. Hidden folders are system folders as well.

Pagination:
    Graph returns ``@odata.nextLink`` when a folder has more children than
    the requested page size; every link is followed before returning.

Error handling:
    - HTTP errors propagate from :meth:`_make_request`; a discovery must not
      see a partial folder tree.
    - Creating a child folder whose parent does not exist raises
      :class:`mailbox_taxonomy.exceptions.ProvisionItemFailed`.
"""

import logging
from typing import AbstractSet, Optional
from urllib.parse import quote

import requests

from .auth import ProviderCredential
from .config import ProviderName, Settings, get_provider_config
from .exceptions import ProvisionItemFailed
from .models import ItemKind, ItemType, ProviderItem
from .provider import MailboxProvider

logger = logging.getLogger(__name__)

# Graph well-known folder names of folders created and owned by Exchange.
WELL_KNOWN_FOLDERS = (
    "inbox",
    "drafts",
    "sentitems",
    "deleteditems",
    "junkemail",
    "archive",
    "outbox",
    "scheduled",
    "conversationhistory",
    "syncissues",
    "conflicts",
    "localfailures",
    "serverfailures",
    "clutter",
)

FOLDER_SELECT = (
    "id,displayName,parentFolderId,childFolderCount,totalItemCount,"
    "unreadItemCount,isHidden"
)


class OutlookFolderClient(MailboxProvider):
    """
    Client for Outlook folder discovery and creation.

    Attributes:
        settings: Application settings.
        credential: Microsoft Graph bearer credential.
    """

    def __init__(self, settings: Settings, credential: ProviderCredential) -> None:
        """
        Initialize the Outlook client.

        Args:
            settings: Application settings.
            credential: Microsoft Graph bearer credential.
        """
        super().__init__(
            settings, credential, get_provider_config(ProviderName.OUTLOOK)
        )
        self.base_url = settings.graph_base_url.rstrip("/")

    def _folder_to_item(
        self, folder: dict, full_name: str, system_ids: AbstractSet[str]
    ) -> ProviderItem:
        """Convert a Graph mailFolder resource into a :class:`ProviderItem`."""
        is_system = folder.get("isHidden", False) or folder["id"] in system_ids
        return ProviderItem(
            id=folder["id"],
            name=full_name,
            kind=ItemKind.SYSTEM if is_system else ItemKind.USER,
            item_type=ItemType.FOLDER,
            messages_total=folder.get("totalItemCount", 0),
            messages_unread=folder.get("unreadItemCount", 0),
        )

    def _get_well_known_folder_ids(self) -> frozenset[str]:
        """Resolve the ids of the folders Exchange owns.

        Returns:
            frozenset[str]: Ids of the well-known folders present in the
            mailbox.
        """
        ids = set()
        for well_known_name in WELL_KNOWN_FOLDERS:
            try:
                folder = self._make_request(
                    "GET",
                    f"/me/mailFolders/{well_known_name}",
                    params={"$select": "id"},
                    suppress_statuses={404},
                )
            except requests.HTTPError as e:
                status_code = getattr(getattr(e, "response", None), "status_code", None)
                if status_code == 404:
                    logger.debug("Well-known folder %s not present", well_known_name)
                    continue
                raise
            if folder.get("id"):
                ids.add(folder["id"])
        return frozenset(ids)

    def _get_folder_page_chain(self, endpoint: str) -> list[dict]:
        """Fetch every page of a folder collection.

        Args:
            endpoint: Collection endpoint.

        Returns:
            list[dict]: Raw mailFolder resources.
        """
        params: Optional[dict] = {
            "$top": self.settings.page_size,
            "$select": FOLDER_SELECT,
        }
        folders: list[dict] = []
        next_url: Optional[str] = endpoint

        while next_url:
            response = self._make_request("GET", next_url, params=params)
            folders.extend(response.get("value", []))
            next_url = response.get("@odata.nextLink")
            # The next link already carries the query string.
            params = None

        return folders

    def _get_child_folders(
        self, parent_id: str, parent_name: str, system_ids: AbstractSet[str]
    ) -> list[ProviderItem]:
        """Get descendant folders of a parent folder, depth-first.

        Args:
            parent_id: Parent folder ID.
            parent_name: Full display name of the parent.
            system_ids: Ids of the well-known folders.

        Returns:
            list[ProviderItem]: Descendants with full display names.
        """
        endpoint = f"/me/mailFolders/{quote(parent_id, safe='')}/childFolders"

        items: list[ProviderItem] = []
        for folder in self._get_folder_page_chain(endpoint):
            full_name = f"{parent_name}{self.delimiter}{folder.get('displayName', '')}"
            items.append(self._folder_to_item(folder, full_name, system_ids))

            if folder.get("childFolderCount", 0) > 0:
                items.extend(self._get_child_folders(folder["id"], full_name, system_ids))

        return items

    def _list_folders(self, system_ids: AbstractSet[str]) -> list[ProviderItem]:
        """List every mail folder, parents before children."""
        items: list[ProviderItem] = []

        for folder in self._get_folder_page_chain("/me/mailFolders"):
            full_name = folder.get("displayName", "")
            items.append(self._folder_to_item(folder, full_name, system_ids))

            if folder.get("childFolderCount", 0) > 0:
                items.extend(self._get_child_folders(folder["id"], full_name, system_ids))

        return items

    def _get_categories(self) -> list[ProviderItem]:
        """List the master categories of the mailbox.

        Returns:
            list[ProviderItem]: One flat user item per category; the color is
            the Graph preset name (``preset0`` to ``preset24``).
        """
        response = self._make_request("GET", "/me/outlook/masterCategories")

        items = []
        for category in response.get("value", []):
            color = category.get("color")
            items.append(
                ProviderItem(
                    id=category["id"],
                    name=category.get("displayName", ""),
                    item_type=ItemType.CATEGORY,
                    color=color if color and color != "none" else None,
                )
            )
        return items

    def list_items(self) -> list[ProviderItem]:
        """List every mail folder and master category.

        Returns:
            list[ProviderItem]: System and user folders with full display
            names (parents before children), followed by the categories.
        """
        folders = self._list_folders(self._get_well_known_folder_ids())
        categories = self._get_categories()

        logger.debug(
            f"Found {len(folders)} Outlook folders and {len(categories)} categories"
        )
        return folders + categories

    def find_item_by_exact_name(self, name: str) -> Optional[ProviderItem]:
        """Look up a folder by its full display name (case-sensitive).

        Categories are not considered: only folders can be parents or
        provisioning targets. The folder kind is not resolved here.

        Args:
            name: Full folder name, segments joined with ``\\``.

        Returns:
            Optional[ProviderItem]: The folder, or None if it does not exist.
        """
        for item in self._list_folders(frozenset()):
            if item.name == name:
                return item
        return None

    def create_item(self, name: str, color: Optional[str] = None) -> ProviderItem:
        """Create a mail folder from its full display name.

        Outlook folders carry no color; a color argument is ignored.

        Args:
            name: Full folder name, segments joined with ``\\``.
            color: Ignored.

        Returns:
            ProviderItem: The created folder.

        Raises:
            ProvisionItemFailed: If the parent folder does not exist.
            requests.HTTPError: If Graph rejects the folder (409 on conflict).
        """
        segments = name.split(self.delimiter)
        display_name = segments[-1]

        if len(segments) == 1:
            endpoint = "/me/mailFolders"
        else:
            parent_name = self.delimiter.join(segments[:-1])
            parent = self.find_item_by_exact_name(parent_name)
            if not parent:
                raise ProvisionItemFailed(
                    name, f"Parent folder {parent_name!r} does not exist"
                )
            endpoint = f"/me/mailFolders/{quote(parent.id, safe='')}/childFolders"

        response = self._make_request(
            "POST",
            endpoint,
            json_data={"displayName": display_name},
            suppress_statuses={409},
        )
        logger.debug(f"Created Outlook folder: {name}")
        return self._folder_to_item(response, name, frozenset())
