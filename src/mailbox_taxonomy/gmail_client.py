"""Gmail REST API client for label operations.

Objective:
    Expose Gmail labels through the :class:`mailbox_taxonomy.provider.MailboxProvider`
    interface. Gmail nests labels by name: a label called ``Team/Sales`` is a
    child of ``Team``.

Gmail endpoints used:
    - ``GET /users/me/labels``
    - ``POST /users/me/labels``

Label classification:
    Gmail reports ``type: system`` for its own labels. Some responses omit the
    type, so the well-known system ids (``INBOX``, ``CATEGORY_*``,
    ``CHAT``...) are treated as system labels as well.
"""

import logging
from typing import Optional

from .auth import ProviderCredential
from .config import ProviderName, Settings, get_provider_config
from .models import ItemKind, ItemType, ProviderItem
from .provider import MailboxProvider

logger = logging.getLogger(__name__)

SYSTEM_LABEL_IDS = frozenset(
    {
        "INBOX",
        "SENT",
        "DRAFT",
        "SPAM",
        "TRASH",
        "STARRED",
        "IMPORTANT",
        "UNREAD",
    }
)
SYSTEM_LABEL_PREFIXES = ("CATEGORY_", "CHAT")


def is_system_label(label: dict) -> bool:
    """Return True for labels owned by Gmail.

    Args:
        label: Raw Gmail label resource.

    Returns:
        bool: Whether the label is a system label.
    """
    if label.get("type") == "system":
        return True
    label_id = label.get("id", "")
    return label_id in SYSTEM_LABEL_IDS or label_id.startswith(SYSTEM_LABEL_PREFIXES)


def label_to_item(label: dict) -> ProviderItem:
    """Convert a raw Gmail label resource into a :class:`ProviderItem`.

    Args:
        label: Raw Gmail label resource.

    Returns:
        ProviderItem: Normalized provider item.
    """
    color = None
    if label.get("color"):
        color = label["color"].get("backgroundColor") or label["color"].get("textColor")

    return ProviderItem(
        id=label["id"],
        name=label["name"],
        kind=ItemKind.SYSTEM if is_system_label(label) else ItemKind.USER,
        item_type=ItemType.LABEL,
        color=color,
        messages_total=label.get("messagesTotal", 0),
        messages_unread=label.get("messagesUnread", 0),
        threads_total=label.get("threadsTotal", 0),
        threads_unread=label.get("threadsUnread", 0),
    )


class GmailLabelClient(MailboxProvider):
    """
    Client for Gmail label discovery and creation.

    Attributes:
        settings: Application settings.
        credential: Google OAuth bearer credential.
    """

    def __init__(self, settings: Settings, credential: ProviderCredential) -> None:
        """
        Initialize the Gmail client.

        Args:
            settings: Application settings.
            credential: Google OAuth bearer credential.
        """
        super().__init__(settings, credential, get_provider_config(ProviderName.GMAIL))
        self.base_url = settings.gmail_api_base_url.rstrip("/")

    def list_items(self) -> list[ProviderItem]:
        """List every label of the mailbox.

        Gmail normally returns all labels in one response; ``nextPageToken``
        is followed when present.

        Returns:
            list[ProviderItem]: System and user labels.
        """
        endpoint = "/users/me/labels"
        params: dict = {}
        items: list[ProviderItem] = []

        while True:
            response = self._make_request("GET", endpoint, params=params or None)
            for label in response.get("labels", []):
                items.append(label_to_item(label))

            page_token = response.get("nextPageToken")
            if not page_token:
                break
            params = {"pageToken": page_token}

        logger.debug(f"Found {len(items)} Gmail labels")
        return items

    def create_item(self, name: str, color: Optional[str] = None) -> ProviderItem:
        """Create a label.

        Nested labels are created by name; Gmail attaches ``Team/Sales`` under
        an existing ``Team`` label.

        Args:
            name: Full label name.
            color: Validated background color, or None.

        Returns:
            ProviderItem: The created label.

        Raises:
            requests.HTTPError: If Gmail rejects the label (409 when a label
                with that name already exists).
        """
        json_data: dict = {
            "name": name,
            "messageListVisibility": "show",
            "labelListVisibility": "labelShow",
        }
        if color:
            json_data["color"] = {
                "backgroundColor": color,
                "textColor": self.settings.gmail_label_text_color,
            }

        response = self._make_request(
            "POST",
            "/users/me/labels",
            json_data=json_data,
            suppress_statuses={409},
        )
        label = label_to_item(response)
        logger.debug(f"Created Gmail label: {name}")
        return label
