"""
Tests for the Gmail label client.
"""

import pytest
from unittest.mock import MagicMock

from src.mailbox_taxonomy.auth import ProviderCredential
from src.mailbox_taxonomy.config import Settings
from src.mailbox_taxonomy.gmail_client import GmailLabelClient, is_system_label, label_to_item
from src.mailbox_taxonomy.models import ItemKind, ItemType


@pytest.fixture
def client():
    """Create Gmail client with test settings."""
    settings = Settings(gmail_label_text_color="#FFFFFF")
    return GmailLabelClient(settings, ProviderCredential("gmail", "test-token"))


class TestSystemLabels:
    """Tests for system label detection."""

    @pytest.mark.parametrize(
        "label",
        [
            {"id": "INBOX", "name": "INBOX", "type": "system"},
            {"id": "SPAM", "name": "SPAM"},
            {"id": "CATEGORY_SOCIAL", "name": "CATEGORY_SOCIAL"},
            {"id": "CHAT", "name": "CHAT"},
        ],
    )
    def test_system(self, label):
        """Test that provider-owned labels are detected."""
        assert is_system_label(label) is True

    def test_user(self):
        """Test that a user label is not a system label."""
        assert is_system_label({"id": "Label_1", "name": "Inbox Zero", "type": "user"}) is False


class TestLabelToItem:
    """Tests for label conversion."""

    def test_counters_and_color(self):
        """Test that counters and background color are copied."""
        item = label_to_item(
            {
                "id": "Label_1",
                "name": "Team/Sales",
                "type": "user",
                "color": {"backgroundColor": "#16a766", "textColor": "#ffffff"},
                "messagesTotal": 12,
                "messagesUnread": 3,
                "threadsTotal": 10,
                "threadsUnread": 2,
            }
        )

        assert item.kind == ItemKind.USER
        assert item.item_type == ItemType.LABEL
        assert item.color == "#16a766"
        assert item.messages_total == 12
        assert item.threads_unread == 2

    def test_missing_optional_fields(self):
        """Test conversion of a minimal label."""
        item = label_to_item({"id": "Label_2", "name": "Misc"})

        assert item.color is None
        assert item.messages_total == 0


class TestListItems:
    """Tests for label listing."""

    def test_single_page(self, client):
        """Test listing labels from one response."""
        client._make_request = MagicMock(
            return_value={
                "labels": [
                    {"id": "INBOX", "name": "INBOX", "type": "system"},
                    {"id": "Label_1", "name": "URGENT", "type": "user"},
                ]
            }
        )

        items = client.list_items()

        assert [item.name for item in items] == ["INBOX", "URGENT"]
        assert items[0].kind == ItemKind.SYSTEM
        args, kwargs = client._make_request.call_args
        assert args == ("GET", "/users/me/labels")
        assert kwargs["params"] is None

    def test_follows_page_token(self, client):
        """Test that nextPageToken is followed until exhausted."""
        client._make_request = MagicMock(
            side_effect=[
                {"labels": [{"id": "Label_1", "name": "A"}], "nextPageToken": "p2"},
                {"labels": [{"id": "Label_2", "name": "B"}]},
            ]
        )

        items = client.list_items()

        assert [item.id for item in items] == ["Label_1", "Label_2"]
        second_call = client._make_request.call_args_list[1]
        assert second_call.kwargs["params"] == {"pageToken": "p2"}

    def test_find_item_by_exact_name_is_case_sensitive(self, client):
        """Test exact-name lookup."""
        client._make_request = MagicMock(
            return_value={"labels": [{"id": "Label_1", "name": "Team/Sales"}]}
        )

        assert client.find_item_by_exact_name("Team/Sales").id == "Label_1"
        assert client.find_item_by_exact_name("team/sales") is None


class TestCreateItem:
    """Tests for label creation."""

    def test_create_with_color(self, client):
        """Test the request body of a colored label."""
        client._make_request = MagicMock(
            return_value={"id": "Label_9", "name": "URGENT", "type": "user"}
        )

        item = client.create_item("URGENT", "#FF0000")

        assert item.id == "Label_9"
        args, kwargs = client._make_request.call_args
        assert args == ("POST", "/users/me/labels")
        assert kwargs["json_data"] == {
            "name": "URGENT",
            "messageListVisibility": "show",
            "labelListVisibility": "labelShow",
            "color": {"backgroundColor": "#FF0000", "textColor": "#FFFFFF"},
        }
        assert 409 in kwargs["suppress_statuses"]

    def test_create_without_color(self, client):
        """Test that no color object is sent without a color."""
        client._make_request = MagicMock(return_value={"id": "Label_9", "name": "Team/Sales"})

        client.create_item("Team/Sales")

        assert "color" not in client._make_request.call_args.kwargs["json_data"]

    def test_provider_properties(self, client):
        """Test provider name, delimiter and color support."""
        assert client.name == "gmail"
        assert client.delimiter == "/"
        assert client.supports_color is True
        assert client.base_url == "https://gmail.googleapis.com/gmail/v1"
