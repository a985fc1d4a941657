"""Shared fixtures: an in-memory mailbox provider."""

from typing import Iterable, Optional

import pytest

from src.mailbox_taxonomy.auth import ProviderCredential
from src.mailbox_taxonomy.config import ProviderName, Settings, get_provider_config
from src.mailbox_taxonomy.exceptions import ProviderError, ProvisionItemFailed
from src.mailbox_taxonomy.models import ItemKind, ProviderItem
from src.mailbox_taxonomy.provider import MailboxProvider


class FakeMailboxProvider(MailboxProvider):
    """Provider double keeping its labels in memory.

    Like most providers, it refuses to create a nested item before its
    parent exists.
    """

    def __init__(
        self,
        items: Optional[Iterable[ProviderItem]] = None,
        supports_color: bool = True,
        fail_on: Iterable[str] = (),
    ) -> None:
        config = get_provider_config(ProviderName.GMAIL).model_copy(
            update={"supports_color": supports_color}
        )
        super().__init__(Settings(), ProviderCredential("gmail", "test-token"), config)
        self.items = list(items or [])
        self.fail_on = set(fail_on)
        self.calls: list[tuple] = []
        self._next_id = 1

    def list_items(self) -> list[ProviderItem]:
        return list(self.items)

    def find_item_by_exact_name(self, name: str) -> Optional[ProviderItem]:
        self.calls.append(("find", name))
        return super().find_item_by_exact_name(name)

    def create_item(self, name: str, color: Optional[str] = None) -> ProviderItem:
        self.calls.append(("create", name, color))
        if name in self.fail_on:
            raise ProviderError(f"Invalid label name: {name}", status_code=400)

        parent, _, _ = name.rpartition(self.delimiter)
        if parent and not any(item.name == parent for item in self.items):
            raise ProvisionItemFailed(name, f"Parent label {parent!r} does not exist")

        item = ProviderItem(id=f"Label_{self._next_id}", name=name, color=color)
        self._next_id += 1
        self.items.append(item)
        return item


@pytest.fixture
def fake_provider():
    """Empty in-memory provider."""
    return FakeMailboxProvider()


@pytest.fixture
def sample_provider_items():
    """Mixed system and user items."""
    return [
        ProviderItem(id="INBOX", name="INBOX", kind=ItemKind.SYSTEM),
        ProviderItem(id="SENT", name="SENT", kind=ItemKind.SYSTEM),
        ProviderItem(id="Label_1", name="URGENT", messagesTotal=5, messagesUnread=2),
        ProviderItem(id="Label_2", name="Customer Support", color="#0000FF"),
        ProviderItem(id="Label_3", name="Team"),
        ProviderItem(id="Label_4", name="Team/Sales"),
    ]


@pytest.fixture
def make_provider():
    """Factory for in-memory providers with custom state."""
    return FakeMailboxProvider
