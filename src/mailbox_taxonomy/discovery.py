"""Mailbox discovery and normalization.

Objective:
    Read the organizational items of a mailbox once, drop provider-owned
    system items, parse each remaining item into a hierarchical path and
    aggregate the paths into a taxonomy tree.
    Outlook categories are flat and keep their whole name as one segment.

High-level call tree:
    - :func:`discover`
        - :meth:`MailboxProvider.list_items`
        - :func:`parse_item`
        - :func:`build_taxonomy`
    - :func:`get_statistics`
        - :func:`calculate_max_depth`

Error handling:
    - Any provider failure while listing is raised as
      :class:`mailbox_taxonomy.exceptions.ProviderUnavailable`; no partial
      result is returned.
    - An item whose name cannot be parsed is skipped and reported in
      :attr:`DiscoveryResult.malformed`.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable

import requests

from .exceptions import MalformedItem, ProviderError, ProviderUnavailable
from .models import (
    DiscoveredItem,
    DiscoveryResult,
    ItemKind,
    ItemType,
    MalformedItemReport,
    ProviderItem,
    TaxonomyNode,
)
from .provider import MailboxProvider

logger = logging.getLogger(__name__)


def split_path(name: str, delimiter: str) -> list[str]:
    """Split a display name on the delimiter and trim each segment.

    Args:
        name: Raw display name.
        delimiter: Provider hierarchy delimiter.

    Returns:
        list[str]: Trimmed segments (possibly containing empty strings).
    """
    return [segment.strip() for segment in name.split(delimiter)]


def parse_item(item: ProviderItem, delimiter: str) -> DiscoveredItem:
    """Parse a provider item into a :class:`DiscoveredItem`.

    Args:
        item: Raw provider item.
        delimiter: Provider hierarchy delimiter.

    Returns:
        DiscoveredItem: Normalized item.

    Raises:
        MalformedItem: If a segment is empty after trimming.
    """
    if item.item_type == ItemType.CATEGORY:
        # Categories have no hierarchy; the delimiter is an ordinary character.
        path = [item.name.strip()]
    else:
        path = split_path(item.name, delimiter)
    if any(not segment for segment in path):
        raise MalformedItem(item.id, item.name, "empty path segment")

    return DiscoveredItem(**item.model_dump(), path=path)


def build_taxonomy(items: Iterable[DiscoveredItem]) -> dict[str, TaxonomyNode]:
    """Build the taxonomy tree from discovered items.

    Intermediate nodes are created on demand; every item is attached to the
    node at its terminal segment, so duplicate names share a node.

    Args:
        items: Discovered items.

    Returns:
        dict[str, TaxonomyNode]: Root nodes keyed by first segment.
    """
    roots: dict[str, TaxonomyNode] = {}

    for item in items:
        level = roots
        node = None
        for index, segment in enumerate(item.path):
            node = level.get(segment)
            if node is None:
                node = TaxonomyNode(name=segment, full_path=item.path[: index + 1])
                level[segment] = node
            level = node.children

        node.items.append(item)

    return roots


def calculate_max_depth(taxonomy: dict[str, TaxonomyNode]) -> int:
    """Return the depth of the deepest node (roots are depth 1)."""
    return max(
        (len(node.full_path) for root in taxonomy.values() for node in root.walk()),
        default=0,
    )


def discover(client: MailboxProvider) -> DiscoveryResult:
    """Discover the existing taxonomy of a mailbox.

    Args:
        client: Provider client bound to the account credential.

    Returns:
        DiscoveryResult: Normalized items, taxonomy tree and counters.

    Raises:
        ProviderUnavailable: If the provider cannot be reached or rejects the
            credential.
    """
    try:
        provider_items = client.list_items()
    except (requests.RequestException, ProviderError) as e:
        logger.error(f"Discovery failed for {client.name}: {e}")
        raise ProviderUnavailable(client.name, str(e)) from e

    user_items = [item for item in provider_items if item.kind == ItemKind.USER]
    system_count = len(provider_items) - len(user_items)

    items: list[DiscoveredItem] = []
    malformed: list[MalformedItemReport] = []
    for item in user_items:
        try:
            items.append(parse_item(item, client.delimiter))
        except MalformedItem as e:
            logger.warning(f"Skipping item: {e}")
            malformed.append(MalformedItemReport(id=e.item_id, name=e.name, reason=e.reason))

    logger.debug(
        "Discovered %d user items (%d system, %d malformed) from %s",
        len(items),
        system_count,
        len(malformed),
        client.name,
    )

    return DiscoveryResult(
        provider=client.name,
        delimiter=client.delimiter,
        items=items,
        taxonomy=build_taxonomy(items),
        malformed=malformed,
        total_items=len(items),
        system_items=system_count,
        user_items=len(user_items),
        discovered_at=datetime.now(timezone.utc),
    )


def get_statistics(result: DiscoveryResult) -> dict:
    """Summarize a discovery result.

    Args:
        result: Discovery result.

    Returns:
        dict: Provider, counters, hierarchy depth and discovery time.
    """
    return {
        "provider": result.provider,
        "totalItems": result.total_items,
        "userItems": result.user_items,
        "systemItems": result.system_items,
        "malformedItems": len(result.malformed),
        "hierarchyDepth": calculate_max_depth(result.taxonomy),
        "ambiguousNodes": [
            node.full_path
            for root in result.taxonomy.values()
            for node in root.walk()
            if node.is_ambiguous
        ],
        "lastDiscovered": result.discovered_at,
    }
