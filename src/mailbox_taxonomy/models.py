"""Pydantic data models used across the engine.

Objective:
    Centralize all strongly-typed data structures representing:
    - Raw organizational items returned by a provider client
    - Normalized discovered items and the taxonomy tree built from them
    - Canonical taxonomy entries supplied by configuration
    - Match results, suggestions and the suggested mapping
    - Provisioning requests and per-item provisioning outcomes

Design notes:
    - Models use camelCase aliases where they are serialized for the caller
      (``fullPath``, ``canonicalKey``...). ``populate_by_name=True`` allows
      constructing them with pythonic field names as well.
    - Results are built fresh for every call and never mutated afterwards.

High-level structure:
    - Discovery primitives:
        - :class:`ItemKind`
        - :class:`ItemType`
        - :class:`ProviderItem`
        - :class:`DiscoveredItem`
        - :class:`TaxonomyNode`
        - :class:`MalformedItemReport`
        - :class:`DiscoveryResult`
    - Reconciliation primitives:
        - :class:`CanonicalEntry`
        - :class:`CanonicalTaxonomy`
        - :class:`MatchClassification` / :class:`MatchResult`
        - :class:`SuggestionAction` / :class:`MappingEntry`
        - :class:`Suggestions` / :class:`SuggestionAnalysis`
        - :class:`SuggestionResult`
    - Provisioning primitives:
        - :class:`ProvisionRequest`
        - :class:`ProvisionedItem` / :class:`SkippedItem` / :class:`FailedItem`
        - :class:`ProvisionResult`
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemKind(str, Enum):
    """Owner of an organizational item.

    System items belong to the provider (Inbox, Sent...) and are excluded
    from matching.
    """

    SYSTEM = "system"
    USER = "user"


class ItemType(str, Enum):
    """Provider construct an item is stored as."""

    LABEL = "label"
    FOLDER = "folder"
    CATEGORY = "category"


class ProviderItem(BaseModel):
    """
    Organizational item exactly as a provider client reports it.

    Attributes:
        id: Provider identifier, unique within the account.
        name: Full display name; hierarchy is encoded with the provider
            delimiter (``Team/Sales`` on Gmail).
        kind: System or user item.
        item_type: Label, folder or category. Categories are flat: their
            name is never split on the delimiter.
        color: Display color, if any.
        messages_total: Total messages carrying the item.
        messages_unread: Unread messages carrying the item.
        threads_total: Total threads carrying the item.
        threads_unread: Unread threads carrying the item.
    """

    id: str
    name: str
    kind: ItemKind = ItemKind.USER
    item_type: ItemType = Field(default=ItemType.LABEL, alias="itemType")
    color: Optional[str] = None
    messages_total: int = Field(default=0, ge=0, alias="messagesTotal")
    messages_unread: int = Field(default=0, ge=0, alias="messagesUnread")
    threads_total: int = Field(default=0, ge=0, alias="threadsTotal")
    threads_unread: int = Field(default=0, ge=0, alias="threadsUnread")

    model_config = ConfigDict(populate_by_name=True)


class DiscoveredItem(ProviderItem):
    """
    Normalized user item produced by discovery.

    Counters are informational only and never affect matching.

    Attributes:
        path: Hierarchy segments, split on the provider delimiter and trimmed.
    """

    path: list[str]

    @field_validator("path")
    @classmethod
    def _path_segments_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("path must contain at least one segment")
        if any(not segment for segment in value):
            raise ValueError("path segments must be non-empty")
        return value

    @property
    def depth(self) -> int:
        """Number of path segments."""
        return len(self.path)


class TaxonomyNode(BaseModel):
    """
    One node of the taxonomy tree built from discovered items.

    Several items can terminate at the same node when a provider allows
    duplicate display names with different ids.

    Attributes:
        name: Path segment this node represents.
        full_path: Segments from the root to this node.
        children: Child nodes keyed by segment.
        items: Discovered items whose path ends exactly here.
    """

    name: str
    full_path: list[str] = Field(alias="fullPath")
    children: dict[str, "TaxonomyNode"] = Field(default_factory=dict)
    items: list[DiscoveredItem] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_ambiguous(self) -> bool:
        """True when more than one provider item resolves to this node."""
        return len(self.items) > 1

    def walk(self):
        """Yield this node and all of its descendants, depth-first."""
        yield self
        for child in self.children.values():
            yield from child.walk()


TaxonomyNode.model_rebuild()


class MalformedItemReport(BaseModel):
    """An item skipped by discovery because its name could not be parsed."""

    id: str
    name: str
    reason: str


class DiscoveryResult(BaseModel):
    """
    Snapshot of a mailbox's organizational structure.

    Attributes:
        provider: Provider identifier.
        delimiter: Hierarchy delimiter used to parse names.
        items: Normalized user items, in provider order.
        taxonomy: Root taxonomy nodes keyed by first path segment.
        malformed: Items skipped because their name could not be parsed.
        total_items: Number of user items kept.
        system_items: Number of provider-owned items filtered out.
        user_items: Number of user items reported by the provider.
        discovered_at: Time the snapshot was taken (UTC).
    """

    provider: str
    delimiter: str
    items: list[DiscoveredItem] = Field(default_factory=list)
    taxonomy: dict[str, TaxonomyNode] = Field(default_factory=dict)
    malformed: list[MalformedItemReport] = Field(default_factory=list)
    total_items: int = Field(default=0, alias="totalItems")
    system_items: int = Field(default=0, alias="systemItems")
    user_items: int = Field(default=0, alias="userItems")
    discovered_at: Optional[datetime] = Field(default=None, alias="discoveredAt")

    model_config = ConfigDict(populate_by_name=True)


class CanonicalEntry(BaseModel):
    """
    One required taxonomy item from business configuration.

    Attributes:
        key: Stable identifier, unique within its taxonomy.
        path: Target hierarchy in the provider.
        color: Preferred display color (``#RRGGBB``).
        description: Human readable description.
        priority: Lower values are more important.
        examples: Alternate display strings used only to aid matching.
    """

    key: str
    path: list[str]
    color: Optional[str] = None
    description: str = ""
    priority: int = 100
    examples: list[str] = Field(default_factory=list)


class CanonicalTaxonomy(BaseModel):
    """Ordered set of canonical entries for one business type."""

    business_type: str = Field(default="default", alias="businessType")
    version: str = "1"
    entries: list[CanonicalEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def keys(self) -> list[str]:
        """Canonical keys in input order."""
        return [entry.key for entry in self.entries]

    def get(self, key: str) -> Optional[CanonicalEntry]:
        """Return the entry for ``key``, or None."""
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None


class MatchClassification(str, Enum):
    """How well a canonical entry is covered by an existing item."""

    EXACT = "exact"
    PARTIAL = "partial"
    NONE = "none"


class MatchResult(BaseModel):
    """
    Best existing item for one canonical entry.

    Attributes:
        canonical_key: Key of the canonical entry.
        classification: exact / partial / none.
        confidence: Score of the best item, in [0, 1].
        matched_item: Best item; absent when the classification is none.
        tied_item_ids: Other items that reached the same best score. The tie
            is reported, not resolved.
    """

    canonical_key: str = Field(alias="canonicalKey")
    classification: MatchClassification
    confidence: float = Field(ge=0.0, le=1.0)
    matched_item: Optional[DiscoveredItem] = Field(default=None, alias="matchedItem")
    tied_item_ids: list[str] = Field(default_factory=list, alias="tiedItemIds")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_ambiguous(self) -> bool:
        """True when several items share the best score."""
        return bool(self.tied_item_ids)


class SuggestionAction(str, Enum):
    """What the caller should do for a canonical entry."""

    REUSE = "reuse"
    REUSE_WITH_CONFIRMATION = "reuse_with_confirmation"
    CREATE = "create"


class ProvisionRequest(BaseModel):
    """A canonical entry the caller decided to materialize."""

    path: list[str] = Field(min_length=1)
    color: Optional[str] = None
    description: Optional[str] = None
    canonical_key: Optional[str] = Field(default=None, alias="canonicalKey")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("path")
    @classmethod
    def _trim_path_segments(cls, value: list[str]) -> list[str]:
        segments = [segment.strip() for segment in value]
        if any(not segment for segment in segments):
            raise ValueError("path segments must not be blank")
        return segments


class MappingEntry(BaseModel):
    """
    Action record for one canonical key.

    Attributes:
        canonical_key: Key of the canonical entry.
        action: reuse / reuse_with_confirmation / create.
        existing_item_id: Provider id to reuse, for reuse actions.
        existing_item_name: Display name of the reused item.
        path: Canonical target path.
        color: Canonical color.
        description: Canonical description.
        priority: Canonical priority.
        confidence: Match confidence (0 for create).
    """

    canonical_key: str = Field(alias="canonicalKey")
    action: SuggestionAction
    existing_item_id: Optional[str] = Field(default=None, alias="existingItemId")
    existing_item_name: Optional[str] = Field(default=None, alias="existingItemName")
    path: list[str]
    color: Optional[str] = None
    description: str = ""
    priority: int = 100
    confidence: float = 0.0

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_provision_request(self) -> ProvisionRequest:
        """Build the provisioning request for this entry."""
        return ProvisionRequest(
            path=list(self.path),
            color=self.color,
            description=self.description or None,
            canonical_key=self.canonical_key,
        )


SuggestedMapping = dict[str, MappingEntry]


class Suggestions(BaseModel):
    """Actionable suggestions grouped for the caller."""

    reuse: list[MappingEntry] = Field(default_factory=list)
    create: list[MappingEntry] = Field(default_factory=list)

    @property
    def needs_confirmation(self) -> list[MappingEntry]:
        """Reuse suggestions the user must confirm."""
        return [
            entry
            for entry in self.reuse
            if entry.action == SuggestionAction.REUSE_WITH_CONFIRMATION
        ]


class SuggestionAnalysis(BaseModel):
    """Counters summarizing a reconciliation run."""

    existing_count: int = Field(alias="existingCount")
    canonical_count: int = Field(alias="canonicalCount")
    matched_count: int = Field(alias="matchedCount")
    unmatched_count: int = Field(alias="unmatchedCount")

    model_config = ConfigDict(populate_by_name=True)


class SuggestionResult(BaseModel):
    """
    Output of the reconciliation engine.

    Attributes:
        provider: Provider of the discovered items, when known.
        business_type: Business type of the canonical taxonomy.
        taxonomy_version: Version of the canonical taxonomy.
        matches: One match result per canonical entry, in input order.
        suggestions: Reuse and create suggestions.
        suggested_mapping: One action record per canonical key.
        analysis: Summary counters.
        missing_count: Number of canonical entries to create.
    """

    provider: Optional[str] = None
    business_type: str = Field(alias="businessType")
    taxonomy_version: str = Field(alias="taxonomyVersion")
    matches: list[MatchResult] = Field(default_factory=list)
    suggestions: Suggestions = Field(default_factory=Suggestions)
    suggested_mapping: dict[str, MappingEntry] = Field(
        default_factory=dict, alias="suggestedMapping"
    )
    analysis: SuggestionAnalysis
    missing_count: int = Field(default=0, alias="missingCount")

    model_config = ConfigDict(populate_by_name=True)

    def create_requests(self) -> list[ProvisionRequest]:
        """Provisioning requests for the create subset, in priority order."""
        return [entry.to_provision_request() for entry in self.suggestions.create]


class ProvisionedItem(BaseModel):
    """An item created by the provisioner."""

    path: list[str]
    name: str
    id: str
    color: Optional[str] = None
    canonical_key: Optional[str] = Field(default=None, alias="canonicalKey")

    model_config = ConfigDict(populate_by_name=True)


class SkippedItem(BaseModel):
    """An item that already existed when the provisioner re-checked."""

    path: list[str]
    name: str
    id: str
    reason: Literal["already_exists"] = "already_exists"
    canonical_key: Optional[str] = Field(default=None, alias="canonicalKey")

    model_config = ConfigDict(populate_by_name=True)


class FailedItem(BaseModel):
    """An item the provisioner could not create.

    ``reason`` is ``invalid_request`` when the request itself could not be
    parsed; such items are not offered for retry.
    """

    path: list[str]
    name: str
    error: str
    reason: Literal["provider_error", "invalid_request"] = "provider_error"
    color: Optional[str] = None
    description: Optional[str] = None
    canonical_key: Optional[str] = Field(default=None, alias="canonicalKey")

    model_config = ConfigDict(populate_by_name=True)

    def to_provision_request(self) -> ProvisionRequest:
        """Rebuild the original request, for a retry of the failed subset."""
        return ProvisionRequest(
            path=list(self.path),
            color=self.color,
            description=self.description,
            canonical_key=self.canonical_key,
        )


class ProvisionResult(BaseModel):
    """Per-item provisioning outcomes, collected into three buckets."""

    provider: Optional[str] = None
    created: list[ProvisionedItem] = Field(default_factory=list)
    skipped: list[SkippedItem] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        """Totals per bucket."""
        return {
            "totalRequested": len(self.created) + len(self.skipped) + len(self.failed),
            "totalCreated": len(self.created),
            "totalSkipped": len(self.skipped),
            "totalFailed": len(self.failed),
        }

    @property
    def ok(self) -> bool:
        """True when no item failed."""
        return not self.failed

    def failed_requests(self) -> list[ProvisionRequest]:
        """Requests to pass to a retry of the failed subset."""
        return [
            item.to_provision_request()
            for item in self.failed
            if item.reason != "invalid_request"
        ]
