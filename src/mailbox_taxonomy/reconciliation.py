"""Reconciliation of discovered items against a canonical taxonomy.

Objective:
    Decide, for every canonical entry, whether an existing item already
    covers it, and turn those decisions into reuse/create suggestions and a
    suggested mapping keyed by canonical key.

High-level call tree:
    - :func:`suggest`
        - :func:`mailbox_taxonomy.taxonomy.coerce_taxonomy`
        - :func:`mailbox_taxonomy.taxonomy.validate_taxonomy`
        - :func:`find_matches`
            - :func:`find_best_match`
                - :func:`mailbox_taxonomy.matching.score_match`
        - :func:`build_suggested_mapping`
        - :func:`generate_suggestions`

Operational notes:
    - Everything here is a pure function of its inputs: no I/O, no clock,
      no module state. Running it twice on the same inputs yields equal
      results.
    - Matching is greedy per canonical entry. Two entries can pick the same
      existing item; reuse is non-destructive so this is not deduplicated.
    - Equal best scores are reported in :attr:`MatchResult.tied_item_ids`;
      the first item in discovery order is kept.
"""

import logging
from typing import Mapping, Optional, Sequence, Union

from .config import get_provider_config
from .matching import CONFIRMATION_THRESHOLD, classify, normalize_name, score_match
from .models import (
    CanonicalEntry,
    CanonicalTaxonomy,
    DiscoveredItem,
    DiscoveryResult,
    MappingEntry,
    MatchClassification,
    MatchResult,
    SuggestionAction,
    SuggestionAnalysis,
    SuggestionResult,
    Suggestions,
)
from .taxonomy import coerce_taxonomy, validate_taxonomy

logger = logging.getLogger(__name__)


def find_best_match(
    entry: CanonicalEntry,
    items: Sequence[DiscoveredItem],
    normalized_names: Optional[Sequence[str]] = None,
) -> MatchResult:
    """Find the best existing item for one canonical entry.

    Args:
        entry: Canonical entry.
        items: Discovered items, in discovery order.
        normalized_names: Pre-normalized item names, parallel to ``items``.

    Returns:
        MatchResult: Best item, score and classification.
    """
    if normalized_names is None:
        normalized_names = [normalize_name(item.name) for item in items]

    key = normalize_name(entry.key)
    examples = [normalize_name(example) for example in entry.examples]

    best_item: Optional[DiscoveredItem] = None
    best_score = 0.0
    tied: list[str] = []

    for item, name in zip(items, normalized_names):
        score = score_match(name, key, examples)
        if score > best_score:
            best_item, best_score, tied = item, score, []
        elif best_item is not None and score == best_score:
            tied.append(item.id)

    classification = classify(best_score)
    if classification == MatchClassification.NONE:
        return MatchResult(
            canonical_key=entry.key,
            classification=classification,
            confidence=best_score,
        )

    if tied:
        logger.warning(
            "Canonical key %s has %d equally scored items; keeping %s",
            entry.key,
            len(tied) + 1,
            best_item.id,
        )

    return MatchResult(
        canonical_key=entry.key,
        classification=classification,
        confidence=best_score,
        matched_item=best_item,
        tied_item_ids=tied,
    )


def find_matches(
    items: Sequence[DiscoveredItem], taxonomy: CanonicalTaxonomy
) -> list[MatchResult]:
    """Compute one match result per canonical entry, in taxonomy order."""
    normalized_names = [normalize_name(item.name) for item in items]
    return [find_best_match(entry, items, normalized_names) for entry in taxonomy.entries]


def is_accepted(match: MatchResult) -> bool:
    """Whether a match is strong enough to reuse the existing item."""
    if match.classification == MatchClassification.EXACT:
        return True
    return (
        match.classification == MatchClassification.PARTIAL
        and match.confidence >= CONFIRMATION_THRESHOLD
    )


def _mapping_entry(entry: CanonicalEntry, match: Optional[MatchResult]) -> MappingEntry:
    common = {
        "canonical_key": entry.key,
        "path": list(entry.path),
        "color": entry.color,
        "description": entry.description,
        "priority": entry.priority,
    }

    if match is None or not is_accepted(match):
        return MappingEntry(action=SuggestionAction.CREATE, **common)

    action = (
        SuggestionAction.REUSE
        if match.classification == MatchClassification.EXACT
        else SuggestionAction.REUSE_WITH_CONFIRMATION
    )
    return MappingEntry(
        action=action,
        existing_item_id=match.matched_item.id,
        existing_item_name=match.matched_item.name,
        confidence=match.confidence,
        **common,
    )


def build_suggested_mapping(
    matches: Sequence[MatchResult], taxonomy: CanonicalTaxonomy
) -> dict[str, MappingEntry]:
    """Combine accepted matches and the create list into one mapping.

    Args:
        matches: Match results from :func:`find_matches`.
        taxonomy: Canonical taxonomy the matches were computed for.

    Returns:
        dict[str, MappingEntry]: Exactly one entry per canonical key, in
        taxonomy order.
    """
    by_key = {match.canonical_key: match for match in matches}
    return {entry.key: _mapping_entry(entry, by_key.get(entry.key)) for entry in taxonomy.entries}


def generate_suggestions(mapping: Mapping[str, MappingEntry]) -> Suggestions:
    """Group a suggested mapping into reuse and create suggestions.

    Create suggestions are sorted by ascending priority; equal priorities
    keep taxonomy order.
    """
    reuse = [entry for entry in mapping.values() if entry.action != SuggestionAction.CREATE]
    create = sorted(
        (entry for entry in mapping.values() if entry.action == SuggestionAction.CREATE),
        key=lambda entry: entry.priority,
    )
    return Suggestions(reuse=reuse, create=create)


def suggest(
    discovered: Union[DiscoveryResult, Sequence[DiscoveredItem]],
    canonical_taxonomy: Union[CanonicalTaxonomy, Mapping[str, Mapping]],
) -> SuggestionResult:
    """Reconcile discovered items with a canonical taxonomy.

    Args:
        discovered: A discovery result, or its list of items.
        canonical_taxonomy: Canonical taxonomy, or its raw
            ``{key: {path, color, description, priority, examples}}`` form.

    Returns:
        SuggestionResult: Matches, suggestions, suggested mapping and counters.

    Raises:
        TaxonomyConfigError: If the canonical taxonomy is malformed.
    """
    taxonomy = coerce_taxonomy(canonical_taxonomy)

    provider: Optional[str] = None
    if isinstance(discovered, DiscoveryResult):
        provider = discovered.provider
        items = list(discovered.items)
    else:
        items = list(discovered)

    provider_config = None
    if provider:
        try:
            provider_config = get_provider_config(provider)
        except ValueError:
            logger.debug("No limits known for provider %s", provider)
    validate_taxonomy(taxonomy, provider_config)

    matches = find_matches(items, taxonomy)
    mapping = build_suggested_mapping(matches, taxonomy)
    suggestions = generate_suggestions(mapping)

    reused_ids = {entry.existing_item_id for entry in suggestions.reuse}
    analysis = SuggestionAnalysis(
        existing_count=len(items),
        canonical_count=len(taxonomy.entries),
        matched_count=len(suggestions.reuse),
        unmatched_count=sum(1 for item in items if item.id not in reused_ids),
    )

    logger.debug(
        "Reconciled %d items against %d canonical entries: %d reuse, %d create",
        len(items),
        len(taxonomy.entries),
        len(suggestions.reuse),
        len(suggestions.create),
    )

    return SuggestionResult(
        provider=provider,
        business_type=taxonomy.business_type,
        taxonomy_version=taxonomy.version,
        matches=matches,
        suggestions=suggestions,
        suggested_mapping=mapping,
        analysis=analysis,
        missing_count=len(suggestions.create),
    )
