"""Scoring rules for canonical-entry to existing-item matching.

Objective:
    Score how well an existing item name covers a canonical key. Every rule
    is a small pure function over normalized strings, and :data:`MATCH_RULES`
    evaluates them in order; the first rule that fires decides the score.

Rule order:
    1. exact equality -> 1.0
    2. item name contains canonical key -> 0.8
    3. canonical key contains item name -> 0.7
    4. item name and an example contain one another -> 0.6
    5. Levenshtein similarity, kept only when above 0.5

Classification thresholds:
    - ``score >= 0.9`` -> exact
    - ``0.6 <= score < 0.9`` -> partial
    - otherwise -> none
"""

import re
from typing import Callable, Optional, Sequence

from .models import MatchClassification

EXACT_THRESHOLD = 0.9
PARTIAL_THRESHOLD = 0.6
CONFIRMATION_THRESHOLD = 0.7
SIMILARITY_FLOOR = 0.5

_NON_ALNUM = re.compile(r"[^a-z0-9]")

MatchRule = Callable[[str, str, Sequence[str]], Optional[float]]


def normalize_name(value: str) -> str:
    """Lowercase and strip every non-alphanumeric character."""
    return _NON_ALNUM.sub("", (value or "").lower())


def levenshtein_distance(a: str, b: str) -> int:
    """Return the edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current

    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """Return ``(maxLen - distance) / maxLen``, 1.0 for two empty strings."""
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return (max_length - levenshtein_distance(a, b)) / max_length


def exact_rule(item: str, key: str, examples: Sequence[str]) -> Optional[float]:
    return 1.0 if item == key else None


def item_contains_key_rule(item: str, key: str, examples: Sequence[str]) -> Optional[float]:
    return 0.8 if key in item else None


def key_contains_item_rule(item: str, key: str, examples: Sequence[str]) -> Optional[float]:
    return 0.7 if item in key else None


def example_rule(item: str, key: str, examples: Sequence[str]) -> Optional[float]:
    for example in examples:
        if example and (example in item or item in example):
            return 0.6
    return None


def similarity_rule(item: str, key: str, examples: Sequence[str]) -> Optional[float]:
    similarity = string_similarity(item, key)
    return similarity if similarity > SIMILARITY_FLOOR else 0.0


MATCH_RULES: tuple[MatchRule, ...] = (
    exact_rule,
    item_contains_key_rule,
    key_contains_item_rule,
    example_rule,
    similarity_rule,
)


def score_match(item: str, key: str, examples: Sequence[str] = ()) -> float:
    """Score a normalized item name against a normalized canonical key.

    Args:
        item: Normalized item name.
        key: Normalized canonical key.
        examples: Normalized canonical examples.

    Returns:
        float: Score in [0, 1]. An empty item name always scores 0.
    """
    # An empty string is contained in every key and example.
    if not item or not key:
        return 0.0

    for rule in MATCH_RULES:
        score = rule(item, key, examples)
        if score is not None:
            return score
    return 0.0


def classify(score: float) -> MatchClassification:
    """Map a score to a match classification."""
    if score >= EXACT_THRESHOLD:
        return MatchClassification.EXACT
    if score >= PARTIAL_THRESHOLD:
        return MatchClassification.PARTIAL
    return MatchClassification.NONE
