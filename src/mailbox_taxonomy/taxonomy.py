"""Canonical taxonomy loading and validation.

Objective:
    Supply the business-specific canonical taxonomies that reconciliation
    matches against. Taxonomies are static, versioned configuration keyed by
    business type; the engine never modifies them.

Document format (``data/canonical_taxonomy.json``)::

    {
      "version": "2025.1",
      "businessTypes": {
        "default": {
          "URGENT": {"path": ["URGENT"], "color": "#FF0000",
                     "description": "...", "priority": 1,
                     "examples": ["Emergency", "ASAP"]}
        }
      }
    }

High-level call tree:
    - :func:`get_taxonomy`
        - :func:`load_taxonomy_document`
        - :func:`taxonomy_from_mapping`
    - :func:`coerce_taxonomy` (used by reconciliation)
    - :func:`validate_taxonomy`

Error handling:
    Every configuration problem raises
    :class:`mailbox_taxonomy.exceptions.TaxonomyConfigError` before any
    matching happens.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from .config import ProviderConfig, Settings
from .exceptions import TaxonomyConfigError
from .matching import normalize_name
from .models import CanonicalEntry, CanonicalTaxonomy

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_TYPE = "default"
BUNDLED_TAXONOMY_FILE = "canonical_taxonomy.json"


def load_taxonomy_document(path: Optional[Union[str, Path]] = None) -> dict[str, Any]:
    """Read a taxonomy document.

    Args:
        path: JSON file to read. Defaults to the document bundled with the
            package.

    Returns:
        dict[str, Any]: Parsed document.

    Raises:
        TaxonomyConfigError: If the file is missing or not valid JSON.
    """
    try:
        if path:
            raw = Path(path).read_text(encoding="utf-8")
        else:
            raw = (
                resources.files(__package__)
                .joinpath("data")
                .joinpath(BUNDLED_TAXONOMY_FILE)
                .read_text(encoding="utf-8")
            )
        document = json.loads(raw)
    except (OSError, json.JSONDecodeError) as e:
        raise TaxonomyConfigError(f"Cannot read taxonomy document {path or BUNDLED_TAXONOMY_FILE}: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("businessTypes"), dict):
        raise TaxonomyConfigError("Taxonomy document must contain a 'businessTypes' object")
    return document


def taxonomy_from_mapping(
    mapping: Mapping[str, Mapping[str, Any]],
    business_type: str = DEFAULT_BUSINESS_TYPE,
    version: str = "1",
) -> CanonicalTaxonomy:
    """Build a taxonomy from its ``{key: {path, ...}}`` configuration form.

    Entry order follows the mapping's insertion order.

    Args:
        mapping: Canonical entries keyed by canonical key.
        business_type: Business type the taxonomy belongs to.
        version: Taxonomy version.

    Returns:
        CanonicalTaxonomy: Parsed taxonomy.

    Raises:
        TaxonomyConfigError: If an entry is missing its path or is invalid.
    """
    entries: list[CanonicalEntry] = []
    for key, config in mapping.items():
        if not isinstance(config, Mapping):
            raise TaxonomyConfigError(f"Canonical entry {key!r} must be an object")
        if not config.get("path"):
            raise TaxonomyConfigError(f"Canonical entry {key!r} is missing 'path'")
        try:
            entries.append(CanonicalEntry(key=key, **config))
        except (TypeError, ValidationError) as e:
            raise TaxonomyConfigError(f"Canonical entry {key!r} is invalid: {e}") from e

    return CanonicalTaxonomy(business_type=business_type, version=str(version), entries=entries)


def coerce_taxonomy(
    value: Union[CanonicalTaxonomy, Mapping[str, Mapping[str, Any]]],
) -> CanonicalTaxonomy:
    """Accept either a :class:`CanonicalTaxonomy` or its mapping form."""
    if isinstance(value, CanonicalTaxonomy):
        return value
    if isinstance(value, Mapping):
        return taxonomy_from_mapping(value)
    raise TaxonomyConfigError(f"Unsupported canonical taxonomy type: {type(value).__name__}")


def validate_taxonomy(
    taxonomy: CanonicalTaxonomy, provider_config: Optional[ProviderConfig] = None
) -> None:
    """Fail fast on a malformed canonical taxonomy.

    Checks:
        - keys are unique and keep at least one alphanumeric character;
        - every path has at least one non-blank segment and no blank ones;
        - given a provider config, paths respect its nesting depth and name
          length, and no segment contains the provider delimiter.

    Args:
        taxonomy: Taxonomy to validate.
        provider_config: Limits of the target provider.

    Raises:
        TaxonomyConfigError: On the first problem found.
    """
    seen: set[str] = set()
    for entry in taxonomy.entries:
        if entry.key in seen:
            raise TaxonomyConfigError(f"Duplicate canonical key {entry.key!r}")
        seen.add(entry.key)

        if not normalize_name(entry.key):
            raise TaxonomyConfigError(f"Canonical key {entry.key!r} has no alphanumeric characters")
        if not entry.path:
            raise TaxonomyConfigError(f"Canonical entry {entry.key!r} is missing 'path'")
        if any(not segment.strip() for segment in entry.path):
            raise TaxonomyConfigError(f"Canonical entry {entry.key!r} has a blank path segment")

        if provider_config is None:
            continue

        if len(entry.path) > provider_config.max_depth:
            raise TaxonomyConfigError(
                f"Canonical entry {entry.key!r} is {len(entry.path)} levels deep; "
                f"{provider_config.name.value} supports {provider_config.max_depth}"
            )
        if any(provider_config.delimiter in segment for segment in entry.path):
            raise TaxonomyConfigError(
                f"Canonical entry {entry.key!r} has a segment containing "
                f"{provider_config.delimiter!r}"
            )
        full_name = provider_config.delimiter.join(entry.path)
        if len(full_name) > provider_config.max_name_length:
            raise TaxonomyConfigError(
                f"Canonical entry {entry.key!r} name exceeds "
                f"{provider_config.max_name_length} characters"
            )


def list_business_types(document: Optional[dict[str, Any]] = None) -> list[str]:
    """Return the business types defined in a taxonomy document."""
    document = document or load_taxonomy_document()
    return list(document["businessTypes"])


def get_taxonomy(
    business_type: Optional[str] = None,
    settings: Optional[Settings] = None,
    document: Optional[dict[str, Any]] = None,
) -> CanonicalTaxonomy:
    """Load the canonical taxonomy for a business type.

    Unknown business types fall back to ``default``.

    Args:
        business_type: Requested business type (settings default if None).
        settings: Application settings, for the default business type and an
            optional taxonomy file override.
        document: Already loaded taxonomy document.

    Returns:
        CanonicalTaxonomy: Validated taxonomy.

    Raises:
        TaxonomyConfigError: If the document or the taxonomy is invalid.
    """
    if document is None:
        document = load_taxonomy_document(settings.taxonomy_file if settings else None)

    requested = business_type or (
        settings.default_business_type if settings else DEFAULT_BUSINESS_TYPE
    )
    business_types = document["businessTypes"]

    resolved = requested
    if resolved not in business_types:
        logger.warning(f"Unknown business type {requested!r}; using {DEFAULT_BUSINESS_TYPE!r}")
        resolved = DEFAULT_BUSINESS_TYPE
    if resolved not in business_types:
        raise TaxonomyConfigError(f"Taxonomy document has no {DEFAULT_BUSINESS_TYPE!r} business type")

    taxonomy = taxonomy_from_mapping(
        business_types[resolved],
        business_type=resolved,
        version=str(document.get("version", "1")),
    )
    validate_taxonomy(taxonomy)
    return taxonomy
