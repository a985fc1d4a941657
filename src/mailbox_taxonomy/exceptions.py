"""Error taxonomy for discovery, reconciliation and provisioning.

Propagation rules:
    - :class:`ProviderUnavailable` fails a whole discovery call.
    - :class:`MalformedItem` and :class:`ProvisionItemFailed` are item-level;
      they are collected next to the successful results instead of aborting.
    - :class:`TaxonomyConfigError` is a caller configuration error raised
      before reconciliation starts.
"""

from typing import Optional


class MailboxTaxonomyError(Exception):
    """Base class for all errors raised by this package."""


class ProviderError(MailboxTaxonomyError):
    """A provider returned an unexpected payload or refused a request.

    Args:
        message: Human readable description.
        status_code: HTTP status code, when one is known.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderUnavailable(MailboxTaxonomyError):
    """The provider could not be reached or rejected the credential."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider} provider unavailable: {reason}")
        self.provider = provider
        self.reason = reason


class MalformedItem(MailboxTaxonomyError):
    """A discovered item has a name that cannot be parsed into a path."""

    def __init__(self, item_id: str, name: str, reason: str) -> None:
        super().__init__(f"Malformed item {item_id!r} ({name!r}): {reason}")
        self.item_id = item_id
        self.name = name
        self.reason = reason


class ProvisionItemFailed(MailboxTaxonomyError):
    """A single item could not be created in the provider."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(reason)
        self.name = name
        self.reason = reason


class TaxonomyConfigError(MailboxTaxonomyError):
    """The canonical taxonomy configuration is invalid."""


class MappingVersionConflict(MailboxTaxonomyError):
    """An optimistic write used a stale mapping version."""

    def __init__(self, account_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Mapping for {account_id!r} is at version {actual}, not {expected}"
        )
        self.account_id = account_id
        self.expected = expected
        self.actual = actual
