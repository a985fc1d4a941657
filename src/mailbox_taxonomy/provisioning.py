"""Provisioning of missing canonical entries.

Objective:
    Create the canonical entries a caller decided to materialize, parents
    before children, without duplicating anything that already exists.

Responsibilities:
    - Order requests by path depth (stable), so that ``Team`` is attempted
      before ``Team/Sales``.
    - Re-check each name against live provider state right before creating
      it, which makes a second run with the same requests a no-op.
    - Send a color only when the provider supports one and it is a strict
      ``#RRGGBB`` value; anything else is silently dropped.
    - Isolate failures per item and report created / skipped / failed
      buckets.
    - Record a request that cannot be parsed (no path, blank segment) as
      failed with reason ``invalid_request`` instead of aborting the batch.

High-level call tree:
    - :func:`provision`
        - :class:`Provisioner`
            - :meth:`Provisioner.provision`
                - :meth:`Provisioner.provision_one`
                    - :meth:`MailboxProvider.find_item_by_exact_name`
                    - :meth:`MailboxProvider.create_item`

Operational notes:
    - Creation is sequential. A true race between the re-check and the
      create call of another writer can still produce a duplicate name; it is
      not retried.
    - Nothing is cached between calls: every call builds a fresh
      :class:`ProvisionResult`.
"""

import logging
import re
from typing import Any, Iterable, Mapping, Optional, Union

from .models import (
    FailedItem,
    MappingEntry,
    ProvisionedItem,
    ProvisionRequest,
    ProvisionResult,
    SkippedItem,
)
from .provider import MailboxProvider

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

RequestLike = Union[ProvisionRequest, MappingEntry, Mapping[str, Any]]


def is_valid_hex_color(color: Optional[str]) -> bool:
    """Return True for a strict ``#RRGGBB`` color."""
    return bool(color) and bool(_HEX_COLOR.match(color))


def to_provision_request(value: RequestLike) -> ProvisionRequest:
    """Normalize the accepted request shapes into a :class:`ProvisionRequest`."""
    if isinstance(value, ProvisionRequest):
        return value
    if isinstance(value, MappingEntry):
        return value.to_provision_request()
    return ProvisionRequest.model_validate(value)


def _raw_field(value: RequestLike, name: str, alias: Optional[str] = None) -> Any:
    if isinstance(value, Mapping):
        if name in value or alias is None:
            return value.get(name)
        return value.get(alias)
    return getattr(value, name, None)


def _raw_depth(value: RequestLike) -> int:
    path = _raw_field(value, "path")
    return len(path) if isinstance(path, (list, tuple)) else 0


def order_by_depth(requests: Iterable[RequestLike]) -> list[RequestLike]:
    """Sort requests by path length; equal depths keep input order.

    Reads the raw ``path`` of unparsed requests. An entry without a usable
    path sorts first.
    """
    return sorted(requests, key=_raw_depth)


def invalid_request_failure(
    value: RequestLike, error: Exception, delimiter: str
) -> FailedItem:
    """Describe a request that could not be parsed as a failed item."""
    raw_path = _raw_field(value, "path")
    if isinstance(raw_path, (list, tuple)):
        path = [str(segment) for segment in raw_path]
    else:
        path = []

    def text(name: str, alias: Optional[str] = None) -> Optional[str]:
        found = _raw_field(value, name, alias)
        return found if isinstance(found, str) else None

    return FailedItem(
        path=path,
        name=delimiter.join(path),
        error=str(error),
        reason="invalid_request",
        color=text("color"),
        description=text("description"),
        canonical_key=text("canonical_key", "canonicalKey"),
    )


class Provisioner:
    """
    Creates missing items in one provider account.

    Attributes:
        client: Provider client bound to the account credential.
    """

    def __init__(self, client: MailboxProvider) -> None:
        """
        Initialize the provisioner.

        Args:
            client: Provider client bound to the account credential.
        """
        self.client = client

    def _color_for(self, request: ProvisionRequest) -> Optional[str]:
        if not self.client.supports_color or not request.color:
            return None
        if not is_valid_hex_color(request.color):
            logger.debug(
                "Dropping invalid color %r for %s", request.color, request.path
            )
            return None
        return request.color

    def provision_one(self, request: ProvisionRequest, result: ProvisionResult) -> None:
        """Provision a single request, recording its outcome in ``result``.

        Args:
            request: Item to provision.
            result: Result collecting the outcome.
        """
        name = self.client.delimiter.join(request.path)

        try:
            existing = self.client.find_item_by_exact_name(name)
            if existing:
                logger.debug(f"Skipping existing item: {name}")
                result.skipped.append(
                    SkippedItem(
                        path=request.path,
                        name=name,
                        id=existing.id,
                        canonical_key=request.canonical_key,
                    )
                )
                return

            color = self._color_for(request)
            created = self.client.create_item(name, color)
            logger.debug(f"Created item: {name} ({created.id})")
            result.created.append(
                ProvisionedItem(
                    path=request.path,
                    name=name,
                    id=created.id,
                    color=color,
                    canonical_key=request.canonical_key,
                )
            )

        except Exception as e:
            logger.exception(f"Failed to provision {name}")
            result.failed.append(
                FailedItem(
                    path=request.path,
                    name=name,
                    error=str(e),
                    color=request.color,
                    description=request.description,
                    canonical_key=request.canonical_key,
                )
            )

    def provision(self, requests: Iterable[RequestLike]) -> ProvisionResult:
        """Provision items, parents before children.

        Args:
            requests: Items to provision (:class:`ProvisionRequest`,
                :class:`MappingEntry`, or ``{path, color, description}``
                dicts).

        Returns:
            ProvisionResult: Created, skipped and failed buckets.
        """
        ordered = order_by_depth(requests)
        result = ProvisionResult(provider=self.client.name)

        logger.info(f"Provisioning {len(ordered)} items in {self.client.name}")
        for value in ordered:
            try:
                request = to_provision_request(value)
            except ValueError as e:
                logger.warning(f"Invalid provisioning request {value!r}: {e}")
                result.failed.append(
                    invalid_request_failure(value, e, self.client.delimiter)
                )
                continue
            self.provision_one(request, result)

        summary = result.summary
        logger.info(
            "Provisioning complete: %d created, %d skipped, %d failed",
            summary["totalCreated"],
            summary["totalSkipped"],
            summary["totalFailed"],
        )
        return result


def provision(client: MailboxProvider, requests: Iterable[RequestLike]) -> ProvisionResult:
    """Convenience wrapper around :class:`Provisioner`."""
    return Provisioner(client).provision(requests)
