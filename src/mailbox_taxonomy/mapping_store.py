"""Persistence interface for suggested mappings.

Objective:
    Describe the narrow key-value interface the onboarding flow uses to
    persist a confirmed mapping. The engine itself never writes here; it
    returns mappings to its caller.

Versioning:
    Writes are optimistic. ``put`` takes the version the caller last read
    (0 for a new account); a mismatch raises
    :class:`mailbox_taxonomy.exceptions.MappingVersionConflict`, otherwise
    the stored version is bumped by one.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import MappingVersionConflict
from .models import MappingEntry

logger = logging.getLogger(__name__)


class StoredMapping(BaseModel):
    """A persisted mapping and its version."""

    account_id: str = Field(alias="accountId")
    mapping: dict[str, MappingEntry]
    version: int = Field(ge=1)
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class MappingStore(Protocol):
    """Key-value store for mappings, keyed by account id."""

    def get(self, account_id: str) -> Optional[StoredMapping]:
        ...

    def put(
        self, account_id: str, mapping: Mapping[str, MappingEntry], version: int
    ) -> StoredMapping:
        ...


class InMemoryMappingStore:
    """Thread-safe in-process :class:`MappingStore`."""

    def __init__(self) -> None:
        self._records: dict[str, StoredMapping] = {}
        self._lock = threading.Lock()

    def get(self, account_id: str) -> Optional[StoredMapping]:
        with self._lock:
            record = self._records.get(account_id)
            return copy.deepcopy(record) if record else None

    def put(
        self, account_id: str, mapping: Mapping[str, MappingEntry], version: int
    ) -> StoredMapping:
        """Store a mapping if ``version`` matches the stored version.

        Args:
            account_id: Account key.
            mapping: Mapping to store.
            version: Version the caller last read, 0 for a new account.

        Returns:
            StoredMapping: The stored record with its new version.

        Raises:
            MappingVersionConflict: If the stored version differs.
        """
        with self._lock:
            current = self._records.get(account_id)
            current_version = current.version if current else 0
            if version != current_version:
                raise MappingVersionConflict(account_id, version, current_version)

            record = StoredMapping(
                account_id=account_id,
                mapping=dict(mapping),
                version=current_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            self._records[account_id] = record
            logger.debug(f"Stored mapping for {account_id} at version {record.version}")
            return copy.deepcopy(record)
