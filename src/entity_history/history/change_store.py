"""Append-only in-memory change log for entity history.

Stores ChangeRecords partitioned by (entity_type, entity_id), each partition
kept sorted by change_time. No updates or deletes are permitted.

Useful for tests and for embedding entity history without a database; the
SQL-backed provider lives in entity_history.adapters.repositories.
"""

from __future__ import annotations

import bisect
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from entity_history.history.changes import ChangeRecord, as_utc, serialize_key

_PartitionKey = tuple[str, str]


class InMemoryChangeLog:
    """Append-only change log keyed by entity type and serialized key.

    All methods are synchronous because in-memory access does not block.
    Use provider_for() to obtain the async IChangeLogProvider for one type.
    """

    def __init__(self) -> None:
        # { (entity_type, entity_id): list[ChangeRecord] } sorted by change_time ascending
        self._records: dict[_PartitionKey, list[ChangeRecord]] = {}
        # Parallel lists of change_time for bisect operations
        self._times: dict[_PartitionKey, list[datetime]] = {}

    def append(self, record: ChangeRecord) -> None:
        """Append a ChangeRecord, keeping its partition sorted.

        Records with equal change_time keep their append order.

        Args:
            record: The immutable record to store.
        """
        key = (record.entity_type, record.entity_id)
        if key not in self._records:
            self._records[key] = []
            self._times[key] = []

        index = bisect.bisect_right(self._times[key], record.change_time)
        self._records[key].insert(index, record)
        self._times[key].insert(index, record.change_time)

    def count(self, entity_type: str | None = None) -> int:
        """Return the number of stored records, optionally for one type."""
        return sum(
            len(records)
            for (stored_type, _), records in self._records.items()
            if entity_type is None or stored_type == entity_type
        )

    def changes_after(
        self,
        entity_type: str,
        primary_key: Any,
        snapshot_time: datetime,
    ) -> list[ChangeRecord]:
        """Return an entity's records strictly after snapshot_time, newest-first.

        Args:
            entity_type: The entity type discriminator.
            primary_key: The entity's primary key (serialized for lookup).
            snapshot_time: Exclusive lower bound. Naive values are UTC.

        Returns:
            Matching records ordered by change_time descending. Records with
            equal change_time come out in reverse append order.
        """
        key = (entity_type, serialize_key(primary_key))
        if key not in self._times:
            return []

        low = bisect.bisect_right(self._times[key], as_utc(snapshot_time))
        return list(reversed(self._records[key][low:]))

    def provider_for(self, entity_type: str) -> InMemoryChangeLogProvider:
        """Return an IChangeLogProvider reading this log for one entity type."""
        return InMemoryChangeLogProvider(self, entity_type)


class InMemoryChangeLogProvider:
    """IChangeLogProvider bound to one entity type of an InMemoryChangeLog.

    Args:
        change_log: The backing log.
        entity_type: The entity type whose records are served.
    """

    def __init__(self, change_log: InMemoryChangeLog, entity_type: str) -> None:
        self._log = change_log
        self._entity_type = entity_type

    async def load_changes(self, primary_key: Any, snapshot_time: datetime) -> list[ChangeRecord]:
        return self._log.changes_after(self._entity_type, primary_key, snapshot_time)


class InMemoryEntityLoader:
    """IEntityLoader over a mapping of primary key to entity.

    Args:
        entities: Current entities keyed by primary key. The mapping is
            read on every call, so later mutations are visible.
    """

    def __init__(self, entities: Mapping[Any, Any]) -> None:
        self._entities = entities

    async def load_entity(self, primary_key: Any) -> Any | None:
        return self._entities.get(primary_key)
