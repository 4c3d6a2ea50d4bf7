"""Entity history — rebuild an entity's property values at a past timestamp.

Undoes an append-only log of per-property change records, newest-first,
against the entity's current state, and reports for every changed property
both its value at the requested time and the full trail of values it went
through since.
"""

from __future__ import annotations

from entity_history.history.change_store import (
    InMemoryChangeLog,
    InMemoryChangeLogProvider,
    InMemoryEntityLoader,
)
from entity_history.history.changes import (
    ChangeRecord,
    ChangeType,
    EntityHistorySnapshot,
    PropertyChange,
)
from entity_history.history.descriptors import (
    PROPERTY_NOT_EXIST,
    EntityDescriptor,
    stringify_value,
)
from entity_history.history.interfaces import IChangeLogProvider, IEntityLoader
from entity_history.history.manager import EntitySnapshotManager, EntityTypeRegistration
from entity_history.history.reconstructor import TRAIL_SEPARATOR, SnapshotReconstructor

__all__ = [
    "PROPERTY_NOT_EXIST",
    "TRAIL_SEPARATOR",
    "ChangeRecord",
    "ChangeType",
    "EntityDescriptor",
    "EntityHistorySnapshot",
    "EntitySnapshotManager",
    "EntityTypeRegistration",
    "IChangeLogProvider",
    "IEntityLoader",
    "InMemoryChangeLog",
    "InMemoryChangeLogProvider",
    "InMemoryEntityLoader",
    "PropertyChange",
    "SnapshotReconstructor",
    "stringify_value",
]
