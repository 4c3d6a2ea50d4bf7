"""Collaborator contracts (Protocol classes) for snapshot reconstruction.

EntitySnapshotManager depends on these protocols, never on a concrete
adapter. Each entity type registers one loader and one change log provider.

Protocols defined:
- IEntityLoader
- IChangeLogProvider
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from entity_history.history.changes import ChangeRecord


class IEntityLoader(Protocol):
    """Loads the current state of an entity by primary key."""

    async def load_entity(self, primary_key: Any) -> Any | None:
        """Load the current entity.

        Args:
            primary_key: The entity's primary key value.

        Returns:
            The entity, or None if it does not exist.
        """
        ...


class IChangeLogProvider(Protocol):
    """Supplies the change records needed to rebuild an entity's past state."""

    async def load_changes(
        self,
        primary_key: Any,
        snapshot_time: datetime,
    ) -> Sequence[ChangeRecord]:
        """Return the changes made to an entity after snapshot_time.

        Args:
            primary_key: The entity's primary key value.
            snapshot_time: Only changes strictly after this instant are
                returned; undoing them recovers the state at this instant.

        Returns:
            Change records ordered newest-first.
        """
        ...
