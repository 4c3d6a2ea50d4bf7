"""Snapshot reconstructor for entity history.

Given an entity's current state and the change records logged for it after
a target timestamp, rebuilds the values the entity's properties held at
that timestamp by undoing the changes newest-first. While undoing, it also
records, for every touched property, the chain of values the property went
through from its live value back to the snapshot-time value.

The change records must be ordered newest-first. They are neither checked
nor re-sorted here: an out-of-order list yields a well-formed but wrong
snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from entity_history.history.changes import ChangeRecord, EntityHistorySnapshot
from entity_history.history.descriptors import PROPERTY_NOT_EXIST, EntityDescriptor

TRAIL_SEPARATOR = " -> "


class SnapshotReconstructor:
    """Rebuilds EntityHistorySnapshots for one entity type.

    Stateless between calls: every call folds only over its own arguments,
    so one instance can serve any number of concurrent requests.

    Args:
        descriptor: Property lookup table for the entity type, used to seed
            each trail with the property's live value.
    """

    def __init__(self, descriptor: EntityDescriptor) -> None:
        self._descriptor = descriptor

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    def reconstruct(
        self,
        entity: Any | None,
        ordered_changes: Iterable[ChangeRecord],
    ) -> EntityHistorySnapshot:
        """Undo ordered_changes against entity and return the snapshot.

        For each property change, newest record first:
        - revoke: the property's final value becomes the change's original
          value, so after the fold it holds the oldest touching change's
          original value.
        - trail: the first touch seeds the trail with the live value (or
          "PropertyNotExist"), every touch appends its original value.

        Args:
            entity: The current entity, or None if it was not found.
            ordered_changes: Change records for the entity, newest-first.

        Returns:
            The snapshot. Both maps are empty when entity is None.
        """
        if entity is None:
            return EntityHistorySnapshot()

        final_values: dict[str, str] = {}
        change_trail: dict[str, str] = {}

        for change in ordered_changes:
            for property_change in change.property_changes:
                name = property_change.property_name
                original = _as_logged(property_change.original_value)

                final_values[name] = original

                if name in change_trail:
                    change_trail[name] += TRAIL_SEPARATOR + original
                else:
                    change_trail[name] = self._live_value(entity, name) + TRAIL_SEPARATOR + original

        return EntityHistorySnapshot(final_values=final_values, change_trail=change_trail)

    def _live_value(self, entity: Any, property_name: str) -> str:
        live = self._descriptor.read(entity, property_name)
        return PROPERTY_NOT_EXIST if live is None else live


def _as_logged(value: str | None) -> str:
    return "null" if value is None else value
