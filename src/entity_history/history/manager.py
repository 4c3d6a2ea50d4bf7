"""Entity snapshot manager — the entry point for historical snapshots.

Each entity type is registered once with its IEntityLoader, its
IChangeLogProvider and its EntityDescriptor. get_snapshot() loads the
current entity and the changes made after the requested time, then undoes
those changes with a SnapshotReconstructor.

The manager performs no retries and catches nothing from its collaborators:
their failures reach the caller unchanged. It does not make the two reads
consistent with each other either. Collaborators backed by a mutable store
should read both from one transaction, otherwise a trail may start from a
live value the change log does not yet reflect.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from entity_history.errors import ConfigurationError, UnknownEntityTypeError
from entity_history.history.changes import EntityHistorySnapshot
from entity_history.history.descriptors import EntityDescriptor
from entity_history.history.interfaces import IChangeLogProvider, IEntityLoader
from entity_history.history.reconstructor import SnapshotReconstructor
from entity_history.observability import get_logger
from entity_history.settings import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class EntityTypeRegistration:
    """Collaborators serving one entity type.

    Attributes:
        entity_loader: Loads the current entity by primary key.
        change_log: Supplies newest-first change records after a timestamp.
        descriptor: Property lookup table for the entity type.
        reconstructor: Fold bound to descriptor, derived on construction.
    """

    entity_loader: IEntityLoader
    change_log: IChangeLogProvider
    descriptor: EntityDescriptor
    reconstructor: SnapshotReconstructor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "reconstructor", SnapshotReconstructor(self.descriptor))


class EntitySnapshotManager:
    """Rebuilds entity snapshots for any registered entity type.

    Args:
        concurrent_reads: Load the entity and its change log concurrently
            with asyncio.gather(). When False (default) the entity is loaded
            first and the change log is not queried for a missing entity.
    """

    def __init__(self, concurrent_reads: bool = False) -> None:
        self._registrations: dict[str, EntityTypeRegistration] = {}
        self._concurrent_reads = concurrent_reads

    @classmethod
    def from_settings(cls, settings: Settings) -> EntitySnapshotManager:
        """Create a manager configured from Settings."""
        return cls(concurrent_reads=settings.concurrent_reads)

    @property
    def entity_types(self) -> frozenset[str]:
        """Entity type discriminators with a registration."""
        return frozenset(self._registrations)

    def register(
        self,
        entity_loader: IEntityLoader,
        change_log: IChangeLogProvider,
        descriptor: EntityDescriptor,
        entity_type: str | None = None,
    ) -> EntityTypeRegistration:
        """Register the collaborators for one entity type.

        Args:
            entity_loader: Loads current entities of this type.
            change_log: Supplies change records for entities of this type.
            descriptor: Property lookup table for this type.
            entity_type: Discriminator to register under. Defaults to
                descriptor.entity_type.

        Returns:
            The stored registration.

        Raises:
            ConfigurationError: If the entity type is already registered.
        """
        key = entity_type or descriptor.entity_type
        if key in self._registrations:
            raise ConfigurationError(f"Entity type '{key}' is already registered")

        registration = EntityTypeRegistration(
            entity_loader=entity_loader,
            change_log=change_log,
            descriptor=descriptor,
        )
        self._registrations[key] = registration
        logger.debug(
            "Entity type registered",
            entity_type=key,
            property_count=len(descriptor.property_names),
        )
        return registration

    async def get_snapshot(
        self,
        entity_type: str,
        primary_key: Any,
        snapshot_time: datetime,
    ) -> EntityHistorySnapshot:
        """Return the entity's property values as of snapshot_time.

        Args:
            entity_type: Discriminator selecting the registered collaborators.
            primary_key: The entity's primary key.
            snapshot_time: The past instant to reconstruct.

        Returns:
            The reconstructed snapshot. Both maps are empty when the entity
            does not exist or nothing changed after snapshot_time.

        Raises:
            UnknownEntityTypeError: If entity_type has no registration.
        """
        registration = self._registrations.get(entity_type)
        if registration is None:
            raise UnknownEntityTypeError(entity_type)

        logger.debug(
            "Reconstructing entity snapshot",
            entity_type=entity_type,
            primary_key=str(primary_key),
            snapshot_time=snapshot_time.isoformat(),
        )

        if self._concurrent_reads:
            entity, changes = await asyncio.gather(
                registration.entity_loader.load_entity(primary_key),
                registration.change_log.load_changes(primary_key, snapshot_time),
            )
        else:
            entity = await registration.entity_loader.load_entity(primary_key)
            changes = None
            if entity is not None:
                changes = await registration.change_log.load_changes(primary_key, snapshot_time)

        if entity is None:
            logger.info(
                "Entity not found, returning empty snapshot",
                entity_type=entity_type,
                primary_key=str(primary_key),
            )
            return EntityHistorySnapshot()

        snapshot = registration.reconstructor.reconstruct(entity, changes)

        logger.debug(
            "Entity snapshot reconstructed",
            entity_type=entity_type,
            primary_key=str(primary_key),
            change_count=len(changes),
            property_count=len(snapshot.final_values),
        )
        return snapshot
