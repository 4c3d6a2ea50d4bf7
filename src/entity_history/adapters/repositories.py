"""SQLAlchemy collaborators for entity snapshot reconstruction.

Adapters:
- SqlAlchemyEntityLoader        — IEntityLoader over any mapped entity class
- SqlAlchemyChangeLogProvider   — IChangeLogProvider over the entity_changes table

Both take an AsyncSession. Give them the same session, opened in one
transaction, to read the current entity and its change log consistently.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute, selectinload

from entity_history.adapters.models import EntityChange, to_change_record
from entity_history.errors import ConfigurationError
from entity_history.history.changes import ChangeRecord, as_utc, serialize_key
from entity_history.observability import get_logger

logger = get_logger(__name__)


class SqlAlchemyEntityLoader:
    """Loads current entities of one mapped class by primary key.

    Args:
        session: The async session to query with.
        model: The SQLAlchemy mapped entity class.
        key_column: Column compared with the requested key. Defaults to
            the mapper's primary key, which must be a single column.

    Raises:
        ConfigurationError: If key_column is omitted and the primary key is
            composite.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type,
        key_column: InstrumentedAttribute[Any] | None = None,
    ) -> None:
        self._session = session
        self._model = model
        self._key_column = key_column if key_column is not None else _single_primary_key(model)

    async def load_entity(self, primary_key: Any) -> Any | None:
        """Return the entity whose key column equals primary_key, or None."""
        stmt = select(self._model).where(self._key_column == primary_key)
        result = await self._session.execute(stmt)
        return result.scalars().first()


class SqlAlchemyChangeLogProvider:
    """Reads one entity type's change records from the entity_changes table.

    Args:
        session: The async session to query with.
        entity_type: Entity type discriminator stored on EntityChange rows.
    """

    def __init__(self, session: AsyncSession, entity_type: str) -> None:
        self._session = session
        self._entity_type = entity_type

    async def load_changes(
        self,
        primary_key: Any,
        snapshot_time: datetime,
    ) -> Sequence[ChangeRecord]:
        """Return the entity's changes after snapshot_time, newest-first.

        Rows with the same change_time are ordered by descending id, so
        the later-inserted one counts as newer.

        Args:
            primary_key: The entity's primary key; serialized to match
                EntityChange.entity_id.
            snapshot_time: Exclusive lower bound on change_time.

        Returns:
            ChangeRecords ordered by change_time descending.
        """
        stmt = (
            select(EntityChange)
            .where(
                EntityChange.entity_type == self._entity_type,
                EntityChange.entity_id == serialize_key(primary_key),
                EntityChange.change_time > as_utc(snapshot_time),
            )
            .options(selectinload(EntityChange.property_changes))
            .order_by(EntityChange.change_time.desc(), EntityChange.id.desc())
        )
        result = await self._session.execute(stmt)
        rows = result.scalars().all()

        logger.debug(
            "Loaded entity changes",
            entity_type=self._entity_type,
            primary_key=str(primary_key),
            change_count=len(rows),
        )
        return [to_change_record(row) for row in rows]


def _single_primary_key(model: type) -> InstrumentedAttribute[Any]:
    mapper = sa_inspect(model)
    if len(mapper.primary_key) != 1:
        raise ConfigurationError(
            f"{model.__name__} has a composite primary key; pass key_column explicitly"
        )
    column = mapper.primary_key[0]
    attribute = mapper.get_property_by_column(column)
    return getattr(model, attribute.key)
