"""SQLAlchemy ORM models for the entity change log.

Models:
- EntityChangeSet       — Groups the entity changes saved by one unit of work
- EntityChange          — One mutation of one entity at a point in time
- EntityPropertyChange  — The before/after values of one property in a mutation

Rows are written by the capture path at save time, which lives outside this
package. Here they are only read, to rebuild historical snapshots.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from entity_history.history.changes import ChangeRecord, ChangeType, PropertyChange


class Base(DeclarativeBase):
    """Declarative base for entity history tables."""


class EntityChangeSet(Base):
    """All entity changes persisted by one save operation.

    Attributes:
        id: Surrogate primary key.
        created_at: When the unit of work was saved.
        user_id: Optional identifier of the acting user.
        reason: Optional free-text reason supplied by the caller.
        entity_changes: The changes saved together.
    """

    __tablename__ = "entity_change_sets"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(256), nullable=True)

    entity_changes: Mapped[list[EntityChange]] = relationship(
        back_populates="change_set",
        order_by="EntityChange.id",
    )


class EntityChange(Base):
    """One logged mutation of one entity.

    Attributes:
        id: Surrogate primary key; breaks ties between equal change times.
        change_set_id: Owning EntityChangeSet.
        change_time: When the mutation happened.
        change_type: created | updated | deleted.
        entity_id: str() of the mutated entity's primary key, the same
            rule as entity_history.history.changes.serialize_key.
        entity_type: Entity type discriminator.
        property_changes: Per-property diffs, in logged order.
    """

    __tablename__ = "entity_changes"
    __table_args__ = (
        Index("ix_entity_changes_type_id_time", "entity_type", "entity_id", "change_time"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    change_set_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("entity_change_sets.id"),
        nullable=True,
        index=True,
    )
    change_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    change_type: Mapped[str] = mapped_column(String(16), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(48), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(192), nullable=False)

    change_set: Mapped[EntityChangeSet | None] = relationship(back_populates="entity_changes")
    property_changes: Mapped[list[EntityPropertyChange]] = relationship(
        back_populates="entity_change",
        order_by="EntityPropertyChange.id",
    )


class EntityPropertyChange(Base):
    """Before/after values of one property within an EntityChange.

    Attributes:
        id: Surrogate primary key; defines the logged order within a change.
        entity_change_id: Owning EntityChange.
        property_name: Logged property name.
        original_value: Serialized value before the change.
        new_value: Serialized value after the change.
        property_type_full_name: Type name of the property.
    """

    __tablename__ = "entity_property_changes"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    entity_change_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("entity_changes.id"),
        nullable=False,
        index=True,
    )
    property_name: Mapped[str] = mapped_column(String(96), nullable=False)
    original_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    property_type_full_name: Mapped[str | None] = mapped_column(String(192), nullable=True)

    entity_change: Mapped[EntityChange] = relationship(back_populates="property_changes")


def to_change_record(row: EntityChange) -> ChangeRecord:
    """Map an EntityChange row, with its loaded property changes, to a ChangeRecord."""
    return ChangeRecord(
        change_time=row.change_time,
        change_type=ChangeType(row.change_type),
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        property_changes=tuple(
            PropertyChange(
                property_name=prop.property_name,
                original_value=prop.original_value,
                new_value=prop.new_value,
                property_type_full_name=prop.property_type_full_name,
            )
            for prop in row.property_changes
        ),
    )
