"""Test fixtures for entity-history.

Provides:
- Order: a small pydantic entity used throughout the tests
- make_change / make_property_change: ChangeRecord builders
- order_descriptor: EntityDescriptor for Order
- change_log / order_loader: in-memory collaborators
- mock_session: an AsyncMock standing in for a SQLAlchemy AsyncSession
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from entity_history.history.change_store import InMemoryChangeLog, InMemoryEntityLoader
from entity_history.history.changes import ChangeRecord, ChangeType, PropertyChange
from entity_history.history.descriptors import EntityDescriptor

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class Order(BaseModel):
    """Entity used by the tests. Live values are what the store holds now."""

    id: int
    Name: str
    Quantity: int = 1
    Price: Decimal = Decimal("9.99")
    Note: str | None = None
    Tags: list[str] = []


def make_property_change(
    property_name: str,
    original_value: str | None,
    new_value: str | None = None,
) -> PropertyChange:
    """Build a PropertyChange for tests."""
    return PropertyChange(
        property_name=property_name,
        original_value=original_value,
        new_value=new_value,
    )


def make_change(
    *changes: tuple[str, str | None],
    minutes: int = 0,
    entity_id: str = "1",
    entity_type: str = "Order",
    change_type: ChangeType = ChangeType.UPDATED,
) -> ChangeRecord:
    """Build a ChangeRecord from (property_name, original_value) pairs.

    Args:
        changes: (property_name, original_value) pairs, in logged order.
        minutes: Offset of change_time from BASE_TIME.
        entity_id: Serialized primary key.
        entity_type: Entity type discriminator.
        change_type: Kind of mutation.

    Returns:
        A ChangeRecord.
    """
    return ChangeRecord(
        change_time=BASE_TIME + timedelta(minutes=minutes),
        change_type=change_type,
        entity_type=entity_type,
        entity_id=entity_id,
        property_changes=tuple(make_property_change(name, value) for name, value in changes),
    )


@pytest.fixture()
def order() -> Order:
    """Return the current state of order 1."""
    return Order(id=1, Name="Bob", Quantity=3)


@pytest.fixture()
def order_descriptor() -> EntityDescriptor:
    """Return the EntityDescriptor for Order."""
    return EntityDescriptor.for_pydantic_model(Order)


@pytest.fixture()
def change_log() -> InMemoryChangeLog:
    """Return an empty in-memory change log."""
    return InMemoryChangeLog()


@pytest.fixture()
def order_loader(order: Order) -> InMemoryEntityLoader:
    """Return an entity loader holding order 1."""
    return InMemoryEntityLoader({1: order})


@pytest.fixture()
def mock_session() -> AsyncMock:
    """Create a mock AsyncSession whose execute() returns no rows.

    Returns:
        AsyncMock; set ``mock_session.execute.return_value`` to change rows.
    """
    session = AsyncMock()
    session.execute.return_value = make_result([])
    return session


def make_result(rows: list) -> MagicMock:
    """Build a fake SQLAlchemy Result whose scalars() yields rows."""
    scalars = MagicMock()
    scalars.all.return_value = rows
    scalars.first.return_value = rows[0] if rows else None
    result = MagicMock()
    result.scalars.return_value = scalars
    return result
