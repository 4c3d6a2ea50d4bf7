"""Tests for EntitySnapshotManager — the get_snapshot entry point.

Covers: registration, sequential and concurrent reads, absent entities,
unknown entity types, and propagation of collaborator failures.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from entity_history.errors import ConfigurationError, UnknownEntityTypeError
from entity_history.history.change_store import InMemoryEntityLoader
from entity_history.history.descriptors import EntityDescriptor
from entity_history.history.manager import EntitySnapshotManager
from entity_history.settings import Settings
from tests.conftest import BASE_TIME, Order, make_change


@pytest.fixture()
def manager(order_loader, change_log, order_descriptor) -> EntitySnapshotManager:
    snapshot_manager = EntitySnapshotManager()
    snapshot_manager.register(order_loader, change_log.provider_for("Order"), order_descriptor)
    return snapshot_manager


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_register_defaults_to_descriptor_entity_type(self, manager) -> None:
        assert manager.entity_types == frozenset({"Order"})

    def test_register_under_explicit_entity_type(self, order_loader, change_log) -> None:
        snapshot_manager = EntitySnapshotManager()
        descriptor = EntityDescriptor.for_pydantic_model(Order)

        registration = snapshot_manager.register(
            order_loader,
            change_log.provider_for("sales.Order"),
            descriptor,
            entity_type="sales.Order",
        )

        assert snapshot_manager.entity_types == frozenset({"sales.Order"})
        assert registration.reconstructor.descriptor is descriptor

    def test_duplicate_registration_raises(self, manager, order_loader, change_log, order_descriptor) -> None:
        with pytest.raises(ConfigurationError):
            manager.register(order_loader, change_log.provider_for("Order"), order_descriptor)

    def test_from_settings_applies_concurrent_reads(self) -> None:
        snapshot_manager = EntitySnapshotManager.from_settings(Settings(concurrent_reads=True))
        assert snapshot_manager._concurrent_reads is True


# ---------------------------------------------------------------------------
# get_snapshot
# ---------------------------------------------------------------------------


class TestGetSnapshot:
    @pytest.mark.asyncio()
    async def test_no_changes_returns_empty_snapshot(self, manager) -> None:
        snapshot = await manager.get_snapshot("Order", 1, BASE_TIME)

        assert dict(snapshot.final_values) == {}
        assert dict(snapshot.change_trail) == {}

    @pytest.mark.asyncio()
    async def test_changes_after_snapshot_time_are_undone(self, manager, change_log) -> None:
        change_log.append(make_change(("Name", "Carol"), minutes=5))
        change_log.append(make_change(("Name", "Alice"), ("Quantity", "1"), minutes=15))
        change_log.append(make_change(("Name", "Dave"), minutes=25))

        snapshot = await manager.get_snapshot("Order", 1, BASE_TIME + timedelta(minutes=10))

        assert dict(snapshot.final_values) == {"Name": "Alice", "Quantity": "1"}
        assert snapshot.change_trail["Name"] == "Bob -> Dave -> Alice"
        assert snapshot.change_trail["Quantity"] == "3 -> 1"

    @pytest.mark.asyncio()
    async def test_absent_entity_returns_empty_snapshot(self, manager, change_log) -> None:
        change_log.append(make_change(("Name", "Alice"), entity_id="2", minutes=5))

        snapshot = await manager.get_snapshot("Order", 2, BASE_TIME)

        assert snapshot.is_empty

    @pytest.mark.asyncio()
    async def test_absent_entity_skips_change_log_in_sequential_mode(self, order_descriptor) -> None:
        loader = AsyncMock()
        loader.load_entity.return_value = None
        change_log = AsyncMock()
        snapshot_manager = EntitySnapshotManager()
        snapshot_manager.register(loader, change_log, order_descriptor)

        snapshot = await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert snapshot.is_empty
        loader.load_entity.assert_awaited_once_with(1)
        change_log.load_changes.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_concurrent_reads_issue_both_queries(self, order, order_descriptor) -> None:
        loader = AsyncMock()
        loader.load_entity.return_value = order
        change_log = AsyncMock()
        change_log.load_changes.return_value = [make_change(("Name", "Alice"), minutes=5)]
        snapshot_manager = EntitySnapshotManager(concurrent_reads=True)
        snapshot_manager.register(loader, change_log, order_descriptor)

        snapshot = await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert snapshot.change_trail["Name"] == "Bob -> Alice"
        loader.load_entity.assert_awaited_once_with(1)
        change_log.load_changes.assert_awaited_once_with(1, BASE_TIME)

    @pytest.mark.asyncio()
    async def test_concurrent_reads_absent_entity_is_empty(self, order_descriptor) -> None:
        loader = AsyncMock()
        loader.load_entity.return_value = None
        change_log = AsyncMock()
        change_log.load_changes.return_value = [make_change(("Name", "Alice"))]
        snapshot_manager = EntitySnapshotManager(concurrent_reads=True)
        snapshot_manager.register(loader, change_log, order_descriptor)

        snapshot = await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert snapshot.is_empty

    @pytest.mark.asyncio()
    async def test_unknown_entity_type_raises(self, manager) -> None:
        with pytest.raises(UnknownEntityTypeError) as exc_info:
            await manager.get_snapshot("Invoice", 1, BASE_TIME)

        assert exc_info.value.entity_type == "Invoice"
        assert isinstance(exc_info.value, LookupError)

    @pytest.mark.asyncio()
    async def test_loader_failure_propagates_unchanged(self, change_log, order_descriptor) -> None:
        failure = ConnectionError("database unavailable")
        loader = AsyncMock()
        loader.load_entity.side_effect = failure
        snapshot_manager = EntitySnapshotManager()
        snapshot_manager.register(loader, change_log.provider_for("Order"), order_descriptor)

        with pytest.raises(ConnectionError) as exc_info:
            await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert exc_info.value is failure

    @pytest.mark.asyncio()
    async def test_change_log_failure_propagates_unchanged(self, order_loader, order_descriptor) -> None:
        failure = TimeoutError("query timed out")
        change_log = AsyncMock()
        change_log.load_changes.side_effect = failure
        snapshot_manager = EntitySnapshotManager()
        snapshot_manager.register(order_loader, change_log, order_descriptor)

        with pytest.raises(TimeoutError) as exc_info:
            await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert exc_info.value is failure
        assert change_log.load_changes.await_count == 1

    @pytest.mark.asyncio()
    async def test_repeated_requests_are_identical(self, manager, change_log) -> None:
        change_log.append(make_change(("Name", "Alice"), minutes=5))

        first = await manager.get_snapshot("Order", 1, BASE_TIME)
        second = await manager.get_snapshot("Order", 1, BASE_TIME)

        assert first == second
        assert first is not second

    @pytest.mark.asyncio()
    async def test_live_value_reflects_current_entity(self, change_log, order_descriptor) -> None:
        entities = {1: Order(id=1, Name="Bob")}
        snapshot_manager = EntitySnapshotManager()
        snapshot_manager.register(
            InMemoryEntityLoader(entities), change_log.provider_for("Order"), order_descriptor
        )
        change_log.append(make_change(("Name", "Alice"), minutes=5))
        entities[1] = Order(id=1, Name="Zed")

        snapshot = await snapshot_manager.get_snapshot("Order", 1, BASE_TIME)

        assert snapshot.change_trail["Name"] == "Zed -> Alice"
