"""Tests for EntityRegistry."""

import pytest

from sqlrecord.database_manager import DatabaseManager
from sqlrecord.entity import TableEntity
from sqlrecord.entity_registry import EntityRegistry, UnknownEntityError
from tests.helpers.fake_driver import FakeConnection, rows


class UserEntity(TableEntity):
    TABLE_NAME = "users"


class OrderEntity(TableEntity):
    TABLE_NAME = "orders"


@pytest.fixture
def registry(db: DatabaseManager) -> EntityRegistry:
    registry = EntityRegistry(db_manager=db)
    registry.register("user", UserEntity)
    registry.register("order", OrderEntity)
    return registry


class TestEntityRegistry:
    def test_entity_is_bound_to_manager(self, registry: EntityRegistry, db: DatabaseManager) -> None:
        entity = registry.entity("user")
        assert isinstance(entity, UserEntity)
        assert entity.db is db
        assert "user" in registry
        assert registry.tags() == ["user", "order"]

    def test_unknown_tag(self, registry: EntityRegistry) -> None:
        with pytest.raises(UnknownEntityError, match='Database object "invoice" is not found'):
            registry.entity("invoice")

    def test_fetch(self, registry: EntityRegistry, fake_connection: FakeConnection) -> None:
        fake_connection.queue(rows({"id": 1}))
        assert registry.fetch("user", lambda users: users.get(1)) == {"id": 1}

    def test_fetch_many_keeps_request_order(self, registry: EntityRegistry, fake_connection: FakeConnection) -> None:
        fake_connection.queue(rows({"COUNT(id)": 5}), rows({"COUNT(id)": 2}))
        results = registry.fetch_many(
            [
                ("order", lambda orders: orders.get_all_count()),
                ("user", lambda users: users.get_all_count()),
            ]
        )
        assert results == [5, 2]
        assert fake_connection.executed == ["SELECT COUNT(id) FROM `orders`", "SELECT COUNT(id) FROM `users`"]

    def test_fetch_many_unknown_tag_runs_nothing(
        self, registry: EntityRegistry, fake_connection: FakeConnection
    ) -> None:
        with pytest.raises(UnknownEntityError):
            registry.fetch_many([("user", lambda users: users.get_all()), ("invoice", lambda x: x)])
        assert fake_connection.executed == []

    def test_register_replaces(self, registry: EntityRegistry) -> None:
        registry.register("user", OrderEntity)
        assert isinstance(registry.entity("user"), OrderEntity)
