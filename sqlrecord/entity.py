"""Per-table entity base class.

A `TableEntity` binds a table name to a `DatabaseManager` and forwards the
CRUD helpers with the table pre-filled. Subclasses normally set only
`TABLE_NAME`:

    class UserEntity(TableEntity):
        TABLE_NAME = "users"

    users = UserEntity(db_manager=db)
    users.find_one({"email": "a@example.com"})
"""

from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Union

from .database_manager import DatabaseManager, Row

POSITION_COLUMN = "position"


class EntityNotFound(Exception):
    """Raised when a row expected by an entity lookup does not exist."""

    def __init__(self, message: str = "Entity not found") -> None:
        """Initialize the error with a helpful message."""
        self.message = message
        super().__init__(self.message)


class TableEntity:
    """CRUD facade for a single table."""

    TABLE_NAME: Optional[str] = None

    def __init__(self, *, db_manager: DatabaseManager, table_name: Optional[str] = None) -> None:
        """Bind the entity to a manager.

        Args:
            db_manager: Manager used for every statement.
            table_name: Overrides the class level `TABLE_NAME`.

        Raises:
            ValueError: If no table name is available.
        """
        name = table_name or self.TABLE_NAME
        if not name:
            raise ValueError(f"{type(self).__name__} has no table name")
        self.db = db_manager
        self.table_name: str = name
        self._cache: Dict[Hashable, Any] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table_name={self.table_name!r})"

    def get(self, id: object) -> Optional[Row]:
        return self.db.get(self.table_name, id)

    def get_all(self, order_by: Optional[str] = None) -> List[Row]:
        return self.db.get_all(self.table_name, order_by)

    def get_all_count(self) -> int:
        return self.db.get_all_count(self.table_name)

    def find(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
    ) -> List[Row]:
        return self.db.get_by(self.table_name, criteria, limit, order_by)

    def find_one(self, criteria: Mapping[str, Any]) -> Optional[Row]:
        """Return the first matching row, or None."""
        rows = self.db.get_by(self.table_name, criteria, 1)
        return rows[0] if rows else None

    def find_column(self, criteria: Mapping[str, Any], column: str) -> Any:
        """Return one column of the first matching row.

        Raises:
            EntityNotFound: If no row matches.
            KeyError: If the row has no such column.
        """
        row = self.find_one(criteria)
        if row is None:
            raise EntityNotFound(f"No {self.table_name} row matches {dict(criteria)!r}")
        return row[column]

    def create(self, values: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> bool:
        """Insert one or more rows. The new id is `db.inserted_id`."""
        return self.db.insert(self.table_name, values)

    def update(self, id: object, values: Mapping[str, Any]) -> bool:
        return self.db.update(self.table_name, id, values)

    def update_by(self, criteria: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
        return self.db.update_by(self.table_name, criteria, values)

    def delete(self, id: object) -> bool:
        return self.db.delete(self.table_name, id)

    def delete_by(self, criteria: Mapping[str, Any]) -> bool:
        return self.db.delete_by(self.table_name, criteria)

    def exists(self, id: object) -> bool:
        return self.db.exists(self.table_name, id)

    def exists_by(self, criteria: Mapping[str, Any], exclude_id: Optional[object] = None) -> bool:
        return self.db.exists_by(self.table_name, criteria, exclude_id)

    def update_position_column_by_id(self, positions: Mapping[Any, Any]) -> bool:
        """Set the position column of each id, one UPDATE per entry in order.

        Args:
            positions: Mapping of row id to its new position.

        Returns:
            True once every update has run. The first failure propagates and
            leaves the remaining rows untouched.
        """
        for entity_id, position in positions.items():
            self.db.update(self.table_name, entity_id, {POSITION_COLUMN: position})
        return True

    def escape(self, value: object) -> str:
        return self.db.escape(value)

    def escape_id(self, name: Union[str, Sequence[str]]) -> str:
        return self.db.escape_id(name)

    # Entity-local cache, separate from the manager's schema cache

    def save_cache(self, cache_id: Hashable, value: Any) -> bool:
        self._cache[cache_id] = value
        return True

    def get_cache(self, cache_id: Hashable) -> Any:
        """Return a cached value, or None when absent."""
        return self._cache.get(cache_id)

    def clear_cache(self, cache_id: Hashable) -> bool:
        self._cache.pop(cache_id, None)
        return True
