"""sqlrecord: a lightweight MySQL access layer.

`DatabaseManager` wraps one PyMySQL session with escaping, CRUD helpers and
result shaping; `TableEntity` is a per-table facade over it.
"""

from .config import DatabaseConfig, TlsMaterial
from .database_manager import DatabaseManager, QueryResult, SchemaKind
from .debug_util import DebugUtil
from .entity import EntityNotFound, TableEntity
from .entity_registry import EntityRegistry, UnknownEntityError
from .exceptions import (
    ConstraintError,
    DatabaseError,
    DatabaseTypeError,
    DBConnectionError,
    ForeignKeyError,
    IntegrityError,
    QueryBuildError,
    QueryError,
    SchemaError,
    TableNotFoundError,
)
from .sql_format import Literal, Value

__all__ = [
    "ConstraintError",
    "DatabaseConfig",
    "DatabaseError",
    "DatabaseManager",
    "DatabaseTypeError",
    "DBConnectionError",
    "DebugUtil",
    "EntityNotFound",
    "EntityRegistry",
    "ForeignKeyError",
    "IntegrityError",
    "Literal",
    "QueryBuildError",
    "QueryError",
    "QueryResult",
    "SchemaError",
    "SchemaKind",
    "TableEntity",
    "TableNotFoundError",
    "TlsMaterial",
    "UnknownEntityError",
    "Value",
]
