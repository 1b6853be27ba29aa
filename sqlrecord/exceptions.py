"""
Custom database exceptions for the sqlrecord access layer.
"""

from typing import Optional


class DatabaseError(Exception):
    """Base class for all database-related exceptions."""


class DBConnectionError(DatabaseError):
    """Raised when there are issues connecting to or disconnecting from the database."""


class QueryBuildError(DatabaseError, ValueError):
    """Raised when a statement cannot be built from the given arguments."""


class QueryError(DatabaseError):
    """Raised when the server rejects a statement.

    Attributes:
        message: The driver's error message.
        sql: The SQL text that failed.
        errno: The MySQL error code, when the driver reported one.
    """

    def __init__(self, message: str, sql: Optional[str] = None, errno: Optional[int] = None) -> None:
        self.message = message
        self.sql = sql
        self.errno = errno
        super().__init__(f"{message}, {sql}" if sql else message)


class ForeignKeyError(QueryError):
    """Raised when a foreign key constraint fails."""


class ConstraintError(QueryError):
    """Raised when a database constraint is violated."""


class DatabaseTypeError(QueryError, TypeError):
    """Raised when there's a type mismatch in database operations."""


class IntegrityError(QueryError):
    """Raised when database integrity is violated."""


class SchemaError(QueryError):
    """Raised when there are schema-related issues."""


class TableNotFoundError(QueryError):
    """Raised when a table is not found in the database."""
