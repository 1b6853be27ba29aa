"""Shared database interface definitions.

Lightweight typing Protocols describing the slice of the PyMySQL API that
`DatabaseManager` relies on, so tests can substitute a fake driver for a live MySQL session.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Tuple, Type


class CursorProtocol(Protocol):
    """Minimal DB-API cursor protocol used by DatabaseManager."""

    rowcount: int
    lastrowid: Optional[int]

    def execute(self, query: str, args: Optional[Tuple[object, ...]] = ...) -> int:
        """Execute a statement, binding ``args`` with the driver's ``%s`` paramstyle."""
        ...

    def mogrify(self, query: str, args: Optional[Tuple[object, ...]] = ...) -> str:
        """Return the exact text the driver would send for ``query`` and ``args``."""
        ...

    def fetchall(self) -> Sequence[Dict[str, Any]]:
        """Fetch all remaining rows of the current result set."""
        ...

    def nextset(self) -> Optional[bool]:
        """Advance to the next result set of a multi-statement batch."""
        ...

    def close(self) -> None:
        """Close the cursor."""
        ...

    @property
    def description(self) -> Optional[Sequence[Sequence[object]]]:
        """Column metadata of the current result set, None for statements without rows."""
        ...


class ConnectionProtocol(Protocol):
    """Minimal PyMySQL connection protocol used by DatabaseManager."""

    def cursor(self, cursor: Optional[Type[Any]] = ...) -> CursorProtocol:
        """Return a new cursor."""
        ...

    def escape(self, obj: object, mapping: Optional[Mapping[type, Any]] = ...) -> str:
        """Escape a value as a SQL literal using the session's character set."""
        ...

    def begin(self) -> None:
        """Start a transaction."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the current transaction."""
        ...

    def close(self) -> None:
        """Close the underlying connection."""
        ...

