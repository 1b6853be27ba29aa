"""Explicit registry of entity classes.

Maps a tag to a factory building a `TableEntity` around a shared manager, so
callers can run several entity operations in one request and receive the
results in request order.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Tuple

from .database_manager import DatabaseManager
from .entity import TableEntity

logger = logging.getLogger(__name__)

EntityFactory = Callable[..., TableEntity]
EntityOperation = Callable[[TableEntity], Any]


class UnknownEntityError(KeyError):
    """Raised when a tag has no registered entity factory."""

    def __init__(self, tag: Hashable) -> None:
        self.tag = tag
        self.message = f'Database object "{tag}" is not found'
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class EntityRegistry:
    """Tag -> entity factory mapping bound to one DatabaseManager."""

    def __init__(self, *, db_manager: DatabaseManager) -> None:
        self.db = db_manager
        self._factories: Dict[Hashable, EntityFactory] = {}

    def register(self, tag: Hashable, factory: EntityFactory) -> EntityFactory:
        """Register a factory, typically a TableEntity subclass.

        The factory is called with ``db_manager=`` as its only argument.
        Registering a tag again replaces the previous factory.
        """
        if tag in self._factories:
            logger.debug("Replacing entity factory for tag %r", tag)
        self._factories[tag] = factory
        return factory

    def __contains__(self, tag: object) -> bool:
        return tag in self._factories

    def tags(self) -> List[Hashable]:
        return list(self._factories)

    def entity(self, tag: Hashable) -> TableEntity:
        """Build a fresh entity for ``tag``.

        Raises:
            UnknownEntityError: If the tag is not registered.
        """
        try:
            factory = self._factories[tag]
        except KeyError:
            raise UnknownEntityError(tag) from None
        return factory(db_manager=self.db)

    def fetch(self, tag: Hashable, operation: EntityOperation) -> Any:
        """Run ``operation`` against a new entity for ``tag`` and return its result."""
        return operation(self.entity(tag))

    def fetch_many(self, requests: Iterable[Tuple[Hashable, EntityOperation]]) -> List[Any]:
        """Run several (tag, operation) requests sequentially.

        Every tag is resolved before any operation runs, so an unknown tag
        fails the whole batch without touching the database. The first
        failing operation propagates.
        """
        batch = [(self.entity(tag), operation) for tag, operation in requests]
        return [operation(entity) for entity, operation in batch]
