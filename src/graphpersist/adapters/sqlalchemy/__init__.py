"""SQLAlchemy adapter package for graphpersist."""

from __future__ import annotations

from .loader import RelationshipLoader
from .mappings import EntityMapping, map_entities
from .store import SqlAlchemyEntityStore
from .unit_of_work import (
    SqlAlchemyPersistUnitOfWork,
    StartupError,
    persist_atomically,
    shutdown,
    startup,
)

__all__ = [
    "EntityMapping",
    "RelationshipLoader",
    "SqlAlchemyEntityStore",
    "SqlAlchemyPersistUnitOfWork",
    "StartupError",
    "map_entities",
    "persist_atomically",
    "shutdown",
    "startup",
]
