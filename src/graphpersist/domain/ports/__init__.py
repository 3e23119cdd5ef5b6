"""Ports implemented by storage adapters."""

from __future__ import annotations

from .entity_store import EntityStore
from .unit_of_work import PersistComponents, PersistUnitOfWork, UnitOfWork

__all__ = [
    "EntityStore",
    "PersistComponents",
    "PersistUnitOfWork",
    "UnitOfWork",
]
