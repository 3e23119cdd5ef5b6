"""Unit-of-work abstractions for callers that want one transaction per graph."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from graphpersist.domain.persister import GraphPersister
    from graphpersist.domain.ports.entity_store import EntityStore


@runtime_checkable
class UnitOfWork[TComponents](Protocol):
    """Generic unit-of-work boundary around a component collection."""

    @property
    def components(self) -> TComponents: ...

    def __enter__(self) -> UnitOfWork[TComponents]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class PersistComponents:
    """Store and persister sharing one transaction."""

    store: EntityStore
    persister: GraphPersister


type PersistUnitOfWork = UnitOfWork[PersistComponents]
