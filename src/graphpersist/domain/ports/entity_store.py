"""Port for the storage collaborator the graph persister drives."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from graphpersist.domain.model import Entity, EntityTypeRegistry


@runtime_checkable
class EntityStore(Protocol):
    """Saves single entities; knows nothing about relationship graphs."""

    @property
    def entity_types(self) -> EntityTypeRegistry: ...

    def save(self, entity: Entity) -> bool:
        """Insert or update ``entity``; ``False`` when a save hook declines."""
        ...

    def is_persisted(self, entity: Entity) -> bool: ...

    def is_dirty(self, entity: Entity) -> bool: ...

    def link_pivot(
        self,
        pivot_table: str,
        left_key: str,
        right_key: str,
        left_id: object,
        right_id: object,
    ) -> bool:
        """Insert a pivot row unless one already links the pair."""
        ...

    def set_foreign_key(self, entity: Entity, column: str, value: object) -> None: ...

    def set_polymorphic_reference(
        self,
        entity: Entity,
        type_column: str,
        id_column: str,
        referenced: Entity,
    ) -> None: ...
