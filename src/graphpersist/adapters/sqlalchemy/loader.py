"""Read declared relationships back from storage.

Relationship holders are plain attributes, so nothing is lazy-loaded on
attribute access. ``RelationshipLoader`` is the explicit way to fetch what a
declared relationship currently points at in the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import select

from graphpersist.domain.relationships import RelationshipKind

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from graphpersist.adapters.sqlalchemy.mappings import EntityMapping
    from graphpersist.domain.model import Entity
    from graphpersist.domain.relationships import RelationshipDescriptor


class RelationshipLoader:
    def __init__(self, session: Session, mapping: EntityMapping) -> None:
        self.session = session
        self.mapping = mapping

    def load(self, entity: Entity, name: str) -> Entity | list[Entity] | None:
        """Return the stored value of relationship ``name`` on ``entity``.

        Single-valued kinds return an entity or ``None``; multi-valued kinds
        return a list (empty when nothing is linked).
        """

        descriptor = type(entity).RELATIONSHIPS[name]
        match descriptor.kind:
            case RelationshipKind.MANY_TO_ONE:
                return self._load_parent(entity, descriptor)
            case RelationshipKind.POLYMORPHIC_TO:
                return self._load_polymorphic_parent(entity, descriptor)
            case RelationshipKind.ONE_TO_ONE | RelationshipKind.POLYMORPHIC_ONE:
                return next(iter(self._load_children(entity, descriptor, limit=1)), None)
            case RelationshipKind.ONE_TO_MANY | RelationshipKind.POLYMORPHIC_MANY:
                return self._load_children(entity, descriptor)
            case RelationshipKind.MANY_TO_MANY:
                return self._load_linked(entity, descriptor)

    def hydrate(self, entity: Entity, *names: str) -> Entity:
        """Replace the in-memory holders ``names`` (default: all) with stored values."""

        for name in names or tuple(type(entity).RELATIONSHIPS):
            setattr(entity, name, self.load(entity, name))
        return entity

    def _related_cls(self, descriptor: RelationshipDescriptor) -> type[Entity]:
        return descriptor.required_related_type(self.mapping.entity_types)

    def _load_parent(self, entity: Entity, descriptor: RelationshipDescriptor) -> Entity | None:
        key = getattr(entity, descriptor.reference_column)
        if key is None:
            return None
        related_cls = self._related_cls(descriptor)
        stmt = select(related_cls).where(_column(related_cls, descriptor.owner_key) == key)
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def _load_polymorphic_parent(
        self, entity: Entity, descriptor: RelationshipDescriptor
    ) -> Entity | None:
        alias = getattr(entity, descriptor.discriminator_column)
        key = getattr(entity, descriptor.reference_column)
        if alias is None or key is None:
            return None
        related_cls = self.mapping.entity_types.resolve(alias)
        return self.session.get(related_cls, key)

    def _load_children(
        self,
        entity: Entity,
        descriptor: RelationshipDescriptor,
        *,
        limit: int | None = None,
    ) -> list[Entity]:
        key = getattr(entity, descriptor.owner_key)
        if key is None:
            return []
        related_cls = self._related_cls(descriptor)
        stmt = select(related_cls).where(_column(related_cls, descriptor.reference_column) == key)
        if descriptor.morph_type is not None:
            alias = self.mapping.entity_types.alias_for(entity)
            stmt = stmt.where(_column(related_cls, descriptor.morph_type) == alias)
        stmt = stmt.order_by(_column(related_cls, "id"))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def _load_linked(self, entity: Entity, descriptor: RelationshipDescriptor) -> list[Entity]:
        pivot = descriptor.pivot_table
        key = getattr(entity, pivot.parent_key)
        if key is None:
            return []
        related_cls = self._related_cls(descriptor)
        table = self.mapping.table_for(pivot.table)
        foreign_column = self.mapping.column_for(table, pivot.foreign_pivot_key)
        related_column = self.mapping.column_for(table, pivot.related_pivot_key)
        stmt = (
            select(related_cls)
            .join(table, related_column == _column(related_cls, pivot.related_key))
            .where(foreign_column == key)
            .order_by(_column(related_cls, "id"))
        )
        return list(self.session.execute(stmt).scalars())


def _column(entity_cls: type[Entity], attribute: str) -> Any:
    return cast("Any", getattr(entity_cls, attribute))
