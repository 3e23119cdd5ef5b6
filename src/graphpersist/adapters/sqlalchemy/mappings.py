"""Imperative SQLAlchemy mappings for entity dataclasses.

Only columns are mapped. Relationship holders stay plain attributes, so the
ORM never cascades saves on its own; the graph persister decides the order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.orm import configure_mappers

from graphpersist.domain.errors import RelationshipDefinitionError
from graphpersist.domain.model import Entity, EntityTypeRegistry

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Column, MetaData, Table
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import QueryContext, registry

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityMapping:
    """Result of :func:`map_entities`: the ORM registry plus entity aliases."""

    registry: registry
    entity_types: EntityTypeRegistry

    @property
    def metadata(self) -> MetaData:
        return self.registry.metadata

    def table_for(self, name: str) -> Table:
        table = self.metadata.tables.get(name)
        if table is None:
            raise RelationshipDefinitionError(f"Table {name!r} is not part of the mapped metadata")
        return table

    def column_for(self, table: Table, key: str) -> Column[object]:
        column = table.c.get(key)
        if column is None:
            raise RelationshipDefinitionError(f"Table {table.name!r} has no column {key!r}")
        return column

    def create_all_tables(self, engine: Engine) -> None:
        """Create database tables for the mapped metadata."""

        log.info("Creating all tables")
        self.metadata.create_all(engine)


def _restore_relationship_holders(target: Entity, context: QueryContext) -> None:
    # Rows loaded from the database bypass __init__, so dataclass defaults are missing.
    _ = context
    for descriptor in type(target).RELATIONSHIPS.values():
        if descriptor.name not in target.__dict__:
            setattr(target, descriptor.name, [] if descriptor.holds_many else None)


def _check_holders(entity_cls: type[Entity], table: Table) -> None:
    for descriptor in entity_cls.RELATIONSHIPS.values():
        if descriptor.name in table.c:
            raise RelationshipDefinitionError(
                f"{entity_cls.__name__}.{descriptor.name} is both a relationship and a column"
            )


def map_entities(
    mapper_registry: registry,
    tables: Mapping[type[Entity], Table],
) -> EntityMapping:
    """Map each entity class onto its table and register its polymorphic alias.

    Mapping a class twice is an error in SQLAlchemy; wrap calls in a cached
    ``start_mappers`` style function when several call sites need the mapping.
    """

    log.info("Starting SQLAlchemy mappers for %d entity types", len(tables))

    entity_types = EntityTypeRegistry()
    for entity_cls, table in tables.items():
        _check_holders(entity_cls, table)
        entity_types.register(entity_cls)
        mapper_registry.map_imperatively(entity_cls, table)
        event.listen(entity_cls, "load", _restore_relationship_holders)

    configure_mappers()
    return EntityMapping(registry=mapper_registry, entity_types=entity_types)
