"""Public domain surface: relationship declarations and the graph persister."""

from __future__ import annotations

from graphpersist.domain.errors import (
    CyclicGraphError,
    GraphPersistError,
    RelationshipDefinitionError,
    UnknownEntityTypeError,
)
from graphpersist.domain.hooks import SaveEvent, SaveHook, SaveHooks
from graphpersist.domain.model import Entity, EntityTypeRegistry, describe, same_entity
from graphpersist.domain.persister import GraphPersister
from graphpersist.domain.plan import PersistPlan, PlannedRelationship, plan_for
from graphpersist.domain.relationships import (
    ForeignKeyOwner,
    PersistPhase,
    PivotTable,
    RelationshipDescriptor,
    RelationshipKind,
    RelationshipMap,
    belongs_to,
    belongs_to_many,
    classify,
    has_many,
    has_one,
    morph_many,
    morph_one,
    morph_to,
)

__all__ = [  # noqa: RUF022
    # model
    "Entity",
    "EntityTypeRegistry",
    "describe",
    "same_entity",
    # relationships
    "ForeignKeyOwner",
    "PersistPhase",
    "PivotTable",
    "RelationshipDescriptor",
    "RelationshipKind",
    "RelationshipMap",
    "classify",
    "belongs_to",
    "belongs_to_many",
    "has_many",
    "has_one",
    "morph_many",
    "morph_one",
    "morph_to",
    # persisting
    "GraphPersister",
    "PersistPlan",
    "PlannedRelationship",
    "plan_for",
    # hooks
    "SaveEvent",
    "SaveHook",
    "SaveHooks",
    # errors
    "CyclicGraphError",
    "GraphPersistError",
    "RelationshipDefinitionError",
    "UnknownEntityTypeError",
]
