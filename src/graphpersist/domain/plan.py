"""Per-call persist plan: which related entities go before and after the root."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import RelationshipDefinitionError
from .model import Entity, describe
from .relationships import PersistPhase

if TYPE_CHECKING:
    from .model import EntityTypeRegistry
    from .relationships import RelationshipDescriptor


@dataclass(frozen=True, slots=True)
class PlannedRelationship:
    """A populated relationship together with its current members."""

    descriptor: RelationshipDescriptor
    members: tuple[Entity, ...]

    @property
    def single(self) -> Entity:
        return self.members[0]


@dataclass(frozen=True, slots=True)
class PersistPlan:
    entity: Entity
    before_root: tuple[PlannedRelationship, ...] = ()
    after_root: tuple[PlannedRelationship, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.before_root and not self.after_root


def relationship_members(entity: Entity, descriptor: RelationshipDescriptor) -> tuple[Entity, ...]:
    """Read the holder for ``descriptor`` on ``entity``; empty when unset."""

    value = getattr(entity, descriptor.name, None)
    if value is None:
        return ()
    if descriptor.holds_many:
        if isinstance(value, Entity) or not isinstance(value, Iterable):
            raise RelationshipDefinitionError(
                f"{describe(entity)}.{descriptor.name} must hold a sequence of entities"
            )
        members = tuple(value)  # pyright: ignore[reportUnknownArgumentType]
    else:
        members = (value,)
    for member in members:
        if not isinstance(member, Entity):
            raise RelationshipDefinitionError(
                f"{describe(entity)}.{descriptor.name} holds a non-entity value: {member!r}"
            )
    return members


def plan_for(entity: Entity, *, types: EntityTypeRegistry) -> PersistPlan:
    """Partition the populated relationships of ``entity`` by persist phase.

    Every declared related type is resolved, populated or not, so a broken
    declaration fails on the first persist rather than on the first populated one.
    """

    before_root: list[PlannedRelationship] = []
    after_root: list[PlannedRelationship] = []
    for descriptor in type(entity).RELATIONSHIPS.values():
        related_type = descriptor.related_type(types)
        members = relationship_members(entity, descriptor)
        if not members:
            continue
        if related_type is not None:
            for member in members:
                if not isinstance(member, related_type):
                    raise RelationshipDefinitionError(
                        f"{describe(entity)}.{descriptor.name} expects "
                        f"{related_type.__name__}, got {type(member).__name__}"
                    )
        planned = PlannedRelationship(descriptor=descriptor, members=members)
        if descriptor.phase is PersistPhase.BEFORE_ROOT:
            before_root.append(planned)
        else:
            after_root.append(planned)
    return PersistPlan(entity=entity, before_root=tuple(before_root), after_root=tuple(after_root))
