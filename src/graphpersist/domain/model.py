"""
Base building blocks:
identity, entity_type discriminator, declared relationships.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .errors import RelationshipDefinitionError, UnknownEntityTypeError
from .relationships import RelationshipMap

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(eq=False, kw_only=True)
class Entity:
    """Identity is assigned by the store on first save; ``None`` until then."""

    id: int | None = None

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[str]
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap()

    @property
    def entity_type(self) -> str:
        return type(self).ENTITY_TYPE


def same_entity(left: Entity | None, right: Entity | None) -> bool:
    """Return whether both refer to the same stored row."""

    if left is None or right is None:
        return False
    if left is right:
        return True
    return (
        left.id is not None
        and left.entity_type == right.entity_type
        and left.id == right.id
    )


def describe(entity: Entity) -> str:
    entity_type = getattr(type(entity), "ENTITY_TYPE", type(entity).__name__)
    if entity.id is None:
        return f"{entity_type}(new@{id(entity):x})"
    return f"{entity_type}#{entity.id}"


@dataclass(slots=True)
class EntityTypeRegistry:
    """Maps entity classes to their polymorphic alias and back.

    Related types declared by name resolve against either the alias
    (``ENTITY_TYPE``) or the class name.
    """

    _by_alias: dict[str, type[Entity]] = field(
        default_factory=dict["str", "type[Entity]"], repr=False
    )
    _by_name: dict[str, type[Entity]] = field(
        default_factory=dict["str", "type[Entity]"], repr=False
    )

    def register[TEntity: Entity](self, entity_cls: type[TEntity]) -> type[TEntity]:
        alias = _alias_of(entity_cls)
        existing = self._by_alias.get(alias)
        if existing is not None and existing is not entity_cls:
            raise RelationshipDefinitionError(
                f"Entity type alias {alias!r} is already bound to {existing.__name__}"
            )
        self._by_alias[alias] = entity_cls
        self._by_name[entity_cls.__name__] = entity_cls
        return entity_cls

    def resolve(self, ref: type[Entity] | str) -> type[Entity]:
        if isinstance(ref, type):
            return ref
        resolved = self._by_alias.get(ref) or self._by_name.get(ref)
        if resolved is None:
            raise UnknownEntityTypeError(f"Unknown entity type: {ref!r}")
        return resolved

    def alias_for(self, entity: Entity | type[Entity]) -> str:
        entity_cls = entity if isinstance(entity, type) else type(entity)
        return _alias_of(entity_cls)

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, type):
            return ref in self._by_alias.values()
        return ref in self._by_alias or ref in self._by_name

    def __iter__(self) -> Iterator[type[Entity]]:
        return iter(self._by_alias.values())


def _alias_of(entity_cls: type[Entity]) -> str:
    alias = getattr(entity_cls, "ENTITY_TYPE", None)
    if not isinstance(alias, str) or not alias:
        raise UnknownEntityTypeError(f"{entity_cls.__name__} does not declare ENTITY_TYPE")
    return alias
