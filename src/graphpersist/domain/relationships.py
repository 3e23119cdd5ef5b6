"""Relationship declarations and their static classification.

Each relationship kind decides two things up front:
- which side stores the column that references the other side
- whether the related entities are saved before or after the declaring entity

Both are properties of the kind alone, never of an instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from .errors import RelationshipDefinitionError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .model import Entity, EntityTypeRegistry


class RelationshipKind(StrEnum):
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"
    POLYMORPHIC_ONE = "polymorphic_one"
    POLYMORPHIC_MANY = "polymorphic_many"
    POLYMORPHIC_TO = "polymorphic_to"


class ForeignKeyOwner(StrEnum):
    """Side of a relationship that stores the reference column."""

    SELF = "self"
    RELATED = "related"
    PIVOT_TABLE = "pivot_table"


class PersistPhase(StrEnum):
    BEFORE_ROOT = "before_root"
    AFTER_ROOT = "after_root"


MULTI_VALUED_KINDS: Final[frozenset[RelationshipKind]] = frozenset(
    {
        RelationshipKind.ONE_TO_MANY,
        RelationshipKind.POLYMORPHIC_MANY,
        RelationshipKind.MANY_TO_MANY,
    }
)

POLYMORPHIC_KINDS: Final[frozenset[RelationshipKind]] = frozenset(
    {
        RelationshipKind.POLYMORPHIC_ONE,
        RelationshipKind.POLYMORPHIC_MANY,
        RelationshipKind.POLYMORPHIC_TO,
    }
)


def classify(kind: RelationshipKind) -> tuple[ForeignKeyOwner, PersistPhase]:
    """Return the foreign-key owner and persist phase for ``kind``."""

    match kind:
        case RelationshipKind.MANY_TO_ONE | RelationshipKind.POLYMORPHIC_TO:
            return ForeignKeyOwner.SELF, PersistPhase.BEFORE_ROOT
        case (
            RelationshipKind.ONE_TO_ONE
            | RelationshipKind.ONE_TO_MANY
            | RelationshipKind.POLYMORPHIC_ONE
            | RelationshipKind.POLYMORPHIC_MANY
        ):
            return ForeignKeyOwner.RELATED, PersistPhase.AFTER_ROOT
        case RelationshipKind.MANY_TO_MANY:
            return ForeignKeyOwner.PIVOT_TABLE, PersistPhase.AFTER_ROOT
        case _:
            raise RelationshipDefinitionError(f"Unrecognised relationship kind: {kind!r}")


@dataclass(frozen=True, slots=True, kw_only=True)
class PivotTable:
    """Intermediate table linking both sides of a many-to-many relationship."""

    table: str
    foreign_pivot_key: str
    related_pivot_key: str
    parent_key: str = "id"
    related_key: str = "id"


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationshipDescriptor:
    """One declared relationship on an entity type.

    ``name`` is the attribute holding the related value on the declaring entity.
    ``foreign_key`` is the reference column: on the declaring entity for
    many-to-one and polymorphic-to, on the related entity for the one/many kinds.
    Many-to-many keeps its columns on ``pivot`` instead.
    """

    name: str
    kind: RelationshipKind
    related: type[Entity] | str | None = None
    foreign_key: str | None = None
    owner_key: str = "id"
    pivot: PivotTable | None = None
    morph_type: str | None = None

    def __post_init__(self) -> None:
        owner, _ = classify(self.kind)
        label = f"Relationship {self.name!r} ({self.kind})"
        if owner is ForeignKeyOwner.PIVOT_TABLE:
            if self.pivot is None:
                raise RelationshipDefinitionError(f"{label} requires a pivot table")
            if self.foreign_key is not None:
                raise RelationshipDefinitionError(f"{label} keeps its keys on the pivot table")
        else:
            if self.pivot is not None:
                raise RelationshipDefinitionError(f"{label} cannot use a pivot table")
            if not self.foreign_key:
                raise RelationshipDefinitionError(f"{label} requires a foreign key")
        if self.is_polymorphic != (self.morph_type is not None):
            expectation = "requires" if self.is_polymorphic else "cannot use"
            raise RelationshipDefinitionError(f"{label} {expectation} a morph type column")
        if self.kind is not RelationshipKind.POLYMORPHIC_TO and self.related is None:
            raise RelationshipDefinitionError(f"{label} requires a related entity type")

    @property
    def foreign_key_owner(self) -> ForeignKeyOwner:
        return classify(self.kind)[0]

    @property
    def phase(self) -> PersistPhase:
        return classify(self.kind)[1]

    @property
    def holds_many(self) -> bool:
        return self.kind in MULTI_VALUED_KINDS

    @property
    def is_polymorphic(self) -> bool:
        return self.kind in POLYMORPHIC_KINDS

    @property
    def reference_column(self) -> str:
        """Column holding the referenced identifier; absent on many-to-many."""

        if self.foreign_key is None:
            raise RelationshipDefinitionError(
                f"Relationship {self.name!r} ({self.kind}) has no foreign key column"
            )
        return self.foreign_key

    @property
    def discriminator_column(self) -> str:
        if self.morph_type is None:
            raise RelationshipDefinitionError(
                f"Relationship {self.name!r} ({self.kind}) has no morph type column"
            )
        return self.morph_type

    @property
    def pivot_table(self) -> PivotTable:
        if self.pivot is None:
            raise RelationshipDefinitionError(
                f"Relationship {self.name!r} ({self.kind}) has no pivot table"
            )
        return self.pivot

    def required_related_type(self, types: EntityTypeRegistry) -> type[Entity]:
        """Resolve the related entity class of a kind with a fixed related type."""

        related_type = self.related_type(types)
        if related_type is None:
            raise RelationshipDefinitionError(
                f"Relationship {self.name!r} ({self.kind}) has no fixed related type"
            )
        return related_type

    def related_type(self, types: EntityTypeRegistry) -> type[Entity] | None:
        """Resolve the related entity class; ``None`` for polymorphic-to."""

        if self.related is None:
            return None
        return types.resolve(self.related)


class RelationshipMap(Mapping[str, RelationshipDescriptor]):
    """Ordered, name-keyed relationship declarations of one entity type."""

    __slots__ = ("_descriptors",)

    def __init__(self, *descriptors: RelationshipDescriptor) -> None:
        self._descriptors: dict[str, RelationshipDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in self._descriptors:
                raise RelationshipDefinitionError(
                    f"Relationship {descriptor.name!r} is declared more than once"
                )
            self._descriptors[descriptor.name] = descriptor

    def __getitem__(self, name: str) -> RelationshipDescriptor:
        try:
            return self._descriptors[name]
        except KeyError:
            raise RelationshipDefinitionError(f"No relationship named {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def get(  # pyright: ignore[reportIncompatibleMethodOverride]
        self, name: str, default: RelationshipDescriptor | None = None
    ) -> RelationshipDescriptor | None:
        return self._descriptors.get(name, default)

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"RelationshipMap({', '.join(self._descriptors)})"


# Declaration helpers ---------------------------------------------------------


def belongs_to(
    name: str,
    related: type[Entity] | str,
    *,
    foreign_key: str | None = None,
    owner_key: str = "id",
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.MANY_TO_ONE,
        related=related,
        foreign_key=foreign_key or f"{name}_id",
        owner_key=owner_key,
    )


def has_one(
    name: str,
    related: type[Entity] | str,
    *,
    foreign_key: str,
    owner_key: str = "id",
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.ONE_TO_ONE,
        related=related,
        foreign_key=foreign_key,
        owner_key=owner_key,
    )


def has_many(
    name: str,
    related: type[Entity] | str,
    *,
    foreign_key: str,
    owner_key: str = "id",
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.ONE_TO_MANY,
        related=related,
        foreign_key=foreign_key,
        owner_key=owner_key,
    )


def belongs_to_many(
    name: str,
    related: type[Entity] | str,
    *,
    table: str,
    foreign_pivot_key: str,
    related_pivot_key: str,
    parent_key: str = "id",
    related_key: str = "id",
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.MANY_TO_MANY,
        related=related,
        pivot=PivotTable(
            table=table,
            foreign_pivot_key=foreign_pivot_key,
            related_pivot_key=related_pivot_key,
            parent_key=parent_key,
            related_key=related_key,
        ),
    )


def morph_to(
    name: str,
    *,
    morph_type: str | None = None,
    foreign_key: str | None = None,
) -> RelationshipDescriptor:
    """Polymorphic belongs-to: ``{name}_type`` + ``{name}_id`` by default."""

    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.POLYMORPHIC_TO,
        foreign_key=foreign_key or f"{name}_id",
        morph_type=morph_type or f"{name}_type",
    )


def morph_one(
    name: str,
    related: type[Entity] | str,
    *,
    morph_name: str,
    morph_type: str | None = None,
    foreign_key: str | None = None,
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.POLYMORPHIC_ONE,
        related=related,
        foreign_key=foreign_key or f"{morph_name}_id",
        morph_type=morph_type or f"{morph_name}_type",
    )


def morph_many(
    name: str,
    related: type[Entity] | str,
    *,
    morph_name: str,
    morph_type: str | None = None,
    foreign_key: str | None = None,
) -> RelationshipDescriptor:
    return RelationshipDescriptor(
        name=name,
        kind=RelationshipKind.POLYMORPHIC_MANY,
        related=related,
        foreign_key=foreign_key or f"{morph_name}_id",
        morph_type=morph_type or f"{morph_name}_type",
    )
