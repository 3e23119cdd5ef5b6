"""Unmapped entity types for exercising the persister against a fake store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from graphpersist.domain import (
    Entity,
    EntityTypeRegistry,
    RelationshipMap,
    belongs_to,
    belongs_to_many,
    has_many,
    has_one,
    morph_many,
    morph_one,
    morph_to,
)


@dataclass(eq=False, kw_only=True)
class Publisher(Entity):
    ENTITY_TYPE: ClassVar[str] = "publisher"

    name: str


@dataclass(eq=False, kw_only=True)
class Author(Entity):
    ENTITY_TYPE: ClassVar[str] = "author"
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap(
        belongs_to("publisher", "Publisher"),
        has_many("books", "Book", foreign_key="author_id"),
        morph_many("notes", "Note", morph_name="notable"),
    )

    name: str
    publisher_id: int | None = None
    publisher: Publisher | None = field(default=None, repr=False)
    books: list[Book] = field(default_factory=list["Book"], repr=False)
    notes: list[Note] = field(default_factory=list["Note"], repr=False)


@dataclass(eq=False, kw_only=True)
class Book(Entity):
    ENTITY_TYPE: ClassVar[str] = "book"
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap(
        belongs_to("author", "Author"),
        has_one("cover", "Cover", foreign_key="book_id"),
        morph_one("blurb", "Note", morph_name="notable"),
        belongs_to_many(
            "genres",
            "Genre",
            table="book_genre",
            foreign_pivot_key="book_id",
            related_pivot_key="genre_id",
        ),
    )

    title: str
    author_id: int | None = None
    author: Author | None = field(default=None, repr=False)
    cover: Cover | None = field(default=None, repr=False)
    blurb: Note | None = field(default=None, repr=False)
    genres: list[Genre] = field(default_factory=list["Genre"], repr=False)


@dataclass(eq=False, kw_only=True)
class Cover(Entity):
    ENTITY_TYPE: ClassVar[str] = "cover"

    colour: str
    book_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Genre(Entity):
    ENTITY_TYPE: ClassVar[str] = "genre"
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap(
        belongs_to_many(
            "books",
            "Book",
            table="book_genre",
            foreign_pivot_key="genre_id",
            related_pivot_key="book_id",
        ),
    )

    label: str
    books: list[Book] = field(default_factory=list["Book"], repr=False)


@dataclass(eq=False, kw_only=True)
class Note(Entity):
    ENTITY_TYPE: ClassVar[str] = "note"
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap(morph_to("notable"))

    body: str
    notable_type: str | None = None
    notable_id: int | None = None
    notable: Entity | None = field(default=None, repr=False)


@dataclass(eq=False, kw_only=True)
class Section(Entity):
    """Self-referencing chain used for deep and cyclic graphs."""

    ENTITY_TYPE: ClassVar[str] = "section"
    RELATIONSHIPS: ClassVar[RelationshipMap] = RelationshipMap(
        belongs_to("parent", "Section"),
        has_many("children", "Section", foreign_key="parent_id"),
    )

    heading: str
    parent_id: int | None = None
    parent: Section | None = field(default=None, repr=False)
    children: list[Section] = field(default_factory=list["Section"], repr=False)


LIBRARY_TYPES: tuple[type[Entity], ...] = (Publisher, Author, Book, Cover, Genre, Note, Section)


def library_types() -> EntityTypeRegistry:
    registry = EntityTypeRegistry()
    for entity_cls in LIBRARY_TYPES:
        registry.register(entity_cls)
    return registry
