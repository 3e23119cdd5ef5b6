from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from graphpersist.adapters.sqlalchemy import SqlAlchemyEntityStore
from graphpersist.domain import RelationshipDefinitionError, SaveEvent, SaveHooks
from graphpersist.domain.ports import EntityStore
from tests.helpers.blog import Comment, Post, Tag, User, post_tag_table

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session

    from graphpersist.adapters.sqlalchemy import EntityMapping, RelationshipLoader
    from graphpersist.domain import Entity


def _record_events(hooks: SaveHooks) -> list[str]:
    events: list[str] = []
    for event in SaveEvent:

        def record(entity: Entity, event: SaveEvent = event) -> None:
            events.append(f"{event}:{entity.entity_type}")

        hooks.register(event, record)
    return events


def _pivot_rows(session: Session) -> int:
    return session.execute(select(func.count()).select_from(post_tag_table)).scalar_one()


def test_store_satisfies_port(sqlite_store: SqlAlchemyEntityStore) -> None:
    assert isinstance(sqlite_store, EntityStore)


def test_save_inserts_and_assigns_identity(sqlite_store: SqlAlchemyEntityStore) -> None:
    user = User(name="Ursula")
    assert not sqlite_store.is_persisted(user)
    assert sqlite_store.is_dirty(user)

    assert sqlite_store.save(user)

    assert user.id == 1
    assert sqlite_store.is_persisted(user)
    assert not sqlite_store.is_dirty(user)


def test_changed_column_marks_entity_dirty(sqlite_store: SqlAlchemyEntityStore) -> None:
    user = User(name="Ursula")
    sqlite_store.save(user)

    user.name = "Ursula K."

    assert sqlite_store.is_dirty(user)


def test_relationship_holders_do_not_mark_entity_dirty(
    sqlite_store: SqlAlchemyEntityStore,
) -> None:
    user = User(name="Ursula")
    sqlite_store.save(user)

    user.posts.append(Post(title="Unsaved"))

    assert not sqlite_store.is_dirty(user)


def test_create_events_fire_in_order(
    sqlite_store: SqlAlchemyEntityStore, save_hooks: SaveHooks
) -> None:
    events = _record_events(save_hooks)

    sqlite_store.save(Tag(tag="fantasy"))

    assert events == ["saving:tag", "creating:tag", "created:tag", "saved:tag"]


def test_update_events_fire_in_order(
    sqlite_store: SqlAlchemyEntityStore, save_hooks: SaveHooks
) -> None:
    tag = Tag(tag="fantasy")
    sqlite_store.save(tag)
    events = _record_events(save_hooks)

    tag.tag = "high fantasy"
    sqlite_store.save(tag)
    sqlite_store.save(tag)

    assert events == [
        "saving:tag",
        "updating:tag",
        "updated:tag",
        "saved:tag",
        "saving:tag",
        "updating:tag",
        "saved:tag",
    ]


@pytest.mark.parametrize("event", [SaveEvent.SAVING, SaveEvent.CREATING])
def test_declining_hook_prevents_insert(
    event: SaveEvent,
    sqlite_store: SqlAlchemyEntityStore,
    save_hooks: SaveHooks,
    sqlite_session: Session,
) -> None:
    save_hooks.register(event, lambda entity: False)
    tag = Tag(tag="declined")

    assert not sqlite_store.save(tag)

    assert tag.id is None
    assert not sqlite_store.is_persisted(tag)
    assert sqlite_session.execute(select(Tag)).first() is None


def test_autocommit_makes_each_save_visible(
    sqlite_store: SqlAlchemyEntityStore,
    fresh_loader: Callable[[], RelationshipLoader],
) -> None:
    user = User(name="Ursula")
    sqlite_store.save(user)

    assert fresh_loader().session.get(User, user.id) is not None


def test_without_autocommit_the_caller_owns_the_transaction(
    sqlite_session: Session,
    blog_mapping: EntityMapping,
    fresh_loader: Callable[[], RelationshipLoader],
) -> None:
    store = SqlAlchemyEntityStore(sqlite_session, mapping=blog_mapping, autocommit=False)
    user = User(name="Ursula")
    store.save(user)
    assert user.id is not None

    sqlite_session.rollback()

    assert fresh_loader().session.get(User, user.id) is None


def test_autocommit_defaults_to_environment(
    monkeypatch: pytest.MonkeyPatch,
    sqlite_session: Session,
    blog_mapping: EntityMapping,
) -> None:
    monkeypatch.setenv("GRAPHPERSIST_AUTOCOMMIT", "off")
    assert not SqlAlchemyEntityStore(sqlite_session, mapping=blog_mapping).autocommit

    monkeypatch.delenv("GRAPHPERSIST_AUTOCOMMIT")
    assert SqlAlchemyEntityStore(sqlite_session, mapping=blog_mapping).autocommit


def test_link_pivot_inserts_each_pair_once(
    sqlite_store: SqlAlchemyEntityStore, sqlite_session: Session
) -> None:
    assert sqlite_store.link_pivot("post_tag", "post_id", "tag_id", 1, 2)
    assert sqlite_store.link_pivot("post_tag", "post_id", "tag_id", 1, 2)
    assert sqlite_store.link_pivot("post_tag", "tag_id", "post_id", 2, 1)
    assert sqlite_store.link_pivot("post_tag", "post_id", "tag_id", 1, 3)

    assert _pivot_rows(sqlite_session) == 2


def test_link_pivot_rejects_unknown_table(sqlite_store: SqlAlchemyEntityStore) -> None:
    with pytest.raises(RelationshipDefinitionError, match="tag_post"):
        sqlite_store.link_pivot("tag_post", "post_id", "tag_id", 1, 1)


def test_reference_setters_write_columns(sqlite_store: SqlAlchemyEntityStore) -> None:
    post = Post(title="Anarres", id=4)
    comment = Comment(comment="Walls")

    sqlite_store.set_polymorphic_reference(comment, "commentable_type", "commentable_id", post)
    sqlite_store.set_foreign_key(post, "user_id", 9)

    assert (comment.commentable_type, comment.commentable_id) == ("post", 4)
    assert post.user_id == 9
