from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from graphpersist.adapters.sqlalchemy import (
    EntityMapping,
    RelationshipLoader,
    SqlAlchemyEntityStore,
    SqlAlchemyPersistUnitOfWork,
    shutdown,
    startup,
)
from graphpersist.domain import GraphPersister, SaveHooks
from tests.helpers.blog import start_blog_mappers
from tests.helpers.library import library_types
from tests.helpers.stores import RecordingEntityStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def recording_store() -> RecordingEntityStore:
    return RecordingEntityStore(entity_types=library_types())


@pytest.fixture
def recording_persister(recording_store: RecordingEntityStore) -> GraphPersister:
    return GraphPersister(recording_store)


@pytest.fixture(scope="session")
def blog_mapping() -> EntityMapping:
    return start_blog_mappers()


@pytest.fixture
def sqlite_engine(tmp_path: Path, blog_mapping: EntityMapping) -> Iterator[Engine]:
    # File-backed so every session gets its own connection.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'blog.db'}", future=True)
    blog_mapping.create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def save_hooks() -> SaveHooks:
    return SaveHooks()


@pytest.fixture
def sqlite_store(
    sqlite_session: Session,
    blog_mapping: EntityMapping,
    save_hooks: SaveHooks,
) -> SqlAlchemyEntityStore:
    return SqlAlchemyEntityStore(
        sqlite_session, mapping=blog_mapping, hooks=save_hooks, autocommit=True
    )


@pytest.fixture
def sqlite_persister(sqlite_store: SqlAlchemyEntityStore) -> GraphPersister:
    return GraphPersister(sqlite_store)


@pytest.fixture
def fresh_loader(
    sqlite_engine: Engine,
    blog_mapping: EntityMapping,
) -> Iterator[Callable[[], RelationshipLoader]]:
    """Loaders on new sessions, so reads come from the database rather than memory."""

    session_factory = sessionmaker(bind=sqlite_engine)
    sessions: list[Session] = []

    def factory() -> RelationshipLoader:
        session = session_factory()
        sessions.append(session)
        return RelationshipLoader(session, blog_mapping)

    try:
        yield factory
    finally:
        for session in sessions:
            session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
    blog_mapping: EntityMapping,
) -> Iterator[Callable[[], SqlAlchemyPersistUnitOfWork]]:
    startup(mapping=blog_mapping, engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyPersistUnitOfWork:
        return SqlAlchemyPersistUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
