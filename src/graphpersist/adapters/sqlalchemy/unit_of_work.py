"""SQLAlchemy-backed units of work for transactional graph persistence."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from graphpersist.adapters.sqlalchemy.store import SqlAlchemyEntityStore
from graphpersist.config import get_database_config
from graphpersist.domain.persister import GraphPersister
from graphpersist.domain.ports.unit_of_work import PersistComponents

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from graphpersist.adapters.sqlalchemy.mappings import EntityMapping
    from graphpersist.domain.hooks import SaveHooks
    from graphpersist.domain.model import Entity
    from graphpersist.domain.ports.unit_of_work import PersistUnitOfWork

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None
    mapping: EntityMapping | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call graphpersist.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory

    @property
    def entity_mapping(self) -> EntityMapping:
        if self.mapping is None:
            raise StartupError("SQLAlchemy adapter started without an entity mapping")
        return self.mapping


_STATE = _AdapterState()


def startup(
    *,
    mapping: EntityMapping,
    engine: Engine | None = None,
    database_uri: str | None = None,
    create_tables: bool = False,
    force: bool = False,
) -> None:
    """Initialise the engine and session factory for ``mapping``.

    Without ``engine`` or ``database_uri`` the ``DATABASE_URI`` environment
    variable is required. Schema management belongs to the application;
    ``create_tables`` is a convenience for tests and throwaway databases.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    if create_tables:
        mapping.create_all_tables(resolved_engine)

    _STATE.engine = resolved_engine
    _STATE.mapping = mapping
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url)


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.mapping = None


class BaseSqlAlchemyUnitOfWork[TComponents](ABC):
    """Generic SQLAlchemy unit of work with pluggable component collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self.mapping: EntityMapping = _STATE.entity_mapping
        self._session: Session | None = None

    @abstractmethod
    def _build_components(self, session: Session) -> TComponents: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TComponents]:
        self.session = self.session_factory()
        self._components = self._build_components(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def components(self) -> TComponents:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._components

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyPersistUnitOfWork(BaseSqlAlchemyUnitOfWork[PersistComponents]):
    """Unit of work whose store leaves committing to the caller."""

    def __init__(self, *, hooks: SaveHooks | None = None) -> None:
        super().__init__()
        self.hooks = hooks

    def _build_components(self, session: Session) -> PersistComponents:
        store = SqlAlchemyEntityStore(
            session, mapping=self.mapping, hooks=self.hooks, autocommit=False
        )
        return PersistComponents(store=store, persister=GraphPersister(store))


def persist_atomically(
    root: Entity,
    uow_factory: Callable[[], PersistUnitOfWork] = SqlAlchemyPersistUnitOfWork,
) -> bool:
    """Persist the graph of ``root`` in one transaction.

    Commits when every save succeeded and rolls back otherwise, so a declined
    save leaves no rows behind. Entities inserted before the rollback keep
    their in-memory identifiers but are no longer persisted.
    """

    with uow_factory() as uow:
        if uow.components.persister.persist(root):
            uow.commit()
            return True
        log.info("Rolling back graph of %s", type(root).__name__)
        uow.rollback()
        return False


if TYPE_CHECKING:
    _uow_check: PersistUnitOfWork = SqlAlchemyPersistUnitOfWork()
