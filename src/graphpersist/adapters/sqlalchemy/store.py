"""Entity store backed by a SQLAlchemy session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import inspect, select

from graphpersist.config import get_persist_config
from graphpersist.domain.hooks import SaveEvent, SaveHooks
from graphpersist.domain.model import describe

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState, Session

    from graphpersist.adapters.sqlalchemy.mappings import EntityMapping
    from graphpersist.domain.model import Entity, EntityTypeRegistry

log = logging.getLogger(__name__)


class SqlAlchemyEntityStore:
    """Save single entities through ``session``.

    With ``autocommit`` every successful save and pivot link is committed on
    its own, so a later failure in the same graph leaves earlier rows in
    place. Pass ``autocommit=False`` and own the transaction (for example via
    a unit of work) to make a graph all-or-nothing. The session should be
    created with ``expire_on_commit=False`` so committed entities keep their
    in-memory state.
    """

    def __init__(
        self,
        session: Session,
        *,
        mapping: EntityMapping,
        hooks: SaveHooks | None = None,
        autocommit: bool | None = None,
    ) -> None:
        self.session = session
        self.mapping = mapping
        self.hooks = hooks if hooks is not None else SaveHooks()
        self.autocommit = get_persist_config().autocommit if autocommit is None else autocommit

    @property
    def entity_types(self) -> EntityTypeRegistry:
        return self.mapping.entity_types

    def is_persisted(self, entity: Entity) -> bool:
        return _state(entity).has_identity

    def is_dirty(self, entity: Entity) -> bool:
        state = _state(entity)
        if not state.has_identity:
            return True
        return any(attribute.history.has_changes() for attribute in state.attrs)

    def save(self, entity: Entity) -> bool:
        creating = not self.is_persisted(entity)
        if not self.hooks.dispatch(SaveEvent.SAVING, entity):
            return False
        if not self.hooks.dispatch(SaveEvent.CREATING if creating else SaveEvent.UPDATING, entity):
            return False

        if creating or self.is_dirty(entity):
            self.session.add(entity)
            self.session.flush()
            self._maybe_commit()
            log.debug("%s %s", "Inserted" if creating else "Updated", describe(entity))
            self.hooks.dispatch(SaveEvent.CREATED if creating else SaveEvent.UPDATED, entity)

        self.hooks.dispatch(SaveEvent.SAVED, entity)
        return True

    def link_pivot(
        self,
        pivot_table: str,
        left_key: str,
        right_key: str,
        left_id: object,
        right_id: object,
    ) -> bool:
        table = self.mapping.table_for(pivot_table)
        left_column = self.mapping.column_for(table, left_key)
        right_column = self.mapping.column_for(table, right_key)
        stmt = select(left_column).where(left_column == left_id, right_column == right_id).limit(1)
        if self.session.execute(stmt).first() is not None:
            return True

        self.session.execute(table.insert().values({left_key: left_id, right_key: right_id}))
        self._maybe_commit()
        log.debug(
            "Linked %s=%s and %s=%s in %s", left_key, left_id, right_key, right_id, table.name
        )
        return True

    def set_foreign_key(self, entity: Entity, column: str, value: object) -> None:
        setattr(entity, column, value)

    def set_polymorphic_reference(
        self,
        entity: Entity,
        type_column: str,
        id_column: str,
        referenced: Entity,
    ) -> None:
        setattr(entity, type_column, self.entity_types.alias_for(referenced))
        setattr(entity, id_column, referenced.id)

    def _maybe_commit(self) -> None:
        if self.autocommit:
            self.session.commit()


def _state(entity: Entity) -> InstanceState[Entity]:
    return inspect(entity)


if TYPE_CHECKING:
    from typing import cast

    from graphpersist.domain.ports.entity_store import EntityStore

    _store_check: EntityStore = SqlAlchemyEntityStore(
        cast("Session", object()), mapping=cast("EntityMapping", object())
    )
