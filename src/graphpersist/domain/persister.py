"""Cascading save of an entity and every populated relationship it declares.

Order of operations for one entity:
1. persist each many-to-one / polymorphic-to parent, then copy its key onto the entity
2. save the entity itself (skipped when already stored and unchanged)
3. for each one/many child: write the entity's key onto the child, then persist it
4. for each many-to-many member: persist it, then link both keys in the pivot table

A declined save anywhere returns ``False`` straight away. Nothing is rolled
back: saves committed before the failure stay committed. Callers that need
all-or-nothing storage wrap the call in their own transaction (see
``graphpersist.adapters.sqlalchemy.persist_atomically``).

Traversal runs on an explicit stack of generator frames instead of the call
stack. A frame yields each related entity it needs persisted and is resumed
with that entity's outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import CyclicGraphError, RelationshipDefinitionError
from .model import describe
from .plan import plan_for
from .relationships import ForeignKeyOwner, RelationshipKind

if TYPE_CHECKING:
    from collections.abc import Generator

    from .model import Entity
    from .ports.entity_store import EntityStore
    from .relationships import RelationshipDescriptor

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Dependency:
    entity: Entity
    # False when the requester only needs the entity saved eventually,
    # not its identifier right now.
    needs_identifier: bool


type _Frame = Generator[_Dependency, bool, bool]


@dataclass(slots=True)
class _PersistRun:
    """Bookkeeping for one ``persist`` call, keyed by object identity."""

    active: dict[int, Entity] = field(default_factory=dict["int", "Entity"])
    outcomes: dict[int, bool] = field(default_factory=dict["int", "bool"])
    saves: int = 0


class GraphPersister:
    """Save an entity graph through an :class:`EntityStore`."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def persist(self, entity: Entity) -> bool:
        """Save ``entity`` and its populated relationship graph.

        Returns ``True`` only if every save and pivot link in the graph
        succeeded.
        """

        run = _PersistRun()
        stack: list[_Frame] = [self._visit(_Dependency(entity, needs_identifier=True), run)]
        outcome: bool | None = None
        while stack:
            try:
                dependency = stack[-1].send(outcome)  # pyright: ignore[reportArgumentType]
            except StopIteration as stop:
                stack.pop()
                outcome = stop.value
                continue
            stack.append(self._visit(dependency, run))
            outcome = None

        log.debug(
            "Persisted graph of %s: %s (%d saves)",
            describe(entity),
            "ok" if outcome else "failed",
            run.saves,
        )
        return bool(outcome)

    def _visit(self, dependency: _Dependency, run: _PersistRun) -> _Frame:
        entity = dependency.entity
        key = id(entity)
        if key in run.outcomes:
            previous = run.outcomes[key]
            if not previous or not self.store.is_dirty(entity):
                return previous
            # Finished earlier in this call, then handed a new owner key.
            log.debug("Saving %s again after a later change", describe(entity))
            del run.outcomes[key]
        if key in run.active:
            # Reached again through a back reference while its own frame is pending.
            if not dependency.needs_identifier or self.store.is_persisted(entity):
                return True
            raise CyclicGraphError(
                f"{describe(entity)} must be saved before one of its own dependencies"
            )

        run.active[key] = entity
        try:
            outcome = yield from self._persist_entity(entity, run)
        finally:
            del run.active[key]
        run.outcomes[key] = outcome
        return outcome

    def _persist_entity(self, entity: Entity, run: _PersistRun) -> _Frame:
        plan = plan_for(entity, types=self.store.entity_types)

        for planned in plan.before_root:
            parent = planned.single
            if not (yield _Dependency(parent, needs_identifier=True)):
                log.info(
                    "Not saving %s: %s %s was not saved",
                    describe(entity),
                    planned.descriptor.name,
                    describe(parent),
                )
                return False
            self._associate(entity, planned.descriptor, parent)

        if self.store.is_persisted(entity) and not self.store.is_dirty(entity):
            log.debug("Skipping unchanged %s", describe(entity))
        elif self.store.save(entity):
            run.saves += 1
            log.debug("Saved %s", describe(entity))
        else:
            log.info("Save of %s was declined", describe(entity))
            return False

        for planned in plan.after_root:
            for child in planned.members:
                if not (yield from self._persist_child(entity, planned.descriptor, child)):
                    log.info(
                        "Persisting %s stopped at %s %s",
                        describe(entity),
                        planned.descriptor.name,
                        describe(child),
                    )
                    return False
        return True

    def _persist_child(
        self,
        entity: Entity,
        descriptor: RelationshipDescriptor,
        child: Entity,
    ) -> _Frame:
        match descriptor.foreign_key_owner:
            case ForeignKeyOwner.RELATED:
                self._attach(child, descriptor, entity)
                return (yield _Dependency(child, needs_identifier=False))
            case ForeignKeyOwner.PIVOT_TABLE:
                if not (yield _Dependency(child, needs_identifier=True)):
                    return False
                pivot = descriptor.pivot_table
                linked = self.store.link_pivot(
                    pivot.table,
                    pivot.foreign_pivot_key,
                    pivot.related_pivot_key,
                    getattr(entity, pivot.parent_key),
                    getattr(child, pivot.related_key),
                )
                if linked:
                    log.debug(
                        "Linked %s and %s via %s", describe(entity), describe(child), pivot.table
                    )
                return linked
            case _:
                raise RelationshipDefinitionError(
                    f"{descriptor.name!r} is not saved after its owner ({descriptor.kind})"
                )

    def _associate(
        self,
        entity: Entity,
        descriptor: RelationshipDescriptor,
        parent: Entity,
    ) -> None:
        """Point ``entity``'s own reference columns at ``parent``."""

        if descriptor.kind is RelationshipKind.POLYMORPHIC_TO:
            self.store.set_polymorphic_reference(
                entity, descriptor.discriminator_column, descriptor.reference_column, parent
            )
        else:
            self.store.set_foreign_key(
                entity, descriptor.reference_column, getattr(parent, descriptor.owner_key)
            )

    def _attach(self, child: Entity, descriptor: RelationshipDescriptor, owner: Entity) -> None:
        """Point ``child``'s reference columns at ``owner``."""

        if descriptor.is_polymorphic:
            self.store.set_polymorphic_reference(
                child, descriptor.discriminator_column, descriptor.reference_column, owner
            )
        else:
            self.store.set_foreign_key(
                child, descriptor.reference_column, getattr(owner, descriptor.owner_key)
            )
