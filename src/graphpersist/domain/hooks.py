"""Save hooks registered on an entity store.

Hooks for the vetoable events (``SAVING``, ``CREATING``, ``UPDATING``) can
decline a save by returning ``False``; any other return value lets it proceed.
Hooks for the remaining events are notifications and their return value is
ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .model import describe

if TYPE_CHECKING:
    from collections.abc import Callable

    from .model import Entity

log = logging.getLogger(__name__)


class SaveEvent(StrEnum):
    SAVING = "saving"
    CREATING = "creating"
    UPDATING = "updating"
    CREATED = "created"
    UPDATED = "updated"
    SAVED = "saved"

    @property
    def vetoable(self) -> bool:
        return self in {SaveEvent.SAVING, SaveEvent.CREATING, SaveEvent.UPDATING}


type SaveHook = Callable[[Entity], bool | None]


@dataclass(slots=True)
class _Registration:
    event: SaveEvent
    hook: SaveHook
    entity_type: type[Entity] | None

    def applies_to(self, event: SaveEvent, entity: Entity) -> bool:
        if event is not self.event:
            return False
        return self.entity_type is None or isinstance(entity, self.entity_type)


@dataclass(slots=True)
class SaveHooks:
    """Explicit, per-store hook registry; hooks run synchronously in registration order."""

    _registrations: list[_Registration] = field(
        default_factory=list["_Registration"], repr=False
    )

    def register(
        self,
        event: SaveEvent,
        hook: SaveHook,
        *,
        entity_type: type[Entity] | None = None,
    ) -> SaveHook:
        self._registrations.append(_Registration(event, hook, entity_type))
        return hook

    def on(
        self,
        event: SaveEvent,
        entity_type: type[Entity] | None = None,
    ) -> Callable[[SaveHook], SaveHook]:
        """Decorator form of :meth:`register`."""

        def decorator(hook: SaveHook) -> SaveHook:
            return self.register(event, hook, entity_type=entity_type)

        return decorator

    def remove(self, hook: SaveHook) -> None:
        self._registrations = [entry for entry in self._registrations if entry.hook is not hook]

    def dispatch(self, event: SaveEvent, entity: Entity) -> bool:
        """Run the hooks for ``event``; ``False`` once a vetoable hook declines."""

        for registration in tuple(self._registrations):
            if not registration.applies_to(event, entity):
                continue
            outcome = registration.hook(entity)
            if event.vetoable and outcome is False:
                log.info("%s hook declined %s", event, describe(entity))
                return False
        return True

    def __len__(self) -> int:
        return len(self._registrations)
