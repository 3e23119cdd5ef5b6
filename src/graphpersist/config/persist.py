"""Defaults for graph persistence."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag

DEFAULT_AUTOCOMMIT = True


@dataclass(frozen=True, slots=True)
class PersistConfig:
    # Commit after every individual save / pivot link instead of leaving the
    # transaction to the caller.
    autocommit: bool = DEFAULT_AUTOCOMMIT


def get_persist_config() -> PersistConfig:
    return PersistConfig(autocommit=env_flag("GRAPHPERSIST_AUTOCOMMIT", default=DEFAULT_AUTOCOMMIT))
