"""Programming errors raised by the graph persister.

Vetoed saves are never raised; they surface as a ``False`` outcome.
"""

from __future__ import annotations


class GraphPersistError(RuntimeError):
    """Base class for misuse of the graph persister."""


class RelationshipDefinitionError(GraphPersistError):
    """Raised when a relationship is declared or populated inconsistently."""


class UnknownEntityTypeError(RelationshipDefinitionError):
    """Raised when a related entity type or polymorphic alias cannot be resolved."""


class CyclicGraphError(GraphPersistError):
    """Raised when an entity depends on an ancestor that has not been saved yet."""
