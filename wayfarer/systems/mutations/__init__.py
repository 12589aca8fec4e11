"""
Mutation handlers, one module per family.

Importing this package registers every handler. The registry is checked
against ChangeKind on import: a kind without a handler is a programming
error and fails immediately rather than being silently skipped at runtime.
"""

from .base import (
    HANDLERS,
    ChangeRejected,
    MutationContext,
    Registration,
    handles,
    missing_handlers,
)
from . import (  # noqa: F401  (registration side effects)
    afflictions,
    companions,
    encounter,
    flashback,
    legal,
    npcs,
    player,
    quests,
    relationships,
    skills,
    world,
)

_missing = missing_handlers()
if _missing:
    raise RuntimeError(
        "No handler registered for: " + ", ".join(kind.value for kind in _missing)
    )

__all__ = [
    "HANDLERS",
    "ChangeRejected",
    "MutationContext",
    "Registration",
    "handles",
]
