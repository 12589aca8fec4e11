"""
Engine systems for wayfarer.

Pure functions over WorldState snapshots. Nothing here saves, logs to the
player, or keeps state between calls; WorldManager does the committing.
"""

from .reducer import apply_change, apply_changes
from .knowledge import knows
from .ledger import WantedStatus, refusal_reason, wanted_status
from .combat import initiate_combat, resolve_round
from .behavior import dominant_patterns, update_behavior_patterns
from .legacy import archive_player_death
from .invariants import InvariantViolation, audit_world

__all__ = [
    "apply_change",
    "apply_changes",
    "knows",
    "WantedStatus",
    "refusal_reason",
    "wanted_status",
    "initiate_combat",
    "resolve_round",
    "dominant_patterns",
    "update_behavior_patterns",
    "archive_player_death",
    "InvariantViolation",
    "audit_world",
]
