"""Wire-level models: mutation records, payloads, and results."""

from .change import ChangeKind, StateChange
from .result import (
    ApplyResult,
    CombatAction,
    CombatRoundResult,
    Diagnostic,
    DiagnosticCategory,
)

__all__ = [
    "ChangeKind",
    "StateChange",
    "ApplyResult",
    "CombatAction",
    "CombatRoundResult",
    "Diagnostic",
    "DiagnosticCategory",
]
