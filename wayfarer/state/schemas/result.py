"""
Results returned by the engine.

ApplyResult carries the new snapshot together with every diagnostic
raised while applying a batch, so callers can see what was dropped
without scraping logs. CombatRoundResult is the response to one combat
round.
"""

from enum import Enum

from pydantic import BaseModel, Field

from ..schema import WorldState


class DiagnosticCategory(str, Enum):
    SHAPE = "shape"  # Missing field or wrong type
    REFERENCE = "reference"  # Referenced entity does not exist
    INVARIANT = "invariant"  # Would break a guarded precondition
    UNKNOWN_KIND = "unknown_kind"  # Forward-compatibility no-op
    NOTICE = "notice"  # Change applied, but part of the payload was ignored


class Diagnostic(BaseModel):
    """One warning raised while applying a mutation record."""
    kind: str  # Mutation kind tag, as received
    category: DiagnosticCategory
    message: str
    field: str | None = None
    index: int = 0  # Position of the record in the batch

    @property
    def rejected(self) -> bool:
        """Whether the record was skipped (notices still apply)."""
        return self.category != DiagnosticCategory.NOTICE

    def __str__(self) -> str:
        where = f".{self.field}" if self.field else ""
        return f"[{self.index}] {self.kind}{where}: {self.message}"


class ApplyResult(BaseModel):
    """Outcome of applying a batch of changes."""
    state: WorldState
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    applied: int = 0
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.skipped == 0

    @property
    def warnings(self) -> list[str]:
        return [str(d) for d in self.diagnostics]


class CombatAction(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    FLEE = "flee"
    USE_POTION = "usePotion"


class CombatRoundResult(BaseModel):
    """Everything one combat round produced."""
    new_state: WorldState
    messages: list[str] = Field(default_factory=list)
    combat_ended: bool = False
    player_victory: bool = False
    player_defeated: bool = False
    fled: bool = False
    experience_gained: int = 0
    gold_gained: int = 0
    leveled_up: bool = False
