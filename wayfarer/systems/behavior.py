"""
Behavior analytics.

Scores each resolved action against six axes (combat, diplomacy, social,
exploration, stealth, magic) from two signals: keywords in the player's
free-text action, and the shape of the mutation batch it produced. Every
rule that matches adds its weight once, and several axes may move on the
same action. Counters accumulate on player.behavior_patterns.

Stateless: (state, description, changes) -> state
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from ..state.schema import BehaviorPatterns, WorldState
from ..state.schemas.change import ChangeKind, StateChange
from .mutations.base import with_player


# ─── Configuration ───────────────────────────────────────────

# Keyword rules: axis -> (weight, keywords). Substring match on lowercased text.
BEHAVIOR_RULES: dict[str, tuple[int, tuple[str, ...]]] = {
    "combat": (1, ("attack", "fight", "kill", "strike", "battle", "slay")),
    "diplomacy": (2, (
        "negotiate", "persuade", "convince", "bargain",
        "compromise", "mediate", "diplomacy", "peace",
    )),
    "social": (1, ("talk to", "speak with", "chat", "help", "befriend", "greet")),
    "exploration": (1, (
        "explore", "search", "investigate", "discover", "travel", "journey", "venture",
    )),
    "stealth": (2, (
        "sneak", "hide", "steal", "pickpocket", "shadow",
        "creep", "stealthy", "quietly", "unseen", "covert",
    )),
    "magic": (2, (
        "cast", "spell", "magic", "enchant", "arcane",
        "conjure", "summon", "mystic", "sorcery",
    )),
}

AXES = tuple(BehaviorPatterns.model_fields)

DOMINANCE_FACTOR = 1.5  # Dominant axes exceed mean * factor
DOMINANCE_FLOOR = 3     # ...and this absolute count


def _number(data: Mapping[str, Any], *keys: str) -> float:
    for key in keys:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return 0


def _friendly(change: StateChange) -> bool:
    return change.kind == ChangeKind.UPDATE_NPC_ATTITUDE.value and (
        _number(change.data, "change") > 0 or _number(change.data, "attitude") > 0
    )


def _explores(change: StateChange) -> bool:
    if change.kind in (ChangeKind.MOVE_PLAYER.value, ChangeKind.CREATE_LOCATION.value):
        return True
    if change.kind == ChangeKind.ADD_KNOWLEDGE.value:
        kind = change.data.get("knowledgeType") or change.data.get("knowledge_type")
        return kind == "locations"
    return False


def _magic_item(change: StateChange) -> bool:
    if change.kind != ChangeKind.ADD_ITEM.value:
        return False
    item = change.data.get("item")
    return isinstance(item, Mapping) and str(item.get("type", "")).lower() == "magic"


def _starts_fight(change: StateChange) -> bool:
    return change.kind == ChangeKind.INITIATE_COMBAT.value


# Mutation-shape rules: (axis, weight, predicate). Each fires at most once per action.
CHANGE_RULES: list[tuple[str, int, Callable[[StateChange], bool]]] = [
    ("combat", 2, _starts_fight),
    ("social", 1, _friendly),
    ("exploration", 1, _explores),
    ("magic", 1, _magic_item),
]


def _coerce(changes: Iterable[StateChange | Mapping[str, Any]]) -> list[StateChange]:
    coerced = []
    for change in changes:
        if isinstance(change, StateChange):
            coerced.append(change)
            continue
        try:
            coerced.append(StateChange.model_validate(change))
        except ValidationError:
            continue  # The reducer already reported it
    return coerced


def score_action(
    description: str,
    changes: Iterable[StateChange | Mapping[str, Any]] = (),
    initiates_combat: bool = False,
) -> dict[str, int]:
    """Per-axis increments for one action."""
    text = (description or "").lower()
    batch = _coerce(changes)
    scores = {axis: 0 for axis in AXES}

    for axis, (weight, keywords) in BEHAVIOR_RULES.items():
        if any(word in text for word in keywords):
            scores[axis] += weight

    for axis, weight, predicate in CHANGE_RULES:
        if any(predicate(c) for c in batch):
            scores[axis] += weight

    if initiates_combat and not any(_starts_fight(c) for c in batch):
        scores["combat"] += 2

    return scores


def update_behavior_patterns(
    state: WorldState,
    description: str,
    changes: Iterable[StateChange | Mapping[str, Any]] = (),
    initiates_combat: bool = False,
) -> WorldState:
    """Fold one action's scores into the player's running counters."""
    scores = score_action(description, changes, initiates_combat)
    if not any(scores.values()):
        return state
    patterns = state.player.behavior_patterns
    updated = patterns.model_copy(update={
        axis: getattr(patterns, axis) + delta for axis, delta in scores.items() if delta
    })
    return with_player(state, behavior_patterns=updated)


def dominant_patterns(patterns: BehaviorPatterns) -> list[str]:
    """
    Axes well above the player's average, highest first.

    An axis is dominant when it exceeds 1.5x the mean of all six and is
    above 3, so a handful of early actions never produce a label.
    """
    values = {axis: getattr(patterns, axis) for axis in AXES}
    mean = sum(values.values()) / len(values)
    threshold = mean * DOMINANCE_FACTOR
    dominant = [
        axis for axis, value in values.items()
        if value > threshold and value > DOMINANCE_FLOOR
    ]
    return sorted(dominant, key=lambda axis: values[axis], reverse=True)
