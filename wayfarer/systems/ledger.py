"""
Crime and bounty ledger: derived queries.

Crimes and bounties are written by ordinary mutation records (see
mutations/legal.py). This module reads them back:

- wanted_status(): outstanding bounties and recently detected crimes
- refusal_reason(): whether an NPC refuses the player service
- derive_crime_consequences(): fill default attitude and reputation deltas
  for a record_crime change whose author supplied none

All functions are pure. The only randomness is the bounty-recognition
roll in refusal_reason(), drawn from an injected rng.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Mapping

from pydantic import Field

from ..state.schema import (
    SEVERITY_RANK,
    Crime,
    CrimeSeverity,
    CrimeType,
    WorldModel,
    WorldState,
)
from ..state.schemas.change import ChangeKind, StateChange

logger = logging.getLogger(__name__)


# ─── Configuration ───────────────────────────────────────────

LEDGER_CONFIG = {
    "wanted": {
        "recent_window": 50,            # Actions a detected crime stays "recent"
    },
    "refusal": {
        "hostile_attitude": -50,        # Below this an NPC refuses outright
        "hostile_reputation": -50,      # Below this faction members refuse
        "bounty_threshold": 100,        # Total bounty that makes the player recognisable
        "recognition_base": 0.2,
        "recognition_divisor": 500,     # chance = base + total / divisor
        "recognition_cap": 0.8,
        "recognition_max_attitude": 30, # NPCs this friendly look the other way
    },
    "consequences": {
        "victim_attitude": {"minor": -10, "moderate": -25, "severe": -50},
        "witness_attitude": {"minor": -5, "moderate": -10, "severe": -20},
        "faction_reputation": {"minor": -5, "moderate": -10, "severe": -20},
    },
}


# ─── Wanted status ──────────────────────────────────────────

class WantedStatus(WorldModel):
    """Summary of the player's standing with the law."""
    is_wanted: bool = False
    total_bounty_amount: int = 0
    active_bounties: int = 0
    recent_crimes: list[Crime] = Field(default_factory=list)
    most_severe_crime_type: CrimeType | None = None
    most_severe_severity: CrimeSeverity | None = None


def recent_detected_crimes(state: WorldState, window: int | None = None) -> list[Crime]:
    if window is None:
        window = LEDGER_CONFIG["wanted"]["recent_window"]
    now = state.action_counter
    return [
        c for c in state.player.crimes
        if c.was_detected and now - c.committed_at_action <= window
    ]


def most_severe(crimes: list[Crime]) -> Crime | None:
    """The worst crime in the list. The first severe crime wins outright."""
    worst: Crime | None = None
    for crime in crimes:
        if crime.severity == CrimeSeverity.SEVERE:
            return crime
        if worst is None or SEVERITY_RANK[crime.severity] > SEVERITY_RANK[worst.severity]:
            worst = crime
    return worst


def total_active_bounty(state: WorldState) -> int:
    return sum(b.amount for b in state.player.bounties if b.is_active)


def wanted_status(state: WorldState) -> WantedStatus:
    active = [b for b in state.player.bounties if b.is_active]
    recent = recent_detected_crimes(state)
    worst = most_severe(recent)
    return WantedStatus(
        is_wanted=bool(active),
        total_bounty_amount=sum(b.amount for b in active),
        active_bounties=len(active),
        recent_crimes=recent,
        most_severe_crime_type=worst.type if worst else None,
        most_severe_severity=worst.severity if worst else None,
    )


# ─── Service refusal ────────────────────────────────────────

def recognition_chance(total_bounty: int) -> float:
    cfg = LEDGER_CONFIG["refusal"]
    return min(cfg["recognition_cap"], cfg["recognition_base"] + total_bounty / cfg["recognition_divisor"])


def refusal_reason(
    state: WorldState,
    npc_id: str,
    rng: random.Random | None = None,
) -> str | None:
    """
    Why this NPC refuses to trade with or serve the player, or None.

    Checks run in priority order and the first hit wins. Unknown NPCs
    never refuse.
    """
    npc = state.npcs.get(npc_id)
    if npc is None:
        logger.debug(f"Refusal check for unknown NPC {npc_id}")
        return None

    cfg = LEDGER_CONFIG["refusal"]
    crimes = state.player.crimes

    if npc.attitude < cfg["hostile_attitude"]:
        return f"{npc.name} wants nothing to do with you."

    if any(c.was_detected and c.victim_npc_id == npc.id for c in crimes):
        return f"{npc.name} remembers what you did to them."

    if any(
        c.was_detected and c.severity == CrimeSeverity.SEVERE and npc.id in c.witness_npc_ids
        for c in crimes
    ):
        return f"{npc.name} saw what you did and will not serve you."

    for faction_id in npc.faction_ids:
        faction = state.factions.get(faction_id)
        if faction is not None and faction.player_reputation < cfg["hostile_reputation"]:
            return f"{npc.name} will not serve an enemy of the {faction.name}."

    total = total_active_bounty(state)
    if total >= cfg["bounty_threshold"]:
        roll = (rng or random).random()
        if roll < recognition_chance(total) and npc.attitude < cfg["recognition_max_attitude"]:
            return f"{npc.name} recognizes you from the bounty notices."

    return None


# ─── Consequence derivation ─────────────────────────────────

def derive_crime_consequences(
    state: WorldState,
    change: StateChange | Mapping[str, Any],
) -> StateChange:
    """
    Fill default consequences into a record_crime change.

    Only detected crimes with no author-supplied deltas are filled: the
    victim and each witness lose attitude, and every faction the victim
    belongs to loses reputation, scaled by severity. Anything else is
    returned unchanged. The reducer applies the result like any change.
    """
    if not isinstance(change, StateChange):
        change = StateChange.model_validate(change)
    if change.kind != ChangeKind.RECORD_CRIME.value:
        return change

    data = dict(change.data)
    detected = data.get("wasDetected", data.get("was_detected", False))
    severity = str(data.get("severity", "")).strip().lower()
    if detected is not True or severity not in {s.value for s in CrimeSeverity}:
        return change

    cfg = LEDGER_CONFIG["consequences"]
    victim_id = data.get("victimNpcId") or data.get("victim_npc_id")
    witnesses = data.get("witnessNpcIds") or data.get("witness_npc_ids") or []

    has_attitudes = data.get("npcAttitudeChanges") or data.get("npc_attitude_changes")
    if not has_attitudes:
        attitudes: dict[str, int] = {}
        for witness_id in witnesses:
            if witness_id in state.npcs:
                attitudes[witness_id] = cfg["witness_attitude"][severity]
        if victim_id in state.npcs:
            attitudes[victim_id] = cfg["victim_attitude"][severity]
        data["npcAttitudeChanges"] = attitudes

    has_reputation = data.get("factionReputationChanges") or data.get("faction_reputation_changes")
    if not has_reputation and victim_id in state.npcs:
        data["factionReputationChanges"] = {
            faction_id: cfg["faction_reputation"][severity]
            for faction_id in state.npcs[victim_id].faction_ids
            if faction_id in state.factions
        }

    return StateChange(kind=change.kind, data=data)
