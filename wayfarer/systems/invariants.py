"""
Invariant audit over a world snapshot.

The reducer preserves these invariants step by step; audit_world() checks
them after the fact, for tests and for inspecting hand-edited saves.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.schema import ATTITUDE_MAX, ATTITUDE_MIN, QuestStatus, WorldState


@dataclass
class InvariantViolation:
    rule: str  # roster, companion, bounds, vitals, combat, quest
    message: str

    def __str__(self) -> str:
        return f"{self.rule}: {self.message}"


def _in_bounds(value: int) -> bool:
    return ATTITUDE_MIN <= value <= ATTITUDE_MAX


def audit_world(state: WorldState) -> list[InvariantViolation]:
    """Every invariant violation in the snapshot. Empty means consistent."""
    found: list[InvariantViolation] = []

    def fail(rule: str, message: str) -> None:
        found.append(InvariantViolation(rule, message))

    # Location rosters agree with NPC locations
    for npc in state.npcs.values():
        holders = [
            loc.id for loc in state.locations.values()
            if npc.id in loc.present_npc_ids
        ]
        if npc.current_location_id in state.locations and holders != [npc.current_location_id]:
            fail("roster", f"{npc.id} is at {npc.current_location_id} but listed in {holders}")
    for loc in state.locations.values():
        for npc_id in loc.present_npc_ids:
            if loc.present_npc_ids.count(npc_id) > 1:
                fail("roster", f"{npc_id} listed more than once at {loc.id}")
            if npc_id not in state.npcs:
                fail("roster", f"{loc.id} lists unknown NPC {npc_id}")

    # Companion status is tracked on both sides
    companion_ids = set(state.player.companion_ids)
    for npc in state.npcs.values():
        if npc.is_companion != (npc.id in companion_ids):
            fail("companion", f"{npc.id} is_companion={npc.is_companion} disagrees with the party")
    for npc_id in companion_ids - set(state.npcs):
        fail("companion", f"Party lists unknown NPC {npc_id}")

    # Bounded scores
    for npc in state.npcs.values():
        if not _in_bounds(npc.attitude):
            fail("bounds", f"{npc.id} attitude {npc.attitude}")
    for faction in state.factions.values():
        if not _in_bounds(faction.player_reputation):
            fail("bounds", f"{faction.id} reputation {faction.player_reputation}")

    # Vitals
    player = state.player
    if player.health < 0 or player.health > player.max_health:
        fail("vitals", f"Player health {player.health}/{player.max_health}")
    if player.gold < 0:
        fail("vitals", f"Player gold {player.gold}")

    # Combat only against a living enemy
    combat = state.combat_state
    if combat is not None:
        enemy = state.npcs.get(combat.enemy_npc_id)
        if enemy is None or not enemy.is_alive:
            fail("combat", f"Combat state references dead or missing {combat.enemy_npc_id}")

    # Quest objectives
    for quest in state.quests.values():
        extra = set(quest.completed_objectives) - set(quest.objectives)
        if extra:
            fail("quest", f"{quest.id} completed unknown objectives {sorted(extra)}")
        if quest.status == QuestStatus.ACTIVE and quest.objectives and quest.all_objectives_done:
            fail("quest", f"{quest.id} has every objective done but is still active")

    return found
