"""Combat initiation. Rounds are resolved by systems.combat."""

from __future__ import annotations

from ...state.schema import NPC, CombatState, EventKind, WorldState
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import NpcRef
from .base import MutationContext, append_event, handles


def companions_present(state: WorldState) -> list[str]:
    """Living companions standing at the player's location."""
    location = state.current_location
    if location is None:
        return []
    return [
        npc_id for npc_id in state.player.companion_ids
        if npc_id in state.npcs
        and state.npcs[npc_id].is_alive
        and npc_id in location.present_npc_ids
    ]


def begin_encounter(state: WorldState, enemy: NPC) -> WorldState:
    combat = CombatState(
        enemy_npc_id=enemy.id,
        player_turn=True,
        turn_count=1,
        companions_in_combat=companions_present(state),
    )
    state = state.model_copy(update={"combat_state": combat})
    return append_event(
        state, f"Combat began with {enemy.name}", EventKind.COMBAT, involved=[enemy.id]
    )


@handles(ChangeKind.INITIATE_COMBAT, NpcRef)
def initiate_combat(state: WorldState, payload: NpcRef, ctx: MutationContext) -> WorldState:
    npc = ctx.require_npc(state, payload.npc_id)
    if not npc.is_alive:
        ctx.violation(f"NPC is dead: {npc.id}", "npcId")
    if state.combat_state is not None:
        ctx.violation(f"Already in combat with {state.combat_state.enemy_npc_id}")
    return begin_encounter(state, npc)
