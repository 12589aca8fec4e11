"""
Companion management.

Companion status lives in two places, NPC.is_companion and
Player.companion_ids. Every handler here writes both or neither.
"""

from __future__ import annotations

from ...state.schema import NPC, EventKind, WorldState
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import NpcRef
from .base import (
    MutationContext,
    append_event,
    handles,
    relocate_npc,
    with_npc,
    with_player,
)


def _require_companion(state: WorldState, payload: NpcRef, ctx: MutationContext) -> NPC:
    npc = ctx.require_npc(state, payload.npc_id)
    if not npc.is_companion or npc.id not in state.player.companion_ids:
        ctx.violation(f"NPC is not a companion: {npc.id}", "npcId")
    return npc


@handles(ChangeKind.ADD_COMPANION, NpcRef)
def add_companion(state: WorldState, payload: NpcRef, ctx: MutationContext) -> WorldState:
    npc = ctx.require_npc(state, payload.npc_id)
    if not npc.is_alive:
        ctx.violation(f"NPC is dead: {npc.id}", "npcId")
    if npc.is_companion and npc.id in state.player.companion_ids:
        ctx.warn(f"{npc.id} is already a companion")
        return state

    state = with_npc(state, npc.model_copy(update={"is_companion": True}))
    companions = [i for i in state.player.companion_ids if i != npc.id] + [npc.id]
    state = with_player(state, companion_ids=companions)
    return append_event(
        state, f"{npc.name} joined the party", EventKind.RELATIONSHIP, involved=[npc.id]
    )


@handles(ChangeKind.REMOVE_COMPANION, NpcRef)
def remove_companion(state: WorldState, payload: NpcRef, ctx: MutationContext) -> WorldState:
    npc = _require_companion(state, payload, ctx)

    state = with_npc(state, npc.model_copy(update={"is_companion": False}))
    state = with_player(
        state, companion_ids=[i for i in state.player.companion_ids if i != npc.id]
    )
    return append_event(
        state, f"{npc.name} left the party", EventKind.RELATIONSHIP, involved=[npc.id]
    )


@handles(ChangeKind.COMPANION_WAIT_AT_HOME, NpcRef)
def companion_wait_at_home(
    state: WorldState, payload: NpcRef, ctx: MutationContext
) -> WorldState:
    home_id = state.player.home_location_id
    if not home_id:
        ctx.violation("Player has no home")
    npc = _require_companion(state, payload, ctx)
    ctx.require_location(state, home_id, "homeLocationId")
    return relocate_npc(state, npc.id, home_id)


@handles(ChangeKind.COMPANION_REJOIN, NpcRef)
def companion_rejoin(state: WorldState, payload: NpcRef, ctx: MutationContext) -> WorldState:
    npc = _require_companion(state, payload, ctx)
    here = state.player.current_location_id
    ctx.require_location(state, here, "currentLocationId")
    return relocate_npc(state, npc.id, here)
