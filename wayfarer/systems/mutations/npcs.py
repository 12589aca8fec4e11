"""NPC lifecycle: movement, attitude, death, creation."""

from __future__ import annotations

from ...state.schema import NPC, NPCStats, EventKind, WorldState, clamp
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import CreateNpc, MoveNpc, NpcDeath, UpdateNpcAttitude
from ...state.schemas.result import DiagnosticCategory
from .base import (
    MutationContext,
    append_event,
    derive_id,
    handles,
    relocate_npc,
    with_npc,
    with_player,
)
from .player import build_item


DEFAULT_DEATH_DESCRIPTION = "met an untimely end"


@handles(ChangeKind.MOVE_NPC, MoveNpc)
def move_npc(state: WorldState, payload: MoveNpc, ctx: MutationContext) -> WorldState:
    ctx.require_npc(state, payload.npc_id)
    ctx.require_location(state, payload.location_id)
    return relocate_npc(state, payload.npc_id, payload.location_id)


@handles(ChangeKind.UPDATE_NPC_ATTITUDE, UpdateNpcAttitude)
def update_npc_attitude(
    state: WorldState, payload: UpdateNpcAttitude, ctx: MutationContext
) -> WorldState:
    npc = ctx.require_npc(state, payload.npc_id)

    if payload.attitude is not None:
        attitude = payload.attitude
    elif payload.change is not None:
        attitude = npc.attitude + payload.change
    else:
        ctx.reject(DiagnosticCategory.SHAPE, "Expected attitude or change", "change")

    return with_npc(state, npc.model_copy(update={"attitude": clamp(attitude)}))


def kill_npc(state: WorldState, npc: NPC, description: str) -> WorldState:
    """
    Mark an NPC dead and release everything that depends on it being alive.

    Drops companion status on both sides and ends any encounter where the
    NPC was the enemy. The NPC stays in its location roster.
    """
    dead = npc.model_copy(update={
        "is_alive": False,
        "is_companion": False,
        "death_description": description,
        "stats": npc.stats.model_copy(update={"health": 0}),
    })
    state = with_npc(state, dead)

    if npc.id in state.player.companion_ids:
        state = with_player(
            state, companion_ids=[i for i in state.player.companion_ids if i != npc.id]
        )

    combat = state.combat_state
    if combat is not None:
        if combat.enemy_npc_id == npc.id:
            state = state.model_copy(update={"combat_state": None})
        elif npc.id in combat.companions_in_combat:
            state = state.model_copy(update={"combat_state": combat.model_copy(update={
                "companions_in_combat": [i for i in combat.companions_in_combat if i != npc.id],
            })})
    return state


@handles(ChangeKind.NPC_DEATH, NpcDeath)
def npc_death(state: WorldState, payload: NpcDeath, ctx: MutationContext) -> WorldState:
    npc = ctx.require_npc(state, payload.npc_id)
    if not npc.is_alive:
        ctx.violation(f"NPC is already dead: {npc.id}", "npcId")

    description = payload.death_description or DEFAULT_DEATH_DESCRIPTION
    state = kill_npc(state, npc, description)
    return append_event(
        state,
        f"{npc.name} {description}",
        EventKind.DEATH,
        involved=[npc.id],
        location_id=npc.current_location_id,
        significant=True,
    )


@handles(ChangeKind.CREATE_NPC, CreateNpc)
def create_npc(state: WorldState, payload: CreateNpc, ctx: MutationContext) -> WorldState:
    data = payload.npc
    name = data.name or "Unknown Stranger"
    npc_id = data.id or derive_id("npc", name, state, len(state.npcs), state.npcs)
    if npc_id in state.npcs:
        ctx.violation(f"NPC already exists: {npc_id}", "npc.id")

    location_id = data.current_location_id or state.player.current_location_id
    if location_id not in state.locations:
        ctx.warn(f"Location not found: {location_id}, placed with the player", "npc.currentLocationId")
        location_id = state.player.current_location_id
        ctx.require_location(state, location_id, "npc.currentLocationId")

    is_companion = data.is_companion and data.is_alive
    npc = NPC(
        id=npc_id,
        name=name,
        description=data.description,
        physical_description=data.physical_description,
        soul_instruction=data.soul_instruction,
        current_location_id=location_id,
        home_location_id=data.home_location_id,
        attitude=clamp(data.attitude),
        is_companion=is_companion,
        is_animal=data.is_animal,
        is_alive=data.is_alive,
        death_description=data.death_description,
        inventory=[build_item(item, state, i, ctx) for i, item in enumerate(data.inventory)],
        stats=data.stats or NPCStats(),
        faction_ids=list(data.faction_ids),
        knowledge=list(data.knowledge),
        conversation_history=list(data.conversation_history),
        player_name_known=data.player_name_known,
        is_canonical=False,
    )

    state = state.model_copy(update={"npcs": {**state.npcs, npc_id: npc}})
    state = relocate_npc(state, npc_id, location_id)
    if is_companion:
        state = with_player(state, companion_ids=[*state.player.companion_ids, npc_id])
    return state
