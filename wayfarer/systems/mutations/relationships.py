"""Marriage, children, and personal attitude changes."""

from __future__ import annotations

from enum import Enum

from ...state.schema import EventKind, WorldState, clamp
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import UpdateRelationship
from ...state.schemas.result import DiagnosticCategory
from .base import MutationContext, append_event, handles, with_npc, with_player


class RelationshipAction(str, Enum):
    MARRY = "marry"
    DIVORCE = "divorce"
    HAVE_CHILD = "have_child"
    ADOPT = "adopt"
    DISOWN = "disown"
    ATTITUDE = "attitude"  # Attitude only, no event


@handles(ChangeKind.UPDATE_RELATIONSHIP, UpdateRelationship)
def update_relationship(
    state: WorldState, payload: UpdateRelationship, ctx: MutationContext
) -> WorldState:
    try:
        action = RelationshipAction(payload.action.lower())
    except ValueError:
        ctx.reject(DiagnosticCategory.SHAPE, f"Unknown action: {payload.action}", "action")

    npc = ctx.require_npc(state, payload.npc_id)
    player = state.player
    involved = [npc.id]

    if action == RelationshipAction.MARRY:
        if player.married_to_npc_id:
            ctx.violation(f"Player is already married to {player.married_to_npc_id}")
        if not npc.is_alive:
            ctx.violation(f"NPC is dead: {npc.id}", "npcId")
        state = with_player(state, married_to_npc_id=npc.id)
        description = f"Married {npc.name}"

    elif action == RelationshipAction.DIVORCE:
        if player.married_to_npc_id != npc.id:
            ctx.violation(f"Player is not married to {npc.id}", "npcId")
        state = with_player(state, married_to_npc_id=None)
        description = f"Divorced {npc.name}"

    elif action in (RelationshipAction.HAVE_CHILD, RelationshipAction.ADOPT):
        if not payload.child_npc_id:
            ctx.reject(DiagnosticCategory.SHAPE, "Missing childNpcId", "childNpcId")
        child = ctx.require_npc(state, payload.child_npc_id, "childNpcId")
        if child.id in player.children_npc_ids:
            ctx.violation(f"Already a child of the player: {child.id}", "childNpcId")
        state = with_player(state, children_npc_ids=[*player.children_npc_ids, child.id])
        involved.append(child.id)
        if action == RelationshipAction.ADOPT:
            description = f"Adopted {child.name}"
        else:
            description = f"Welcomed {child.name}, a child with {npc.name}"

    elif action == RelationshipAction.DISOWN:
        child_id = payload.child_npc_id or npc.id
        if child_id not in player.children_npc_ids:
            ctx.violation(f"Not a child of the player: {child_id}", "childNpcId")
        state = with_player(
            state, children_npc_ids=[i for i in player.children_npc_ids if i != child_id]
        )
        child = state.npcs.get(child_id)
        description = f"Disowned {child.name if child else child_id}"
        if child_id != npc.id:
            involved.append(child_id)

    else:
        if payload.attitude_change is None:
            ctx.reject(DiagnosticCategory.SHAPE, "Missing attitudeChange", "attitudeChange")
        description = None

    if payload.attitude_change is not None:
        npc = state.npcs[npc.id]
        state = with_npc(
            state, npc.model_copy(update={"attitude": clamp(npc.attitude + payload.attitude_change)})
        )

    if description is None:
        return state
    return append_event(
        state, description, EventKind.RELATIONSHIP, involved=involved, significant=True
    )
