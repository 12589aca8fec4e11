"""Player scalar changes and inventory transfer."""

from __future__ import annotations

from typing import Iterable

from ...state.schema import Item, ItemType, WorldState
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import (
    AddItem,
    AddKnowledge,
    GoldChange,
    HealthAmount,
    ItemData,
    MovePlayer,
    RemoveItem,
)
from ...state.schemas.result import DiagnosticCategory
from .base import (
    MutationContext,
    derive_id,
    handles,
    with_knowledge,
    with_location,
    with_npc,
    with_player,
)


KNOWLEDGE_TYPES = ("locations", "npcs", "lore", "recipes")


def build_item(
    data: ItemData,
    state: WorldState,
    count: int,
    ctx: MutationContext,
    taken: Iterable[str] = (),
) -> Item:
    """Fill defaults for a partially-specified item."""
    try:
        item_type = ItemType(data.type.lower())
    except ValueError:
        ctx.warn(f"Unknown item type '{data.type}', stored as misc", "item.type")
        item_type = ItemType.MISC
    name = data.name or "Unknown Item"
    return Item(
        id=data.id or derive_id("item", name, state, count, taken),
        name=name,
        description=data.description,
        type=item_type,
        effect=data.effect,
        value=data.value,
        is_canonical=data.is_canonical,
    )


@handles(ChangeKind.MOVE_PLAYER, MovePlayer)
def move_player(state: WorldState, payload: MovePlayer, ctx: MutationContext) -> WorldState:
    location = ctx.require_location(state, payload.location_id)
    state = with_location(
        state, location.model_copy(update={"last_visited_at_action": state.action_counter})
    )
    return with_player(state, current_location_id=location.id)


@handles(ChangeKind.ADD_ITEM, AddItem)
def add_item(state: WorldState, payload: AddItem, ctx: MutationContext) -> WorldState:
    if payload.to_npc:
        npc = state.npcs.get(payload.to_npc)
        if npc is not None:
            item = build_item(
                payload.item, state, len(npc.inventory), ctx, (i.id for i in npc.inventory)
            )
            return with_npc(state, npc.model_copy(update={"inventory": [*npc.inventory, item]}))
        ctx.warn(f"NPC not found: {payload.to_npc}, item given to player", "toNpc")

    if payload.to_location:
        location = state.locations.get(payload.to_location)
        if location is not None:
            item = build_item(
                payload.item, state, len(location.items), ctx, (i.id for i in location.items)
            )
            return with_location(
                state, location.model_copy(update={"items": [*location.items, item]})
            )
        ctx.warn(f"Location not found: {payload.to_location}, item given to player", "toLocation")

    inventory = state.player.inventory
    item = build_item(payload.item, state, len(inventory), ctx, (i.id for i in inventory))
    return with_player(state, inventory=[*inventory, item])


@handles(ChangeKind.REMOVE_ITEM, RemoveItem)
def remove_item(state: WorldState, payload: RemoveItem, ctx: MutationContext) -> WorldState:
    item_id = payload.item_id

    if payload.from_npc:
        npc = ctx.require_npc(state, payload.from_npc, "fromNpc")
        remaining = [i for i in npc.inventory if i.id != item_id]
        if len(remaining) == len(npc.inventory):
            ctx.warn(f"Item {item_id} not held by {npc.id}", "itemId")
            return state
        return with_npc(state, npc.model_copy(update={"inventory": remaining}))

    if payload.from_location:
        location = ctx.require_location(state, payload.from_location, "fromLocation")
        remaining = [i for i in location.items if i.id != item_id]
        if len(remaining) == len(location.items):
            ctx.warn(f"Item {item_id} not at {location.id}", "itemId")
            return state
        return with_location(state, location.model_copy(update={"items": remaining}))

    remaining = [i for i in state.player.inventory if i.id != item_id]
    if len(remaining) == len(state.player.inventory):
        ctx.warn(f"Item {item_id} not in player inventory", "itemId")
        return state
    return with_player(state, inventory=remaining)


@handles(ChangeKind.GOLD_CHANGE, GoldChange)
def gold_change(state: WorldState, payload: GoldChange, ctx: MutationContext) -> WorldState:
    return with_player(state, gold=max(0, state.player.gold + payload.amount))


@handles(ChangeKind.PLAYER_DAMAGE, HealthAmount)
def player_damage(state: WorldState, payload: HealthAmount, ctx: MutationContext) -> WorldState:
    return with_player(state, health=max(0, state.player.health - payload.amount))


@handles(ChangeKind.PLAYER_HEAL, HealthAmount)
def player_heal(state: WorldState, payload: HealthAmount, ctx: MutationContext) -> WorldState:
    player = state.player
    return with_player(state, health=min(player.max_health, player.health + payload.amount))


@handles(ChangeKind.ADD_KNOWLEDGE, AddKnowledge)
def add_knowledge(state: WorldState, payload: AddKnowledge, ctx: MutationContext) -> WorldState:
    player = state.player

    # Skill form: { skill, level? }
    if payload.skill and payload.skill.strip():
        skills = {**player.knowledge.skills, payload.skill.strip(): payload.level or "novice"}
        return with_player(state, **with_knowledge(player, skills=skills))

    if not payload.knowledge_type or not payload.value or not payload.value.strip():
        ctx.reject(
            DiagnosticCategory.SHAPE,
            "Expected knowledgeType and value, or skill",
            "knowledgeType",
        )

    key = payload.knowledge_type.lower()
    if key not in KNOWLEDGE_TYPES:
        ctx.reject(
            DiagnosticCategory.SHAPE,
            f"Invalid knowledgeType: {payload.knowledge_type}",
            "knowledgeType",
        )

    known: list[str] = getattr(player.knowledge, key)
    if payload.value in known:
        return state
    return with_player(state, **with_knowledge(player, **{key: [*known, payload.value]}))
