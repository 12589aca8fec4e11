"""Quest lifecycle, faction reputation, and home ownership."""

from __future__ import annotations

from ...state.schema import EventKind, Quest, QuestStatus, WorldState, clamp
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import (
    AddQuest,
    ClaimHome,
    ItemRef,
    UpdateFaction,
    UpdateQuest,
)
from ...state.schemas.result import DiagnosticCategory
from .base import (
    MutationContext,
    append_event,
    derive_id,
    handles,
    with_location,
    with_player,
)


# ─── Quests ─────────────────────────────────────────────────

@handles(ChangeKind.ADD_QUEST, AddQuest)
def add_quest(state: WorldState, payload: AddQuest, ctx: MutationContext) -> WorldState:
    data = payload.quest or payload

    if not data.title or not data.title.strip():
        ctx.reject(DiagnosticCategory.SHAPE, "Missing title", "title")
    if not data.giver_npc_id or not data.giver_npc_id.strip():
        ctx.reject(DiagnosticCategory.SHAPE, "Missing giverNpcId", "giverNpcId")
    objectives = [o for o in (data.objectives or []) if o.strip()]
    if not objectives:
        ctx.reject(DiagnosticCategory.SHAPE, "Missing objectives", "objectives")

    quest_id = data.id or derive_id("quest", data.title, state, len(state.quests), state.quests)
    if quest_id in state.quests:
        ctx.violation(f"Quest already exists: {quest_id}", "id")

    quest = Quest(
        id=quest_id,
        title=data.title.strip(),
        description=data.description,
        giver_npc_id=data.giver_npc_id,
        objectives=objectives,
        rewards=data.rewards,
    )
    state = state.model_copy(update={"quests": {**state.quests, quest_id: quest}})
    involved = [data.giver_npc_id] if data.giver_npc_id in state.npcs else []
    return append_event(
        state, f"Accepted quest: {quest.title}", EventKind.QUEST, involved=involved
    )


@handles(ChangeKind.UPDATE_QUEST, UpdateQuest)
def update_quest(state: WorldState, payload: UpdateQuest, ctx: MutationContext) -> WorldState:
    quest = state.quests.get(payload.quest_id)
    if quest is None:
        ctx.reject(DiagnosticCategory.REFERENCE, f"Quest not found: {payload.quest_id}", "questId")

    status = quest.status
    if payload.status is not None:
        try:
            status = QuestStatus(payload.status.strip().lower())
        except ValueError:
            ctx.warn(f"Invalid status ignored: {payload.status}", "status")

    completed = list(quest.completed_objectives)
    if payload.completed_objectives is not None:
        for objective in payload.completed_objectives:
            if not isinstance(objective, str) or objective not in quest.objectives:
                ctx.warn(f"Not an objective of {quest.id}: {objective!r}", "completedObjectives")
            elif objective not in completed:
                completed.append(objective)

    if status == QuestStatus.ACTIVE and all(o in completed for o in quest.objectives):
        status = QuestStatus.COMPLETED

    updated = quest.model_copy(update={"status": status, "completed_objectives": completed})
    state = state.model_copy(update={"quests": {**state.quests, quest.id: updated}})

    if status != quest.status:
        involved = [quest.giver_npc_id] if quest.giver_npc_id in state.npcs else []
        state = append_event(
            state,
            f"Quest {status.value}: {quest.title}",
            EventKind.QUEST,
            involved=involved,
            significant=status in (QuestStatus.COMPLETED, QuestStatus.FAILED),
        )
    return state


# ─── Factions ───────────────────────────────────────────────

@handles(ChangeKind.UPDATE_FACTION, UpdateFaction)
def update_faction(state: WorldState, payload: UpdateFaction, ctx: MutationContext) -> WorldState:
    faction = state.factions.get(payload.faction_id)
    if faction is None:
        ctx.reject(
            DiagnosticCategory.REFERENCE, f"Faction not found: {payload.faction_id}", "factionId"
        )

    if payload.reputation is not None:
        reputation = payload.reputation
    elif payload.reputation_change is not None:
        reputation = faction.player_reputation + payload.reputation_change
    else:
        ctx.reject(DiagnosticCategory.SHAPE, "Expected reputation or reputationChange", "reputation")

    updated = faction.model_copy(update={"player_reputation": clamp(reputation)})
    return state.model_copy(update={"factions": {**state.factions, faction.id: updated}})


# ─── Home ───────────────────────────────────────────────────

@handles(ChangeKind.CLAIM_HOME, ClaimHome)
def claim_home(state: WorldState, payload: ClaimHome, ctx: MutationContext) -> WorldState:
    location = ctx.require_location(
        state, payload.location_id or state.player.current_location_id
    )
    state = with_player(state, home_location_id=location.id)
    return append_event(
        state, f"Made a home at {location.name}", EventKind.OTHER, location_id=location.id
    )


def _require_home(state: WorldState, ctx: MutationContext):
    home_id = state.player.home_location_id
    if not home_id:
        ctx.violation("Player has no home")
    return ctx.require_location(state, home_id, "homeLocationId")


@handles(ChangeKind.STORE_ITEM_AT_HOME, ItemRef)
def store_item_at_home(state: WorldState, payload: ItemRef, ctx: MutationContext) -> WorldState:
    home = _require_home(state, ctx)
    item = state.player.find_item(payload.item_id)
    if item is None:
        ctx.violation(f"Item not in inventory: {payload.item_id}", "itemId")

    inventory = list(state.player.inventory)
    inventory.remove(item)
    state = with_player(state, inventory=inventory)
    return with_location(state, home.model_copy(update={"items": [*home.items, item]}))


@handles(ChangeKind.RETRIEVE_ITEM_FROM_HOME, ItemRef)
def retrieve_item_from_home(
    state: WorldState, payload: ItemRef, ctx: MutationContext
) -> WorldState:
    home = _require_home(state, ctx)
    if state.player.current_location_id != home.id:
        ctx.violation("Player is not at home")

    item = next((i for i in home.items if i.id == payload.item_id), None)
    if item is None:
        ctx.violation(f"Item not found at home: {payload.item_id}", "itemId")

    items = list(home.items)
    items.remove(item)
    state = with_location(state, home.model_copy(update={"items": items}))
    return with_player(state, inventory=[*state.player.inventory, item])
