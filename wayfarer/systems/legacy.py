"""
Legacy archive: permanent player death.

The hero is written into deceased_heroes, belongings are dropped where
they fell, companions are released where they stand, and the player is
replaced by a fresh character at the start location. The rest of the
world is left exactly as it was, so later heroes can find the grave goods
and meet the people who remember.
"""

from __future__ import annotations

import logging

from ..state.schema import (
    DEFAULT_START_LOCATION_ID,
    DeceasedHero,
    EventKind,
    ItemCache,
    WorldState,
)
from ..state.templates import fresh_player
from .mutations.base import append_event, derive_id

logger = logging.getLogger(__name__)


DEED_KINDS = {EventKind.COMBAT, EventKind.QUEST, EventKind.DISCOVERY, EventKind.RELATIONSHIP}
MAX_DEEDS = 10
DEFAULT_DEATH = "met an untimely end"


def major_deeds(state: WorldState, limit: int = MAX_DEEDS) -> list[str]:
    """Descriptions of the most recent significant deeds, oldest first."""
    deeds = [
        e.description for e in state.event_history
        if e.is_significant and e.type in DEED_KINDS
    ]
    return deeds[-limit:]


def known_by(state: WorldState) -> list[str]:
    """Living NPCs who would hear of the death."""
    return [
        npc.id for npc in state.npcs.values()
        if npc.is_alive
        and (npc.conversation_history or npc.player_name_known or npc.is_companion)
    ]


def archive_player_death(
    state: WorldState,
    death_description: str | None = None,
    start_location_id: str = DEFAULT_START_LOCATION_ID,
) -> WorldState:
    """Archive the current hero and start a fresh one."""
    player = state.player
    description = death_description or DEFAULT_DEATH
    death_location_id = player.current_location_id

    hero = DeceasedHero(
        id=derive_id(
            "hero",
            player.name or "nameless",
            state,
            len(state.deceased_heroes),
            (h.id for h in state.deceased_heroes),
        ),
        name=player.name,
        physical_description=player.physical_description,
        origin=player.origin,
        died_at_action=state.action_counter,
        death_description=description,
        death_location_id=death_location_id,
        major_deeds=major_deeds(state),
        items_left_behind=(
            [ItemCache(location_id=death_location_id, items=list(player.inventory))]
            if player.inventory else []
        ),
        known_by_npc_ids=known_by(state),
    )

    locations = dict(state.locations)
    death_location = locations.get(death_location_id)
    if death_location is not None and player.inventory:
        locations[death_location_id] = death_location.model_copy(update={
            "items": [*death_location.items, *player.inventory],
        })

    npcs = dict(state.npcs)
    for npc_id in player.companion_ids:
        companion = npcs.get(npc_id)
        if companion is not None and companion.is_companion:
            npcs[npc_id] = companion.model_copy(update={"is_companion": False})

    if start_location_id not in state.locations:
        logger.warning(
            f"Start location {start_location_id} missing, new hero starts at {death_location_id}"
        )
        start_location_id = death_location_id

    state = state.model_copy(update={
        "locations": locations,
        "npcs": npcs,
        "combat_state": None,
        "deceased_heroes": [*state.deceased_heroes, hero],
    })
    state = append_event(
        state,
        f"{player.name or 'The hero'} {description}",
        EventKind.DEATH,
        location_id=death_location_id,
        significant=True,
    )
    logger.info(f"Archived hero {hero.id} at {death_location_id}")
    return state.model_copy(update={"player": fresh_player(start_location_id)})
