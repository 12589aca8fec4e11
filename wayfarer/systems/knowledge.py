"""
Knowledge validator.

Answers "does the player know about X?" for references pulled out of
generated prose. Knowledge is explicit memory plus whatever the player
can perceive right now: anything held, anything at the current location,
and every companion count as known even if never recorded.

Matching is case-insensitive and lenient: ids must match exactly, names
match when the reference appears anywhere inside them.
"""

from __future__ import annotations

from typing import Iterator

from ..state.schema import WorldState
from .matching import KNOWLEDGE_MATCH, exact, get_matcher


def _candidates(state: WorldState) -> Iterator[tuple[str | None, str]]:
    """
    Yield (id, name) pairs in search order.

    id is None for free-text entries (lore, recipes, skills) that only
    match by name.
    """
    player = state.player
    known = player.knowledge

    for loc_id in known.locations:
        location = state.locations.get(loc_id)
        yield loc_id, location.name if location else ""

    for npc_id in known.npcs:
        npc = state.npcs.get(npc_id)
        yield npc_id, npc.name if npc else ""

    for text in known.lore:
        yield None, text
    for text in known.recipes:
        yield None, text
    for skill in known.skills:
        yield None, skill

    for item in player.inventory:
        yield item.id, item.name

    here = state.current_location
    if here is not None:
        yield here.id, here.name
        for item in here.items:
            yield item.id, item.name
        for structure in here.structures:
            yield structure.id, structure.name
        for npc_id in here.present_npc_ids:
            npc = state.npcs.get(npc_id)
            if npc is not None and npc.is_alive:
                yield npc_id, npc.name

    for npc_id in player.companion_ids:
        npc = state.npcs.get(npc_id)
        if npc is not None:
            yield npc_id, npc.name


def knows(state: WorldState, reference: str) -> bool:
    """Whether the player knows about the referenced thing. Empty references never match."""
    if not isinstance(reference, str) or not reference.strip():
        return False

    by_name = get_matcher(KNOWLEDGE_MATCH)
    for entity_id, name in _candidates(state):
        if entity_id is not None and exact(reference, entity_id):
            return True
        if name and by_name(reference, name):
            return True
    return False


def unknown_references(state: WorldState, references: list[str]) -> list[str]:
    """References from a generated batch the player has no grounds to know."""
    return [ref for ref in references if not knows(state, ref)]
