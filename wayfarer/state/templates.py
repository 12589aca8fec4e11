"""
Starting content: a fresh player and a minimal seed village.

The seed is deliberately small. It exists so a new world has somewhere to
stand, someone to talk to, and a faction to offend; everything else is
generated during play through create_location and create_npc.
"""

from .schema import (
    DEFAULT_START_LOCATION_ID,
    NPC,
    Coordinates,
    Faction,
    Item,
    ItemEffect,
    ItemType,
    Knowledge,
    Location,
    NPCStats,
    Player,
    Terrain,
    WorldState,
)


def fresh_player(start_location_id: str = DEFAULT_START_LOCATION_ID) -> Player:
    """A brand-new character standing at the start location."""
    return Player(
        current_location_id=start_location_id,
        knowledge=Knowledge(locations=[start_location_id]),
    )


def _location(
    loc_id: str,
    name: str,
    description: str,
    x: int,
    y: int,
    terrain: Terrain = Terrain.VILLAGE,
    danger: int = 0,
) -> Location:
    return Location(
        id=loc_id,
        name=name,
        description=description,
        image_prompt=description,
        coordinates=Coordinates(x=x, y=y),
        terrain=terrain,
        danger_level=danger,
        is_canonical=True,
    )


def create_seed_world(start_location_id: str = DEFAULT_START_LOCATION_ID) -> WorldState:
    """
    Build the starting world.

    If start_location_id is not the seed square, the square is created
    under that id so the player always starts somewhere that exists.
    """
    square = _location(
        start_location_id,
        "Village Square",
        "A ring of cottages around a mossy well and a market cross.",
        0, 0,
    )
    inn = _location(
        "loc_crooked_lantern",
        "The Crooked Lantern",
        "A low-beamed inn that smells of woodsmoke and stew.",
        0, 1,
    )
    forge = _location(
        "loc_village_forge",
        "Village Forge",
        "An open-sided smithy where the anvil rings from dawn.",
        1, 0,
    )
    woods = _location(
        "loc_whispering_woods",
        "Whispering Woods",
        "Old trees lean over a narrow path that few walk after dark.",
        0, -1,
        terrain=Terrain.FOREST,
        danger=3,
    )
    inn = inn.model_copy(update={"items": [
        Item(
            id="item_healing_draught",
            name="Healing Draught",
            description="A corked vial of red tonic.",
            type=ItemType.POTION,
            effect=ItemEffect(stat="health", value=25),
            value=15,
            is_canonical=True,
        ),
    ]})

    watch = Faction(
        id="faction_village_watch",
        name="Village Watch",
        description="A handful of volunteers who keep the peace.",
        leader_npc_id="npc_captain_hale",
        member_npc_ids=["npc_captain_hale"],
        is_canonical=True,
    )

    npcs = [
        NPC(
            id="npc_captain_hale",
            name="Captain Hale",
            description="Grey-bearded captain of the village watch.",
            current_location_id=square.id,
            home_location_id=square.id,
            attitude=10,
            stats=NPCStats(health=80, max_health=80, strength=12, defense=8),
            faction_ids=[watch.id],
            is_canonical=True,
        ),
        NPC(
            id="npc_innkeeper_mora",
            name="Mora",
            description="Innkeeper who hears every rumor first.",
            current_location_id=inn.id,
            home_location_id=inn.id,
            attitude=20,
            is_canonical=True,
        ),
        NPC(
            id="npc_smith_bram",
            name="Bram",
            description="Broad-shouldered smith, slow to speak.",
            current_location_id=forge.id,
            home_location_id=forge.id,
            stats=NPCStats(health=70, max_health=70, strength=10, defense=6),
            is_canonical=True,
        ),
    ]

    locations = {loc.id: loc for loc in (square, inn, forge, woods)}
    for npc in npcs:
        loc = locations[npc.current_location_id]
        locations[loc.id] = loc.model_copy(
            update={"present_npc_ids": [*loc.present_npc_ids, npc.id]}
        )

    return WorldState(
        player=fresh_player(start_location_id),
        locations=locations,
        npcs={npc.id: npc for npc in npcs},
        factions={watch.id: watch},
    )
