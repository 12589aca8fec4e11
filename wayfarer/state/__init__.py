"""State management for wayfarer worlds."""

from .schema import (
    WORLD_VERSION,
    Bounty,
    CombatState,
    Crime,
    CrimeSeverity,
    CrimeType,
    DeceasedHero,
    EventKind,
    Faction,
    Item,
    ItemType,
    Knowledge,
    Location,
    NPC,
    Player,
    Quest,
    QuestStatus,
    WorldEvent,
    WorldState,
)
from .manager import (
    NoWorldLoadedError,
    NotInCombatError,
    SchemaVersionError,
    StaleStateError,
    WorldError,
    WorldManager,
)
from .store import DEFAULT_SLOT, JsonWorldStore, MemoryWorldStore, WorldStore
from .templates import create_seed_world, fresh_player
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    # Schema
    "WORLD_VERSION",
    "Bounty",
    "CombatState",
    "Crime",
    "CrimeSeverity",
    "CrimeType",
    "DeceasedHero",
    "EventKind",
    "Faction",
    "Item",
    "ItemType",
    "Knowledge",
    "Location",
    "NPC",
    "Player",
    "Quest",
    "QuestStatus",
    "WorldEvent",
    "WorldState",
    # Manager
    "WorldManager",
    "WorldError",
    "StaleStateError",
    "SchemaVersionError",
    "NoWorldLoadedError",
    "NotInCombatError",
    # Store
    "DEFAULT_SLOT",
    "WorldStore",
    "JsonWorldStore",
    "MemoryWorldStore",
    # Templates
    "create_seed_world",
    "fresh_player",
    # Event bus
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
]
