"""
Pydantic models for the wayfarer world state.

The whole world is one aggregate, WorldState, replaced wholesale by every
engine call and never mutated in place. Models serialize to JSON with
camelCase keys (the persisted snapshot layout) and accept either camelCase
or snake_case on input.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


WORLD_VERSION = 1  # Bump on breaking snapshot changes
SCHEMA_VERSION = "1.2.0"

ATTITUDE_MIN = -100
ATTITUDE_MAX = 100

DEFAULT_START_LOCATION_ID = "loc_village_square"


def clamp(value: int, low: int = ATTITUDE_MIN, high: int = ATTITUDE_MAX) -> int:
    """Clamp an attitude or reputation score into its bounded range."""
    return max(low, min(high, value))


class WorldModel(BaseModel):
    """Base model: camelCase aliases on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class ItemType(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    POTION = "potion"
    FOOD = "food"
    KEY = "key"
    MISC = "misc"
    MATERIAL = "material"
    BOOK = "book"
    MAGIC = "magic"


class Terrain(str, Enum):
    VILLAGE = "village"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    PLAINS = "plains"
    WATER = "water"
    CAVE = "cave"
    DUNGEON = "dungeon"
    ROAD = "road"
    SWAMP = "swamp"
    DESERT = "desert"


class StructureType(str, Enum):
    CAMP = "camp"
    SHELTER = "shelter"
    HOUSE = "house"
    FORT = "fort"
    TRAP = "trap"
    MARKER = "marker"
    GRAVE = "grave"


class QuestStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    IMPOSSIBLE = "impossible"


class EventKind(str, Enum):
    """Kinds of world events recorded in event_history."""
    COMBAT = "combat"
    DIALOGUE = "dialogue"
    DISCOVERY = "discovery"
    DEATH = "death"
    QUEST = "quest"
    RELATIONSHIP = "relationship"
    FACTION = "faction"
    BUILD = "build"
    CRAFT = "craft"
    CRIME = "crime"
    BOUNTY = "bounty"
    OTHER = "other"


class CrimeType(str, Enum):
    THEFT = "theft"
    ASSAULT = "assault"
    MURDER = "murder"
    TRESPASSING = "trespassing"
    FRAUD = "fraud"
    VANDALISM = "vandalism"
    SMUGGLING = "smuggling"
    OTHER = "other"


class CrimeSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


# Ordered least to most severe; index is the rank
SEVERITY_RANK: dict[CrimeSeverity, int] = {
    CrimeSeverity.MINOR: 1,
    CrimeSeverity.MODERATE: 2,
    CrimeSeverity.SEVERE: 3,
}


class SkillLevel(str, Enum):
    """Qualitative skill ladder, lowest rung first."""
    NOVICE = "novice"
    APPRENTICE = "apprentice"
    JOURNEYMAN = "journeyman"
    ADEPT = "adept"
    EXPERT = "expert"
    MASTER = "master"


SKILL_LADDER: list[SkillLevel] = list(SkillLevel)


# -----------------------------------------------------------------------------
# Items, Structures, Locations
# -----------------------------------------------------------------------------

class Coordinates(WorldModel):
    x: int = 0
    y: int = 0


class ItemEffect(WorldModel):
    stat: str  # "health", "strength", ...
    value: int


class Item(WorldModel):
    """Anything that can sit in an inventory or on the ground."""
    id: str
    name: str
    description: str = ""
    type: ItemType = ItemType.MISC
    effect: ItemEffect | None = None
    value: int = 0  # Gold value
    is_canonical: bool = False


class Structure(WorldModel):
    """Something built at a location: a camp, a house, a grave."""
    id: str
    name: str
    description: str = ""
    type: StructureType = StructureType.MARKER
    built_at_action: int = 0
    owner_id: str | None = None  # Player or NPC who built/owns it


class PlayerNote(WorldModel):
    id: str
    content: str
    left_at_action: int = 0


class Location(WorldModel):
    """A node in the world graph, placed on an integer grid."""
    id: str
    name: str
    description: str = ""
    image_prompt: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    terrain: Terrain = Terrain.PLAINS
    danger_level: int = 0  # 0-10
    present_npc_ids: list[str] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    structures: list[Structure] = Field(default_factory=list)
    notes: list[PlayerNote] = Field(default_factory=list)
    is_canonical: bool = False  # Authored seed content vs. generated
    last_visited_at_action: int | None = None


# -----------------------------------------------------------------------------
# NPCs and Factions
# -----------------------------------------------------------------------------

class NPCStats(WorldModel):
    health: int = 50
    max_health: int = 50
    strength: int = 5
    defense: int = 5


class ConversationSummary(WorldModel):
    action_number: int
    summary: str
    player_asked: list[str] = Field(default_factory=list)
    npc_revealed: list[str] = Field(default_factory=list)
    attitude_change: int | None = None


class NPC(WorldModel):
    """Non-player character with a location, an attitude, and a memory."""
    id: str
    name: str
    description: str = ""
    physical_description: str = ""
    soul_instruction: str = ""  # Background, goals, voice
    current_location_id: str
    home_location_id: str | None = None

    attitude: int = 0  # -100 to 100, toward the player
    is_companion: bool = False
    is_animal: bool = False
    is_alive: bool = True
    death_description: str | None = None

    inventory: list[Item] = Field(default_factory=list)
    stats: NPCStats = Field(default_factory=NPCStats)
    faction_ids: list[str] = Field(default_factory=list)

    # Narrative memory
    knowledge: list[str] = Field(default_factory=list)
    conversation_history: list[ConversationSummary] = Field(default_factory=list)
    rumors_heard: list[str] = Field(default_factory=list)
    player_name_known: str | None = None  # Name the player gave this NPC

    is_canonical: bool = False


class Faction(WorldModel):
    id: str
    name: str
    description: str = ""
    leader_npc_id: str | None = None
    member_npc_ids: list[str] = Field(default_factory=list)
    player_reputation: int = 0  # -100 to 100
    is_canonical: bool = False


# -----------------------------------------------------------------------------
# Quests
# -----------------------------------------------------------------------------

class Quest(WorldModel):
    id: str
    title: str
    description: str = ""
    giver_npc_id: str
    status: QuestStatus = QuestStatus.ACTIVE
    objectives: list[str] = Field(default_factory=list)
    completed_objectives: list[str] = Field(default_factory=list)
    rewards: str | None = None

    @property
    def all_objectives_done(self) -> bool:
        return all(obj in self.completed_objectives for obj in self.objectives)


# -----------------------------------------------------------------------------
# Crime and Bounties
# -----------------------------------------------------------------------------

class Crime(WorldModel):
    """A crime the player committed. Never deleted."""
    id: str
    type: CrimeType
    description: str
    severity: CrimeSeverity
    was_detected: bool = False
    victim_npc_id: str | None = None
    witness_npc_ids: list[str] = Field(default_factory=list)
    location_id: str
    committed_at_action: int = 0


class Bounty(WorldModel):
    """A price on the player's head, issued by one faction or one NPC."""
    id: str
    faction_id: str | None = None
    npc_id: str | None = None
    amount: int
    reason: str
    crime_ids: list[str] = Field(default_factory=list)
    is_active: bool = True
    issued_at_action: int = 0

    @property
    def issuer_id(self) -> str:
        return self.faction_id or self.npc_id or ""


# -----------------------------------------------------------------------------
# Player
# -----------------------------------------------------------------------------

class Knowledge(WorldModel):
    """What the player explicitly remembers."""
    locations: list[str] = Field(default_factory=list)  # Location ids
    npcs: list[str] = Field(default_factory=list)  # NPC ids
    lore: list[str] = Field(default_factory=list)
    recipes: list[str] = Field(default_factory=list)
    skills: dict[str, str] = Field(default_factory=dict)  # Skill -> level text


class BehaviorPatterns(WorldModel):
    """Running counters of how the player tends to act."""
    combat: int = 0
    diplomacy: int = 0
    exploration: int = 0
    social: int = 0
    stealth: int = 0
    magic: int = 0


class Player(WorldModel):
    """The single player character."""
    name: str | None = None  # May be unknown at first
    physical_description: str = ""
    hidden_backstory: str = ""  # Surfaced through flashbacks
    revealed_backstory: list[str] = Field(default_factory=list)
    origin: str = ""

    current_location_id: str = DEFAULT_START_LOCATION_ID
    home_location_id: str | None = None

    health: int = 100
    max_health: int = 100
    strength: int = 10
    defense: int = 10
    magic: int = 5
    level: int = 1
    experience: int = 0
    gold: int = 0

    inventory: list[Item] = Field(default_factory=list)
    companion_ids: list[str] = Field(default_factory=list)
    knowledge: Knowledge = Field(default_factory=Knowledge)
    behavior_patterns: BehaviorPatterns = Field(default_factory=BehaviorPatterns)

    transformations: list[str] = Field(default_factory=list)  # "werewolf", ...
    curses: list[str] = Field(default_factory=list)
    blessings: list[str] = Field(default_factory=list)

    married_to_npc_id: str | None = None
    children_npc_ids: list[str] = Field(default_factory=list)

    crimes: list[Crime] = Field(default_factory=list)  # Append-only
    bounties: list[Bounty] = Field(default_factory=list)

    def find_item(self, item_id: str) -> Item | None:
        return next((i for i in self.inventory if i.id == item_id), None)

    def find_bounty(self, bounty_id: str) -> Bounty | None:
        return next((b for b in self.bounties if b.id == bounty_id), None)


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------

class WorldEvent(WorldModel):
    """
    A notable occurrence, appended to event_history.

    is_significant marks events important enough to spread as rumors
    or to be remembered as a deed when the hero dies.
    """
    id: str
    action_number: int
    description: str
    type: EventKind = EventKind.OTHER
    involved_npc_ids: list[str] = Field(default_factory=list)
    location_id: str = ""
    is_significant: bool = False


class ItemCache(WorldModel):
    location_id: str
    items: list[Item] = Field(default_factory=list)


class DeceasedHero(WorldModel):
    """A former player character, kept for later narrative callbacks."""
    id: str
    name: str | None = None
    physical_description: str = ""
    origin: str = ""
    died_at_action: int
    death_description: str
    death_location_id: str
    major_deeds: list[str] = Field(default_factory=list)
    items_left_behind: list[ItemCache] = Field(default_factory=list)
    known_by_npc_ids: list[str] = Field(default_factory=list)
    buried_by: str | None = None
    grave_location_id: str | None = None


class CombatState(WorldModel):
    """An active encounter. Present only while the enemy is alive."""
    enemy_npc_id: str
    player_turn: bool = True
    turn_count: int = 1
    companions_in_combat: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Root Aggregate
# -----------------------------------------------------------------------------

class WorldState(WorldModel):
    """
    Complete world snapshot.

    This is the root model that gets serialized to JSON. version and
    action_counter are the two fields a persistence layer treats as a
    schema/version guard.
    """
    version: int = WORLD_VERSION
    schema_version: str = SCHEMA_VERSION
    action_counter: int = 0  # Monotonic version stamp

    player: Player = Field(default_factory=Player)
    locations: dict[str, Location] = Field(default_factory=dict)
    npcs: dict[str, NPC] = Field(default_factory=dict)
    factions: dict[str, Faction] = Field(default_factory=dict)
    quests: dict[str, Quest] = Field(default_factory=dict)

    combat_state: CombatState | None = None
    event_history: list[WorldEvent] = Field(default_factory=list)
    deceased_heroes: list[DeceasedHero] = Field(default_factory=list)
    message_log: list[str] = Field(default_factory=list)

    @property
    def current_location(self) -> Location | None:
        return self.locations.get(self.player.current_location_id)

    def to_document(self) -> dict:
        """Serialize to the persisted snapshot layout."""
        return self.model_dump(mode="json", by_alias=True)
