"""
Payload models, one per mutation kind.

Payloads arrive from a generative process, so every model ignores extra
keys and accepts camelCase or snake_case. A ValidationError raised here is
a shape error: the reducer turns it into a diagnostic and skips the record.
Reference and invariant checks belong to the handlers, not to these models.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from ..schema import (
    ConversationSummary,
    Coordinates,
    CrimeSeverity,
    CrimeType,
    ItemEffect,
    NPCStats,
)


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# -----------------------------------------------------------------------------
# Embedded entity data (partial, defaults filled by handlers)
# -----------------------------------------------------------------------------

class ItemData(Payload):
    id: str | None = None
    name: str | None = None
    description: str = ""
    type: str = "misc"
    effect: ItemEffect | None = None
    value: int = 0
    is_canonical: bool = False


class StructureData(Payload):
    id: str | None = None
    name: str | None = None
    description: str = ""
    type: str = "marker"
    built_at_action: int | None = None
    owner_id: str | None = None


class NpcData(Payload):
    id: str | None = None
    name: str | None = None
    description: str = ""
    physical_description: str = ""
    soul_instruction: str = ""
    current_location_id: str | None = None
    home_location_id: str | None = None
    knowledge: list[str] = Field(default_factory=list)
    conversation_history: list[ConversationSummary] = Field(default_factory=list)
    player_name_known: str | None = None
    attitude: int = 0
    is_companion: bool = False
    is_animal: bool = False
    inventory: list[ItemData] = Field(default_factory=list)
    stats: NPCStats | None = None
    is_alive: bool = True
    death_description: str | None = None
    faction_ids: list[str] = Field(default_factory=list)


class LocationData(Payload):
    id: str | None = None
    name: str | None = None
    description: str = ""
    image_prompt: str | None = None
    coordinates: Coordinates | None = None
    terrain: str = "plains"
    danger_level: int = 0
    present_npc_ids: list[str] = Field(default_factory=list)
    items: list[ItemData] = Field(default_factory=list)
    structures: list[StructureData] = Field(default_factory=list)


class QuestData(Payload):
    id: str | None = None
    title: str | None = None
    description: str = ""
    giver_npc_id: str | None = None
    objectives: list[str] | None = None
    rewards: str | None = None


# -----------------------------------------------------------------------------
# Player
# -----------------------------------------------------------------------------

class MovePlayer(Payload):
    location_id: NonEmptyStr


class AddItem(Payload):
    item: ItemData
    to_location: str | None = None
    to_npc: str | None = None


class RemoveItem(Payload):
    item_id: NonEmptyStr
    from_location: str | None = None
    from_npc: str | None = None


class GoldChange(Payload):
    amount: int


class HealthAmount(Payload):
    amount: int = Field(ge=0)


class AddKnowledge(Payload):
    knowledge_type: str | None = None  # locations | npcs | lore | recipes
    value: str | None = None
    skill: str | None = None
    level: str | None = None


# -----------------------------------------------------------------------------
# NPCs, companions
# -----------------------------------------------------------------------------

class NpcRef(Payload):
    npc_id: NonEmptyStr


class MoveNpc(Payload):
    npc_id: NonEmptyStr
    location_id: NonEmptyStr


class UpdateNpcAttitude(Payload):
    npc_id: NonEmptyStr
    attitude: int | None = None  # Absolute
    change: int | None = None  # Relative


class NpcDeath(Payload):
    npc_id: NonEmptyStr
    death_description: str | None = None


class CreateNpc(Payload):
    npc: NpcData


# -----------------------------------------------------------------------------
# World generation
# -----------------------------------------------------------------------------

class CreateLocation(Payload):
    location: LocationData
    direction: str | None = None
    from_location_id: str | None = None


class UpdateLocation(Payload):
    location_id: NonEmptyStr
    updates: dict[str, Any]


class CreateStructure(Payload):
    structure: StructureData
    location_id: str | None = None


class DestroyStructure(Payload):
    structure_id: NonEmptyStr
    location_id: str | None = None


# -----------------------------------------------------------------------------
# Quests, factions, home
# -----------------------------------------------------------------------------

class AddQuest(QuestData):
    quest: QuestData | None = None  # Full object form; flat fields otherwise


class UpdateQuest(Payload):
    quest_id: NonEmptyStr
    status: str | None = None
    completed_objectives: list[Any] | None = None


class UpdateFaction(Payload):
    faction_id: NonEmptyStr
    reputation: int | None = None
    reputation_change: int | None = None


class ClaimHome(Payload):
    location_id: str | None = None


class ItemRef(Payload):
    item_id: NonEmptyStr


# -----------------------------------------------------------------------------
# Relationships, afflictions, skills, backstory
# -----------------------------------------------------------------------------

class UpdateRelationship(Payload):
    npc_id: NonEmptyStr
    action: NonEmptyStr  # marry | divorce | have_child | adopt | disown | attitude
    child_npc_id: str | None = None
    attitude_change: int | None = None


class PlayerTransform(Payload):
    transformation: NonEmptyStr
    remove: bool = False


class AddAffliction(Payload):
    name: NonEmptyStr
    source: str | None = None


class RemoveAffliction(Payload):
    name: NonEmptyStr


class SkillPractice(Payload):
    skill: NonEmptyStr
    requires_teacher: bool = False
    teacher_npc_id: str | None = None
    target_level: str | None = None


class RevealedSkill(Payload):
    name: str | None = None
    level: str | None = None


class RevealFlashback(Payload):
    flashback_content: NonEmptyStr
    revealed_skill: RevealedSkill | None = None


# -----------------------------------------------------------------------------
# Crime and bounties
# -----------------------------------------------------------------------------

class RecordCrime(Payload):
    type: CrimeType
    description: NonEmptyStr
    severity: CrimeSeverity
    was_detected: bool = False
    victim_npc_id: str | None = None
    witness_npc_ids: list[str] = Field(default_factory=list)
    location_id: str | None = None
    npc_attitude_changes: dict[str, int] = Field(default_factory=dict)
    faction_reputation_changes: dict[str, int] = Field(default_factory=dict)

    @field_validator("type", "severity", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class AddBounty(Payload):
    amount: int = Field(gt=0)
    reason: NonEmptyStr
    faction_id: str | None = None
    npc_id: str | None = None
    crime_ids: list[str] = Field(default_factory=list)


class UpdateBounty(Payload):
    bounty_id: NonEmptyStr
    amount_increase: int | None = Field(default=None, gt=0)
    add_crime_ids: list[str] = Field(default_factory=list)
    is_active: bool | None = None
    reason: NonEmptyStr | None = None


class RemoveBounty(Payload):
    bounty_id: NonEmptyStr
