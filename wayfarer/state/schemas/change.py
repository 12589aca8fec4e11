"""
Mutation records consumed by the reducer.

A StateChange is one tagged request, {kind, data}, produced upstream by
the narrative generator. The kind is kept as a raw string so unknown
tags survive validation and reach the reducer, which reports them instead
of failing the whole batch.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ChangeKind(str, Enum):
    """Every mutation kind the reducer knows how to apply."""
    # Player
    MOVE_PLAYER = "move_player"
    ADD_ITEM = "add_item"
    REMOVE_ITEM = "remove_item"
    GOLD_CHANGE = "gold_change"
    PLAYER_DAMAGE = "player_damage"
    PLAYER_HEAL = "player_heal"
    ADD_KNOWLEDGE = "add_knowledge"

    # NPC lifecycle
    MOVE_NPC = "move_npc"
    UPDATE_NPC_ATTITUDE = "update_npc_attitude"
    NPC_DEATH = "npc_death"
    CREATE_NPC = "create_npc"

    # Companions
    ADD_COMPANION = "add_companion"
    REMOVE_COMPANION = "remove_companion"
    COMPANION_WAIT_AT_HOME = "companion_wait_at_home"
    COMPANION_REJOIN = "companion_rejoin"

    # World generation
    CREATE_LOCATION = "create_location"
    UPDATE_LOCATION = "update_location"
    CREATE_STRUCTURE = "create_structure"
    DESTROY_STRUCTURE = "destroy_structure"

    # Quests and factions
    ADD_QUEST = "add_quest"
    UPDATE_QUEST = "update_quest"
    UPDATE_FACTION = "update_faction"

    # Home
    CLAIM_HOME = "claim_home"
    STORE_ITEM_AT_HOME = "store_item_at_home"
    RETRIEVE_ITEM_FROM_HOME = "retrieve_item_from_home"

    # Relationships, afflictions, skills
    UPDATE_RELATIONSHIP = "update_relationship"
    PLAYER_TRANSFORM = "player_transform"
    ADD_CURSE = "add_curse"
    REMOVE_CURSE = "remove_curse"
    ADD_BLESSING = "add_blessing"
    REMOVE_BLESSING = "remove_blessing"
    SKILL_PRACTICE = "skill_practice"

    # Crime and bounties
    RECORD_CRIME = "record_crime"
    ADD_BOUNTY = "add_bounty"
    UPDATE_BOUNTY = "update_bounty"
    REMOVE_BOUNTY = "remove_bounty"

    # Backstory and combat
    REVEAL_FLASHBACK = "reveal_flashback"
    INITIATE_COMBAT = "initiate_combat"


class StateChange(BaseModel):
    """
    One mutation record.

    The generator historically emitted the tag under "type"; both "kind"
    and "type" are accepted.
    """
    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(validation_alias=AliasChoices("kind", "type"))
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def of(cls, kind: ChangeKind | str, **data: Any) -> "StateChange":
        """Build a change in code: StateChange.of(ChangeKind.GOLD_CHANGE, amount=5)."""
        return cls(kind=kind.value if isinstance(kind, ChangeKind) else kind, data=data)

    @property
    def known_kind(self) -> ChangeKind | None:
        try:
            return ChangeKind(self.kind)
        except ValueError:
            return None
