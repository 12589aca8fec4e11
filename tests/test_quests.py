"""Tests for quests, faction reputation, and home ownership."""

import pytest

from conftest import change
from wayfarer.state.schema import QuestStatus
from wayfarer.state.schemas.result import DiagnosticCategory
from wayfarer.systems.invariants import audit_world
from wayfarer.systems.reducer import apply_changes


@pytest.fixture
def quest_world(world):
    """World with one active two-objective quest."""
    result = apply_changes(world, [
        change(
            "add_quest",
            id="quest_wolves",
            title="Wolves in the Woods",
            giverNpcId="npc_captain_hale",
            objectives=["Find the den", "Drive off the pack"],
            rewards="50 gold",
        ),
    ])
    assert result.ok
    return result.state


class TestAddQuest:
    """add_quest."""

    def test_flat_form(self, quest_world):
        """A quest given as flat fields starts active and is logged."""
        quest = quest_world.quests["quest_wolves"]

        assert quest.status == QuestStatus.ACTIVE
        assert quest.objectives == ["Find the den", "Drive off the pack"]
        assert quest.completed_objectives == []
        assert quest_world.event_history[-1].type == "quest"

    def test_object_form(self, world):
        """A quest can also arrive wrapped in a quest object."""
        result = apply_changes(world, [
            change("add_quest", quest={
                "id": "quest_ale",
                "title": "Fetch Ale",
                "giverNpcId": "npc_innkeeper_mora",
                "objectives": ["Buy a cask"],
            }),
        ])

        assert "quest_ale" in result.state.quests

    @pytest.mark.parametrize("data,field", [
        ({"giverNpcId": "npc_captain_hale", "objectives": ["a"]}, "title"),
        ({"title": "T", "objectives": ["a"]}, "giverNpcId"),
        ({"title": "T", "giverNpcId": "npc_captain_hale", "objectives": []}, "objectives"),
        ({"title": "T", "giverNpcId": "npc_captain_hale"}, "objectives"),
    ])
    def test_required_fields(self, world, data, field):
        """Title, giver and objectives are required."""
        result = apply_changes(world, [change("add_quest", **data)])

        assert result.diagnostics[0].category == DiagnosticCategory.SHAPE
        assert result.diagnostics[0].field == field
        assert result.state.quests == {}

    def test_duplicate_id_is_rejected(self, quest_world):
        """Adding a quest with a taken id is refused."""
        result = apply_changes(quest_world, [
            change("add_quest", id="quest_wolves", title="Again", giverNpcId="npc_captain_hale", objectives=["x"]),
        ])

        assert result.diagnostics[0].category == DiagnosticCategory.INVARIANT
        assert result.state.quests["quest_wolves"].title == "Wolves in the Woods"


class TestUpdateQuest:
    """update_quest merges progress and auto-completes."""

    def test_partial_progress(self, quest_world):
        """Completing some objectives keeps the quest active."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves", completedObjectives=["Find the den"]),
        ])

        quest = result.state.quests["quest_wolves"]
        assert quest.completed_objectives == ["Find the den"]
        assert quest.status == QuestStatus.ACTIVE

    def test_completing_all_objectives_completes_quest(self, quest_world):
        """Completing every objective completes the quest."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves",
                   completedObjectives=["Find the den", "Drive off the pack"]),
        ])

        quest = result.state.quests["quest_wolves"]
        assert quest.status == QuestStatus.COMPLETED
        assert result.state.event_history[-1].is_significant

    def test_progress_accumulates_across_updates(self, quest_world):
        """Progress from separate updates adds up."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves", completedObjectives=["Drive off the pack"]),
            change("update_quest", questId="quest_wolves", completedObjectives=["Find the den"]),
        ])

        assert result.state.quests["quest_wolves"].status == QuestStatus.COMPLETED

    def test_completed_never_regresses(self, quest_world):
        """A completed quest stays completed."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves",
                   completedObjectives=["Find the den", "Drive off the pack"]),
            change("update_quest", questId="quest_wolves", completedObjectives=["Find the den"]),
            change("update_quest", questId="quest_wolves", completedObjectives=[]),
            change("update_quest", questId="quest_wolves", status="active"),
        ])

        assert result.state.quests["quest_wolves"].status == QuestStatus.COMPLETED

    def test_duplicates_and_strangers_are_dropped(self, quest_world):
        """Repeated and unknown objectives are dropped."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves",
                   completedObjectives=["Find the den", "Find the den", "Slay a dragon"]),
        ])

        quest = result.state.quests["quest_wolves"]
        assert quest.completed_objectives == ["Find the den"]
        assert audit_world(result.state) == []

    def test_explicit_failure(self, quest_world):
        """A quest can be failed explicitly."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves", status="FAILED"),
        ])

        assert result.state.quests["quest_wolves"].status == QuestStatus.FAILED

    def test_invalid_status_is_ignored(self, quest_world):
        """An unknown status is ignored with a notice."""
        result = apply_changes(quest_world, [
            change("update_quest", questId="quest_wolves", status="abandoned"),
        ])

        assert result.applied == 1
        assert result.state.quests["quest_wolves"].status == QuestStatus.ACTIVE
        assert result.diagnostics[0].category == DiagnosticCategory.NOTICE

    def test_unknown_quest(self, world):
        """Updating a missing quest is a reference error."""
        result = apply_changes(world, [change("update_quest", questId="quest_none", status="failed")])

        assert result.diagnostics[0].category == DiagnosticCategory.REFERENCE


class TestFactions:
    """update_faction mirrors NPC attitude."""

    @pytest.mark.parametrize("value,expected", [(500, 100), (-500, -100), (33, 33)])
    def test_absolute_is_clamped(self, world, value, expected):
        """Absolute reputation is clamped."""
        result = apply_changes(world, [
            change("update_faction", factionId="faction_village_watch", reputation=value),
        ])

        assert result.state.factions["faction_village_watch"].player_reputation == expected

    def test_relative(self, world):
        """Reputation deltas accumulate and clamp."""
        result = apply_changes(world, [
            change("update_faction", factionId="faction_village_watch", reputationChange=-30),
            change("update_faction", factionId="faction_village_watch", reputationChange=-90),
        ])

        assert result.state.factions["faction_village_watch"].player_reputation == -100

    def test_unknown_faction(self, world):
        """Updating a missing faction is a reference error."""
        result = apply_changes(world, [
            change("update_faction", factionId="faction_none", reputation=5),
        ])

        assert result.diagnostics[0].category == DiagnosticCategory.REFERENCE


class TestHome:
    """claim_home, store_item_at_home, retrieve_item_from_home."""

    def test_claim_defaults_to_current_location(self, world):
        """Claiming a home defaults to where the player stands."""
        result = apply_changes(world, [change("claim_home")])

        assert result.state.player.home_location_id == "loc_village_square"

    def test_store_requires_home(self, world):
        """Storing an item needs a home."""
        result = apply_changes(world, [
            change("add_item", item={"id": "item_rope", "name": "Rope"}),
            change("store_item_at_home", itemId="item_rope"),
        ])

        assert result.diagnostics[-1].category == DiagnosticCategory.INVARIANT
        assert result.state.player.find_item("item_rope") is not None

    def test_store_works_from_anywhere(self, world):
        """Items can be stored at home from anywhere."""
        result = apply_changes(world, [
            change("claim_home", locationId="loc_crooked_lantern"),
            change("add_item", item={"id": "item_rope", "name": "Rope"}),
            change("store_item_at_home", itemId="item_rope"),
        ])

        state = result.state
        assert state.player.inventory == []
        assert "item_rope" in [i.id for i in state.locations["loc_crooked_lantern"].items]

    def test_retrieve_requires_being_home(self, world):
        """Retrieving an item needs the player at home."""
        result = apply_changes(world, [
            change("claim_home", locationId="loc_crooked_lantern"),
            change("retrieve_item_from_home", itemId="item_healing_draught"),
        ])

        assert result.diagnostics[-1].category == DiagnosticCategory.INVARIANT
        assert result.state.player.inventory == []

    def test_retrieve_at_home(self, world):
        """Retrieving moves the item from home to the player."""
        result = apply_changes(world, [
            change("claim_home", locationId="loc_crooked_lantern"),
            change("move_player", locationId="loc_crooked_lantern"),
            change("retrieve_item_from_home", itemId="item_healing_draught"),
        ])

        state = result.state
        assert [i.id for i in state.player.inventory] == ["item_healing_draught"]
        assert state.locations["loc_crooked_lantern"].items == []

    def test_store_missing_item(self, world):
        """Storing an item the player lacks is refused."""
        result = apply_changes(world, [
            change("claim_home"),
            change("store_item_at_home", itemId="item_nothing"),
        ])

        assert result.diagnostics[-1].category == DiagnosticCategory.INVARIANT
