"""
Tests for WorldManager and the world stores.

Uses MemoryWorldStore for isolation, and tmp_path where file behavior
matters.
"""

import json

import pytest

from conftest import FixedRandom, add_npc, change
from wayfarer.state import (
    DEFAULT_SLOT,
    EventType,
    JsonWorldStore,
    MemoryWorldStore,
    NoWorldLoadedError,
    NotInCombatError,
    SchemaVersionError,
    StaleStateError,
    WorldError,
    WorldManager,
    WorldState,
    create_seed_world,
    get_event_bus,
)
from wayfarer.state.schema import NPCStats, WORLD_VERSION
from wayfarer.systems.mutations.base import with_player


def with_bandit(manager):
    manager.current = add_npc(
        manager.state,
        "npc_bandit",
        "loc_village_square",
        name="Bandit",
        attitude=-40,
        stats=NPCStats(health=20, max_health=20, strength=5, defense=2),
    )


def emitted(event_type):
    return get_event_bus().get_history(event_type)


class TestLifecycle:
    """Creating and loading worlds."""

    def test_create_world(self, manager, memory_store):
        """Creating a world saves it and announces it."""
        assert manager.state.action_counter == 0
        assert memory_store.exists(DEFAULT_SLOT)
        assert len(emitted(EventType.WORLD_CREATED)) == 1

    def test_no_world_loaded(self, memory_store):
        """Operations need a loaded world."""
        mgr = WorldManager(memory_store)

        with pytest.raises(NoWorldLoadedError):
            mgr.state
        with pytest.raises(NoWorldLoadedError):
            mgr.apply_action("Look around", [])

    def test_load_empty_slot(self, memory_store):
        """Loading an empty slot gives None."""
        assert WorldManager(memory_store).load_world() is None

    def test_load_existing(self, manager, memory_store):
        """A saved world loads in a fresh manager."""
        manager.apply_action("Head to the inn", [change("move_player", locationId="loc_crooked_lantern")])

        other = WorldManager(memory_store)
        state = other.load_world()

        assert state.action_counter == 1
        assert state.player.current_location_id == "loc_crooked_lantern"
        assert len(emitted(EventType.WORLD_LOADED)) == 1

    def test_newer_save_is_refused(self, memory_store):
        """Saves from a newer engine are refused."""
        future = create_seed_world().model_copy(update={"version": WORLD_VERSION + 1})
        memory_store.save(future, DEFAULT_SLOT)

        with pytest.raises(SchemaVersionError) as exc:
            WorldManager(memory_store).load_world()

        assert exc.value.found == WORLD_VERSION + 1

    def test_slots_are_independent(self, memory_store):
        """Slots never share state."""
        first = WorldManager(memory_store, slot="first")
        second = WorldManager(memory_store, slot="second")
        first.create_world()
        second.create_world()

        first.apply_action("Wander", [change("move_player", locationId="loc_village_forge")])

        assert second.load_world().action_counter == 0

    def test_custom_start_location(self, memory_store):
        """A custom start location is created for the player."""
        mgr = WorldManager(memory_store, start_location_id="loc_hearth")

        state = mgr.create_world()

        assert state.player.current_location_id == "loc_hearth"
        assert "loc_hearth" in state.locations


class TestApplyAction:
    """apply_action() and optimistic concurrency."""

    def test_commit_increments_counter(self, manager):
        """Each commit bumps the counter and saves."""
        result = manager.apply_action("Earn a coin", [change("gold_change", amount=1)])

        assert result.state.action_counter == 1
        assert manager.state.player.gold == 1
        assert manager.store.load(DEFAULT_SLOT) == manager.state

    def test_empty_batch_still_commits(self, manager):
        """An empty batch still counts as an action."""
        manager.apply_action("Wait", [])

        assert manager.state.action_counter == 1

    def test_stale_counter_is_rejected(self, manager):
        """A stale expected counter is refused without changes."""
        manager.apply_action("Earn a coin", [change("gold_change", amount=1)], expected_counter=0)

        with pytest.raises(StaleStateError) as exc:
            manager.apply_action("Earn another", [change("gold_change", amount=1)], expected_counter=0)

        assert exc.value.expected == 0
        assert exc.value.got == 1
        assert manager.state.player.gold == 1
        assert manager.state.action_counter == 1

    def test_dropped_records_are_reported(self, manager):
        """Skipped records are counted and announced."""
        result = manager.apply_action("Do odd things", [
            change("gold_change", amount=5),
            change("move_player", locationId="loc_moon"),
            change("teleport", to="anywhere"),
        ])

        assert result.applied == 1
        assert result.skipped == 2
        assert manager.state.player.gold == 5
        dropped = emitted(EventType.CHANGES_DROPPED)
        assert len(dropped) == 1
        assert len(dropped[0].data["diagnostics"]) == 2

    def test_scores_behavior(self, manager):
        """The action description feeds behavior scoring."""
        manager.apply_action("Sneak behind the well", [])

        assert manager.state.player.behavior_patterns.stealth == 2

    def test_combat_record_announces_fight(self, manager):
        """An initiate_combat record announces the fight."""
        result = manager.apply_action("Attack the captain", [
            change("initiate_combat", npcId="npc_captain_hale"),
        ])

        assert result.state.combat_state.enemy_npc_id == "npc_captain_hale"
        assert result.state.player.behavior_patterns.combat == 3
        assert len(emitted(EventType.COMBAT_STARTED)) == 1

    def test_commit_event(self, manager):
        """Each commit emits an event with its description."""
        manager.apply_action("Wait", [])

        commits = emitted(EventType.WORLD_COMMITTED)
        assert commits[-1].action_counter == 1
        assert commits[-1].data["description"] == "Wait"


class TestCombat:
    """start_combat() and combat_round()."""

    def test_not_in_combat(self, manager):
        """A round outside combat is an error."""
        with pytest.raises(NotInCombatError):
            manager.combat_round("attack")

    @pytest.mark.parametrize("npc_id", ["npc_ghost", "npc_smith_bram"])
    def test_cannot_fight(self, manager, npc_id):
        """Dead or unknown NPCs can't be fought."""
        manager.apply_action("Mourn", [change("npc_death", npcId="npc_smith_bram")])

        with pytest.raises(WorldError):
            manager.start_combat(npc_id)

        assert manager.state.combat_state is None

    def test_victory(self, manager):
        """Winning ends combat and pays out loot."""
        with_bandit(manager)
        manager.start_combat("npc_bandit")

        for _ in range(3):
            result = manager.combat_round("attack")

        assert result.player_victory
        assert manager.state.action_counter == 4
        assert manager.state.combat_state is None
        assert manager.state.player.gold == 20
        ended = emitted(EventType.COMBAT_ENDED)
        assert len(ended) == 1
        assert ended[0].data["victory"] is True
        assert len(emitted(EventType.COMBAT_ROUND)) == 3

    def test_defeat_archives_the_hero(self, manager):
        """Losing archives the hero and starts a fresh one."""
        manager.current = with_player(manager.state, name="Aria", health=1)
        manager.start_combat("npc_captain_hale")

        result = manager.combat_round("attack")

        assert result.player_defeated
        state = manager.state
        hero = state.deceased_heroes[0]
        assert hero.name == "Aria"
        assert hero.death_description == "Fell in combat against Captain Hale"
        assert state.player.name is None
        assert state.player.health == 100
        assert state.combat_state is None
        died = emitted(EventType.PLAYER_DIED)
        assert died[0].data["killer"] == "npc_captain_hale"

    def test_round_honors_expected_counter(self, manager):
        """Combat rounds check the expected counter."""
        with_bandit(manager)
        manager.start_combat("npc_bandit")

        with pytest.raises(StaleStateError):
            manager.combat_round("attack", expected_counter=0)

    def test_successful_flee(self, memory_store):
        """A good roll lets the player flee."""
        mgr = WorldManager(memory_store, rng=FixedRandom(roll=0.9))
        mgr.create_world()
        mgr.start_combat("npc_captain_hale")

        result = mgr.combat_round("flee")

        assert result.fled
        assert mgr.state.combat_state is None
        assert emitted(EventType.COMBAT_ENDED)[0].data["fled"] is True


class TestOtherActions:
    """Death, flashbacks, crimes."""

    def test_player_death(self, manager):
        """Death archives the hero and clears the inventory."""
        manager.apply_action("Pick up a stone", [change("add_item", item={"name": "Stone"})])

        state = manager.player_death("choked on a stone")

        assert state.deceased_heroes[0].death_description == "choked on a stone"
        assert state.player.inventory == []
        assert len(emitted(EventType.PLAYER_DIED)) == 1

    def test_reveal_flashback(self, manager):
        """A flashback reveals backstory and a skill."""
        state = manager.reveal_flashback("A ship in flames.", "Sailing", "adept", expected_counter=0)

        assert state.action_counter == 1
        assert state.player.revealed_backstory == ["A ship in flames."]
        assert state.player.knowledge.skills["Sailing"] == "adept"

    def test_record_crime_fills_consequences(self, manager):
        """record_crime fills in default consequences."""
        result = manager.record_crime("Steal the tip jar", {
            "type": "theft",
            "description": "Emptied the tip jar",
            "severity": "minor",
            "wasDetected": True,
            "victimNpcId": "npc_innkeeper_mora",
        })

        assert result.ok
        assert manager.state.npcs["npc_innkeeper_mora"].attitude == 10
        assert manager.state.player.behavior_patterns.stealth == 2
        assert "remembers" in manager.refusal_reason("npc_innkeeper_mora")


class TestQueries:
    """Read-only queries on the loaded world."""

    def test_knows(self, manager):
        """knows checks names the player has met."""
        assert manager.knows("Captain Hale")
        assert not manager.knows("Bram")

    def test_wanted_status(self, manager):
        """wanted_status reflects bounties."""
        manager.apply_action("Anger the watch", [
            change("add_bounty", amount=30, reason="Brawling", factionId="faction_village_watch"),
        ])

        status = manager.wanted_status()

        assert status.is_wanted
        assert status.total_bounty_amount == 30

    def test_dominant_patterns(self, manager):
        """Repeated actions become dominant patterns."""
        for _ in range(3):
            manager.apply_action("Sneak about", [])

        assert manager.dominant_patterns() == ["stealth"]

    def test_audit(self, manager):
        """A fresh world audits clean."""
        assert manager.audit() == []


class TestJsonWorldStore:
    """File-backed store."""

    def test_round_trip(self, tmp_path):
        """A saved world loads back equal."""
        store = JsonWorldStore(tmp_path)
        state = create_seed_world()

        store.save(state)

        assert store.exists()
        assert store.load() == state

    def test_camel_case_on_disk(self, tmp_path):
        """Saves use camelCase keys."""
        store = JsonWorldStore(tmp_path)
        store.save(create_seed_world())

        text = (tmp_path / f"{DEFAULT_SLOT}.json").read_text()

        assert '"actionCounter"' in text
        assert '"currentLocationId"' in text
        assert "action_counter" not in text

    def test_backup_on_overwrite(self, tmp_path):
        """Overwriting keeps the previous save as a backup."""
        store = JsonWorldStore(tmp_path)
        first = create_seed_world()
        store.save(first)
        store.save(first.model_copy(update={"action_counter": 1}))

        backup = tmp_path / f"{DEFAULT_SLOT}.json.bak"
        assert backup.exists()
        assert WorldState.model_validate_json(backup.read_text()).action_counter == 0
        assert store.load().action_counter == 1

    def test_missing_and_corrupt(self, tmp_path):
        """Missing and corrupt saves load as None."""
        store = JsonWorldStore(tmp_path)

        assert store.load("nothing") is None

        (tmp_path / "broken.json").write_text("{not json")
        assert store.load("broken") is None

    def test_newer_save_is_refused_before_validation(self, tmp_path):
        """A save from a newer engine raises even when its layout no longer parses."""
        (tmp_path / f"{DEFAULT_SLOT}.json").write_text(json.dumps({
            "version": WORLD_VERSION + 1,
            "actionCounter": 3,
            "hero": {"renamed": True},
        }))

        with pytest.raises(SchemaVersionError) as exc:
            JsonWorldStore(tmp_path).load()
        assert exc.value.found == WORLD_VERSION + 1

        with pytest.raises(SchemaVersionError):
            WorldManager(tmp_path).load_world()

    def test_invalid_current_save_is_unreadable(self, tmp_path):
        """A current-version save that fails validation loads as nothing."""
        (tmp_path / f"{DEFAULT_SLOT}.json").write_text(json.dumps({"version": WORLD_VERSION, "player": 5}))

        assert JsonWorldStore(tmp_path).load() is None

    def test_list_and_delete(self, tmp_path):
        """Slots can be listed and deleted, skipping config."""
        store = JsonWorldStore(tmp_path)
        store.save(create_seed_world(), "alpha")
        (tmp_path / ".wayfarer_config.json").write_text("{}")

        listed = store.list_all()

        assert [s["slot"] for s in listed] == ["alpha"]
        assert listed[0]["version"] == WORLD_VERSION
        assert store.delete("alpha")
        assert not store.delete("alpha")
        assert not store.exists("alpha")

    def test_manager_accepts_a_directory(self, tmp_path):
        """A manager can be built from a save directory."""
        mgr = WorldManager(tmp_path / "saves")
        mgr.create_world()
        mgr.apply_action("Wait", [])

        reloaded = WorldManager(str(tmp_path / "saves"))

        assert reloaded.load_world().action_counter == 1


class TestMemoryWorldStore:
    """In-memory store."""

    def test_save_load_delete(self, memory_store):
        """Memory slots save, list, load and delete."""
        state = create_seed_world()
        memory_store.save(state, "a")

        assert memory_store.load("a") is state
        assert memory_store.list_all() == [{"slot": "a", "action_counter": 0, "version": WORLD_VERSION}]
        assert memory_store.delete("a")
        assert memory_store.load("a") is None

    def test_clear(self, memory_store):
        """Clearing removes every slot."""
        memory_store.save(create_seed_world(), "a")
        memory_store.clear()

        assert not memory_store.exists("a")
