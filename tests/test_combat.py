"""
Tests for the combat resolver.

Rounds run against FixedRandom so damage is exact: with zero noise the
player (str 10) hits the bandit (def 2) for 9, and the bandit (str 5)
hits the player (def 10) for the minimum of 1.
"""

import pytest

from conftest import FixedRandom, change
from wayfarer.state.schema import CombatState, ItemType
from wayfarer.state.schemas.result import CombatAction, DiagnosticCategory
from wayfarer.systems.combat import (
    calculate_damage,
    experience_for,
    gold_for,
    initiate_combat,
    resolve_round,
)
from wayfarer.systems.mutations.base import with_player
from wayfarer.systems.reducer import apply_changes


@pytest.fixture
def fight(bandit_world):
    """Encounter with the bandit already under way."""
    result = initiate_combat(bandit_world, "npc_bandit")
    assert result.ok
    return result.state


def give_potion(state, heal=25):
    return apply_changes(state, [
        change("add_item", item={
            "id": "item_tonic",
            "name": "Tonic",
            "type": "potion",
            "effect": {"stat": "health", "value": heal},
        }),
    ]).state


class TestFormulas:
    """Damage and reward formulas."""

    def test_damage(self):
        """Damage is strength minus half defense plus noise."""
        assert calculate_damage(10, 2, FixedRandom(noise=0.0)) == 9
        assert calculate_damage(10, 2, FixedRandom(noise=2.9)) == 11
        assert calculate_damage(10, 2, FixedRandom(noise=-0.5)) == 8

    @pytest.mark.parametrize("strength,defense,noise", [(1, 100, -3), (0, 0, -3), (5, 10, 0)])
    def test_damage_floor(self, strength, defense, noise):
        """Every hit deals at least one point."""
        assert calculate_damage(strength, defense, FixedRandom(noise=noise)) == 1

    def test_experience(self):
        """Experience grows with enemy health and strength."""
        assert experience_for(20, 5) == 30
        assert experience_for(25, 3) == 28

    def test_gold(self):
        """Gold scales with enemy strength and the roll."""
        assert gold_for(5, FixedRandom(roll=0.5)) == 20
        assert gold_for(0, FixedRandom(roll=0.0)) == 5


class TestInitiate:
    """Starting an encounter."""

    def test_sets_combat_state(self, fight):
        """Starting a fight records the enemy and logs it."""
        combat = fight.combat_state

        assert combat.enemy_npc_id == "npc_bandit"
        assert combat.player_turn
        assert combat.turn_count == 1
        assert fight.event_history[-1].type == "combat"

    def test_snapshots_present_companions(self, bandit_world):
        """Companions present at the start join the fight."""
        state = apply_changes(bandit_world, [
            change("add_companion", npcId="npc_captain_hale"),
        ]).state

        result = initiate_combat(state, "npc_bandit")

        assert result.state.combat_state.companions_in_combat == ["npc_captain_hale"]

    def test_dead_npc(self, bandit_world):
        """Dead NPCs can't be fought."""
        state = apply_changes(bandit_world, [change("npc_death", npcId="npc_bandit")]).state

        result = initiate_combat(state, "npc_bandit")

        assert not result.ok
        assert result.diagnostics[0].category == DiagnosticCategory.INVARIANT
        assert result.state.combat_state is None

    def test_already_fighting(self, fight):
        """A second fight can't start mid-combat."""
        result = initiate_combat(fight, "npc_captain_hale")

        assert result.diagnostics[0].category == DiagnosticCategory.INVARIANT
        assert result.state.combat_state.enemy_npc_id == "npc_bandit"

    def test_unknown_npc(self, world):
        """Fighting an unknown NPC is a reference error."""
        result = initiate_combat(world, "npc_ghost")

        assert result.diagnostics[0].category == DiagnosticCategory.REFERENCE


class TestAttack:
    """Attack rounds."""

    def test_bandit_falls_in_three_attacks(self, fight):
        """Three attacks kill the bandit and pay out."""
        rng = FixedRandom()
        state = fight

        first = resolve_round(state, "attack", rng)
        assert not first.combat_ended
        assert first.new_state.npcs["npc_bandit"].stats.health == 11
        assert first.new_state.player.health == 99
        assert first.new_state.combat_state.turn_count == 2

        second = resolve_round(first.new_state, "attack", rng)
        assert second.new_state.npcs["npc_bandit"].stats.health == 2

        third = resolve_round(second.new_state, CombatAction.ATTACK, rng)

        assert third.combat_ended
        assert third.player_victory
        assert third.experience_gained == 30
        assert third.gold_gained == 20
        final = third.new_state
        assert final.combat_state is None
        assert final.player.experience == 30
        assert final.player.gold == 20
        assert final.player.health == 98
        assert not final.npcs["npc_bandit"].is_alive
        assert final.npcs["npc_bandit"].stats.health == 0
        assert final.player.behavior_patterns.combat == 1
        assert final.event_history[-1].is_significant

    def test_input_state_is_untouched(self, fight):
        """Resolving a round leaves its input alone."""
        resolve_round(fight, "attack", FixedRandom())

        assert fight.npcs["npc_bandit"].stats.health == 20
        assert fight.player.health == 100
        assert fight.combat_state.turn_count == 1

    def test_level_up(self, fight):
        """Enough experience levels the player up."""
        state = with_player(fight, experience=40)
        state = state.model_copy(update={"npcs": {
            **state.npcs,
            "npc_bandit": state.npcs["npc_bandit"].model_copy(update={
                "stats": state.npcs["npc_bandit"].stats.model_copy(update={"health": 1}),
            }),
        }})

        result = resolve_round(state, "attack", FixedRandom())

        player = result.new_state.player
        assert result.leveled_up
        assert player.level == 2
        assert player.experience == 20
        assert player.max_health == 110
        assert player.health == 110
        assert player.strength == 12
        assert player.defense == 11
        assert any("LEVEL UP" in m for m in result.messages)

    def test_player_defeat(self, fight):
        """A player at zero health is defeated."""
        state = with_player(fight, health=1)

        result = resolve_round(state, "attack", FixedRandom())

        assert result.combat_ended
        assert result.player_defeated
        assert result.new_state.player.health == 0
        assert result.new_state.combat_state is None


class TestDefend:
    """Defending halves the counter-attack."""

    def test_halves_incoming_damage(self, world):
        """Defending halves the counter-attack."""
        state = initiate_combat(world, "npc_captain_hale").state

        open_guard = resolve_round(state, "attack", FixedRandom())
        guarded = resolve_round(state, "defend", FixedRandom())

        assert 100 - open_guard.new_state.player.health == 7
        assert 100 - guarded.new_state.player.health == 3

    def test_minimum_hit_can_be_fully_blocked(self, fight):
        """A one-point hit is blocked entirely."""
        result = resolve_round(fight, "defend", FixedRandom())

        assert result.new_state.player.health == 100
        assert result.new_state.npcs["npc_bandit"].stats.health == 20


class TestFlee:
    """Fleeing succeeds on a roll strictly above one half."""

    def test_success(self, fight):
        """A high roll escapes unharmed."""
        result = resolve_round(fight, "flee", FixedRandom(roll=0.9))

        assert result.fled
        assert result.combat_ended
        assert result.new_state.combat_state is None
        assert result.new_state.npcs["npc_bandit"].is_alive
        assert result.new_state.player.health == 100

    def test_failure_costs_a_round(self, fight):
        """A failed escape takes a hit and a turn."""
        result = resolve_round(fight, "flee", FixedRandom(roll=0.5))

        assert not result.fled
        assert not result.combat_ended
        assert result.new_state.combat_state.turn_count == fight.combat_state.turn_count + 1
        assert result.new_state.player.health == 99
        assert result.new_state.npcs["npc_bandit"].is_alive


class TestUsePotion:
    """usePotion."""

    def test_heals_and_consumes(self, fight):
        """A potion heals and is used up."""
        state = with_player(give_potion(fight), health=50)

        result = resolve_round(state, "usePotion", FixedRandom())

        player = result.new_state.player
        assert player.health == 74
        assert not any(i.type == ItemType.POTION for i in player.inventory)

    def test_heal_is_capped(self, fight):
        """Potion healing stops at max health."""
        state = with_player(give_potion(fight, heal=500), health=90)

        result = resolve_round(state, "usePotion", FixedRandom())

        assert result.new_state.player.health == 99

    def test_no_potion_wastes_the_round(self, fight):
        """Reaching for a missing potion wastes the turn."""
        result = resolve_round(fight, "usePotion", FixedRandom())

        assert any("don't have any potions" in m for m in result.messages)
        assert result.new_state.player.health == 99
        assert result.new_state.combat_state.turn_count == 2


class TestRoundEdges:
    """Inputs outside a normal encounter."""

    def test_invalid_action(self, fight):
        """Unknown combat actions raise."""
        with pytest.raises(ValueError):
            resolve_round(fight, "dance", FixedRandom())

    def test_not_in_combat(self, world):
        """A round outside combat ends at once."""
        result = resolve_round(world, "attack", FixedRandom())

        assert result.combat_ended
        assert result.messages == ["Not in combat"]
        assert result.new_state == world

    def test_enemy_already_dead(self, fight):
        """A dead enemy ends the fight."""
        state = fight.model_copy(update={"npcs": {
            **fight.npcs,
            "npc_bandit": fight.npcs["npc_bandit"].model_copy(update={"is_alive": False}),
        }})

        result = resolve_round(state, "attack", FixedRandom())

        assert result.combat_ended
        assert result.new_state.combat_state is None

    def test_combat_state_round_trips_through_json(self, fight):
        """Combat state dumps with camelCase keys and loads back."""
        document = fight.combat_state.model_dump(by_alias=True)

        assert CombatState.model_validate(document) == fight.combat_state
        assert "enemyNpcId" in document
