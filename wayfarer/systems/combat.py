"""
Combat resolver.

A small per-encounter state machine on top of the world snapshot:

    NoCombat --initiate--> EncounterActive --round--> EncounterActive
                                           \\--round--> NoCombat (victory, defeat, fled)

Each round takes one player action (attack, defend, flee, usePotion),
then, unless the fight is already over, the enemy counter-attacks.
Randomness (damage noise, flee roll, gold reward) comes from an injected
rng so rounds are reproducible under a seeded random.Random.

Player death on defeat is not handled here: the round reports
player_defeated and the caller decides whether to archive the hero.
"""

from __future__ import annotations

import logging
import math
import random

from ..state.schema import EventKind, ItemType, WorldState
from ..state.schemas.change import ChangeKind, StateChange
from ..state.schemas.result import ApplyResult, CombatAction, CombatRoundResult
from .mutations.base import append_event, with_player
from .mutations.npcs import kill_npc
from .reducer import apply_changes

logger = logging.getLogger(__name__)


# ─── Configuration ───────────────────────────────────────────

COMBAT_CONFIG = {
    "damage": {
        "defense_factor": 0.5,  # Each point of defense blocks half a point
        "noise": 3,             # Uniform noise in [-noise, +noise]
        "minimum": 1,
    },
    "defend_multiplier": 0.5,   # Incoming damage while defending
    "flee_threshold": 0.5,      # Flee succeeds when roll > threshold
    "rewards": {
        "xp_base": 10,
        "xp_per_max_health": 0.5,
        "xp_per_strength": 2,
        "gold_base": 5,
        "gold_spread": 20,
    },
    "level_up": {
        "xp_per_level": 50,     # Threshold is level * xp_per_level
        "max_health": 10,
        "strength": 2,
        "defense": 1,
    },
}

SLAIN_BY_PLAYER = "Slain in combat by the player"


def calculate_damage(strength: int, defense: int, rng: random.Random | None = None) -> int:
    """max(1, floor(strength - 0.5 * defense + noise))"""
    cfg = COMBAT_CONFIG["damage"]
    noise = (rng or random).uniform(-cfg["noise"], cfg["noise"])
    return max(cfg["minimum"], math.floor(strength - defense * cfg["defense_factor"] + noise))


def experience_for(max_health: int, strength: int) -> int:
    cfg = COMBAT_CONFIG["rewards"]
    return math.floor(cfg["xp_base"] + max_health * cfg["xp_per_max_health"] + strength * cfg["xp_per_strength"])


def gold_for(strength: int, rng: random.Random | None = None) -> int:
    cfg = COMBAT_CONFIG["rewards"]
    return math.floor((rng or random).random() * cfg["gold_spread"] + cfg["gold_base"] + strength)


def initiate_combat(state: WorldState, npc_id: str) -> ApplyResult:
    """Start an encounter through the reducer so validation stays in one place."""
    return apply_changes(state, [StateChange.of(ChangeKind.INITIATE_COMBAT, npcId=npc_id)])


def _level_up(update: dict, messages: list[str]) -> bool:
    cfg = COMBAT_CONFIG["level_up"]
    needed = update["level"] * cfg["xp_per_level"]
    if update["experience"] < needed:
        return False
    update["level"] += 1
    update["experience"] -= needed
    update["max_health"] += cfg["max_health"]
    update["health"] = update["max_health"]
    update["strength"] += cfg["strength"]
    update["defense"] += cfg["defense"]
    messages.append(f"LEVEL UP! You are now level {update['level']}!")
    return True


def resolve_round(
    state: WorldState,
    action: CombatAction | str,
    rng: random.Random | None = None,
) -> CombatRoundResult:
    """
    Resolve one combat round.

    Raises:
        ValueError: action is not one of attack, defend, flee, usePotion
    """
    action = CombatAction(action)
    rng = rng or random.Random()
    messages: list[str] = []

    combat = state.combat_state
    if combat is None:
        return CombatRoundResult(new_state=state, messages=["Not in combat"], combat_ended=True)

    enemy = state.npcs.get(combat.enemy_npc_id)
    if enemy is None or not enemy.is_alive:
        return CombatRoundResult(
            new_state=state.model_copy(update={"combat_state": None}),
            messages=["Enemy is no longer a threat"],
            combat_ended=True,
            player_victory=True,
        )

    player = state.player
    update = {
        "health": player.health,
        "max_health": player.max_health,
        "strength": player.strength,
        "defense": player.defense,
        "level": player.level,
        "experience": player.experience,
        "gold": player.gold,
        "inventory": player.inventory,
    }
    enemy_health = enemy.stats.health
    defending = False

    # Player action
    if action == CombatAction.ATTACK:
        damage = calculate_damage(player.strength, enemy.stats.defense, rng)
        enemy_health = max(0, enemy_health - damage)
        messages.append(f"You deal {damage} damage to {enemy.name}!")

    elif action == CombatAction.DEFEND:
        defending = True
        messages.append("You take a defensive stance!")

    elif action == CombatAction.FLEE:
        if rng.random() > COMBAT_CONFIG["flee_threshold"]:
            messages.append("You managed to escape!")
            logger.info(f"Player fled from {enemy.id}")
            return CombatRoundResult(
                new_state=state.model_copy(update={"combat_state": None}),
                messages=messages,
                combat_ended=True,
                fled=True,
            )
        messages.append("You failed to escape!")

    elif action == CombatAction.USE_POTION:
        potion = next((i for i in player.inventory if i.type == ItemType.POTION), None)
        if potion is None:
            messages.append("You don't have any potions!")
        else:
            inventory = list(player.inventory)
            inventory.remove(potion)
            update["inventory"] = inventory
            if potion.effect is not None:
                heal = max(0, potion.effect.value)
                update["health"] = min(player.max_health, player.health + heal)
                messages.append(f"You used {potion.name} and restored {heal} health!")
            else:
                messages.append(f"You used {potion.name}, but nothing happened.")

    # Victory
    if enemy_health <= 0:
        messages.append(f"You defeated {enemy.name}!")
        xp = experience_for(enemy.stats.max_health, enemy.stats.strength)
        gold = gold_for(enemy.stats.strength, rng)
        messages.append(f"Gained {xp} XP and {gold} gold!")

        update["experience"] += xp
        update["gold"] += gold
        update["behavior_patterns"] = player.behavior_patterns.model_copy(update={
            "combat": player.behavior_patterns.combat + 1,
        })
        leveled_up = _level_up(update, messages)

        new_state = with_player(state, **update)
        new_state = kill_npc(new_state, new_state.npcs[enemy.id], SLAIN_BY_PLAYER)
        new_state = append_event(
            new_state,
            f"Defeated {enemy.name} in combat",
            EventKind.COMBAT,
            involved=[enemy.id],
            significant=True,
        )
        logger.info(f"Player defeated {enemy.id} (+{xp} xp, +{gold} gold)")
        return CombatRoundResult(
            new_state=new_state.model_copy(update={"combat_state": None}),
            messages=messages,
            combat_ended=True,
            player_victory=True,
            experience_gained=xp,
            gold_gained=gold,
            leveled_up=leveled_up,
        )

    # Enemy turn
    multiplier = COMBAT_CONFIG["defend_multiplier"] if defending else 1
    enemy_damage = math.floor(calculate_damage(enemy.stats.strength, update["defense"], rng) * multiplier)
    update["health"] = max(0, update["health"] - enemy_damage)
    messages.append(f"{enemy.name} deals {enemy_damage} damage to you!")

    new_state = with_player(state, **update)
    if enemy_health != enemy.stats.health:
        new_state = new_state.model_copy(update={"npcs": {
            **new_state.npcs,
            enemy.id: enemy.model_copy(update={
                "stats": enemy.stats.model_copy(update={"health": enemy_health}),
            }),
        }})

    if update["health"] <= 0:
        messages.append("You have been defeated...")
        logger.info(f"Player defeated by {enemy.id}")
        return CombatRoundResult(
            new_state=new_state.model_copy(update={"combat_state": None}),
            messages=messages,
            combat_ended=True,
            player_defeated=True,
        )

    return CombatRoundResult(
        new_state=new_state.model_copy(update={
            "combat_state": combat.model_copy(update={"turn_count": combat.turn_count + 1}),
        }),
        messages=messages,
    )
