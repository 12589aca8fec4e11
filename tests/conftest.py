"""
Pytest fixtures for wayfarer tests.

Provides a seeded world, in-memory stores, and deterministic random
sources for isolated testing.
"""

import pytest
from pathlib import Path

# Add repo root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from wayfarer.state import (
    MemoryWorldStore,
    WorldManager,
    create_seed_world,
    reset_event_bus,
)
from wayfarer.state.schema import NPC, NPCStats
from wayfarer.state.schemas.change import StateChange
from wayfarer.systems.mutations.base import relocate_npc


class FixedRandom:
    """Stand-in for random.Random with fixed draws."""

    def __init__(self, roll: float = 0.5, noise: float = 0.0):
        self.roll = roll
        self.noise = noise

    def random(self) -> float:
        return self.roll

    def uniform(self, a: float, b: float) -> float:
        return self.noise


def change(kind: str, **data) -> StateChange:
    """Shorthand for building mutation records in tests."""
    return StateChange(kind=kind, data=data)


def add_npc(state, npc_id: str, location_id: str, **fields):
    """Insert an NPC directly and place it on the location roster."""
    npc = NPC(id=npc_id, name=fields.pop("name", npc_id), current_location_id=location_id, **fields)
    state = state.model_copy(update={"npcs": {**state.npcs, npc_id: npc}})
    return relocate_npc(state, npc_id, location_id)


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Every test gets its own event bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def world():
    """Seed village: square, inn, forge, woods, three NPCs, the watch."""
    return create_seed_world()


@pytest.fixture
def memory_store():
    """In-memory world store for testing."""
    return MemoryWorldStore()


@pytest.fixture
def manager(memory_store):
    """World manager with in-memory store and a fixed random source."""
    mgr = WorldManager(memory_store, rng=FixedRandom())
    mgr.create_world()
    return mgr


@pytest.fixture
def rng():
    """Fixed draws: rolls of 0.5, zero damage noise."""
    return FixedRandom()


@pytest.fixture
def bandit_world(world):
    """Seed world with a weak bandit at the square."""
    return add_npc(
        world,
        "npc_bandit",
        world.player.current_location_id,
        name="Bandit",
        attitude=-40,
        stats=NPCStats(health=20, max_health=20, strength=5, defense=2),
    )
