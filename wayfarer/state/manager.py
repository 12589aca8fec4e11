"""
World session management.

WorldManager is the single writer for a saved world. It owns the current
snapshot, runs engine calls against it, and commits the results:

    check expected_counter -> run engine -> action_counter += 1 -> save -> emit

The engine functions are pure; everything stateful (the store, the event
bus, the random source) lives here.
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any, Iterable, Mapping

from .errors import (
    NoWorldLoadedError,
    NotInCombatError,
    SchemaVersionError,
    StaleStateError,
    WorldError,
)
from .event_bus import EventType, get_event_bus
from .schema import DEFAULT_START_LOCATION_ID, WORLD_VERSION, WorldState
from .schemas.change import ChangeKind, StateChange
from .schemas.result import ApplyResult, CombatAction, CombatRoundResult
from .store import DEFAULT_SLOT, JsonWorldStore, WorldStore
from .templates import create_seed_world

logger = logging.getLogger(__name__)


class WorldManager:
    """
    Manages one world save and its domain operations.

    Storage is delegated to a WorldStore implementation:
    - JsonWorldStore for production (file-based)
    - MemoryWorldStore for testing (in-memory)
    """

    def __init__(
        self,
        store: WorldStore | Path | str = "saves",
        slot: str = DEFAULT_SLOT,
        start_location_id: str = DEFAULT_START_LOCATION_ID,
        rng: random.Random | None = None,
    ):
        """
        Args:
            store: WorldStore instance, or a directory for JsonWorldStore
            slot: Save slot this manager reads and writes
            start_location_id: Where new and reborn heroes start
            rng: Random source for combat and refusal rolls
        """
        if isinstance(store, (Path, str)):
            store = JsonWorldStore(store)
        self.store = store
        self.slot = slot
        self.start_location_id = start_location_id
        self.rng = rng or random.Random()
        self.current: WorldState | None = None
        self._bus = get_event_bus()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> WorldState:
        if self.current is None:
            raise NoWorldLoadedError("No world loaded. Create or load one first.")
        return self.current

    def create_world(self) -> WorldState:
        """Seed a new world into the slot, replacing any existing save."""
        self.current = create_seed_world(self.start_location_id)
        self.store.save(self.current, self.slot)
        logger.info(f"Created world in slot {self.slot}")
        self._bus.emit(EventType.WORLD_CREATED, action_counter=0, slot=self.slot)
        return self.current

    def load_world(self) -> WorldState | None:
        """
        Load the slot. Returns None if it is empty.

        Raises:
            SchemaVersionError: save is newer than this engine
        """
        state = self.store.load(self.slot)
        if state is None:
            return None
        if state.version > WORLD_VERSION:
            raise SchemaVersionError(state.version)
        self.current = state
        logger.info(f"Loaded slot {self.slot} at action {state.action_counter}")
        self._bus.emit(EventType.WORLD_LOADED, action_counter=state.action_counter, slot=self.slot)
        return state

    def _check_version(self, expected_counter: int | None) -> WorldState:
        state = self.state
        if expected_counter is not None and expected_counter != state.action_counter:
            logger.warning(
                f"Rejected stale request: expected {expected_counter}, "
                f"current {state.action_counter}"
            )
            raise StaleStateError(expected_counter, state.action_counter)
        return state

    def _commit(self, state: WorldState, **data: Any) -> WorldState:
        """Stamp, save, and announce a new snapshot."""
        state = state.model_copy(update={"action_counter": state.action_counter + 1})
        self.store.save(state, self.slot)
        self.current = state
        logger.info(f"Committed action {state.action_counter}")
        self._bus.emit(EventType.WORLD_COMMITTED, action_counter=state.action_counter, **data)
        return state

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def apply_action(
        self,
        description: str,
        changes: Iterable[StateChange | Mapping[str, Any]],
        expected_counter: int | None = None,
    ) -> ApplyResult:
        """
        Apply one resolved player action and its mutation batch.

        Runs the reducer, scores behavior from the description and batch,
        then commits. Dropped records are reported in the result, never raised.

        Raises:
            StaleStateError: expected_counter is behind the current snapshot
        """
        from ..systems.behavior import update_behavior_patterns
        from ..systems.reducer import apply_changes

        state = self._check_version(expected_counter)
        batch = list(changes)
        was_fighting = state.combat_state is not None

        result = apply_changes(state, batch)
        scored = update_behavior_patterns(result.state, description, batch)
        committed = self._commit(scored, description=description, applied=result.applied)

        if result.skipped:
            self._bus.emit(
                EventType.CHANGES_DROPPED,
                action_counter=committed.action_counter,
                diagnostics=[str(d) for d in result.diagnostics if d.rejected],
            )
        if not was_fighting and committed.combat_state is not None:
            self._bus.emit(
                EventType.COMBAT_STARTED,
                action_counter=committed.action_counter,
                enemy=committed.combat_state.enemy_npc_id,
            )
        return result.model_copy(update={"state": committed})

    def start_combat(self, npc_id: str, expected_counter: int | None = None) -> WorldState:
        """
        Begin an encounter with a living NPC.

        Raises:
            StaleStateError: expected_counter is behind the current snapshot
            WorldError: the NPC cannot be fought
        """
        from ..systems.combat import initiate_combat

        state = self._check_version(expected_counter)
        result = initiate_combat(state, npc_id)
        if result.skipped:
            raise WorldError(result.diagnostics[0].message)

        committed = self._commit(result.state)
        self._bus.emit(
            EventType.COMBAT_STARTED, action_counter=committed.action_counter, enemy=npc_id
        )
        return committed

    def combat_round(
        self,
        action: CombatAction | str,
        expected_counter: int | None = None,
    ) -> CombatRoundResult:
        """
        Resolve one combat round. A defeat archives the hero.

        Raises:
            StaleStateError: expected_counter is behind the current snapshot
            NotInCombatError: there is no active encounter
            ValueError: unknown action
        """
        from ..systems.combat import resolve_round
        from ..systems.legacy import archive_player_death

        state = self._check_version(expected_counter)
        if state.combat_state is None:
            raise NotInCombatError("Not in combat")

        enemy_id = state.combat_state.enemy_npc_id
        enemy = state.npcs.get(enemy_id)
        result = resolve_round(state, action, self.rng)

        new_state = result.new_state
        if result.player_defeated:
            enemy_name = enemy.name if enemy else enemy_id
            new_state = archive_player_death(
                new_state,
                f"Fell in combat against {enemy_name}",
                self.start_location_id,
            )

        committed = self._commit(new_state, combat_action=CombatAction(action).value)
        counter = committed.action_counter
        self._bus.emit(EventType.COMBAT_ROUND, action_counter=counter, messages=result.messages)
        if result.combat_ended:
            self._bus.emit(
                EventType.COMBAT_ENDED,
                action_counter=counter,
                enemy=enemy_id,
                victory=result.player_victory,
                fled=result.fled,
            )
        if result.leveled_up:
            self._bus.emit(EventType.LEVEL_UP, action_counter=counter, level=committed.player.level)
        if result.player_defeated:
            self._bus.emit(EventType.PLAYER_DIED, action_counter=counter, killer=enemy_id)

        return result.model_copy(update={"new_state": committed})

    def player_death(
        self,
        description: str | None = None,
        expected_counter: int | None = None,
    ) -> WorldState:
        """Archive the current hero outside combat and start a fresh one."""
        from ..systems.legacy import archive_player_death

        state = self._check_version(expected_counter)
        committed = self._commit(
            archive_player_death(state, description, self.start_location_id)
        )
        self._bus.emit(EventType.PLAYER_DIED, action_counter=committed.action_counter)
        return committed

    def reveal_flashback(
        self,
        content: str,
        skill_name: str | None = None,
        skill_level: str | None = None,
        expected_counter: int | None = None,
    ) -> WorldState:
        """Commit a flashback surfaced by the narrative layer."""
        from ..systems.mutations.flashback import process_flashback

        state = self._check_version(expected_counter)
        return self._commit(process_flashback(state, content, skill_name, skill_level))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def knows(self, reference: str) -> bool:
        from ..systems.knowledge import knows
        return knows(self.state, reference)

    def wanted_status(self):
        from ..systems.ledger import wanted_status
        return wanted_status(self.state)

    def refusal_reason(self, npc_id: str) -> str | None:
        from ..systems.ledger import refusal_reason
        return refusal_reason(self.state, npc_id, self.rng)

    def dominant_patterns(self) -> list[str]:
        from ..systems.behavior import dominant_patterns
        return dominant_patterns(self.state.player.behavior_patterns)

    def audit(self) -> list:
        from ..systems.invariants import audit_world
        return audit_world(self.state)

    def record_crime(
        self,
        description: str,
        crime: Mapping[str, Any],
        expected_counter: int | None = None,
    ) -> ApplyResult:
        """Record a crime with default consequences filled in where none were given."""
        from ..systems.ledger import derive_crime_consequences

        change = derive_crime_consequences(
            self.state, StateChange(kind=ChangeKind.RECORD_CRIME.value, data=dict(crime))
        )
        return self.apply_action(description, [change], expected_counter)
