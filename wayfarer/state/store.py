"""
World storage abstraction.

Separates persistence from the engine for testability. A store holds
named save slots, each one complete WorldState snapshot.
"""

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from .errors import SchemaVersionError
from .schema import WORLD_VERSION, WorldState

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "world-state"


@runtime_checkable
class WorldStore(Protocol):
    """
    Abstract storage interface for world snapshots.

    Implementations:
    - JsonWorldStore: File-based persistence (production)
    - MemoryWorldStore: In-memory storage (testing)
    """

    def save(self, state: WorldState, slot: str = DEFAULT_SLOT) -> None:
        """Persist a snapshot."""
        ...

    def load(self, slot: str = DEFAULT_SLOT) -> WorldState | None:
        """Load a snapshot. Returns None if not found."""
        ...

    def delete(self, slot: str = DEFAULT_SLOT) -> bool:
        """Delete a snapshot. Returns True if deleted."""
        ...

    def list_all(self) -> list[dict]:
        """List saved slots with their version stamps."""
        ...

    def exists(self, slot: str = DEFAULT_SLOT) -> bool:
        """Check if a slot exists."""
        ...


class JsonWorldStore:
    """
    File-based world storage using JSON.

    Features:
    - Automatic backup of the previous save (<slot>.json.bak)
    - camelCase snapshot layout
    """

    def __init__(self, save_dir: Path | str = "saves"):
        self.save_dir = Path(save_dir)
        self.save_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        return self.save_dir / f"{slot}.json"

    def save(self, state: WorldState, slot: str = DEFAULT_SLOT) -> None:
        """Save snapshot to JSON file with backup."""
        world_file = self._path(slot)

        # Backup previous save
        if world_file.exists():
            backup = world_file.with_suffix(".json.bak")
            backup.write_text(world_file.read_text())

        world_file.write_text(state.model_dump_json(indent=2, by_alias=True))

    def load(self, slot: str = DEFAULT_SLOT) -> WorldState | None:
        """
        Load a snapshot. Returns None if missing or unreadable.

        Raises:
            SchemaVersionError: save is newer than this engine, checked
                before validation since a newer layout may not parse
        """
        world_file = self._path(slot)
        if not world_file.exists():
            return None
        try:
            data = json.loads(world_file.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Unreadable save {world_file}: {e}")
            return None

        version = data.get("version") if isinstance(data, dict) else None
        if isinstance(version, int) and version > WORLD_VERSION:
            raise SchemaVersionError(version)

        try:
            return WorldState.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Unreadable save {world_file}: {e}")
            return None

    def delete(self, slot: str = DEFAULT_SLOT) -> bool:
        world_file = self._path(slot)
        if world_file.exists():
            world_file.unlink()
            return True
        return False

    def list_all(self) -> list[dict]:
        """
        List saves sorted by modification time, newest first.

        Returns list of dicts with: slot, action_counter, version
        """
        saves = []
        for f in sorted(
            self.save_dir.glob("*.json"),
            key=lambda x: x.stat().st_mtime,
            reverse=True,
        ):
            if f.name.startswith("."):
                continue  # Config file lives alongside saves
            try:
                data = json.loads(f.read_text())
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict):
                continue
            saves.append({
                "slot": f.stem,
                "action_counter": data.get("actionCounter", 0),
                "version": data.get("version", 0),
            })
        return saves

    def exists(self, slot: str = DEFAULT_SLOT) -> bool:
        return self._path(slot).exists()


class MemoryWorldStore:
    """
    In-memory world storage for testing.

    No file I/O - snapshots are immutable, so they are stored as-is.
    """

    def __init__(self):
        self.worlds: dict[str, WorldState] = {}

    def save(self, state: WorldState, slot: str = DEFAULT_SLOT) -> None:
        self.worlds[slot] = state

    def load(self, slot: str = DEFAULT_SLOT) -> WorldState | None:
        return self.worlds.get(slot)

    def delete(self, slot: str = DEFAULT_SLOT) -> bool:
        if slot in self.worlds:
            del self.worlds[slot]
            return True
        return False

    def list_all(self) -> list[dict]:
        return [
            {"slot": slot, "action_counter": s.action_counter, "version": s.version}
            for slot, s in self.worlds.items()
        ]

    def exists(self, slot: str = DEFAULT_SLOT) -> bool:
        return slot in self.worlds

    def clear(self) -> None:
        """Clear all snapshots (test utility)."""
        self.worlds.clear()
