"""
Handler registry and shared helpers for world mutations.

Every ChangeKind maps to exactly one handler, registered with @handles.
A handler is a pure function:

    handler(state, payload, ctx) -> WorldState

It receives an already-validated payload model, returns a new snapshot
built with model_copy(update=...), and never mutates its input. To skip a
record it calls ctx.reject(...), which unwinds back to the reducer; to
note that part of a payload was ignored it calls ctx.warn(...).

Lists inside models are shared between snapshots after model_copy, so
helpers here always build new lists instead of appending in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, NoReturn

from ...state.schema import (
    NPC,
    EventKind,
    Location,
    Player,
    WorldEvent,
    WorldState,
)
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import Payload
from ...state.schemas.result import Diagnostic, DiagnosticCategory


# ─── Registry ────────────────────────────────────────────────

Handler = Callable[[WorldState, Payload, "MutationContext"], WorldState]


@dataclass(frozen=True)
class Registration:
    kind: ChangeKind
    payload: type[Payload]
    handler: Handler


HANDLERS: dict[ChangeKind, Registration] = {}


def handles(kind: ChangeKind, payload: type[Payload]):
    """Register a handler for one mutation kind."""
    def decorator(func: Handler) -> Handler:
        if kind in HANDLERS:
            raise RuntimeError(f"Duplicate handler for {kind.value}")
        HANDLERS[kind] = Registration(kind=kind, payload=payload, handler=func)
        return func
    return decorator


def missing_handlers() -> list[ChangeKind]:
    """Kinds declared in ChangeKind with no registered handler."""
    return [kind for kind in ChangeKind if kind not in HANDLERS]


# ─── Diagnostics ─────────────────────────────────────────────

class ChangeRejected(Exception):
    """Raised by a handler to skip its record. Never escapes the reducer."""

    def __init__(
        self,
        category: DiagnosticCategory,
        message: str,
        field: str | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.message = message
        self.field = field


@dataclass
class MutationContext:
    """Per-record context handed to a handler."""
    kind: str
    index: int = 0
    notices: list[Diagnostic] = field(default_factory=list)

    def warn(self, message: str, field: str | None = None) -> None:
        self.notices.append(Diagnostic(
            kind=self.kind,
            category=DiagnosticCategory.NOTICE,
            message=message,
            field=field,
            index=self.index,
        ))

    def reject(
        self,
        category: DiagnosticCategory,
        message: str,
        field: str | None = None,
    ) -> NoReturn:
        raise ChangeRejected(category, message, field)

    def require_npc(self, state: WorldState, npc_id: str, field: str = "npcId") -> NPC:
        npc = state.npcs.get(npc_id)
        if npc is None:
            self.reject(DiagnosticCategory.REFERENCE, f"NPC not found: {npc_id}", field)
        return npc

    def require_location(
        self, state: WorldState, location_id: str, field: str = "locationId"
    ) -> Location:
        location = state.locations.get(location_id)
        if location is None:
            self.reject(
                DiagnosticCategory.REFERENCE, f"Location not found: {location_id}", field
            )
        return location

    def violation(self, message: str, field: str | None = None) -> NoReturn:
        self.reject(DiagnosticCategory.INVARIANT, message, field)


# ─── Snapshot helpers ────────────────────────────────────────

def with_player(state: WorldState, **update) -> WorldState:
    return state.model_copy(update={"player": state.player.model_copy(update=update)})


def with_npc(state: WorldState, npc: NPC) -> WorldState:
    return state.model_copy(update={"npcs": {**state.npcs, npc.id: npc}})


def with_location(state: WorldState, location: Location) -> WorldState:
    return state.model_copy(update={"locations": {**state.locations, location.id: location}})


def with_knowledge(player: Player, **update) -> dict:
    """Update dict for a player whose knowledge record changes."""
    return {"knowledge": player.knowledge.model_copy(update=update)}


def relocate_npc(state: WorldState, npc_id: str, location_id: str) -> WorldState:
    """
    Move an NPC and keep every location roster consistent.

    The NPC is removed from any roster that lists it and appended once to
    the target roster. Only locations whose roster changes are copied.
    """
    npc = state.npcs[npc_id]
    locations = dict(state.locations)

    for loc_id, location in state.locations.items():
        if loc_id != location_id and npc_id in location.present_npc_ids:
            locations[loc_id] = location.model_copy(update={
                "present_npc_ids": [i for i in location.present_npc_ids if i != npc_id],
            })

    target = locations[location_id]
    roster = [i for i in target.present_npc_ids if i != npc_id] + [npc_id]
    if roster != target.present_npc_ids:
        locations[location_id] = target.model_copy(update={"present_npc_ids": roster})

    return state.model_copy(update={
        "npcs": {**state.npcs, npc_id: npc.model_copy(update={"current_location_id": location_id})},
        "locations": locations,
    })


def append_event(
    state: WorldState,
    description: str,
    kind: EventKind,
    *,
    involved: list[str] | None = None,
    location_id: str | None = None,
    significant: bool = False,
) -> WorldState:
    """Append a world event. Ids derive from the counter and log length."""
    event = WorldEvent(
        id=f"event_{kind.value}_{state.action_counter}_{len(state.event_history)}",
        action_number=state.action_counter,
        description=description,
        type=kind,
        involved_npc_ids=list(involved or []),
        location_id=location_id or state.player.current_location_id,
        is_significant=significant,
    )
    return state.model_copy(update={"event_history": [*state.event_history, event]})


# ─── Identifiers and names ───────────────────────────────────

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str, limit: int = 24) -> str:
    slug = _SLUG_RE.sub("_", text.lower()).strip("_")
    return slug[:limit].rstrip("_") or "unnamed"


def derive_id(
    prefix: str,
    name: str | None,
    state: WorldState,
    count: int,
    taken: Iterable[str] = (),
) -> str:
    """
    Build a deterministic id for a generated entity.

    Combines the action counter with the size of the owning collection, and
    steps the suffix past any id already in `taken`. Removing an entity
    shrinks the collection, so the size alone can repeat within one batch.
    Replaying the same batch yields the same ids.
    """
    taken = set(taken)
    base = f"{prefix}_{slugify(name or prefix)}_{state.action_counter}"
    while f"{base}_{count}" in taken:
        count += 1
    return f"{base}_{count}"


def normalize(name: str) -> str:
    """Key used for curses, blessings, transformations, and skills."""
    return " ".join(name.split()).lower()
