"""
Transformations, curses, and blessings.

Each is a set of lowercase names on the player. Curses and blessings may
carry their source baked into the stored text: "wolf curse (from the witch)".
Removal finds the entry through the affliction match strategy.
"""

from __future__ import annotations

from ...state.schema import EventKind, WorldState
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import AddAffliction, PlayerTransform, RemoveAffliction
from ..matching import AFFLICTION_MATCH, find_first
from .base import MutationContext, append_event, handles, normalize, with_player


SOURCE_MARKER = " (from "


def annotate(name: str, source: str | None) -> str:
    entry = normalize(name)
    if source and source.strip():
        entry += f"{SOURCE_MARKER}{source.strip()})"
    return entry


def base_name(entry: str) -> str:
    """Stored entry without its source annotation."""
    return entry.split(SOURCE_MARKER, 1)[0]


def _add(state: WorldState, field: str, payload: AddAffliction, ctx: MutationContext) -> WorldState:
    entries: list[str] = getattr(state.player, field)
    key = normalize(payload.name)
    if any(base_name(e) == key for e in entries):
        ctx.warn(f"Already present: {key}", "name")
        return state
    return with_player(state, **{field: [*entries, annotate(payload.name, payload.source)]})


def _remove(
    state: WorldState, field: str, payload: RemoveAffliction, ctx: MutationContext
) -> WorldState:
    entries: list[str] = getattr(state.player, field)
    match = find_first(payload.name, entries, AFFLICTION_MATCH)
    if match is None:
        ctx.warn(f"Not present: {normalize(payload.name)}", "name")
        return state
    remaining = list(entries)
    remaining.remove(match)
    return with_player(state, **{field: remaining})


@handles(ChangeKind.ADD_CURSE, AddAffliction)
def add_curse(state: WorldState, payload: AddAffliction, ctx: MutationContext) -> WorldState:
    return _add(state, "curses", payload, ctx)


@handles(ChangeKind.REMOVE_CURSE, RemoveAffliction)
def remove_curse(state: WorldState, payload: RemoveAffliction, ctx: MutationContext) -> WorldState:
    return _remove(state, "curses", payload, ctx)


@handles(ChangeKind.ADD_BLESSING, AddAffliction)
def add_blessing(state: WorldState, payload: AddAffliction, ctx: MutationContext) -> WorldState:
    return _add(state, "blessings", payload, ctx)


@handles(ChangeKind.REMOVE_BLESSING, RemoveAffliction)
def remove_blessing(
    state: WorldState, payload: RemoveAffliction, ctx: MutationContext
) -> WorldState:
    return _remove(state, "blessings", payload, ctx)


@handles(ChangeKind.PLAYER_TRANSFORM, PlayerTransform)
def player_transform(
    state: WorldState, payload: PlayerTransform, ctx: MutationContext
) -> WorldState:
    key = normalize(payload.transformation)
    current = state.player.transformations

    if payload.remove:
        if key not in current:
            ctx.warn(f"Not transformed: {key}", "transformation")
            return state
        state = with_player(state, transformations=[t for t in current if t != key])
        return append_event(state, f"No longer {key}", EventKind.OTHER, significant=True)

    if key in current:
        ctx.warn(f"Already transformed: {key}", "transformation")
        return state
    state = with_player(state, transformations=[*current, key])
    return append_event(state, f"Became {key}", EventKind.OTHER, significant=True)
