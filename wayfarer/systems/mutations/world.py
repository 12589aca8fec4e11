"""World generation: locations and structures."""

from __future__ import annotations

from typing import Iterable

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ...state.schema import (
    Coordinates,
    EventKind,
    Location,
    Structure,
    StructureType,
    Terrain,
    WorldState,
)
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import (
    CreateLocation,
    CreateStructure,
    DestroyStructure,
    StructureData,
    UpdateLocation,
)
from ...state.schemas.result import DiagnosticCategory
from .base import MutationContext, append_event, derive_id, handles, with_location
from .player import build_item


# Unit grid step per compass direction (x grows east, y grows north)
DIRECTIONS: dict[str, tuple[int, int]] = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
    "northeast": (1, 1),
    "northwest": (-1, 1),
    "southeast": (1, -1),
    "southwest": (-1, -1),
}

# Fields the generic update path may never overwrite
PROTECTED_LOCATION_FIELDS = {"id", "coordinates", "present_npc_ids"}


def step(origin: Coordinates, direction: str) -> Coordinates | None:
    """Coordinates one step from origin, or None for an unknown direction."""
    delta = DIRECTIONS.get(direction.strip().lower().replace("-", "").replace(" ", ""))
    if delta is None:
        return None
    return Coordinates(x=origin.x + delta[0], y=origin.y + delta[1])


def build_structure(
    data: StructureData,
    state: WorldState,
    count: int,
    ctx: MutationContext,
    taken: Iterable[str] = (),
) -> Structure:
    try:
        structure_type = StructureType(data.type.lower())
    except ValueError:
        ctx.warn(f"Unknown structure type '{data.type}', stored as marker", "structure.type")
        structure_type = StructureType.MARKER
    name = data.name or "Unknown Structure"
    return Structure(
        id=data.id or derive_id("struct", name, state, count, taken),
        name=name,
        description=data.description,
        type=structure_type,
        built_at_action=(
            data.built_at_action if data.built_at_action is not None else state.action_counter
        ),
        owner_id=data.owner_id,
    )


@handles(ChangeKind.CREATE_LOCATION, CreateLocation)
def create_location(
    state: WorldState, payload: CreateLocation, ctx: MutationContext
) -> WorldState:
    data = payload.location
    name = data.name or "Unknown Location"
    location_id = data.id or derive_id("loc", name, state, len(state.locations), state.locations)
    if location_id in state.locations:
        ctx.violation(f"Location already exists: {location_id}", "location.id")

    coordinates = data.coordinates
    if payload.direction:
        from_id = payload.from_location_id or state.player.current_location_id
        origin = state.locations.get(from_id)
        if origin is None:
            ctx.warn(f"Location not found: {from_id}, direction ignored", "fromLocationId")
        else:
            derived = step(origin.coordinates, payload.direction)
            if derived is None:
                ctx.warn(f"Unknown direction: {payload.direction}", "direction")
            else:
                coordinates = derived

    if coordinates is None:
        ctx.warn("No coordinates provided, defaulting to (0, 0)", "location.coordinates")
        coordinates = Coordinates()

    try:
        terrain = Terrain(data.terrain.lower())
    except ValueError:
        ctx.warn(f"Unknown terrain '{data.terrain}', stored as plains", "location.terrain")
        terrain = Terrain.PLAINS

    if data.present_npc_ids:
        ctx.warn("presentNpcIds ignored, use move_npc or create_npc", "location.presentNpcIds")

    location = Location(
        id=location_id,
        name=name,
        description=data.description,
        image_prompt=data.image_prompt or data.description,
        coordinates=coordinates,
        terrain=terrain,
        danger_level=max(0, min(10, data.danger_level)),
        items=[build_item(item, state, i, ctx) for i, item in enumerate(data.items)],
        structures=[
            build_structure(s, state, i, ctx) for i, s in enumerate(data.structures)
        ],
        is_canonical=False,
    )
    state = with_location(state, location)
    return append_event(
        state,
        f"Discovered {name}",
        EventKind.DISCOVERY,
        location_id=location_id,
    )


def _field_name(key: str) -> str | None:
    """Map a camelCase or snake_case key to a Location field name."""
    for name in Location.model_fields:
        if key == name or key == to_camel(name):
            return name
    return None


@handles(ChangeKind.UPDATE_LOCATION, UpdateLocation)
def update_location(
    state: WorldState, payload: UpdateLocation, ctx: MutationContext
) -> WorldState:
    location = ctx.require_location(state, payload.location_id)

    merged = location.model_dump()
    for key, value in payload.updates.items():
        name = _field_name(key)
        if name is None:
            ctx.warn(f"Unknown location field ignored: {key}", f"updates.{key}")
        elif name in PROTECTED_LOCATION_FIELDS:
            ctx.warn(f"Field cannot be updated: {key}", f"updates.{key}")
        else:
            merged[name] = value

    try:
        updated = Location.model_validate(merged)
    except ValidationError as e:
        ctx.reject(DiagnosticCategory.SHAPE, f"Invalid updates: {e.errors()[0]['msg']}", "updates")

    return with_location(state, updated)


@handles(ChangeKind.CREATE_STRUCTURE, CreateStructure)
def create_structure(
    state: WorldState, payload: CreateStructure, ctx: MutationContext
) -> WorldState:
    location = ctx.require_location(
        state, payload.location_id or state.player.current_location_id
    )
    structure = build_structure(
        payload.structure,
        state,
        len(location.structures),
        ctx,
        (s.id for s in location.structures),
    )
    if any(s.id == structure.id for s in location.structures):
        ctx.violation(f"Structure already exists: {structure.id}", "structure.id")

    state = with_location(
        state, location.model_copy(update={"structures": [*location.structures, structure]})
    )
    return append_event(
        state, f"Built {structure.name}", EventKind.BUILD, location_id=location.id
    )


@handles(ChangeKind.DESTROY_STRUCTURE, DestroyStructure)
def destroy_structure(
    state: WorldState, payload: DestroyStructure, ctx: MutationContext
) -> WorldState:
    location = ctx.require_location(
        state, payload.location_id or state.player.current_location_id
    )
    remaining = [s for s in location.structures if s.id != payload.structure_id]
    if len(remaining) == len(location.structures):
        ctx.reject(
            DiagnosticCategory.REFERENCE,
            f"Structure not found: {payload.structure_id}",
            "structureId",
        )
    return with_location(state, location.model_copy(update={"structures": remaining}))
