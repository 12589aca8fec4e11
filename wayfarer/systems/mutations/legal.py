"""
Crime and bounty records.

Crimes are append-only. Attitude and reputation consequences are applied
only when the crime was detected; an unseen crime leaves every NPC and
faction untouched no matter what deltas the payload carries.
"""

from __future__ import annotations

import logging

from ...state.schema import (
    Bounty,
    Crime,
    CrimeSeverity,
    EventKind,
    WorldState,
    clamp,
)
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import AddBounty, RecordCrime, RemoveBounty, UpdateBounty
from ...state.schemas.result import DiagnosticCategory
from .base import MutationContext, append_event, derive_id, handles, with_npc, with_player

logger = logging.getLogger(__name__)


def _apply_deltas(state: WorldState, payload: RecordCrime, ctx: MutationContext) -> WorldState:
    for npc_id, delta in payload.npc_attitude_changes.items():
        npc = state.npcs.get(npc_id)
        if npc is None:
            ctx.warn(f"NPC not found: {npc_id}", "npcAttitudeChanges")
            continue
        state = with_npc(state, npc.model_copy(update={"attitude": clamp(npc.attitude + delta)}))

    factions = dict(state.factions)
    for faction_id, delta in payload.faction_reputation_changes.items():
        faction = factions.get(faction_id)
        if faction is None:
            ctx.warn(f"Faction not found: {faction_id}", "factionReputationChanges")
            continue
        factions[faction_id] = faction.model_copy(update={
            "player_reputation": clamp(faction.player_reputation + delta),
        })
    return state.model_copy(update={"factions": factions})


@handles(ChangeKind.RECORD_CRIME, RecordCrime)
def record_crime(state: WorldState, payload: RecordCrime, ctx: MutationContext) -> WorldState:
    if payload.victim_npc_id:
        ctx.require_npc(state, payload.victim_npc_id, "victimNpcId")

    witnesses = []
    for npc_id in payload.witness_npc_ids:
        if npc_id not in state.npcs:
            ctx.warn(f"Unknown witness dropped: {npc_id}", "witnessNpcIds")
        elif npc_id not in witnesses:
            witnesses.append(npc_id)

    location_id = payload.location_id or state.player.current_location_id
    if location_id not in state.locations:
        ctx.warn(f"Location not found: {location_id}, using player location", "locationId")
        location_id = state.player.current_location_id

    crimes = state.player.crimes
    crime = Crime(
        id=derive_id("crime", payload.type.value, state, len(crimes), (c.id for c in crimes)),
        type=payload.type,
        description=payload.description,
        severity=payload.severity,
        was_detected=payload.was_detected,
        victim_npc_id=payload.victim_npc_id,
        witness_npc_ids=witnesses,
        location_id=location_id,
        committed_at_action=state.action_counter,
    )
    state = with_player(state, crimes=[*crimes, crime])

    if crime.was_detected:
        state = _apply_deltas(state, payload, ctx)
    elif payload.npc_attitude_changes or payload.faction_reputation_changes:
        ctx.warn("Crime went undetected, consequences ignored")

    involved = ([crime.victim_npc_id] if crime.victim_npc_id else []) + witnesses
    return append_event(
        state,
        f"{crime.type.value.capitalize()}: {crime.description}",
        EventKind.CRIME,
        involved=involved,
        location_id=location_id,
        significant=crime.was_detected or crime.severity == CrimeSeverity.SEVERE,
    )


def _known_crimes(state: WorldState, crime_ids: list[str], ctx: MutationContext, field: str):
    known = {c.id for c in state.player.crimes}
    kept = []
    for crime_id in crime_ids:
        if crime_id not in known:
            ctx.warn(f"Unknown crime dropped: {crime_id}", field)
        elif crime_id not in kept:
            kept.append(crime_id)
    return kept


@handles(ChangeKind.ADD_BOUNTY, AddBounty)
def add_bounty(state: WorldState, payload: AddBounty, ctx: MutationContext) -> WorldState:
    if bool(payload.faction_id) == bool(payload.npc_id):
        ctx.reject(
            DiagnosticCategory.SHAPE, "Exactly one of factionId or npcId is required", "factionId"
        )

    if payload.faction_id:
        faction = state.factions.get(payload.faction_id)
        if faction is None:
            ctx.reject(
                DiagnosticCategory.REFERENCE,
                f"Faction not found: {payload.faction_id}",
                "factionId",
            )
        issuer_name = faction.name
    else:
        issuer_name = ctx.require_npc(state, payload.npc_id).name

    bounties = state.player.bounties
    bounty = Bounty(
        id=derive_id(
            "bounty",
            payload.faction_id or payload.npc_id,
            state,
            len(bounties),
            (b.id for b in bounties),
        ),
        faction_id=payload.faction_id,
        npc_id=payload.npc_id,
        amount=payload.amount,
        reason=payload.reason,
        crime_ids=_known_crimes(state, payload.crime_ids, ctx, "crimeIds"),
        issued_at_action=state.action_counter,
    )
    state = with_player(state, bounties=[*bounties, bounty])
    return append_event(
        state,
        f"{issuer_name} put a bounty of {bounty.amount} gold on you: {bounty.reason}",
        EventKind.BOUNTY,
        involved=[payload.npc_id] if payload.npc_id else [],
        significant=True,
    )


def _replace_bounty(state: WorldState, bounty: Bounty) -> WorldState:
    return with_player(
        state, bounties=[bounty if b.id == bounty.id else b for b in state.player.bounties]
    )


@handles(ChangeKind.UPDATE_BOUNTY, UpdateBounty)
def update_bounty(state: WorldState, payload: UpdateBounty, ctx: MutationContext) -> WorldState:
    bounty = state.player.find_bounty(payload.bounty_id)
    if bounty is None:
        ctx.reject(DiagnosticCategory.REFERENCE, f"Bounty not found: {payload.bounty_id}", "bountyId")

    update: dict = {}
    if payload.amount_increase is not None:
        update["amount"] = bounty.amount + payload.amount_increase
    if payload.add_crime_ids:
        added = _known_crimes(state, payload.add_crime_ids, ctx, "addCrimeIds")
        update["crime_ids"] = bounty.crime_ids + [c for c in added if c not in bounty.crime_ids]
    if payload.is_active is not None:
        update["is_active"] = payload.is_active
    if payload.reason is not None:
        update["reason"] = payload.reason
    if not update:
        ctx.reject(DiagnosticCategory.SHAPE, "Nothing to update", "bountyId")

    state = _replace_bounty(state, bounty.model_copy(update=update))

    if payload.amount_increase is not None:
        state = append_event(
            state,
            f"Bounty raised by {payload.amount_increase} gold to {update['amount']}",
            EventKind.BOUNTY,
            involved=[bounty.npc_id] if bounty.npc_id else [],
            significant=True,
        )
    return state


@handles(ChangeKind.REMOVE_BOUNTY, RemoveBounty)
def remove_bounty(state: WorldState, payload: RemoveBounty, ctx: MutationContext) -> WorldState:
    bounty = state.player.find_bounty(payload.bounty_id)
    if bounty is None:
        ctx.reject(DiagnosticCategory.REFERENCE, f"Bounty not found: {payload.bounty_id}", "bountyId")

    state = with_player(
        state, bounties=[b for b in state.player.bounties if b.id != bounty.id]
    )
    logger.debug(f"Bounty {bounty.id} resolved")
    return append_event(
        state,
        f"Bounty resolved: {bounty.reason}",
        EventKind.BOUNTY,
        involved=[bounty.npc_id] if bounty.npc_id else [],
    )
