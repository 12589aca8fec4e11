"""
State change reducer.

Folds an ordered batch of mutation records over a world snapshot:

    apply_changes(state, changes) -> ApplyResult

Each record sees the output of the one before it. A malformed record,
a dangling reference, a broken precondition, or an unknown kind skips
that record only and adds a Diagnostic; the batch always completes.
Nothing here raises for bad input data.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from ..state.schema import WorldState
from ..state.schemas.change import StateChange
from ..state.schemas.result import ApplyResult, Diagnostic, DiagnosticCategory
from .mutations import HANDLERS, ChangeRejected, MutationContext

logger = logging.getLogger(__name__)

ChangeInput = StateChange | Mapping[str, Any]


def _error_field(error: ValidationError) -> str | None:
    details = error.errors()
    if not details:
        return None
    loc = details[0].get("loc", ())
    return ".".join(str(part) for part in loc) or None


def _error_message(error: ValidationError) -> str:
    details = error.errors()
    return details[0]["msg"] if details else str(error)


def _raw_kind(change: Any) -> str:
    if isinstance(change, Mapping):
        return str(change.get("kind") or change.get("type") or "?")
    return "?"


def apply_change(
    state: WorldState,
    change: ChangeInput,
    index: int = 0,
) -> tuple[WorldState, list[Diagnostic], bool]:
    """
    Apply a single record.

    Returns (state, diagnostics, applied). When applied is False the
    returned state is the input state.
    """
    def skip(kind: str, category: DiagnosticCategory, message: str, field: str | None = None):
        diagnostic = Diagnostic(
            kind=kind, category=category, message=message, field=field, index=index
        )
        return state, [diagnostic], False

    if not isinstance(change, StateChange):
        try:
            change = StateChange.model_validate(change)
        except ValidationError as e:
            return skip(
                _raw_kind(change), DiagnosticCategory.SHAPE,
                f"Malformed record: {_error_message(e)}", _error_field(e),
            )

    kind = change.known_kind
    if kind is None:
        return skip(change.kind, DiagnosticCategory.UNKNOWN_KIND, f"Unknown mutation kind: {change.kind}")

    registration = HANDLERS[kind]
    try:
        payload = registration.payload.model_validate(change.data)
    except ValidationError as e:
        return skip(change.kind, DiagnosticCategory.SHAPE, _error_message(e), _error_field(e))

    ctx = MutationContext(kind=change.kind, index=index)
    try:
        new_state = registration.handler(state, payload, ctx)
    except ChangeRejected as e:
        return skip(change.kind, e.category, e.message, e.field)

    return new_state, ctx.notices, True


def apply_changes(state: WorldState, changes: Iterable[ChangeInput]) -> ApplyResult:
    """Apply an ordered batch. Never raises for bad records."""
    diagnostics: list[Diagnostic] = []
    applied = skipped = 0

    for index, change in enumerate(changes):
        state, found, ok = apply_change(state, change, index)
        for diagnostic in found:
            logger.warning(f"Mutation {diagnostic}")
        diagnostics.extend(found)
        if ok:
            applied += 1
        else:
            skipped += 1

    if skipped:
        logger.info(f"Applied {applied} changes, skipped {skipped}")
    return ApplyResult(state=state, diagnostics=diagnostics, applied=applied, skipped=skipped)
