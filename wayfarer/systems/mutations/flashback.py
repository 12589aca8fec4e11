"""Backstory revelation through flashbacks."""

from __future__ import annotations

from ...state.schema import EventKind, WorldState
from ...state.schemas.change import ChangeKind, StateChange
from ...state.schemas.payloads import RevealFlashback
from .base import MutationContext, append_event, handles, with_player


REMEMBERED = "remembered"  # Level given to a skill a flashback surfaces without one
EXCERPT_LENGTH = 100


@handles(ChangeKind.REVEAL_FLASHBACK, RevealFlashback)
def reveal_flashback(
    state: WorldState, payload: RevealFlashback, ctx: MutationContext
) -> WorldState:
    player = state.player
    content = payload.flashback_content
    update: dict = {}

    if content not in player.revealed_backstory:
        update["revealed_backstory"] = [*player.revealed_backstory, content]

    skill = payload.revealed_skill
    if skill is not None:
        if skill.name and skill.name.strip():
            skills = {**player.knowledge.skills, skill.name.strip(): skill.level or REMEMBERED}
            update["knowledge"] = player.knowledge.model_copy(update={"skills": skills})
        else:
            ctx.warn("revealedSkill without a name ignored", "revealedSkill.name")

    if not update:
        ctx.warn("Flashback already revealed")
        return state

    state = with_player(state, **update)
    excerpt = content[:EXCERPT_LENGTH] + ("..." if len(content) > EXCERPT_LENGTH else "")
    return append_event(
        state,
        f"A memory from the past was revealed: {excerpt}",
        EventKind.DISCOVERY,
        significant=True,
    )


def process_flashback(
    state: WorldState,
    content: str,
    skill_name: str | None = None,
    skill_level: str | None = None,
) -> WorldState:
    """Apply a flashback surfaced by the narrative layer outside a batch."""
    from ..reducer import apply_changes

    data: dict = {"flashbackContent": content}
    if skill_name:
        data["revealedSkill"] = {"name": skill_name, "level": skill_level}
    return apply_changes(state, [StateChange.of(ChangeKind.REVEAL_FLASHBACK, **data)]).state
