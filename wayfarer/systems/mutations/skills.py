"""Qualitative skill progression along a fixed ladder."""

from __future__ import annotations

from ...state.schema import SKILL_LADDER, SkillLevel, WorldState
from ...state.schemas.change import ChangeKind
from ...state.schemas.payloads import SkillPractice
from ..matching import SKILL_MATCH, find_first
from .base import MutationContext, handles, with_knowledge, with_player


# Advancing to this rung or any above it may require a teacher
TEACHER_GATE = SkillLevel.ADEPT
NEEDS_TEACHER = " (needs a teacher to advance)"


def rung_of(level_text: str) -> SkillLevel:
    """Ladder rung named in a stored level. Unrecognised text is novice."""
    text = level_text.lower()
    for level in reversed(SKILL_LADDER):
        if level.value in text:
            return level
    return SkillLevel.NOVICE


def next_rung(level: SkillLevel) -> SkillLevel | None:
    index = SKILL_LADDER.index(level)
    return SKILL_LADDER[index + 1] if index + 1 < len(SKILL_LADDER) else None


@handles(ChangeKind.SKILL_PRACTICE, SkillPractice)
def skill_practice(state: WorldState, payload: SkillPractice, ctx: MutationContext) -> WorldState:
    if payload.teacher_npc_id:
        ctx.require_npc(state, payload.teacher_npc_id, "teacherNpcId")

    player = state.player
    skills = player.knowledge.skills
    name = find_first(payload.skill, skills.keys(), SKILL_MATCH) or payload.skill

    if payload.target_level and payload.target_level.strip():
        level = payload.target_level.strip()
    elif name not in skills:
        level = SkillLevel.NOVICE.value
    else:
        current = rung_of(skills[name])
        upcoming = next_rung(current)
        if upcoming is None:
            level = skills[name]
        elif (
            payload.requires_teacher
            and not payload.teacher_npc_id
            and SKILL_LADDER.index(upcoming) >= SKILL_LADDER.index(TEACHER_GATE)
        ):
            ctx.warn(f"{name} needs a teacher to reach {upcoming.value}", "teacherNpcId")
            level = f"{current.value}{NEEDS_TEACHER}"
        else:
            level = upcoming.value

    return with_player(state, **with_knowledge(player, skills={**skills, name: level}))
