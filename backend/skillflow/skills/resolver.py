"""
Skill Resolver — bind a requested skill name to an installed skill.

Precedence, applied in order:
    1. Exact, case-sensitive name match.
    2. First installed skill whose name contains the requested name.
    3. First installed skill (best-effort fallback).
    4. Nothing installed → ``NoCapabilityAvailableError``.

The fallback is deliberately permissive: a plan is never blocked by an
imperfect name alone. ``SkillMatch.kind`` tells the caller which rule
applied so a fallback binding can be surfaced.
"""

from __future__ import annotations

from typing import Optional, Sequence

from skillflow.errors import NoCapabilityAvailableError
from skillflow.skills.models import Skill, SkillMatch, SkillMatchKind


def match_skill(requested: str, installed: Sequence[Skill]) -> Optional[SkillMatch]:
    """Apply the precedence rules; return ``None`` if nothing is installed."""
    for skill in installed:
        if skill.name == requested:
            return SkillMatch(requested=requested, skill=skill, kind=SkillMatchKind.EXACT)

    for skill in installed:
        if requested in skill.name:
            return SkillMatch(requested=requested, skill=skill, kind=SkillMatchKind.SUBSTRING)

    if installed:
        return SkillMatch(requested=requested, skill=installed[0], kind=SkillMatchKind.FALLBACK)

    return None


def resolve_skill(
    requested: str,
    installed: Sequence[Skill],
    step_name: Optional[str] = None,
) -> SkillMatch:
    """Resolve ``requested`` or raise ``NoCapabilityAvailableError``."""
    match = match_skill(requested, installed)
    if match is None:
        raise NoCapabilityAvailableError(requested, step_name=step_name)
    return match
