"""
Skills — installed-skill catalog, installable registry, and name resolution.
"""

from skillflow.skills.catalog import (
    InMemorySkillCatalog,
    LocalSkillCatalog,
    SkillCatalog,
    get_skill_catalog,
)
from skillflow.skills.models import (
    RegistrySkill,
    Skill,
    SkillMatch,
    SkillMatchKind,
    SkillParameter,
)
from skillflow.skills.registry import SKILL_REGISTRY, find_registry_skill
from skillflow.skills.resolver import match_skill, resolve_skill

__all__ = [
    "SkillCatalog",
    "LocalSkillCatalog",
    "InMemorySkillCatalog",
    "get_skill_catalog",
    "RegistrySkill",
    "Skill",
    "SkillMatch",
    "SkillMatchKind",
    "SkillParameter",
    "SKILL_REGISTRY",
    "find_registry_skill",
    "match_skill",
    "resolve_skill",
]
