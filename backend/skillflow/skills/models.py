"""
Data models for skills.

A skill is a named, parameterized capability a workflow step can invoke.
Registry entries describe skills that can be installed by command.
"""
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


ParameterType = Literal["string", "number", "boolean", "array"]


class SkillParameter(BaseModel):
    """A parameter a skill declares."""
    name: str
    type: ParameterType = "string"
    required: bool = False
    default_value: Optional[str] = None
    description: Optional[str] = None


class Skill(BaseModel):
    """An installed skill."""
    id: str = Field(..., description="Stable skill identifier")
    name: str = Field(..., description="Human-readable skill name")
    description: str = ""
    parameters: List[SkillParameter] = Field(default_factory=list)


class RegistrySkill(BaseModel):
    """
    An installable skill from the static registry.

    ``command`` is the shell command that installs it into the
    active workspace (e.g. ``npx --yes skills add owner/repo/skill``).
    """
    name: str
    id: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    command: str


class SkillMatchKind(str, Enum):
    """How a requested skill name was resolved."""
    EXACT = "exact"
    SUBSTRING = "substring"
    FALLBACK = "fallback"


class SkillMatch(BaseModel):
    """A resolved skill plus the precedence rule that selected it."""
    requested: str
    skill: Skill
    kind: SkillMatchKind

    @property
    def used_fallback(self) -> bool:
        return self.kind == SkillMatchKind.FALLBACK
