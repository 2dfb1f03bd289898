"""
Plan Output — instruction building and Pydantic-validated plan parsing.

The plan compiler sends one instruction that embeds the installable
registry, the installed skills, and the user's goal, and expects a
single JSON object back. This module owns both halves of that wire
contract:

    • ``build_plan_instruction`` — the instruction text
    • ``parse_plan``             — fence stripping + JSON + schema validation

Parsing is strict: anything that is not a JSON object matching
``PlanOutput`` raises ``InvalidPlanFormatError``. No partial plan is
ever returned.
"""

from __future__ import annotations

import json
import re
import textwrap
from logging import getLogger
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from skillflow.errors import InvalidPlanFormatError
from skillflow.skills.models import RegistrySkill, Skill

logger = getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


# ============================================================================
# Plan schema
# ============================================================================


class PlanSkillInstall(BaseModel):
    """A skill the plan wants installed before resolution."""

    name: str
    command: str


class PlanStep(BaseModel):
    """One planned step."""

    name: str
    step_type: str = "agent"
    """Informational; compiled steps are always agent steps."""

    skill_name_ref: str
    """Name of the skill this step should be bound to."""

    output_file: Optional[str] = None
    description: str = ""

    @field_validator("step_type", "description", mode="before")
    @classmethod
    def _null_to_default(cls, v, info):
        if v is None:
            return "agent" if info.field_name == "step_type" else ""
        return v


class PlanOutput(BaseModel):
    """The full plan returned by the text generator."""

    workflow_name: str
    description: str = ""
    skills_to_install: List[PlanSkillInstall] = Field(default_factory=list)
    steps: List[PlanStep] = Field(min_length=1)

    # Models sometimes send null for optional fields
    @field_validator("description", "skills_to_install", mode="before")
    @classmethod
    def _null_to_empty(cls, v, info):
        if v is None:
            return "" if info.field_name == "description" else []
        return v


# ============================================================================
# Instruction
# ============================================================================

_PLAN_EXAMPLE = """\
{
  "workflow_name": "Short Descriptive Name",
  "description": "Brief description of what this workflow does",
  "skills_to_install": [
    { "name": "Skill Name", "command": "npx command..." }
  ],
  "steps": [
    {
      "name": "Step Name",
      "step_type": "agent",
      "skill_name_ref": "Exact name of the skill to use",
      "output_file": "descriptive_filename.md",
      "description": "What this step does"
    }
  ]
}"""


def build_plan_instruction(
    goal: str,
    registry: Sequence[RegistrySkill],
    installed: Sequence[Skill],
    output_filename: Optional[str] = None,
) -> str:
    """Build the single user message sent to the text generator."""
    registry_context = "\n".join(
        f"- {s.name} (Command: {s.command}): {s.description}" for s in registry
    ) or "(none)"
    installed_context = "\n".join(
        f"- {s.name} (ID: {s.id})" for s in installed
    ) or "(none)"
    target = output_filename or "Decide automatically"

    header = textwrap.dedent("""\
    You are an expert Workflow Architect for an AI agent system.
    Your goal is to interpret a user's natural language request and design a multi-step workflow.
    """)

    instructions = textwrap.dedent("""\
    Instructions:
    1. Analyze the request to determine the necessary steps.
    2. For each step, identify if an existing installed skill can be used, or if a new skill from the registry is needed.
    3. If a registry skill is needed, or if you know of a valid install command for a relevant skill, you MUST include its "command" in the response so the system can install it.
    4. If the request implies a skill not in the registry and you don't know a command, suggest the closest match using an installed skill.
    5. Order the steps so each one builds on the previous one.
    6. Generate meaningful filenames for "output_file".
    7. If "User Desired Output Filename" is provided, ensure the FINAL step writes to that exact file. Do NOT use subdirectories.
    """)

    return (
        f"{header}\n"
        f"Available capabilities in the Registry (you can prescribe these):\n{registry_context}\n\n"
        f"Currently Installed Skills:\n{installed_context}\n\n"
        f"User Request: \"{goal}\"\n"
        f"User Desired Output Filename: \"{target}\"\n\n"
        f"{instructions}\n"
        f"Output strictly valid JSON with this structure:\n{_PLAN_EXAMPLE}\n"
        f"Do not output markdown code blocks, just the raw JSON."
    )


# ============================================================================
# Parsing
# ============================================================================


def strip_code_fences(text: str) -> str:
    """Remove every ```json / ``` fence marker and surrounding whitespace."""
    return _FENCE_RE.sub("", text).strip()


def parse_plan(text: str) -> PlanOutput:
    """Parse and validate a plan reply.

    Raises:
        InvalidPlanFormatError: If the reply is not a JSON object that
            matches ``PlanOutput``.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse plan reply as JSON: {e}")
        raise InvalidPlanFormatError(f"not valid JSON ({e})", raw_text=text) from e

    if not isinstance(data, dict):
        raise InvalidPlanFormatError(
            f"expected JSON object, got {type(data).__name__}", raw_text=text
        )

    try:
        return PlanOutput.model_validate(data)
    except ValidationError as e:
        logger.error(f"Plan reply failed schema validation: {e}")
        raise InvalidPlanFormatError(
            f"{e.error_count()} schema error(s): {_first_error(e)}", raw_text=text
        ) from e


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{location}: {first.get('msg', '')}" if location else first.get("msg", "")
