"""Tests for plan instruction building and reply parsing."""

import json

import pytest

from skillflow.errors import InvalidPlanFormatError
from skillflow.llm.plan_output import build_plan_instruction, parse_plan, strip_code_fences
from skillflow.skills.models import Skill
from skillflow.skills.registry import SKILL_REGISTRY

PLAN = {
    "workflow_name": "Market Brief",
    "description": "Research and summarize",
    "skills_to_install": [{"name": "Web Researcher", "command": "npx skills add web"}],
    "steps": [
        {"name": "Research", "step_type": "agent", "skill_name_ref": "Web Researcher",
         "output_file": "research.md", "description": "Collect sources"},
        {"name": "Write", "skill_name_ref": "Content Writer"},
    ],
}


class TestParsePlan:
    """Strict JSON + schema validation."""

    def test_plain_json(self):
        plan = parse_plan(json.dumps(PLAN))
        assert plan.workflow_name == "Market Brief"
        assert [s.name for s in plan.steps] == ["Research", "Write"]
        assert plan.steps[1].output_file is None
        assert plan.skills_to_install[0].command == "npx skills add web"

    def test_fenced_json(self):
        text = "```json\n" + json.dumps(PLAN) + "\n```"
        assert parse_plan(text).workflow_name == "Market Brief"

    def test_strip_code_fences_without_language(self):
        assert strip_code_fences("```\n{}\n```") == "{}"

    def test_not_json(self):
        with pytest.raises(InvalidPlanFormatError) as exc_info:
            parse_plan("Sure! Here is your workflow.")
        assert str(exc_info.value).startswith("AI agent returned invalid plan format")
        assert exc_info.value.raw_text == "Sure! Here is your workflow."

    def test_array_is_rejected(self):
        with pytest.raises(InvalidPlanFormatError, match="expected JSON object"):
            parse_plan("[]")

    def test_missing_steps_rejected(self):
        with pytest.raises(InvalidPlanFormatError):
            parse_plan(json.dumps({"workflow_name": "x"}))

    def test_null_optional_fields_use_defaults(self):
        reply = {
            "workflow_name": "W",
            "description": None,
            "skills_to_install": None,
            "steps": [{"name": "s", "skill_name_ref": "x", "step_type": None,
                       "description": None, "output_file": None}],
        }
        plan = parse_plan(json.dumps(reply))
        assert plan.skills_to_install == []
        assert plan.description == ""
        assert plan.steps[0].step_type == "agent"
        assert plan.steps[0].description == ""

    def test_null_required_field_still_rejected(self):
        bad = {"workflow_name": "W", "steps": [{"name": "s", "skill_name_ref": None}]}
        with pytest.raises(InvalidPlanFormatError):
            parse_plan(json.dumps(bad))

    def test_zero_steps_rejected(self):
        with pytest.raises(InvalidPlanFormatError):
            parse_plan(json.dumps({"workflow_name": "x", "steps": []}))

    def test_step_without_skill_ref_rejected(self):
        bad = {"workflow_name": "x", "steps": [{"name": "Only name"}]}
        with pytest.raises(InvalidPlanFormatError, match="skill_name_ref"):
            parse_plan(json.dumps(bad))


class TestBuildPlanInstruction:
    def test_includes_goal_registry_and_installed(self):
        installed = [Skill(id="writer-1", name="Content Writer")]
        text = build_plan_instruction("Write a blog post", SKILL_REGISTRY, installed, "post.md")

        assert 'User Request: "Write a blog post"' in text
        assert 'User Desired Output Filename: "post.md"' in text
        assert "- Content Writer (ID: writer-1)" in text
        assert SKILL_REGISTRY[0].command in text

    def test_no_filename_lets_model_decide(self):
        text = build_plan_instruction("Goal", [], [])
        assert '"Decide automatically"' in text
        assert "(none)" in text
