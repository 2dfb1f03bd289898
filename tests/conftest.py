"""
Shared fixtures for SkillFlow tests.

Every test runs against a throwaway config so nothing touches
``~/.skillflow``.
"""

import pytest

from skillflow.config import reset_configs
from skillflow.skills.models import Skill
from skillflow.workflow.workflow_model import Step, StepConfig
from skillflow.workflow.workflow_store import WorkflowStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point SkillFlow storage at tmp_path and drop cached config."""
    monkeypatch.setenv("SKILLFLOW_WORKFLOWS_DIR", str(tmp_path / "projects"))
    monkeypatch.setenv("SKILLFLOW_SKILLS_DIR", str(tmp_path / "skills"))
    reset_configs()
    yield
    reset_configs()


@pytest.fixture
def store(tmp_path):
    return WorkflowStore(root_dir=tmp_path / "projects")


@pytest.fixture
def installed_skills():
    return [
        Skill(id="web-researcher", name="Web Researcher", description="Research the web"),
        Skill(id="content-writer", name="Content Writer", description="Write content"),
    ]


def make_step(step_id, depends_on=None, name=None, skill_id=None):
    """Build a Step with minimal boilerplate."""
    return Step(
        id=step_id,
        name=name or step_id.upper(),
        config=StepConfig(skill_id=skill_id),
        depends_on=list(depends_on or []),
    )
