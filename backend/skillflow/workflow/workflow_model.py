"""
Workflow Data Models — workflows, steps, and step configuration.

These are the serializable structures persisted by ``WorkflowStore``.
A workflow's ``steps`` list is the canonical form of its dependency
graph: ``depends_on`` is the only carrier of execution ordering.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

DRAFT_PREFIX = "draft-"
DEFAULT_VERSION = "1.0.0"

_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepType(str, Enum):
    INPUT = "input"
    AGENT = "agent"
    ITERATION = "iteration"
    SYNTHESIS = "synthesis"
    CONDITIONAL = "conditional"
    TOOL = "tool"


def is_flat_filename(value: str) -> bool:
    """True when ``value`` is a bare relative filename (no directories)."""
    if not value or value in (".", ".."):
        return False
    return (
        PurePosixPath(value).name == value
        and PureWindowsPath(value).name == value
    )


class StepConfig(BaseModel):
    """Execution binding for a step.

    ``skill_id`` applies to skill-bound steps, ``mcp_tool_name`` /
    ``mcp_server_id`` to ``tool`` steps. ``output_file`` is a bare
    filename inside the project directory.
    """

    skill_id: Optional[str] = None
    mcp_tool_name: Optional[str] = None
    mcp_server_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    output_file: Optional[str] = None

    @field_validator("output_file")
    @classmethod
    def _no_subdirectories(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not is_flat_filename(v):
            raise ValueError(
                f"output_file '{v}' must be a filename without subdirectories"
            )
        return v


class Step(BaseModel):
    """A single unit of work in a workflow."""

    id: str
    name: str
    step_type: StepType = StepType.AGENT
    config: StepConfig = Field(default_factory=StepConfig)
    depends_on: List[str] = Field(default_factory=list)

    @property
    def uses_tool(self) -> bool:
        return self.step_type == StepType.TOOL


class Workflow(BaseModel):
    """A named, persisted collection of steps owned by one project."""

    id: str
    project_id: str = ""
    name: str = ""
    description: str = ""
    steps: List[Step] = Field(default_factory=list)
    version: str = DEFAULT_VERSION
    created: str = Field(default_factory=_now)
    updated: str = Field(default_factory=_now)
    status: Optional[str] = None
    last_run: Optional[str] = None

    @classmethod
    def new_draft(cls, project_id: str = "", name: str = "") -> "Workflow":
        """Build an unsaved, in-memory workflow."""
        return cls(
            id=f"{DRAFT_PREFIX}{int(time.time() * 1000)}",
            project_id=project_id,
            name=name,
        )

    @property
    def is_draft(self) -> bool:
        return self.id.startswith(DRAFT_PREFIX)

    def touch(self) -> None:
        """Update the ``updated`` timestamp."""
        self.updated = _now()

    def get_step(self, step_id: str) -> Optional[Step]:
        for s in self.steps:
            if s.id == step_id:
                return s
        return None

    def validate_graph(self) -> List[str]:
        """Validate workflow metadata and step structure.

        Returns a list of error messages (empty = valid).
        """
        errors: List[str] = []

        if not self.id:
            errors.append("workflow id cannot be empty")
        elif not _ID_RE.match(self.id):
            errors.append(
                f"workflow id '{self.id}' contains invalid characters "
                f"(only alphanumeric, hyphens, and underscores allowed)"
            )
        if not self.project_id:
            errors.append("project_id cannot be empty")
        if not self.name:
            errors.append("name cannot be empty")
        if self.version and not _SEMVER_RE.match(self.version):
            errors.append(
                f"version '{self.version}' is not in valid semver format (expected x.y.z)"
            )

        seen: set = set()
        for step in self.steps:
            if not _ID_RE.match(step.id):
                errors.append(f"step id '{step.id}' contains invalid characters")
            if step.id in seen:
                errors.append(f"duplicate step id '{step.id}'")
            seen.add(step.id)

        for step in self.steps:
            for dep_id in step.depends_on:
                if dep_id not in seen:
                    errors.append(
                        f"step '{step.id}' depends on non-existent step '{dep_id}'"
                    )

        cycle = find_dependency_cycle(self.steps)
        if cycle:
            errors.append("dependency cycle: " + " -> ".join(cycle))

        return errors


def find_dependency_cycle(steps: List[Step]) -> Optional[List[str]]:
    """Return one dependency cycle as a list of step ids, or ``None``.

    Dangling references are ignored here; ``validate_graph`` reports
    them separately.
    """
    deps: Dict[str, List[str]] = {s.id: list(s.depends_on) for s in steps}
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {sid: WHITE for sid in deps}
    stack: List[str] = []

    def visit(sid: str) -> Optional[List[str]]:
        color[sid] = GREY
        stack.append(sid)
        for dep in deps.get(sid, []):
            if dep not in color:
                continue
            if color[dep] == GREY:
                start = stack.index(dep)
                return stack[start:] + [dep]
            if color[dep] == WHITE:
                found = visit(dep)
                if found:
                    return found
        stack.pop()
        color[sid] = BLACK
        return None

    for sid in deps:
        if color[sid] == WHITE:
            found = visit(sid)
            if found:
                return found
    return None


def topological_order(steps: List[Step]) -> List[Step]:
    """Order steps so every dependency precedes its dependents.

    Ties keep list order.

    Raises:
        ValueError: If the steps contain a dependency cycle.
    """
    cycle = find_dependency_cycle(steps)
    if cycle:
        raise ValueError("dependency cycle: " + " -> ".join(cycle))

    by_id = {s.id: s for s in steps}
    visited: set = set()
    ordered: List[Step] = []

    def visit(step: Step) -> None:
        if step.id in visited:
            return
        visited.add(step.id)
        for dep in step.depends_on:
            if dep in by_id:
                visit(by_id[dep])
        ordered.append(step)

    for step in steps:
        visit(step)
    return ordered
