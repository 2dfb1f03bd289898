"""
SkillFlow error types.

Every error raised by the workflow graph, the skill catalog, and the plan
compiler derives from ``SkillFlowError`` so callers can surface a single
human-readable message for any failure.
"""

from __future__ import annotations

from typing import List, Optional


class SkillFlowError(Exception):
    """Base exception for all SkillFlow errors."""

    pass


# ============================================================================
# Plan compilation
# ============================================================================


class InvalidPlanFormatError(SkillFlowError):
    """Raised when the generated plan is not JSON matching the plan schema."""

    def __init__(self, detail: str, raw_text: str = ""):
        self.detail = detail
        self.raw_text = raw_text
        super().__init__(f"AI agent returned invalid plan format: {detail}")


class CapabilityInstallError(SkillFlowError):
    """Raised by a skill catalog when an install command fails.

    The plan compiler downgrades this to a warning.
    """

    def __init__(self, command: str, reason: str, skill_name: Optional[str] = None):
        self.command = command
        self.reason = reason
        self.skill_name = skill_name
        label = f"'{skill_name}'" if skill_name else f"command '{command}'"
        super().__init__(f"Failed to install {label}: {reason}")


class NoCapabilityAvailableError(SkillFlowError):
    """Raised when a step cannot be bound to any installed skill."""

    def __init__(self, requested: str, step_name: Optional[str] = None):
        self.requested = requested
        self.step_name = step_name
        if step_name:
            msg = (
                f"Failed to find a valid skill for step \"{step_name}\" "
                f"(requested '{requested}'). Please ensure at least one skill is installed."
            )
        else:
            msg = f"No installed skill available to resolve '{requested}'"
        super().__init__(msg)


class CompilerBusyError(SkillFlowError):
    """Raised when a compilation is requested while another is pending."""

    def __init__(self) -> None:
        super().__init__("A workflow compilation is already in progress")


# ============================================================================
# Graph structure
# ============================================================================


class DanglingDependencyError(SkillFlowError):
    """Raised when a dependency references a step that does not exist."""

    def __init__(self, step_id: Optional[str], missing_id: str):
        self.step_id = step_id
        self.missing_id = missing_id
        if step_id is None:
            msg = f"Edge references non-existent step '{missing_id}'"
        else:
            msg = f"Step '{step_id}' depends on non-existent step '{missing_id}'"
        super().__init__(msg)


class DependencyCycleError(SkillFlowError):
    """Raised when a dependency edge would close (or forms) a cycle."""

    def __init__(self, path: List[str]):
        self.path = path
        super().__init__("Dependency cycle detected: " + " -> ".join(path))


# ============================================================================
# Persistence
# ============================================================================


class WorkflowValidationError(SkillFlowError):
    """Raised when a workflow fails structural validation on save."""

    def __init__(self, workflow_id: str, errors: List[str]):
        self.workflow_id = workflow_id
        self.errors = errors
        super().__init__(
            f"Workflow '{workflow_id}' validation failed: " + "; ".join(errors)
        )


class WorkflowNotFoundError(SkillFlowError):
    """Raised when a requested workflow file does not exist."""

    def __init__(self, project_id: str, workflow_id: str):
        self.project_id = project_id
        self.workflow_id = workflow_id
        super().__init__(
            f"Workflow {workflow_id} not found in project {project_id}"
        )
