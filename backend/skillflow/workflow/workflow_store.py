"""
Workflow Store — JSON-file persistence for workflows.

Each workflow is stored as ``{root}/{project_id}/.workflows/{id}.json``.
Draft workflows (``draft-`` ids) are never written: ``create`` mints a
permanent id from the workflow name, and only ``save`` refreshes the
``updated`` timestamp.
"""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from skillflow.config.skillflow_config import get_skillflow_config
from skillflow.errors import WorkflowNotFoundError, WorkflowValidationError
from skillflow.workflow.workflow_executor import (
    StepRunner,
    WorkflowExecution,
    WorkflowExecutor,
)
from skillflow.workflow.workflow_model import Workflow

logger = getLogger(__name__)

_WORKFLOWS_SUBDIR = ".workflows"


class WorkflowStore:
    """Persist and load Workflow objects as JSON files."""

    def __init__(
        self,
        root_dir: Optional[Path] = None,
        step_runner: Optional[StepRunner] = None,
        default_version: Optional[str] = None,
    ) -> None:
        config = get_skillflow_config()
        self._root = Path(root_dir or config.workflows_dir)
        self._root.mkdir(parents=True, exist_ok=True)
        self._runner = step_runner
        self._default_version = default_version or config.default_version
        logger.info(f"WorkflowStore initialized at {self._root}")

    # ── CRUD ──

    def create(self, project_id: str, name: str, description: str = "") -> Workflow:
        """Create and persist an empty workflow with an id derived from ``name``."""
        workflow = Workflow(
            id=self._mint_id(project_id, name),
            project_id=project_id,
            name=name,
            description=description,
            version=self._default_version,
        )
        self._write(workflow)
        logger.info(f"Workflow created: {workflow.name} ({workflow.id})")
        return workflow

    def save(self, workflow: Workflow) -> None:
        """Validate, touch, and write an existing (non-draft) workflow.

        Raises:
            WorkflowValidationError: If the workflow is a draft or
                fails structural validation.
        """
        if workflow.is_draft:
            raise WorkflowValidationError(
                workflow.id, ["draft workflows must be created before they can be saved"]
            )
        workflow.touch()
        self._write(workflow)
        logger.info(f"Workflow saved: {workflow.name} ({workflow.id})")

    def load(self, project_id: str, workflow_id: str) -> Workflow:
        """Load a single workflow.

        Raises:
            WorkflowNotFoundError: If no such workflow file exists.
        """
        path = self._path_for(project_id, workflow_id)
        if not path.exists():
            raise WorkflowNotFoundError(project_id, workflow_id)
        data = json.loads(path.read_text(encoding="utf-8"))
        return Workflow.model_validate(data)

    def delete(self, project_id: str, workflow_id: str) -> bool:
        """Delete a workflow; returns False if it did not exist."""
        path = self._path_for(project_id, workflow_id)
        if path.exists():
            path.unlink()
            logger.info(f"Workflow deleted: {workflow_id}")
            return True
        return False

    def list_project_workflows(self, project_id: str) -> List[Workflow]:
        """List all saved workflows of a project."""
        workflows: List[Workflow] = []
        directory = self._project_dir(project_id)
        if not directory.exists():
            return workflows
        for path in sorted(directory.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                workflows.append(Workflow.model_validate(data))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        return workflows

    def exists(self, project_id: str, workflow_id: str) -> bool:
        return self._path_for(project_id, workflow_id).exists()

    # ── Execution hand-off ──

    async def execute(
        self,
        project_id: str,
        workflow_id: str,
        step_runner: Optional[StepRunner] = None,
    ) -> WorkflowExecution:
        """Run a stored workflow and record its status and last run time."""
        runner = step_runner or self._runner
        if runner is None:
            raise ValueError("No step runner configured for workflow execution")

        workflow = self.load(project_id, workflow_id)
        execution = await WorkflowExecutor(workflow, runner).run()

        workflow.status = execution.status.value
        workflow.last_run = execution.started
        self.save(workflow)
        return execution

    # ── Internals ──

    def _write(self, workflow: Workflow) -> None:
        errors = workflow.validate_graph()
        if errors:
            raise WorkflowValidationError(workflow.id, errors)
        path = self._path_for(workflow.project_id, workflow.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(workflow.model_dump_json(indent=2), encoding="utf-8")

    def _mint_id(self, project_id: str, name: str) -> str:
        base = _slugify(name) or "workflow"
        candidate = base
        suffix = 2
        while self.exists(project_id, candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def _project_dir(self, project_id: str) -> Path:
        return self._root / _checked_id(project_id, "project") / _WORKFLOWS_SUBDIR

    def _path_for(self, project_id: str, workflow_id: str) -> Path:
        return self._project_dir(project_id) / f"{_checked_id(workflow_id, 'workflow')}.json"


def _sanitize(value: str) -> str:
    # Sanitize ID for filesystem
    return "".join(c for c in value if (c.isascii() and c.isalnum()) or c in "-_")


def _checked_id(value: str, kind: str) -> str:
    """Return ``value`` if it is already filesystem-safe, else raise ValueError."""
    if not value or _sanitize(value) != value:
        raise ValueError(
            f"Invalid {kind} id {value!r}: only ASCII letters, digits, '-' and '_' are allowed"
        )
    return value


def _slugify(name: str) -> str:
    return _sanitize(name.strip().lower().replace(" ", "-"))


# ── Singleton ──

_store_instance: Optional[WorkflowStore] = None


def get_workflow_store() -> WorkflowStore:
    """Return the global WorkflowStore singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = WorkflowStore()
    return _store_instance
