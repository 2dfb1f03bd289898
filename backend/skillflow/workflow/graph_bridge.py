"""
Workflow Editor — keeps the editable StepGraph and the persisted step list in sync.

The canvas forwards user interactions here. Each one lands in exactly
one of two places:

    visual state     node position, node status, edge parallel label
    canonical state  nodes and dependency edges

``save`` always serializes the canonical state through
``StepGraph.to_step_list``, so the stored ``depends_on`` lists reflect
the latest topology whatever the edge labels say.
"""

from __future__ import annotations

from logging import getLogger
from typing import Optional

from skillflow.config.skillflow_config import get_skillflow_config
from skillflow.errors import WorkflowValidationError
from skillflow.workflow.step_graph import GraphEdge, NodeStatus, StepGraph
from skillflow.workflow.workflow_executor import (
    StepRunStatus,
    StepRunner,
    WorkflowExecution,
)
from skillflow.workflow.workflow_model import Step, StepConfig, StepType, Workflow
from skillflow.workflow.workflow_store import WorkflowStore

logger = getLogger(__name__)

_RUN_TO_NODE_STATUS = {
    StepRunStatus.COMPLETED: NodeStatus.COMPLETED,
    StepRunStatus.FAILED: NodeStatus.FAILED,
    StepRunStatus.SKIPPED: NodeStatus.PENDING,
}


class WorkflowEditor:
    """Editing session for one workflow at a time."""

    def __init__(
        self,
        store: WorkflowStore,
        spacing: Optional[float] = None,
        lane_y: Optional[float] = None,
    ) -> None:
        config = get_skillflow_config()
        self._store = store
        self._spacing = spacing if spacing is not None else config.node_spacing
        self._lane_y = lane_y if lane_y is not None else config.lane_y
        self._workflow: Optional[Workflow] = None
        self._graph = StepGraph(spacing=self._spacing, lane_y=self._lane_y)

    # ========================================================================
    # Loading
    # ========================================================================

    def load(self, workflow: Workflow) -> StepGraph:
        """Show ``workflow`` on the canvas.

        The graph is rebuilt only when the workflow id changes, so
        reloading the same workflow keeps unsaved edits and positions.
        """
        if self._workflow is not None and self._workflow.id == workflow.id:
            return self._graph

        self._workflow = workflow.model_copy(deep=True)
        self._graph = StepGraph.from_step_list(
            workflow.steps, spacing=self._spacing, lane_y=self._lane_y,
        )
        logger.info(
            f"Editor loaded workflow '{workflow.name or workflow.id}' "
            f"({len(self._graph.nodes)} nodes, {len(self._graph.edges)} edges)"
        )
        return self._graph

    def new_draft(self, project_id: str = "") -> Workflow:
        """Start an unsaved workflow."""
        draft = Workflow.new_draft(project_id=project_id)
        self.load(draft)
        return draft

    @property
    def workflow(self) -> Workflow:
        if self._workflow is None:
            raise RuntimeError("No workflow loaded")
        return self._workflow

    @property
    def graph(self) -> StepGraph:
        return self._graph

    @property
    def is_draft(self) -> bool:
        return self.workflow.is_draft

    # ========================================================================
    # Metadata
    # ========================================================================

    def rename(self, name: str) -> None:
        self.workflow.name = name

    def set_description(self, description: str) -> None:
        self.workflow.description = description

    def set_project(self, project_id: str) -> None:
        self.workflow.project_id = project_id

    # ========================================================================
    # Canonical edits
    # ========================================================================

    def add_step(
        self,
        config: Optional[StepConfig] = None,
        name: Optional[str] = None,
        step_type: StepType = StepType.AGENT,
    ) -> str:
        return self._graph.add_node(config=config, name=name, step_type=step_type)

    def remove_step(self, step_id: str) -> bool:
        return self._graph.remove_node(step_id)

    def update_step(self, step_id: str, **changes) -> Step:
        return self._graph.update_step(step_id, **changes)

    def connect(self, source_id: str, target_id: str) -> GraphEdge:
        return self._graph.connect(source_id, target_id)

    def disconnect(self, source_id: str, target_id: str) -> bool:
        return self._graph.disconnect(source_id, target_id)

    # ========================================================================
    # Visual edits
    # ========================================================================

    def click_edge(self, edge_id: str) -> GraphEdge:
        """Toggle an edge between the sequential and parallel labels."""
        edge = self._graph.find_edge(edge_id)
        if edge is None:
            raise KeyError(f"Unknown edge: {edge_id}")
        return self._graph.toggle_parallel(edge.source, edge.target)

    def drag_node(self, step_id: str, x: float, y: float) -> None:
        self._graph.move_node(step_id, x, y)

    def set_step_status(self, step_id: str, status: NodeStatus) -> None:
        self._graph.set_status(step_id, status)

    # ========================================================================
    # Save / run
    # ========================================================================

    def snapshot(self) -> Workflow:
        """Current workflow with steps serialized from the graph (unsaved)."""
        return self.workflow.model_copy(
            update={"steps": self._graph.to_step_list()}, deep=True,
        )

    def save(self) -> Workflow:
        """Persist the current state and return the stored workflow.

        A draft is created first (minting a permanent id) and its steps
        are written in a follow-up save. The draft id is discarded.

        Raises:
            WorkflowValidationError: If a draft has no project or name,
                or the workflow fails validation.
        """
        current = self.snapshot()

        if current.is_draft:
            problems = []
            if not current.project_id:
                problems.append("Please select a project for the workflow")
            if not current.name:
                problems.append("Please name your workflow")
            if problems:
                raise WorkflowValidationError(current.id, problems)

            saved = self._store.create(current.project_id, current.name, current.description)
            if current.steps:
                saved.steps = current.steps
                self._store.save(saved)
            logger.info(f"Draft {current.id} persisted as {saved.id}")
        else:
            self._store.save(current)
            saved = current

        self._workflow = saved.model_copy(deep=True)
        return saved

    async def run(self, step_runner: Optional[StepRunner] = None) -> WorkflowExecution:
        """Save, execute, and reflect step outcomes as node statuses."""
        saved = self.save()
        previous = {node.id: node.status for node in self._graph.nodes}
        for node in self._graph.nodes:
            node.status = NodeStatus.RUNNING
        try:
            execution = await self._store.execute(saved.project_id, saved.id, step_runner)
        except Exception as e:
            for node in self._graph.nodes:
                node.status = previous.get(node.id, NodeStatus.PENDING)
            logger.error(f"Run of workflow {saved.id} failed: {e}")
            raise

        for step_id, result in execution.step_results.items():
            if self._graph.get_node(step_id) is not None:
                self._graph.set_status(step_id, _RUN_TO_NODE_STATUS[result.status])

        self._workflow = self._store.load(saved.project_id, saved.id)
        return execution
