"""
Workflow Executor — compile a workflow's step list into a LangGraph StateGraph.

Step dispatch itself belongs to an injected ``StepRunner``; this module
only guarantees ordering: a step starts once every step in its
``depends_on`` has finished, and is skipped if any of them did not
complete.

Usage::

    executor = WorkflowExecutor(workflow, runner)
    execution = await executor.run()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from logging import getLogger
from typing import Annotated, Any, Callable, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph
from pydantic import BaseModel, Field

from skillflow.errors import DanglingDependencyError, DependencyCycleError
from skillflow.workflow.workflow_model import Step, Workflow, find_dependency_cycle

logger = getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepRunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


class StepResult(BaseModel):
    """Outcome of one step."""

    step_id: str
    status: StepRunStatus
    started: str = Field(default_factory=_now)
    completed: Optional[str] = None
    output_files: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)


class WorkflowExecution(BaseModel):
    """Handle returned for one workflow run."""

    workflow_id: str
    started: str
    completed: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    step_results: Dict[str, StepResult] = Field(default_factory=dict)


class WorkflowProgress(BaseModel):
    workflow_id: str
    step_name: str
    status: str
    progress_percent: int


class StepRunner(ABC):
    """Executes a single step. Implemented by the execution engine."""

    @abstractmethod
    async def run_step(self, step: Step, upstream: Dict[str, StepResult]) -> StepResult:
        """Run ``step`` given the results of its dependencies."""


def _merge_results(
    left: Optional[Dict[str, Dict[str, Any]]],
    right: Optional[Dict[str, Dict[str, Any]]],
) -> Dict[str, Dict[str, Any]]:
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class ExecutionState(TypedDict, total=False):
    results: Annotated[Dict[str, Dict[str, Any]], _merge_results]


class WorkflowExecutor:
    """Compile a Workflow → LangGraph CompiledStateGraph and run it.

    Steps:
        1. Check the step list: non-empty, no dangling references, acyclic.
        2. Register one LangGraph node per step.
        3. Wire ``START`` → roots, dependency → dependent (multi-source
           edges for fan-in), leaves → ``END``.
        4. Compile and execute.
    """

    def __init__(
        self,
        workflow: Workflow,
        runner: StepRunner,
        progress_callback: Optional[Callable[[WorkflowProgress], None]] = None,
    ) -> None:
        self._workflow = workflow
        self._runner = runner
        self._progress = progress_callback
        self._graph: Optional[CompiledStateGraph] = None

    # ========================================================================
    # Compilation
    # ========================================================================

    def compile(self) -> CompiledStateGraph:
        """Compile the step list into a LangGraph StateGraph.

        Raises:
            ValueError: If the workflow has no steps.
            DanglingDependencyError: If a step depends on an unknown step.
            DependencyCycleError: If the dependencies form a cycle.
        """
        steps = self._workflow.steps
        if not steps:
            raise ValueError(f"Workflow '{self._workflow.name}' has no steps to execute")

        node_keys: Dict[str, str] = {s.id: f"node_{i}" for i, s in enumerate(steps)}
        for step in steps:
            for dep_id in step.depends_on:
                if dep_id not in node_keys:
                    raise DanglingDependencyError(step.id, dep_id)
        cycle = find_dependency_cycle(steps)
        if cycle:
            raise DependencyCycleError(cycle)

        graph_builder = StateGraph(ExecutionState)

        # ── Register LangGraph nodes ──
        for step in steps:
            graph_builder.add_node(node_keys[step.id], self._make_node_function(step))

        # ── Wire edges ──
        has_dependents = set()
        for step in steps:
            deps = list(dict.fromkeys(step.depends_on))
            has_dependents.update(deps)
            key = node_keys[step.id]
            if not deps:
                graph_builder.add_edge(START, key)
            elif len(deps) == 1:
                graph_builder.add_edge(node_keys[deps[0]], key)
            else:
                # Fan-in: wait for every dependency
                graph_builder.add_edge([node_keys[d] for d in deps], key)

        for step in steps:
            if step.id not in has_dependents:
                graph_builder.add_edge(node_keys[step.id], END)

        self._graph = graph_builder.compile()
        logger.info(
            f"Workflow '{self._workflow.name}' compiled: "
            f"{len(steps)} steps, {sum(len(s.depends_on) for s in steps)} dependencies"
        )
        return self._graph

    # ========================================================================
    # Execution
    # ========================================================================

    async def run(self) -> WorkflowExecution:
        """Compile (if needed) and execute the workflow."""
        if self._graph is None:
            self.compile()

        execution = WorkflowExecution(
            workflow_id=self._workflow.id,
            started=_now(),
        )
        logger.info(f"Running workflow '{self._workflow.name}' …")

        final_state = await self._graph.ainvoke({"results": {}})
        results = final_state.get("results", {})

        execution.step_results = {
            sid: StepResult.model_validate(data) for sid, data in results.items()
        }
        execution.completed = _now()
        execution.status = self._overall_status(execution.step_results)
        logger.info(
            f"Workflow '{self._workflow.name}' finished: {execution.status.value}"
        )
        return execution

    @property
    def graph(self) -> Optional[CompiledStateGraph]:
        return self._graph

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _make_node_function(self, step: Step):
        """Create a LangGraph node that runs one step through the runner."""
        runner = self._runner
        total = len(self._workflow.steps)
        report = self._report

        async def _node_fn(state: ExecutionState) -> Dict[str, Any]:
            results = state.get("results", {})
            upstream: Dict[str, StepResult] = {
                dep: StepResult.model_validate(results[dep])
                for dep in step.depends_on
                if dep in results
            }
            unmet = [
                dep for dep in step.depends_on
                if dep not in upstream or upstream[dep].status != StepRunStatus.COMPLETED
            ]

            if unmet:
                result = StepResult(
                    step_id=step.id,
                    status=StepRunStatus.SKIPPED,
                    completed=_now(),
                    error="Dependencies not satisfied",
                )
            else:
                report(step, "running", len(results), total)
                try:
                    result = await runner.run_step(step, upstream)
                    if result.completed is None:
                        result.completed = _now()
                except Exception as e:
                    logger.error(f"Step '{step.name}' ({step.id}) failed: {e}")
                    result = StepResult(
                        step_id=step.id,
                        status=StepRunStatus.FAILED,
                        completed=_now(),
                        error=str(e)[:500],
                    )

            report(step, result.status.value, len(results) + 1, total)
            return {"results": {step.id: result.model_dump()}}

        _node_fn.__name__ = f"step_{step.id}"
        _node_fn.__qualname__ = _node_fn.__name__
        return _node_fn

    def _report(self, step: Step, status: str, done: int, total: int) -> None:
        if self._progress is None:
            return
        self._progress(WorkflowProgress(
            workflow_id=self._workflow.id,
            step_name=step.name,
            status=status,
            progress_percent=int(done * 100 / total) if total else 100,
        ))

    @staticmethod
    def _overall_status(results: Dict[str, StepResult]) -> ExecutionStatus:
        statuses = [r.status for r in results.values()]
        if statuses and all(s == StepRunStatus.COMPLETED for s in statuses):
            return ExecutionStatus.COMPLETED
        if any(s == StepRunStatus.COMPLETED for s in statuses):
            return ExecutionStatus.PARTIAL_SUCCESS
        return ExecutionStatus.FAILED
