"""
Workflow Engine — AI-compiled, visually edited skill workflows.

Architecture:
    workflow_model    — Workflow / Step / StepConfig data models
    step_graph        — Editable node/edge graph ↔ step list conversion
    graph_bridge      — WorkflowEditor: keeps the canvas and the step list in sync
    plan_compiler     — Natural-language goal → skill-bound linear workflow
    workflow_executor — Compiles a Workflow → LangGraph StateGraph
    workflow_store    — JSON persistence for workflows
"""

from skillflow.workflow.workflow_model import (
    Step,
    StepConfig,
    StepType,
    Workflow,
    find_dependency_cycle,
    topological_order,
)
from skillflow.workflow.step_graph import GraphEdge, GraphNode, NodeStatus, StepGraph
from skillflow.workflow.workflow_executor import (
    ExecutionStatus,
    StepResult,
    StepRunStatus,
    StepRunner,
    WorkflowExecution,
    WorkflowExecutor,
)
from skillflow.workflow.workflow_store import WorkflowStore, get_workflow_store
from skillflow.workflow.graph_bridge import WorkflowEditor
from skillflow.workflow.plan_compiler import (
    CompiledWorkflow,
    CompileStage,
    PlanCompiler,
)

__all__ = [
    "Step",
    "StepConfig",
    "StepType",
    "Workflow",
    "find_dependency_cycle",
    "topological_order",
    "GraphEdge",
    "GraphNode",
    "NodeStatus",
    "StepGraph",
    "ExecutionStatus",
    "StepResult",
    "StepRunStatus",
    "StepRunner",
    "WorkflowExecution",
    "WorkflowExecutor",
    "WorkflowStore",
    "get_workflow_store",
    "WorkflowEditor",
    "CompiledWorkflow",
    "CompileStage",
    "PlanCompiler",
]
