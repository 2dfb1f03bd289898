"""
Step Graph — the editable node/edge form of a workflow.

A ``StepGraph`` holds positioned nodes (each wrapping a ``Step``) and
directed dependency edges. It is independent of any rendering layer:
the canvas reads ``nodes`` / ``edges`` and calls the mutation methods.

Edges are the single source of truth for dependencies while a workflow
is being edited. ``to_step_list`` derives every step's ``depends_on``
from them; the ``depends_on`` carried by a node's step is ignored.
"""

from __future__ import annotations

import uuid
from enum import Enum
from logging import getLogger
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from skillflow.errors import DanglingDependencyError, DependencyCycleError
from skillflow.workflow.workflow_model import Step, StepConfig, StepType

logger = getLogger(__name__)

DEFAULT_SPACING = 300.0
DEFAULT_LANE_Y = 100.0

SEQUENTIAL_LABEL = "Sequential"
PARALLEL_LABEL = "Parallel"
SEQUENTIAL_STROKE = "#94a3b8"
PARALLEL_STROKE = "#f59e0b"


class NodeStatus(str, Enum):
    """Presentational run status of a node."""

    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"


class GraphNode(BaseModel):
    """A step placed on the canvas."""

    step: Step
    position: Dict[str, float] = Field(
        default_factory=lambda: {"x": 0, "y": 0}
    )
    status: NodeStatus = NodeStatus.PENDING

    @property
    def id(self) -> str:
        return self.step.id


class GraphEdge(BaseModel):
    """A directed dependency edge: ``target`` waits for ``source``.

    ``parallel`` is a display annotation only. It changes the label and
    stroke on the canvas and is never serialized into ``depends_on``.
    """

    source: str
    target: str
    parallel: bool = False

    @property
    def id(self) -> str:
        return f"e{self.source}->{self.target}"

    @property
    def label(self) -> str:
        return PARALLEL_LABEL if self.parallel else SEQUENTIAL_LABEL

    @property
    def stroke(self) -> str:
        return PARALLEL_STROKE if self.parallel else SEQUENTIAL_STROKE


class StepGraph:
    """Mutable node/edge graph of workflow steps."""

    def __init__(
        self,
        spacing: float = DEFAULT_SPACING,
        lane_y: float = DEFAULT_LANE_Y,
    ) -> None:
        self.spacing = spacing
        self.lane_y = lane_y
        self.nodes: List[GraphNode] = []
        self.edges: List[GraphEdge] = []

    # ========================================================================
    # Serialization
    # ========================================================================

    @classmethod
    def from_step_list(
        cls,
        steps: Iterable[Step],
        spacing: float = DEFAULT_SPACING,
        lane_y: float = DEFAULT_LANE_Y,
    ) -> "StepGraph":
        """Build a graph from a persisted step list.

        Nodes are laid out left to right on a single lane at
        ``index * spacing``; one edge is created per ``depends_on`` entry.

        Raises:
            DanglingDependencyError: If a step depends on an unknown id.
        """
        graph = cls(spacing=spacing, lane_y=lane_y)
        steps = list(steps)

        for index, step in enumerate(steps):
            graph.nodes.append(GraphNode(
                step=step.model_copy(update={"depends_on": []}, deep=True),
                position={"x": index * spacing, "y": lane_y},
            ))

        ids = {s.id for s in steps}
        for step in steps:
            for dep_id in step.depends_on:
                if dep_id not in ids:
                    raise DanglingDependencyError(step.id, dep_id)
                if graph.get_edge(dep_id, step.id) is None:
                    graph.edges.append(GraphEdge(source=dep_id, target=step.id))

        return graph

    def to_step_list(self) -> List[Step]:
        """Serialize nodes back to steps in current node order.

        Each step's ``depends_on`` is the list of edge sources targeting
        it. Sequential and parallel edges serialize identically.
        """
        node_ids = {n.id for n in self.nodes}
        incoming: Dict[str, List[str]] = {n.id: [] for n in self.nodes}
        for edge in self.edges:
            if edge.source not in node_ids:
                raise DanglingDependencyError(edge.target, edge.source)
            if edge.target not in node_ids:
                raise DanglingDependencyError(None, edge.target)
            deps = incoming[edge.target]
            if edge.source not in deps:
                deps.append(edge.source)

        return [
            n.step.model_copy(update={"depends_on": incoming[n.id]}, deep=True)
            for n in self.nodes
        ]

    # ========================================================================
    # Nodes
    # ========================================================================

    def add_node(
        self,
        config: Optional[StepConfig] = None,
        name: Optional[str] = None,
        step_type: StepType = StepType.AGENT,
    ) -> str:
        """Create a step node and return its id.

        The node is placed one ``spacing`` to the right of the last slot
        so it never lands on top of an existing node.
        """
        count = len(self.nodes)
        node_id = f"step_{uuid.uuid4().hex[:8]}"
        while self.get_node(node_id) is not None:
            node_id = f"step_{uuid.uuid4().hex[:8]}"

        x = count * self.spacing
        if any(n.position.get("x") == x for n in self.nodes):
            x = max(n.position.get("x", 0) for n in self.nodes) + self.spacing

        step = Step(
            id=node_id,
            name=name or f"New Step {count + 1}",
            step_type=step_type,
            config=config.model_copy(deep=True) if config else StepConfig(),
        )
        self.nodes.append(GraphNode(step=step, position={"x": x, "y": self.lane_y}))
        logger.debug(f"Node added: {node_id} at x={x}")
        return node_id

    def remove_node(self, node_id: str) -> bool:
        """Delete a node and every edge that touches it."""
        node = self.get_node(node_id)
        if node is None:
            return False
        self.nodes.remove(node)
        self.edges = [
            e for e in self.edges if e.source != node_id and e.target != node_id
        ]
        return True

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def _require_node(self, node_id: str) -> GraphNode:
        node = self.get_node(node_id)
        if node is None:
            raise KeyError(f"Unknown node: {node_id}")
        return node

    def move_node(self, node_id: str, x: float, y: float) -> None:
        self._require_node(node_id).position = {"x": x, "y": y}

    def set_status(self, node_id: str, status: NodeStatus) -> None:
        self._require_node(node_id).status = status

    def update_step(self, node_id: str, **changes) -> Step:
        """Replace fields of a node's step (name, step_type, config).

        ``id`` and ``depends_on`` are owned by the graph and cannot be
        changed here.
        """
        for locked in ("id", "depends_on"):
            if locked in changes:
                raise ValueError(f"'{locked}' cannot be changed through update_step")
        node = self._require_node(node_id)
        data = node.step.model_dump()
        for key, value in changes.items():
            data[key] = value.model_dump() if isinstance(value, BaseModel) else value
        node.step = Step.model_validate(data)
        return node.step

    # ========================================================================
    # Edges
    # ========================================================================

    def connect(self, source_id: str, target_id: str) -> GraphEdge:
        """Add a dependency edge ``source_id -> target_id``.

        Idempotent: an existing edge is returned unchanged.

        Raises:
            DanglingDependencyError: If either endpoint is not a node.
            DependencyCycleError: If the edge would close a cycle.
        """
        if self.get_node(source_id) is None:
            raise DanglingDependencyError(target_id, source_id)
        if self.get_node(target_id) is None:
            raise DanglingDependencyError(None, target_id)

        existing = self.get_edge(source_id, target_id)
        if existing is not None:
            return existing

        path = self._path(target_id, source_id)
        if path is not None:
            raise DependencyCycleError(path + [target_id])

        edge = GraphEdge(source=source_id, target=target_id)
        self.edges.append(edge)
        return edge

    def disconnect(self, source_id: str, target_id: str) -> bool:
        edge = self.get_edge(source_id, target_id)
        if edge is None:
            return False
        self.edges.remove(edge)
        return True

    def get_edge(self, source_id: str, target_id: str) -> Optional[GraphEdge]:
        for e in self.edges:
            if e.source == source_id and e.target == target_id:
                return e
        return None

    def find_edge(self, edge_id: str) -> Optional[GraphEdge]:
        for e in self.edges:
            if e.id == edge_id:
                return e
        return None

    def toggle_parallel(self, source_id: str, target_id: str) -> GraphEdge:
        """Flip an edge between its sequential and parallel display style."""
        edge = self.get_edge(source_id, target_id)
        if edge is None:
            raise KeyError(f"Unknown edge: {source_id} -> {target_id}")
        edge.parallel = not edge.parallel
        return edge

    def dependencies_of(self, node_id: str) -> List[str]:
        return [e.source for e in self.edges if e.target == node_id]

    def dependents_of(self, node_id: str) -> List[str]:
        return [e.target for e in self.edges if e.source == node_id]

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _path(self, start: str, goal: str) -> Optional[List[str]]:
        """Depth-first search along edges; returns ``start .. goal`` or None."""
        if start == goal:
            return [start]
        visited: Set[str] = {start}
        stack: List[List[str]] = [[start]]
        while stack:
            path = stack.pop()
            for nxt in self.dependents_of(path[-1]):
                if nxt == goal:
                    return path + [nxt]
                if nxt not in visited:
                    visited.add(nxt)
                    stack.append(path + [nxt])
        return None
