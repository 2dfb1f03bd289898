"""Tests for StepGraph: step list conversion, editing, and cycle rejection."""

import pytest

from conftest import make_step
from skillflow.errors import DanglingDependencyError, DependencyCycleError
from skillflow.workflow.step_graph import (
    PARALLEL_LABEL,
    SEQUENTIAL_LABEL,
    NodeStatus,
    StepGraph,
)
from skillflow.workflow.workflow_model import StepConfig, StepType


def _deps(steps):
    return {s.id: s.depends_on for s in steps}


class TestFromStepList:
    """Building a graph from persisted steps."""

    def test_nodes_are_laid_out_on_one_lane(self):
        steps = [make_step("a"), make_step("b", ["a"]), make_step("c", ["b"])]
        graph = StepGraph.from_step_list(steps, spacing=300, lane_y=100)

        assert [n.id for n in graph.nodes] == ["a", "b", "c"]
        assert [n.position for n in graph.nodes] == [
            {"x": 0, "y": 100},
            {"x": 300, "y": 100},
            {"x": 600, "y": 100},
        ]
        assert all(n.status == NodeStatus.PENDING for n in graph.nodes)

    def test_one_edge_per_dependency(self):
        steps = [make_step("a"), make_step("b"), make_step("c", ["a", "b"])]
        graph = StepGraph.from_step_list(steps)

        assert sorted(e.id for e in graph.edges) == ["ea->c", "eb->c"]
        assert all(e.label == SEQUENTIAL_LABEL for e in graph.edges)

    def test_duplicate_dependency_yields_single_edge(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b", ["a", "a"])])
        assert len(graph.edges) == 1

    def test_dangling_dependency_rejected(self):
        with pytest.raises(DanglingDependencyError) as exc_info:
            StepGraph.from_step_list([make_step("b", ["ghost"])])
        assert exc_info.value.missing_id == "ghost"

    def test_round_trip_preserves_dependencies(self):
        steps = [
            make_step("a"),
            make_step("b", ["a"]),
            make_step("c", ["a"]),
            make_step("d", ["b", "c"]),
        ]
        restored = StepGraph.from_step_list(steps).to_step_list()

        assert [s.id for s in restored] == ["a", "b", "c", "d"]
        assert {k: sorted(v) for k, v in _deps(restored).items()} == {
            k: sorted(v) for k, v in _deps(steps).items()
        }


class TestEditing:
    """Node and edge mutations."""

    def test_add_node_positions_after_last_slot(self):
        graph = StepGraph(spacing=200, lane_y=50)
        first = graph.add_node()
        second = graph.add_node(name="Summarize", config=StepConfig(skill_id="writer"))

        assert graph.get_node(first).position == {"x": 0, "y": 50}
        assert graph.get_node(second).position == {"x": 200, "y": 50}
        assert graph.get_node(first).step.name == "New Step 1"
        assert graph.get_node(second).step.config.skill_id == "writer"
        assert graph.get_node(second).step.step_type == StepType.AGENT

    def test_add_node_avoids_occupied_slot(self):
        graph = StepGraph(spacing=100)
        a = graph.add_node()
        b = graph.add_node()
        graph.remove_node(a)
        graph.move_node(b, 100, 0)

        c = graph.add_node()
        # slot 1 * 100 is taken by b
        assert graph.get_node(c).position["x"] == 200

    def test_remove_node_drops_touching_edges(self):
        graph = StepGraph.from_step_list(
            [make_step("a"), make_step("b", ["a"]), make_step("c", ["b"])]
        )
        assert graph.remove_node("b") is True

        assert graph.edges == []
        assert _deps(graph.to_step_list()) == {"a": [], "c": []}
        assert graph.remove_node("b") is False

    def test_connect_is_idempotent(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b")])
        first = graph.connect("a", "b")
        assert graph.connect("a", "b") is first
        assert len(graph.edges) == 1

    def test_connect_unknown_node_reports_missing_endpoint(self):
        graph = StepGraph.from_step_list([make_step("a")])
        with pytest.raises(DanglingDependencyError) as exc_info:
            graph.connect("a", "ghost")
        assert exc_info.value.missing_id == "ghost"
        assert exc_info.value.step_id is None

        with pytest.raises(DanglingDependencyError) as exc_info:
            graph.connect("ghost", "a")
        assert exc_info.value.missing_id == "ghost"
        assert exc_info.value.step_id == "a"

    def test_edge_to_removed_target_reported_on_serialization(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b", ["a"])])
        graph.nodes = [n for n in graph.nodes if n.id != "b"]
        with pytest.raises(DanglingDependencyError) as exc_info:
            graph.to_step_list()
        assert exc_info.value.missing_id == "b"
        assert "'b'" in str(exc_info.value)

    def test_disconnect(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b", ["a"])])
        assert graph.disconnect("a", "b") is True
        assert graph.disconnect("a", "b") is False
        assert _deps(graph.to_step_list()) == {"a": [], "b": []}

    def test_update_step_changes_fields_but_not_identity(self):
        graph = StepGraph.from_step_list([make_step("a")])
        step = graph.update_step("a", name="Research", config=StepConfig(skill_id="web"))
        assert step.name == "Research"
        assert graph.get_node("a").step.config.skill_id == "web"

        with pytest.raises(ValueError):
            graph.update_step("a", id="b")
        with pytest.raises(ValueError):
            graph.update_step("a", depends_on=["x"])

    def test_move_and_status_are_visual_only(self):
        steps = [make_step("a"), make_step("b", ["a"])]
        graph = StepGraph.from_step_list(steps)
        graph.move_node("b", 42, 7)
        graph.set_status("a", NodeStatus.COMPLETED)

        assert graph.get_node("b").position == {"x": 42, "y": 7}
        assert graph.to_step_list() == StepGraph.from_step_list(steps).to_step_list()

    def test_move_unknown_node_raises(self):
        with pytest.raises(KeyError):
            StepGraph().move_node("ghost", 0, 0)


class TestCycleRejection:
    """Edges that would close a cycle are refused."""

    def test_back_edge_rejected(self):
        graph = StepGraph.from_step_list(
            [make_step("a"), make_step("b", ["a"]), make_step("c", ["b"])]
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            graph.connect("c", "a")

        assert exc_info.value.path == ["a", "b", "c", "a"]
        assert graph.get_edge("c", "a") is None

    def test_self_loop_rejected(self):
        graph = StepGraph.from_step_list([make_step("a")])
        with pytest.raises(DependencyCycleError):
            graph.connect("a", "a")

    def test_parallel_branches_are_not_cycles(self):
        graph = StepGraph.from_step_list(
            [make_step("a"), make_step("b", ["a"]), make_step("c", ["a"])]
        )
        graph.connect("b", "c")
        assert graph.dependencies_of("c") == ["a", "b"]


class TestParallelToggle:
    """The parallel flag never reaches the step list."""

    def test_toggle_changes_label_only(self):
        steps = [make_step("a"), make_step("b", ["a"])]
        graph = StepGraph.from_step_list(steps)
        before = graph.to_step_list()

        edge = graph.toggle_parallel("a", "b")
        assert edge.parallel is True
        assert edge.label == PARALLEL_LABEL
        assert graph.to_step_list() == before

        assert graph.toggle_parallel("a", "b").label == SEQUENTIAL_LABEL

    def test_toggle_unknown_edge_raises(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b")])
        with pytest.raises(KeyError):
            graph.toggle_parallel("a", "b")

    def test_edge_ids_stay_distinct_with_hyphenated_step_ids(self):
        graph = StepGraph.from_step_list([
            make_step("a"), make_step("a-b"), make_step("b-c"), make_step("c"),
        ])
        upper = graph.connect("a-b", "c")
        lower = graph.connect("a", "b-c")
        assert upper.id != lower.id

        graph.toggle_parallel("a", "b-c")
        assert graph.find_edge(lower.id).parallel is True
        assert graph.find_edge(upper.id).parallel is False

    def test_find_edge_by_id(self):
        graph = StepGraph.from_step_list([make_step("a"), make_step("b", ["a"])])
        assert graph.find_edge("ea->b").source == "a"
        assert graph.find_edge("eb->a") is None
