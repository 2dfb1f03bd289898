"""Tests for WorkflowEditor: canvas edits, draft saving, and runs."""

import asyncio

import pytest

from conftest import make_step
from skillflow.errors import DependencyCycleError, WorkflowValidationError
from skillflow.workflow.graph_bridge import WorkflowEditor
from skillflow.workflow.step_graph import NodeStatus
from skillflow.workflow.workflow_executor import StepResult, StepRunner, StepRunStatus
from skillflow.workflow.workflow_model import StepConfig, Workflow


class FailFirstRunner(StepRunner):
    async def run_step(self, step, upstream):
        if not step.depends_on:
            raise RuntimeError("boom")
        return StepResult(step_id=step.id, status=StepRunStatus.COMPLETED)


@pytest.fixture
def editor(store):
    return WorkflowEditor(store, spacing=300, lane_y=100)


class TestLoading:
    def test_load_builds_graph(self, editor):
        wf = Workflow(
            id="flow", project_id="proj", name="Flow",
            steps=[make_step("a"), make_step("b", ["a"])],
        )
        graph = editor.load(wf)
        assert [n.id for n in graph.nodes] == ["a", "b"]
        assert [e.id for e in graph.edges] == ["ea->b"]

    def test_reloading_same_workflow_keeps_edits(self, editor):
        wf = Workflow(id="flow", project_id="proj", name="Flow", steps=[make_step("a")])
        graph = editor.load(wf)
        editor.drag_node("a", 10, 20)

        assert editor.load(wf) is graph
        assert graph.get_node("a").position == {"x": 10, "y": 20}

    def test_loading_other_workflow_rebuilds(self, editor):
        first = editor.load(Workflow(id="one", steps=[make_step("a")]))
        second = editor.load(Workflow(id="two", steps=[make_step("x")]))
        assert second is not first
        assert [n.id for n in second.nodes] == ["x"]

    def test_workflow_before_load_raises(self, editor):
        with pytest.raises(RuntimeError):
            editor.workflow


class TestDraftSave:
    """A draft is created in the store, then its steps are saved."""

    def test_draft_needs_project_and_name(self, editor):
        editor.new_draft()
        with pytest.raises(WorkflowValidationError) as exc_info:
            editor.save()
        assert len(exc_info.value.errors) == 2

    def test_draft_save_mints_permanent_id(self, editor, store):
        draft = editor.new_draft("proj")
        editor.rename("Market Brief")
        editor.set_description("Research then write")
        first = editor.add_step(config=StepConfig(skill_id="web"), name="Research")
        second = editor.add_step(name="Write")
        editor.connect(first, second)

        saved = editor.save()

        assert saved.id == "market-brief"
        assert not editor.is_draft
        assert editor.workflow.id != draft.id
        loaded = store.load("proj", "market-brief")
        assert loaded.description == "Research then write"
        assert [s.depends_on for s in loaded.steps] == [[], [first]]
        assert loaded.steps[0].config.skill_id == "web"

    def test_empty_draft_saves_without_steps(self, editor, store):
        editor.new_draft("proj")
        editor.rename("Empty")
        editor.save()
        assert store.load("proj", "empty").steps == []

    def test_second_save_updates_same_workflow(self, editor, store):
        editor.new_draft("proj")
        editor.rename("Flow")
        a = editor.add_step()
        editor.save()

        b = editor.add_step()
        editor.connect(a, b)
        editor.save()

        assert [wf.id for wf in store.list_project_workflows("proj")] == ["flow"]
        assert store.load("proj", "flow").get_step(b).depends_on == [a]


class TestEdgeEditing:
    def test_click_edge_toggles_without_changing_dependencies(self, editor, store):
        editor.load(store.create("proj", "Flow"))
        a = editor.add_step()
        b = editor.add_step()
        edge = editor.connect(a, b)

        assert editor.click_edge(edge.id).parallel is True
        saved = editor.save()
        assert saved.get_step(b).depends_on == [a]

    def test_click_edge_targets_only_the_clicked_edge(self, editor):
        editor.load(Workflow(id="flow", steps=[
            make_step("a"), make_step("a-b"), make_step("b-c"), make_step("c"),
        ]))
        other = editor.connect("a-b", "c")
        clicked = editor.connect("a", "b-c")

        editor.click_edge(clicked.id)
        assert clicked.parallel is True
        assert other.parallel is False

    def test_click_unknown_edge_raises(self, editor):
        editor.new_draft()
        with pytest.raises(KeyError):
            editor.click_edge("enope-nada")

    def test_cycle_forming_connect_rejected(self, editor):
        editor.new_draft()
        a = editor.add_step()
        b = editor.add_step()
        editor.connect(a, b)
        with pytest.raises(DependencyCycleError):
            editor.connect(b, a)

    def test_remove_step_and_disconnect(self, editor):
        editor.new_draft()
        a = editor.add_step()
        b = editor.add_step()
        c = editor.add_step()
        editor.connect(a, b)
        editor.connect(b, c)

        assert editor.disconnect(a, b) is True
        assert editor.remove_step(c) is True
        assert [s.depends_on for s in editor.snapshot().steps] == [[], []]


class TestRun:
    def test_failed_run_restores_node_statuses(self, editor):
        editor.new_draft("proj")
        editor.rename("Flow")
        a = editor.add_step()
        b = editor.add_step()
        editor.set_step_status(b, NodeStatus.COMPLETED)

        with pytest.raises(ValueError):
            asyncio.run(editor.run())

        assert editor.graph.get_node(a).status == NodeStatus.PENDING
        assert editor.graph.get_node(b).status == NodeStatus.COMPLETED

    def test_run_saves_then_marks_node_statuses(self, editor, store):
        editor.load(store.create("proj", "Flow"))
        a = editor.add_step()
        b = editor.add_step()
        editor.connect(a, b)

        execution = asyncio.run(editor.run(FailFirstRunner()))

        assert execution.step_results[a].status == StepRunStatus.FAILED
        assert editor.graph.get_node(a).status == NodeStatus.FAILED
        assert editor.graph.get_node(b).status == NodeStatus.PENDING
        assert editor.workflow.status == "failed"
        assert store.load("proj", "flow").last_run == execution.started
