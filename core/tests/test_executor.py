"""
Tests for GraphExecutor traversal.

Covers passive pass-through, condition branching, failure containment,
revisits, cancellation and the step limit.
"""

import pytest

from flowforge.errors import ExecutionError, NodeNotFoundError
from flowforge.graph.catalog import create_node
from flowforge.graph.executor import (
    CANCELLED_MESSAGE,
    REVISIT_MESSAGE,
    STEP_LIMIT_MESSAGE,
    CancellationToken,
    ExecutionSummary,
    GraphExecutor,
    NodeState,
)
from flowforge.graph.node import NodeKind
from flowforge.graph.store import WorkflowGraph
from flowforge.observability import get_trace_context
from flowforge.runtime.event_bus import EventBus, EventType


# ---- Fake handler that records its calls ----
class RecordingHandler:
    def __init__(self, fail_on: set[str] | None = None):
        self.calls: list[str] = []
        self.fail_on = fail_on or set()

    def __call__(self, node, context):
        self.calls.append(node.id)
        if node.id in self.fail_on:
            raise ExecutionError("boom")
        return f"handled {node.id}"


def states_for(events, node_id) -> list[NodeState]:
    return [e.state for e in events if e.node_id == node_id]


class TestPassiveNodes:
    def test_only_task_logic_runs(self, chain_graph):
        task_handler = RecordingHandler()
        passive_handler = RecordingHandler()
        executor = GraphExecutor(
            handlers={
                NodeKind.TASK: task_handler,
                NodeKind.START: passive_handler,
                NodeKind.DATA: passive_handler,
                NodeKind.END: passive_handler,
            }
        )

        events = list(executor.execute(chain_graph))

        assert task_handler.calls == ["task"]
        assert passive_handler.calls == []
        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["start", "data", "task", "end"]
        assert summary.done == ["start", "data", "task", "end"]
        assert summary.success

    def test_state_sequence_per_node(self, chain_graph):
        events = list(GraphExecutor().execute(chain_graph))
        for node_id in ("start", "data", "task", "end"):
            assert states_for(events, node_id) == [
                NodeState.READY,
                NodeState.RUNNING,
                NodeState.DONE,
            ]

    def test_default_task_logic_message(self, chain_graph):
        events = list(GraphExecutor().execute(chain_graph))
        done = [e for e in events if e.node_id == "task" and e.state == NodeState.DONE]
        assert done[0].message == "Executed task 'Clean data': drop nulls"


class TestConditions:
    @pytest.mark.parametrize(
        "age,taken,not_taken", [("21", "allow", "deny"), ("17", "deny", "allow")]
    )
    def test_follows_one_branch(self, branch_graph, age, taken, not_taken):
        events = list(GraphExecutor().execute(branch_graph, context={"age": age}))
        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["start", "adult", taken]
        assert not_taken not in summary.path

    def test_missing_variable_takes_no_branch(self, branch_graph):
        summary = ExecutionSummary.from_events(GraphExecutor().execute(branch_graph))
        assert summary.path == ["start", "adult", "deny"]

    def test_missing_branch_fails_the_condition(self):
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        graph.add_node(create_node(NodeKind.CONDITION, "c", "Check", extra="age > 18"))
        graph.add_node(create_node(NodeKind.END, "y", "Yes"))
        graph.connect("s", "c")
        graph.connect("c", "y", label="YES")

        events = list(GraphExecutor().execute(graph, context={"age": "3"}))

        summary = ExecutionSummary.from_events(events)
        assert summary.failed == ["c"]
        assert summary.errors["c"] == "No connection labelled NO"
        assert "y" not in summary.path

    def test_unlabelled_branches_are_never_guessed(self):
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        graph.add_node(create_node(NodeKind.CONDITION, "c", "Check", extra="age > 18"))
        graph.add_node(create_node(NodeKind.END, "a", "A"))
        graph.add_node(create_node(NodeKind.END, "b", "B"))
        graph.connect("s", "c")
        graph.connect("c", "a")
        graph.connect("c", "b")

        summary = ExecutionSummary.from_events(
            GraphExecutor().execute(graph, context={"age": "30"})
        )

        assert summary.failed == ["c"]
        assert summary.path == ["s", "c"]


class TestFailureContainment:
    def build(self) -> WorkflowGraph:
        """START fans out to two TASK -> END chains."""
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        for branch in ("1", "2"):
            graph.add_node(create_node(NodeKind.TASK, f"t{branch}", f"Task {branch}"))
            graph.add_node(create_node(NodeKind.END, f"e{branch}", f"End {branch}"))
            graph.connect("s", f"t{branch}")
            graph.connect(f"t{branch}", f"e{branch}")
        return graph

    def test_failed_node_stops_its_subtree_only(self):
        handler = RecordingHandler(fail_on={"t1"})
        executor = GraphExecutor(handlers={NodeKind.TASK: handler})

        events = list(executor.execute(self.build()))

        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["s", "t1", "t2", "e2"]
        assert summary.failed == ["t1"]
        assert summary.errors["t1"] == "Execution failed: boom"
        assert "e1" not in summary.path
        assert not summary.success

    def test_unexpected_exceptions_are_contained(self):
        def explode(node, context):
            raise RuntimeError("disk on fire")

        executor = GraphExecutor(handlers={NodeKind.TASK: explode})
        summary = ExecutionSummary.from_events(executor.execute(self.build()))
        assert summary.failed == ["t1", "t2"]
        assert summary.done == ["s"]


class TestTraversal:
    def test_diamond_runs_join_once(self):
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        graph.add_node(create_node(NodeKind.TASK, "a", "A"))
        graph.add_node(create_node(NodeKind.TASK, "b", "B"))
        graph.add_node(create_node(NodeKind.END, "e", "End"))
        graph.connect("s", "a")
        graph.connect("s", "b")
        graph.connect("a", "e")
        graph.connect("b", "e")
        handler = RecordingHandler()

        events = list(GraphExecutor(handlers={NodeKind.TASK: handler}).execute(graph))

        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["s", "a", "e", "b"]
        assert handler.calls == ["a", "b"]
        revisits = [e for e in events if e.node_id == "e" and e.state == NodeState.SKIPPED]
        assert [e.message for e in revisits] == [REVISIT_MESSAGE]
        assert sorted(summary.done) == ["a", "b", "e", "s"]
        assert summary.skipped == []
        assert summary.revisits == ["e"]

    def test_cycle_terminates_without_validation(self):
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        graph.add_node(create_node(NodeKind.DATA, "d", "Data"))
        graph.connect("s", "d")
        graph.connect("d", "s")

        summary = ExecutionSummary.from_events(GraphExecutor().execute(graph))

        assert summary.path == ["s", "d"]
        assert summary.revisits == ["s"]
        assert summary.skipped == []

    def test_all_start_nodes_share_visited(self):
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s1", "Start 1"))
        graph.add_node(create_node(NodeKind.START, "s2", "Start 2"))
        graph.add_node(create_node(NodeKind.END, "e", "End"))
        graph.connect("s1", "e")
        graph.connect("s2", "e")

        summary = ExecutionSummary.from_events(GraphExecutor().execute(graph))

        assert summary.path == ["s1", "e", "s2"]

    def test_explicit_start_ids(self, chain_graph):
        summary = ExecutionSummary.from_events(
            GraphExecutor().execute(chain_graph, start_ids=["task"])
        )
        assert summary.path == ["task", "end"]

    def test_unknown_start_raises(self, chain_graph):
        with pytest.raises(NodeNotFoundError):
            list(GraphExecutor().execute(chain_graph, start_ids=["ghost"]))

    def test_run_id_is_shared_within_a_run(self, chain_graph):
        executor = GraphExecutor()
        first = list(executor.execute(chain_graph))
        second = list(executor.execute(chain_graph))
        assert len({e.run_id for e in first}) == 1
        assert first[0].run_id != second[0].run_id
        # visited state does not leak between runs
        assert ExecutionSummary.from_events(second).path == ["start", "data", "task", "end"]


class TestStopping:
    def test_cancellation(self, chain_graph):
        token = CancellationToken()
        events = []
        for event in GraphExecutor().execute(chain_graph, cancel_token=token):
            events.append(event)
            if event.node_id == "data" and event.state == NodeState.DONE:
                token.cancel()

        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["start", "data"]
        assert summary.cancelled
        assert not summary.success
        assert events[-1].node_id == "task"
        assert events[-1].message == CANCELLED_MESSAGE

    def test_step_limit(self, chain_graph):
        events = list(GraphExecutor(max_steps=2).execute(chain_graph))
        summary = ExecutionSummary.from_events(events)
        assert summary.path == ["start", "data"]
        assert events[-1].state == NodeState.SKIPPED
        assert events[-1].message == STEP_LIMIT_MESSAGE

    def test_closing_early_still_completes_the_run(self, chain_graph):
        bus = EventBus()
        run = GraphExecutor(event_bus=bus).execute(chain_graph)
        for event in run:
            if event.node_id == "data":
                break
        run.close()

        completed = bus.get_history(EventType.EXECUTION_COMPLETED)
        assert len(completed) == 1
        assert completed[0].data["interrupted"] is True
        assert completed[0].data["success"] is False
        assert get_trace_context()["node_id"] is None

    def test_full_run_is_not_interrupted(self, chain_graph):
        bus = EventBus()
        list(GraphExecutor(event_bus=bus).execute(chain_graph))
        assert bus.get_history(EventType.EXECUTION_COMPLETED)[0].data["interrupted"] is False


class TestExecuteNode:
    def test_runs_single_node(self, chain_graph):
        events = list(GraphExecutor().execute_node(chain_graph, "task"))
        assert [e.state for e in events] == [NodeState.RUNNING, NodeState.DONE]

    def test_passive_node_is_skipped(self, chain_graph):
        events = list(GraphExecutor().execute_node(chain_graph, "start"))
        assert [(e.state, e.message) for e in events] == [(NodeState.SKIPPED, "passive node")]

    def test_failure(self, chain_graph):
        executor = GraphExecutor(handlers={NodeKind.TASK: RecordingHandler(fail_on={"task"})})
        events = list(executor.execute_node(chain_graph, "task"))
        assert events[-1].state == NodeState.FAILED
        assert events[-1].message == "boom"


def test_events_are_published_to_bus(chain_graph):
    bus = EventBus()
    list(GraphExecutor(event_bus=bus).execute(chain_graph))

    history = bus.get_history()
    assert history[0].type == EventType.EXECUTION_STARTED
    assert history[-1].type == EventType.EXECUTION_COMPLETED
    assert history[-1].data["success"] is True
    state_changes = bus.get_history(EventType.NODE_STATE_CHANGED, node_id="task")
    assert [e.data["state"] for e in state_changes] == ["ready", "running", "done"]
    assert len({e.run_id for e in history}) == 1


def test_event_to_dict(chain_graph):
    event = next(GraphExecutor().execute(chain_graph))
    data = event.to_dict()
    assert data["node_id"] == "start"
    assert data["state"] == "ready"
