"""
Graph Executor - Runs workflow graphs depth-first.

The executor:
1. Resets its visited set for every run
2. Walks the graph depth-first from each start node
3. Skips business logic for passive kinds (START, END, DATA, OUTPUT)
   but still follows their connections
4. Evaluates CONDITION predicates and follows exactly one branch
5. Contains failures: a node that raises is marked FAILED and its own
   successors are not visited, while siblings and other start subtrees
   keep running
6. Yields an ExecutionEvent for every state change

Execution is a generator. It is finite for a validated (acyclic) graph,
and the visited set makes it finite for a cyclic one too. A cancellation
token is checked once per traversal step.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from flowforge.graph.conditions import evaluate_condition
from flowforge.graph.handlers import NODE_HANDLERS, NodeHandler, run_node_logic
from flowforge.graph.kinds import kind_spec
from flowforge.graph.node import Node, NodeKind
from flowforge.graph.store import WorkflowGraph
from flowforge.observability import set_trace_context
from flowforge.runtime.event_bus import EventBus, EventType

__all__ = [
    "NODE_HANDLERS",
    "NodeHandler",
    "run_node_logic",
    "NodeState",
    "ExecutionEvent",
    "CancellationToken",
    "ExecutionSummary",
    "GraphExecutor",
]

logger = logging.getLogger(__name__)


class NodeState(StrEnum):
    """Lifecycle of a node within one run."""

    READY = "ready"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ExecutionEvent:
    """One state change of one node during a run."""

    node_id: str
    state: NodeState
    message: str = ""
    run_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "state": self.state.value,
            "message": self.message,
            "run_id": self.run_id,
            "timestamp": self.timestamp.isoformat(),
        }


class CancellationToken:
    """Lets a host stop a run between traversal steps."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ExecutionSummary:
    """Aggregate view of a finished run."""

    run_id: str = ""
    path: list[str] = field(default_factory=list)  # Node ids visited, in order
    done: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    revisits: list[str] = field(default_factory=list)  # Already-visited nodes reached again
    errors: dict[str, str] = field(default_factory=dict)  # {node_id: message}
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.failed and not self.cancelled

    @classmethod
    def from_events(cls, events: Iterable[ExecutionEvent]) -> "ExecutionSummary":
        summary = cls()
        for event in events:
            summary.run_id = summary.run_id or event.run_id
            if event.state == NodeState.RUNNING:
                summary.path.append(event.node_id)
            elif event.state == NodeState.DONE:
                summary.done.append(event.node_id)
            elif event.state == NodeState.FAILED:
                summary.failed.append(event.node_id)
                summary.errors[event.node_id] = event.message
            elif event.state == NodeState.SKIPPED and event.message == REVISIT_MESSAGE:
                summary.revisits.append(event.node_id)
            elif event.state == NodeState.SKIPPED:
                summary.skipped.append(event.node_id)
                if event.message == CANCELLED_MESSAGE:
                    summary.cancelled = True
        return summary


CANCELLED_MESSAGE = "execution cancelled"
STEP_LIMIT_MESSAGE = "step limit reached"
REVISIT_MESSAGE = "already visited"


# === EXECUTOR ===


class GraphExecutor:
    """
    Executes workflow graphs.

    Example:
        executor = GraphExecutor(event_bus=bus)

        for event in executor.execute(graph, context={"age": "21"}):
            print(event.node_id, event.state, event.message)
    """

    def __init__(
        self,
        handlers: dict[NodeKind, NodeHandler] | None = None,
        event_bus: EventBus | None = None,
        max_steps: int | None = None,
    ):
        """
        Initialize the executor.

        Args:
            handlers: Per-kind business logic overriding NODE_HANDLERS
            event_bus: Optional bus that receives every execution event
            max_steps: Maximum nodes run per execution (None = unbounded)
        """
        self.handlers = {**NODE_HANDLERS, **(handlers or {})}
        self._event_bus = event_bus
        self.max_steps = max_steps

    def execute(
        self,
        graph: WorkflowGraph,
        start_ids: Iterable[str] | None = None,
        context: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[ExecutionEvent]:
        """
        Execute the graph depth-first from each start node.

        Args:
            graph: Graph to run
            start_ids: Entry points (default: every START node)
            context: Variables visible to CONDITION predicates and handlers
            cancel_token: Checked once per traversal step

        Yields:
            ExecutionEvent for every node state change
        """
        if start_ids is None:
            start_ids = [n.id for n in graph.find_start_nodes()]
        start_ids = list(start_ids)
        for start_id in start_ids:
            graph.find_by_id(start_id)

        context = dict(context or {})
        run_id = uuid.uuid4().hex
        visited: set[str] = set()
        steps = 0

        set_trace_context(run_id=run_id, graph_id=graph.id)
        logger.info(
            f"Starting execution from {len(start_ids)} start node(s)",
            extra={"event": "execution_started"},
        )
        self._publish(EventType.EXECUTION_STARTED, None, run_id, start_ids=start_ids)

        emitted: list[ExecutionEvent] = []

        def emit(node_id: str, state: NodeState, message: str = "") -> ExecutionEvent:
            event = ExecutionEvent(node_id=node_id, state=state, message=message, run_id=run_id)
            emitted.append(event)
            self._publish(
                EventType.NODE_STATE_CHANGED, node_id, run_id, state=state.value, message=message
            )
            return event

        stopped = False
        finished = False
        try:
            for start_id in start_ids:
                stack = [start_id]
                while stack:
                    node_id = stack.pop()

                    if cancel_token is not None and cancel_token.cancelled:
                        logger.info("Execution cancelled", extra={"event": "execution_cancelled"})
                        yield emit(node_id, NodeState.SKIPPED, CANCELLED_MESSAGE)
                        stopped = True
                        break

                    if node_id in visited:
                        yield emit(node_id, NodeState.SKIPPED, REVISIT_MESSAGE)
                        continue

                    if self.max_steps is not None and steps >= self.max_steps:
                        logger.warning(f"Step limit {self.max_steps} reached")
                        yield emit(node_id, NodeState.SKIPPED, STEP_LIMIT_MESSAGE)
                        stopped = True
                        break

                    visited.add(node_id)
                    steps += 1
                    node = graph.find_by_id(node_id)
                    set_trace_context(node_id=node_id)

                    yield emit(node_id, NodeState.READY)
                    yield emit(
                        node_id, NodeState.RUNNING, f"Executing node: {node.name} [{node.kind}]"
                    )

                    successors, event = self._run_node(graph, node, context, emit)
                    yield event
                    # Reverse so the first connection is visited first
                    stack.extend(reversed(successors))
                if stopped:
                    break
            finished = True
        finally:
            # Also runs when the host closes the generator early
            self._finish_run(run_id, emitted, finished)

    def execute_node(
        self,
        graph: WorkflowGraph,
        node_id: str,
        context: dict[str, str] | None = None,
    ) -> Iterator[ExecutionEvent]:
        """Run a single node's business logic without following its connections."""
        node = graph.find_by_id(node_id)
        run_id = uuid.uuid4().hex
        set_trace_context(run_id=run_id, node_id=node_id)

        if kind_spec(node.kind).passive:
            yield ExecutionEvent(node_id, NodeState.SKIPPED, "passive node", run_id)
            return

        yield ExecutionEvent(node_id, NodeState.RUNNING, f"Executing node: {node.name}", run_id)
        try:
            message = run_node_logic(node, dict(context or {}), self.handlers)
        except Exception as e:
            logger.error(f"Execution failed for node '{node.name}': {e}")
            yield ExecutionEvent(node_id, NodeState.FAILED, str(e), run_id)
            return
        yield ExecutionEvent(node_id, NodeState.DONE, message, run_id)

    def _run_node(
        self,
        graph: WorkflowGraph,
        node: Node,
        context: dict[str, str],
        emit: Callable[[str, NodeState, str], ExecutionEvent],
    ) -> tuple[list[str], ExecutionEvent]:
        """
        Run one node and decide which successors to visit.

        Returns:
            (successor ids to visit, the terminal event for this node)
        """
        outgoing = [c.target_id for c in graph.connections_from(node.id)]

        if kind_spec(node.kind).passive:
            logger.info(
                f"Passed through passive node: {node.name} ({node.kind})",
                extra={"event": "node_done", "node_id": node.id, "state": NodeState.DONE},
            )
            return outgoing, emit(node.id, NodeState.DONE, "passive node, passed through")

        try:
            message = run_node_logic(node, context, self.handlers)
        except Exception as e:
            logger.error(
                f"Execution failed for node '{node.name}': {e}",
                extra={"event": "node_failed", "node_id": node.id, "state": NodeState.FAILED},
            )
            return [], emit(node.id, NodeState.FAILED, f"Execution failed: {e}")

        if node.kind == NodeKind.CONDITION:
            outcome = evaluate_condition(node.condition_expression, context)
            target = graph.branch_target(node.id, outcome)
            branch = "YES" if outcome else "NO"
            if target is None:
                logger.error(
                    f"Condition '{node.name}' has no {branch} branch",
                    extra={"event": "node_failed", "node_id": node.id, "state": NodeState.FAILED},
                )
                return [], emit(node.id, NodeState.FAILED, f"No connection labelled {branch}")
            message = f"{message}; following {branch} branch to {target}"
            outgoing = [target]

        logger.info(
            message,
            extra={"event": "node_done", "node_id": node.id, "state": NodeState.DONE},
        )
        return outgoing, emit(node.id, NodeState.DONE, message)

    def _finish_run(self, run_id: str, events: list[ExecutionEvent], finished: bool) -> None:
        """Clear the node from the trace context and report the run's outcome."""
        summary = ExecutionSummary.from_events(events)
        set_trace_context(node_id=None)
        if not finished:
            logger.warning(
                "Execution stopped before the traversal finished",
                extra={"event": "execution_interrupted"},
            )
        logger.info(
            f"Execution finished: {len(summary.done)} done, {len(summary.failed)} failed, "
            f"{len(summary.skipped)} skipped, {len(summary.revisits)} revisited",
            extra={"event": "execution_completed"},
        )
        self._publish(
            EventType.EXECUTION_COMPLETED,
            None,
            run_id,
            success=summary.success and finished,
            done=len(summary.done),
            failed=summary.failed,
            skipped=len(summary.skipped),
            revisits=len(summary.revisits),
            interrupted=not finished,
        )

    def _publish(
        self,
        event_type: EventType,
        node_id: str | None,
        run_id: str,
        **data,
    ) -> None:
        if self._event_bus is not None:
            self._event_bus.emit(event_type, node_id=node_id, run_id=run_id, **data)
