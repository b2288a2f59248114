"""
Workflow Runtime - Programmatic surface for hosts (UI, CLI, tests).

Wires one graph to its history, validator, executor and event bus.
Every structural edit goes through the history so it can be undone, and
every completed mutation is announced on the bus; the core never calls
host code directly.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from flowforge.config import RuntimeConfig
from flowforge.errors import InvalidWorkflowError
from flowforge.graph.catalog import create_node
from flowforge.graph.executor import CancellationToken, ExecutionEvent, GraphExecutor
from flowforge.graph.handlers import NodeHandler
from flowforge.graph.node import Connection, Node, NodeKind
from flowforge.graph.store import WorkflowGraph
from flowforge.graph.validator import ValidationReport, WorkflowValidator
from flowforge.history.actions import (
    ConnectNodes,
    CreateNode,
    DeleteNode,
    DisconnectNodes,
    MoveNode,
    UndoableAction,
    action_node_id,
)
from flowforge.history.manager import HistoryManager
from flowforge.runtime.event_bus import EventBus, EventType
from flowforge.storage.workflow_file import load_workflow, save_workflow

logger = logging.getLogger(__name__)


class WorkflowRuntime:
    """
    Editing, validation and execution of one workflow.

    Example:
        runtime = WorkflowRuntime()
        runtime.create(NodeKind.START, "start", "Start")
        runtime.create(NodeKind.TASK, "task", "Clean data", extra="drop nulls")
        runtime.create(NodeKind.END, "end", "End")
        runtime.connect("start", "task")
        runtime.connect("task", "end")

        for event in runtime.execute():
            print(event.node_id, event.state, event.message)

        runtime.undo()  # removes the task -> end connection
    """

    def __init__(
        self,
        graph: WorkflowGraph | None = None,
        event_bus: EventBus | None = None,
        config: RuntimeConfig | None = None,
        handlers: dict[NodeKind, NodeHandler] | None = None,
    ):
        """
        Initialize the runtime.

        Args:
            graph: Graph to edit (default: a new empty graph)
            event_bus: Bus for mutation and execution events (default: a new bus)
            config: Limits for history and execution
            handlers: Per-kind business logic overriding the defaults
        """
        self._config = config or RuntimeConfig()
        self.graph = graph if graph is not None else WorkflowGraph()
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self.history = HistoryManager(self.graph, max_history=self._config.max_history)
        self.validator = WorkflowValidator()
        self.executor = GraphExecutor(
            handlers=handlers,
            event_bus=self.event_bus,
            max_steps=self._config.max_steps,
        )

    # === EDITING ===

    def create(
        self,
        kind: NodeKind | str,
        node_id: str | None = None,
        name: str | None = None,
        extra: str | None = None,
        x: float = 0.0,
        y: float = 0.0,
    ) -> Node:
        """Build a node through the catalog and add it (undoable)."""
        node = create_node(kind, node_id=node_id, name=name, extra=extra, x=x, y=y)
        self.history.do(CreateNode(node=node))
        self.event_bus.emit(EventType.NODE_CREATED, node_id=node.id, kind=node.kind.value)
        return node

    def delete(self, node_id: str) -> Node:
        """Remove a node and its incident connections (undoable)."""
        action = DeleteNode.capture(self.graph, node_id)
        self.history.do(action)
        self.event_bus.emit(
            EventType.NODE_DELETED,
            node_id=node_id,
            connections=len(action.connections),
        )
        return action.node

    def move(self, node_id: str, x: float, y: float) -> None:
        """Change a node's placement (undoable)."""
        self.history.do(MoveNode.capture(self.graph, node_id, x, y))
        self.event_bus.emit(EventType.NODE_MOVED, node_id=node_id, x=x, y=y)

    def connect(self, source_id: str, target_id: str, label: str | None = None) -> Connection:
        """Connect two existing nodes (undoable)."""
        connection = Connection(source_id=source_id, target_id=target_id, label=label)
        self.history.do(ConnectNodes(connection=connection))
        self.event_bus.emit(
            EventType.NODES_CONNECTED,
            node_id=source_id,
            target_id=target_id,
            label=connection.label,
        )
        return connection

    def disconnect(self, source_id: str, target_id: str) -> Connection:
        """
        Remove the connection between two nodes (undoable).

        Raises:
            ConnectionNotFoundError: the pair is not connected
        """
        action = DisconnectNodes.capture(self.graph, source_id, target_id)
        self.history.do(action)
        self.event_bus.emit(
            EventType.NODES_DISCONNECTED,
            node_id=source_id,
            target_id=target_id,
        )
        return action.connection

    def undo(self) -> UndoableAction | None:
        """Undo the last edit. Returns None if there was nothing to undo."""
        action = self.history.undo()
        if action is not None:
            self.event_bus.emit(
                EventType.ACTION_UNDONE,
                node_id=action_node_id(action),
                action=action.type,
            )
        return action

    def redo(self) -> UndoableAction | None:
        """Redo the last undone edit. Returns None if there was nothing to redo."""
        action = self.history.redo()
        if action is not None:
            self.event_bus.emit(
                EventType.ACTION_REDONE,
                node_id=action_node_id(action),
                action=action.type,
            )
        return action

    def clear_all(self) -> None:
        """Remove every node and connection and forget the history."""
        self.graph.clear_all()
        self.history.clear()
        self.event_bus.emit(EventType.GRAPH_CLEARED)

    # === VALIDATION / EXECUTION ===

    def validate(
        self,
        start_id: str,
        all_node_ids: Iterable[str] | None = None,
    ) -> ValidationReport:
        report = self.validator.validate(self.graph, start_id, all_node_ids)
        self._publish_report(report, start_id=start_id)
        return report

    def validate_all(self) -> ValidationReport:
        """Validate from every START node."""
        report = self.validator.validate_all(self.graph)
        self._publish_report(report)
        return report

    def execute(
        self,
        start_ids: Iterable[str] | None = None,
        context: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
        require_valid: bool = True,
    ) -> Iterator[ExecutionEvent]:
        """
        Execute the workflow.

        Validation happens eagerly, before the first event is produced.

        Args:
            start_ids: Entry points (default: every START node)
            context: Variables visible to CONDITION predicates and handlers
            cancel_token: Lets the caller stop the run between steps
            require_valid: Refuse to run a graph that fails validation

        Returns:
            Iterator of ExecutionEvent, one per node state change

        Raises:
            InvalidWorkflowError: require_valid is set and validation failed
        """
        start_ids = list(start_ids) if start_ids is not None else None

        if require_valid:
            if start_ids is None:
                report = self.validate_all()
            else:
                report = ValidationReport(ok=True)
                for start_id in start_ids:
                    report = report.merge(self.validate(start_id))
            if not report.ok:
                raise InvalidWorkflowError(report)

        return self.executor.execute(
            self.graph,
            start_ids=start_ids,
            context=context,
            cancel_token=cancel_token,
        )

    # === PERSISTENCE ===

    def save(self, path: str | Path) -> Path:
        path = save_workflow(self.graph, path)
        self.event_bus.emit(EventType.WORKFLOW_SAVED, path=str(path))
        return path

    def load(self, path: str | Path) -> WorkflowGraph:
        """Replace the current graph with the one in `path` and reset the history."""
        graph = load_workflow(path)
        self.graph = graph
        self.history = HistoryManager(graph, max_history=self._config.max_history)
        self.event_bus.emit(
            EventType.WORKFLOW_LOADED,
            path=str(path),
            nodes=len(graph),
            connections=len(graph.list_connections()),
        )
        return graph

    def _publish_report(self, report: ValidationReport, start_id: str | None = None) -> None:
        self.event_bus.emit(
            EventType.VALIDATION_COMPLETED,
            node_id=start_id,
            ok=report.ok,
            errors=[d.message for d in report.errors],
            warnings=len(report.warnings),
        )
