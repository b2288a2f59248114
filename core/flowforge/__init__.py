"""
flowforge - Build, validate, undo and run node-based workflows.

A workflow is a directed graph of typed nodes. flowforge keeps the graph,
checks it for cycles and broken branches, runs it depth-first, and records
every edit so it can be undone.

Example:
    from flowforge import NodeKind, WorkflowRuntime

    runtime = WorkflowRuntime()
    runtime.create(NodeKind.START, "start", "Start")
    runtime.create(NodeKind.CONDITION, "adult", "Adult?", extra="age > 18")
    runtime.create(NodeKind.OUTPUT, "allow", "Allow")
    runtime.create(NodeKind.OUTPUT, "deny", "Deny")
    runtime.connect("start", "adult")
    runtime.connect("adult", "allow", label="YES")
    runtime.connect("adult", "deny", label="NO")

    for event in runtime.execute(context={"age": "21"}):
        print(event.node_id, event.state)
"""

from flowforge.errors import (
    ConnectionNotFoundError,
    ConstructionError,
    DuplicateConnectionError,
    DuplicateNodeError,
    ExecutionError,
    FlowforgeError,
    InvalidWorkflowError,
    InvariantViolation,
    NodeNotFoundError,
    UnsupportedOperationError,
    WorkflowFileError,
)
from flowforge.graph import (
    CancellationToken,
    Connection,
    Diagnostic,
    DiagnosticKind,
    ExecutionEvent,
    ExecutionSummary,
    GraphExecutor,
    Node,
    NodeKind,
    NodeState,
    ValidationReport,
    WorkflowGraph,
    WorkflowValidator,
    create_node,
)
from flowforge.history import (
    ConnectNodes,
    CreateNode,
    DeleteNode,
    DisconnectNodes,
    HistoryManager,
    MoveNode,
    UndoableAction,
)
from flowforge.runtime import EventBus, EventType, WorkflowEvent
from flowforge.runtime.workflow_runtime import WorkflowRuntime
from flowforge.storage import load_workflow, save_workflow

__all__ = [
    # Graph
    "Node",
    "NodeKind",
    "Connection",
    "WorkflowGraph",
    "create_node",
    # Validation
    "WorkflowValidator",
    "ValidationReport",
    "Diagnostic",
    "DiagnosticKind",
    # Execution
    "GraphExecutor",
    "ExecutionEvent",
    "ExecutionSummary",
    "NodeState",
    "CancellationToken",
    # History
    "HistoryManager",
    "UndoableAction",
    "CreateNode",
    "DeleteNode",
    "MoveNode",
    "ConnectNodes",
    "DisconnectNodes",
    # Runtime
    "WorkflowRuntime",
    "EventBus",
    "EventType",
    "WorkflowEvent",
    # Storage
    "save_workflow",
    "load_workflow",
    # Errors
    "FlowforgeError",
    "ConstructionError",
    "InvariantViolation",
    "NodeNotFoundError",
    "DuplicateNodeError",
    "DuplicateConnectionError",
    "ConnectionNotFoundError",
    "ExecutionError",
    "UnsupportedOperationError",
    "InvalidWorkflowError",
    "WorkflowFileError",
]
