"""Graph structures and execution for workflows."""

from flowforge.graph.catalog import create_node, parse_kind
from flowforge.graph.conditions import evaluate_condition
from flowforge.graph.executor import (
    CancellationToken,
    ExecutionEvent,
    ExecutionSummary,
    GraphExecutor,
    NodeState,
)
from flowforge.graph.handlers import NODE_HANDLERS, NodeHandler, run_node_logic
from flowforge.graph.kinds import NODE_CATALOG, KindSpec, NodeKind, kind_spec
from flowforge.graph.node import NO_LABEL, YES_LABEL, Connection, Node
from flowforge.graph.store import WorkflowGraph
from flowforge.graph.validator import (
    Diagnostic,
    DiagnosticKind,
    Severity,
    ValidationReport,
    WorkflowValidator,
)

__all__ = [
    # Node
    "Node",
    "NodeKind",
    "Connection",
    "YES_LABEL",
    "NO_LABEL",
    # Catalog
    "NODE_CATALOG",
    "KindSpec",
    "create_node",
    "kind_spec",
    "parse_kind",
    # Store
    "WorkflowGraph",
    # Validation
    "WorkflowValidator",
    "ValidationReport",
    "Diagnostic",
    "DiagnosticKind",
    "Severity",
    # Execution
    "GraphExecutor",
    "ExecutionEvent",
    "ExecutionSummary",
    "NodeState",
    "CancellationToken",
    "NODE_HANDLERS",
    "NodeHandler",
    "run_node_logic",
    "evaluate_condition",
]
