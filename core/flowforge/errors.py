"""
Exception hierarchy for flowforge.

Structural problems found by validation are reported as diagnostics, not
raised. The exceptions below cover the cases where continuing would be wrong:
- ConstructionError: the catalog refused to build a node
- InvariantViolation: the graph was asked to do something impossible
  (dangling endpoint, unknown id, duplicate id)
- ExecutionError: raised by node business logic, contained per node
"""

from typing import Any


class FlowforgeError(Exception):
    """Base class for all flowforge errors."""

    pass


class ConstructionError(FlowforgeError):
    """Raised when a node cannot be constructed (unknown kind or failed is_valid)."""

    pass


class InvariantViolation(FlowforgeError):
    """Raised when an operation would corrupt the graph."""

    pass


class NodeNotFoundError(InvariantViolation, KeyError):
    """Raised when a node id does not exist in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateNodeError(InvariantViolation):
    """Raised when a node id is already taken."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' already exists")


class DuplicateConnectionError(InvariantViolation):
    """Raised when the same (source, target) pair is connected twice."""

    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(f"Connection '{source_id}' -> '{target_id}' already exists")


class ConnectionNotFoundError(InvariantViolation):
    """Raised when a disconnect is requested for a pair that is not connected."""

    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(f"No connection between '{source_id}' and '{target_id}'")


class ExecutionError(FlowforgeError):
    """Raised by node business logic. The executor contains it to the failing node."""

    pass


class UnsupportedOperationError(FlowforgeError):
    """Raised when a node kind does not support the requested operation."""

    pass


class InvalidWorkflowError(FlowforgeError):
    """Raised when execution is requested on a graph that failed validation."""

    def __init__(self, report: Any):
        self.report = report
        errors = "; ".join(d.message for d in report.errors)
        super().__init__(f"Workflow validation failed: {errors}")


class WorkflowFileError(FlowforgeError):
    """Raised when a workflow file cannot be read, parsed or rebuilt."""

    pass
