"""
Node Protocol - The building blocks of a workflow graph.

A node is a unit of work or a control-flow marker. Every node carries a
kind from a closed set; the kind decides how the node is validated
(see kinds.NODE_CATALOG) and what its business logic does
(see handlers.NODE_HANDLERS).

Node kinds:
- Flow markers: START, END
- Generic: TASK, CONDITION, PREDICTION, ANALYSIS, DATA, OUTPUT
- ML pipeline stages: TRAINING, VALIDATION, TESTING, PREPROCESSING, ...

Connections reference nodes by id only. The graph store owns adjacency;
nodes never hold references to other node objects.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowforge.errors import ConstructionError, UnsupportedOperationError
from flowforge.graph.handlers import run_node_logic
from flowforge.graph.kinds import NodeKind, kind_spec

__all__ = ["YES_LABEL", "NO_LABEL", "NodeKind", "Node", "Connection"]

YES_LABEL = "YES"
NO_LABEL = "NO"


class Node(BaseModel):
    """
    A typed node in the workflow graph.

    `parameter` holds the kind-specific argument given at construction:
    the condition expression for CONDITION, the model name for PREDICTION,
    the analysis type for ANALYSIS, task details for TASK, and so on.

    Example:
        Node(id="check", name="Age check", kind=NodeKind.CONDITION, parameter="age > 18")
    """

    id: str
    name: str
    kind: NodeKind
    description: str = ""
    details: str = ""
    parameter: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    # Placement data, owned by the host UI and round-tripped untouched. Finite only.
    x: float = Field(default=0.0, allow_inf_nan=False)
    y: float = Field(default=0.0, allow_inf_nan=False)

    # CONDITION branches (node ids), set from YES/NO labelled connections
    yes_target: str | None = None
    no_target: str | None = None

    created_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(validate_assignment=True)

    @property
    def condition_expression(self) -> str:
        return self.parameter if self.kind == NodeKind.CONDITION else ""

    @property
    def is_passive(self) -> bool:
        """Passive nodes are traversed but their business logic never runs."""
        return kind_spec(self.kind).passive

    def describe(self) -> str:
        """One-line human readable summary."""
        spec = kind_spec(self.kind)
        text = f"[{spec.display_name}] {self.name} (ID: {self.id})"
        if self.parameter:
            text += f" {spec.parameter_label}: {self.parameter}"
        return text

    def is_valid(self) -> bool:
        """Check the kind-specific construction rule."""
        if not self.id.strip() or not self.name.strip():
            return False
        spec = kind_spec(self.kind)
        if spec.requires_parameter:
            return bool(self.parameter.strip())
        return True

    def validate_or_raise(self) -> None:
        """Raise ConstructionError if is_valid() fails."""
        if not self.is_valid():
            raise ConstructionError(f"Node [{self.name}] is not valid.")

    def validate_operation(self, operation: str) -> None:
        """Raise UnsupportedOperationError unless this kind supports the operation."""
        spec = kind_spec(self.kind)
        if spec.supports_any_operation:
            return
        if operation.lower() not in spec.operations:
            raise UnsupportedOperationError(
                f"Operation '{operation}' is not supported by node: {self.name}"
            )

    def execute(self, context: dict[str, str] | None = None) -> str:
        """Run this node's business logic and return its result message."""
        return run_node_logic(self, context or {})

    def execute_with_context(self, context: dict[str, str]) -> str:
        return self.execute(context)

    def add_metadata(self, key: str, value: str = "") -> None:
        self.metadata[key] = value

    def merge_metadata(self, values: dict[str, str] | None) -> None:
        if values:
            self.metadata.update(values)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.name} (ID: {self.id})"


class Connection(BaseModel):
    """
    A directed, optionally labelled edge between two nodes.

    Connections are immutable values. Blank labels are stored as None.
    """

    source_id: str
    target_id: str
    label: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("label", mode="before")
    @classmethod
    def _normalize_label(cls, value: Any) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)

    def has_label(self, label: str) -> bool:
        return self.label is not None and self.label.upper() == label.upper()

    def __str__(self) -> str:
        text = f"Connection from {self.source_id} to {self.target_id}"
        if self.label:
            text += f" [Condition: {self.label}]"
        return text
