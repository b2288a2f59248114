"""Structural validation for workflow graphs.

Checks a graph before execution and reports every finding as a Diagnostic.
Validation never raises for a structural problem and never mutates the graph;
the host decides whether a failed report blocks execution.

Checks, in order:
1. Cycle detection from the start node (short-circuits on the first cycle)
2. Reachability from the start node (warnings only)
3. Per-kind out-degree rules (TASK/PREDICTION = 1, CONDITION = 2)
4. Isolation (no incoming and no outgoing connections)
5. CONDITION branch labels (explicit YES/NO, never positional)
6. Per-node construction rule (is_valid)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from flowforge.graph.kinds import kind_spec
from flowforge.graph.node import NO_LABEL, YES_LABEL, NodeKind
from flowforge.graph.store import WorkflowGraph

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    ERROR = "error"  # Blocks execution
    WARNING = "warning"  # Reported, does not invalidate the graph


class DiagnosticKind(StrEnum):
    """What a diagnostic is about."""

    MISSING_START = "missing_start"
    UNKNOWN_NODE = "unknown_node"
    CYCLE = "cycle"
    UNREACHABLE = "unreachable"
    OUT_DEGREE = "out_degree"
    UNCONNECTED = "unconnected"
    BRANCH_LABEL = "branch_label"
    INVALID_NODE = "invalid_node"


@dataclass(frozen=True)
class Diagnostic:
    """A structured validation finding."""

    kind: DiagnosticKind
    severity: Severity
    message: str
    node_ids: tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "node_ids": list(self.node_ids),
        }


@dataclass
class ValidationReport:
    """Result of validating a graph."""

    ok: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    reachable: set[str] = field(default_factory=set)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    def has(self, kind: DiagnosticKind) -> bool:
        return any(d.kind == kind for d in self.diagnostics)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def merge(self, other: "ValidationReport") -> "ValidationReport":
        """Combine two reports, dropping duplicate diagnostics."""
        seen = set(self.diagnostics)
        merged = list(self.diagnostics)
        for diagnostic in other.diagnostics:
            if diagnostic not in seen:
                merged.append(diagnostic)
                seen.add(diagnostic)
        return ValidationReport(
            ok=self.ok and other.ok,
            diagnostics=merged,
            reachable=self.reachable | other.reachable,
        )

    def __bool__(self) -> bool:
        return self.ok


class WorkflowValidator:
    """
    Validates workflow structure.

    Example:
        report = WorkflowValidator().validate(graph, "start")
        if not report.ok:
            for d in report.errors:
                print(d.message)
    """

    def validate(
        self,
        graph: WorkflowGraph,
        start_id: str,
        all_node_ids: Iterable[str] | None = None,
    ) -> ValidationReport:
        """
        Validate the graph as seen from one start node.

        Cycle detection only walks nodes reachable from start_id. A cycle
        among unreachable nodes is not reported as a cycle; those nodes get
        UNREACHABLE warnings instead. validate_all() covers every START node.

        Args:
            graph: Graph to check
            start_id: Entry point of the traversal
            all_node_ids: Nodes to check rules against (default: every node)

        Returns:
            ValidationReport; ok is False iff any ERROR diagnostic was found
        """
        if start_id not in graph:
            return self._finish(
                [
                    Diagnostic(
                        DiagnosticKind.MISSING_START,
                        Severity.ERROR,
                        f"Start node '{start_id}' not found",
                        (start_id,),
                    )
                ]
            )

        cycle = self.find_cycle(graph, start_id)
        if cycle:
            path = " -> ".join(cycle)
            return self._finish(
                [
                    Diagnostic(
                        DiagnosticKind.CYCLE,
                        Severity.ERROR,
                        f"Cycle detected in workflow: {path}",
                        tuple(cycle),
                    )
                ]
            )

        diagnostics: list[Diagnostic] = []
        node_ids = list(graph.node_ids() if all_node_ids is None else all_node_ids)
        checked = []
        for node_id in node_ids:
            if node_id not in graph:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.UNKNOWN_NODE,
                        Severity.ERROR,
                        f"Node '{node_id}' is not part of the graph",
                        (node_id,),
                    )
                )
            else:
                checked.append(node_id)

        reachable = self.reachable_from(graph, start_id)
        for node_id in checked:
            if node_id not in reachable:
                node = graph.find_by_id(node_id)
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.UNREACHABLE,
                        Severity.WARNING,
                        f"Unreachable node: {node.name} ({node_id})",
                        (node_id,),
                    )
                )
        logger.info(f"Reachable nodes: {len(reachable)}/{len(checked)}")

        for node_id in checked:
            diagnostics.extend(self._check_node(graph, node_id))

        return self._finish(diagnostics, reachable)

    def validate_all(self, graph: WorkflowGraph) -> ValidationReport:
        """Validate from every START node and merge the reports."""
        starts = graph.find_start_nodes()
        if not starts:
            return self._finish(
                [
                    Diagnostic(
                        DiagnosticKind.MISSING_START,
                        Severity.ERROR,
                        "No start nodes found. Workflow cannot be executed.",
                    )
                ]
            )

        report = self.validate(graph, starts[0].id)
        for start in starts[1:]:
            report = report.merge(self.validate(graph, start.id))

        # A node reachable from any start is reachable
        if len(starts) > 1:
            report.diagnostics = [
                d
                for d in report.diagnostics
                if not (d.kind == DiagnosticKind.UNREACHABLE and d.node_ids[0] in report.reachable)
            ]
        return report

    def find_cycle(self, graph: WorkflowGraph, start_id: str) -> list[str] | None:
        """
        Depth-first search with visited/on-stack sets.

        Returns:
            The node ids forming the first cycle found (first id repeated at
            the end), or None if no cycle is reachable from start_id
        """
        visited: set[str] = set()
        on_stack: set[str] = set()
        path: list[str] = []
        stack = [(start_id, iter(graph.connections_from(start_id)))]
        visited.add(start_id)
        on_stack.add(start_id)
        path.append(start_id)

        while stack:
            node_id, children = stack[-1]
            advanced = False
            for connection in children:
                target = connection.target_id
                if target in on_stack:
                    return path[path.index(target) :] + [target]
                if target not in visited:
                    visited.add(target)
                    on_stack.add(target)
                    path.append(target)
                    stack.append((target, iter(graph.connections_from(target))))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                on_stack.discard(node_id)
                path.pop()

        return None

    def reachable_from(self, graph: WorkflowGraph, start_id: str) -> set[str]:
        """Collect every node id reachable from start_id (inclusive)."""
        reachable: set[str] = set()
        to_visit = [start_id]
        while to_visit:
            current = to_visit.pop()
            if current in reachable:
                continue
            reachable.add(current)
            for connection in graph.connections_from(current):
                to_visit.append(connection.target_id)
        return reachable

    def _check_node(self, graph: WorkflowGraph, node_id: str) -> list[Diagnostic]:
        node = graph.find_by_id(node_id)
        spec = kind_spec(node.kind)
        out_degree = graph.out_degree(node_id)
        in_degree = graph.in_degree(node_id)
        diagnostics = []

        if spec.required_out_degree is not None and out_degree != spec.required_out_degree:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.OUT_DEGREE,
                    Severity.ERROR,
                    f"{spec.display_name} node '{node.name}' has {out_degree} outgoing "
                    f"connection(s); expected exactly {spec.required_out_degree}",
                    (node_id,),
                )
            )

        if in_degree == 0 and out_degree == 0:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.UNCONNECTED,
                    Severity.ERROR,
                    f"Node '{node.name}' is unconnected",
                    (node_id,),
                )
            )

        if node.kind == NodeKind.CONDITION and out_degree == 2:
            for outcome, label in ((True, YES_LABEL), (False, NO_LABEL)):
                if graph.branch_target(node_id, outcome) is None:
                    diagnostics.append(
                        Diagnostic(
                            DiagnosticKind.BRANCH_LABEL,
                            Severity.ERROR,
                            f"Condition node '{node.name}' has no connection labelled {label}",
                            (node_id,),
                        )
                    )

        if not node.is_valid():
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.INVALID_NODE,
                    Severity.ERROR,
                    f"Node '{node.name}' is not valid",
                    (node_id,),
                )
            )

        return diagnostics

    def _finish(
        self,
        diagnostics: list[Diagnostic],
        reachable: set[str] | None = None,
    ) -> ValidationReport:
        ok = not any(d.is_error for d in diagnostics)
        for diagnostic in diagnostics:
            if diagnostic.is_error:
                logger.warning(f"Validation error: {diagnostic.message}")
            else:
                logger.info(f"Validation warning: {diagnostic.message}")
        if ok:
            logger.info("Workflow validation passed")
        else:
            logger.warning("Workflow validation failed")
        return ValidationReport(ok=ok, diagnostics=diagnostics, reachable=reachable or set())
