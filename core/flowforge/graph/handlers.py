"""
Node business logic - one handler per executable kind.

A handler takes the node and the run context and returns a result message.
Passive kinds (START, END, DATA, OUTPUT) have no handler. An import-time
check keeps NODE_HANDLERS exhaustive over the executable kinds.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from flowforge.graph.conditions import evaluate_condition
from flowforge.graph.kinds import NodeKind, kind_spec

if TYPE_CHECKING:
    from flowforge.graph.node import Node

NodeHandler = Callable[["Node", dict[str, str]], str]


def _with_context(message: str, context: dict[str, str]) -> str:
    return f"{message} with context {context}" if context else message


def _simple_handler(template: str) -> NodeHandler:
    """Build a handler that reports a formatted message for the node."""

    def handler(node: Node, context: dict[str, str]) -> str:
        return _with_context(template.format(node=node), context)

    return handler


def _condition_handler(node: Node, context: dict[str, str]) -> str:
    result = evaluate_condition(node.condition_expression, context)
    return f"Condition '{node.name}' ({node.condition_expression}) evaluated to {result}"


NODE_HANDLERS: dict[NodeKind, NodeHandler] = {
    NodeKind.TASK: _simple_handler("Executed task '{node.name}': {node.parameter}"),
    NodeKind.CONDITION: _condition_handler,
    NodeKind.PREDICTION: _simple_handler(
        "Ran prediction using model {node.parameter} for node: {node.name}"
    ),
    NodeKind.ANALYSIS: _simple_handler("Performed {node.parameter} analysis: {node.name}"),
    NodeKind.TRAINING: _simple_handler("Trained model in node: {node.name}"),
    NodeKind.VALIDATION: _simple_handler("Validated model in node: {node.name}"),
    NodeKind.TESTING: _simple_handler("Tested model in node: {node.name}"),
    NodeKind.PREPROCESSING: _simple_handler(
        "Applied preprocessing steps '{node.parameter}' in node: {node.name}"
    ),
    NodeKind.FEATURE_ENGINEERING: _simple_handler("Engineered features in node: {node.name}"),
    NodeKind.MODEL_SELECTION: _simple_handler(
        "Selected model by {node.parameter} in node: {node.name}"
    ),
    NodeKind.EVALUATION: _simple_handler(
        "Evaluated model using metric {node.parameter} in node: {node.name}"
    ),
    NodeKind.INFERENCE: _simple_handler("Ran inference in node: {node.name}"),
    NodeKind.CLUSTERING: _simple_handler("Clustered data using {node.parameter}: {node.name}"),
    NodeKind.GNN_MODULE: _simple_handler("Ran GNN module: {node.name}"),
    NodeKind.ENSEMBLE: _simple_handler(
        "Combined models with strategy '{node.parameter}': {node.name}"
    ),
    NodeKind.MONITORING: _simple_handler("Monitoring deployed model: {node.name}"),
    NodeKind.EXPLAINABILITY: _simple_handler("Generated model explanations: {node.name}"),
    NodeKind.HYPERPARAMETER_TUNING: _simple_handler("Tuned hyperparameters: {node.name}"),
}

_unhandled = {k for k in NodeKind if not kind_spec(k).passive} - set(NODE_HANDLERS)
if _unhandled:
    raise RuntimeError(f"NODE_HANDLERS is missing executable kinds: {sorted(_unhandled)}")


def run_node_logic(
    node: Node,
    context: dict[str, str],
    handlers: dict[NodeKind, NodeHandler] | None = None,
) -> str:
    """Run a node's business logic through the dispatch table."""
    if kind_spec(node.kind).passive:
        return f"{kind_spec(node.kind).display_name} node '{node.name}' has no business logic"
    handler = (handlers or NODE_HANDLERS).get(node.kind) or NODE_HANDLERS[node.kind]
    return handler(node, context)
