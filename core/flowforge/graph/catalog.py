"""
Node Catalog - Construction rules for every node kind.

The catalog is one table keyed by NodeKind (defined in kinds.py and
re-exported here). Each entry says how a kind is displayed, what its
kind-specific parameter means and defaults to, whether that parameter is
mandatory, how many outgoing connections the kind must have, and which
operations it supports.

create_node() is the only supported way to build a node: it fills
defaults, then runs the node's own is_valid() and raises ConstructionError
instead of returning an invalid node.
"""

import logging
import uuid
from typing import Any

from flowforge.errors import ConstructionError
from flowforge.graph.kinds import NODE_CATALOG, KindSpec, NodeKind, kind_spec
from flowforge.graph.node import Node

__all__ = [
    "AUTO_NAME",
    "UNNAMED_NODE",
    "NODE_CATALOG",
    "KindSpec",
    "kind_spec",
    "parse_kind",
    "generate_node_id",
    "create_node",
]

logger = logging.getLogger(__name__)

AUTO_NAME = "AUTO_NAME"
UNNAMED_NODE = "Unnamed Node"


def parse_kind(kind: NodeKind | str) -> NodeKind:
    """Resolve a NodeKind from an enum member or its name (case-insensitive)."""
    if isinstance(kind, NodeKind):
        return kind
    try:
        return NodeKind(str(kind).strip().upper().replace(" ", "_"))
    except ValueError:
        raise ConstructionError(f"Invalid node type: {kind}") from None


def generate_node_id() -> str:
    return f"node_{uuid.uuid4().hex[:12]}"


def create_node(
    kind: NodeKind | str,
    node_id: str | None = None,
    name: str | None = None,
    extra: str | None = None,
    **fields: Any,
) -> Node:
    """
    Create a validated node.

    Args:
        kind: Node kind, as enum member or name (e.g. "TASK")
        node_id: Unique id; generated when omitted
        name: Display name; "AUTO_NAME" when the id is also omitted,
            "Unnamed Node" otherwise
        extra: Kind-specific parameter (condition expression for CONDITION,
            model name for PREDICTION, details for most others); the kind's
            default when omitted
        **fields: Any other Node field (description, details, metadata, x, y)

    Returns:
        A node whose is_valid() is True

    Raises:
        ConstructionError: unknown kind, bad field values, or failed is_valid()
    """
    node_kind = parse_kind(kind)
    spec = kind_spec(node_kind)

    if node_id is None:
        node_id = generate_node_id()
        if name is None:
            name = AUTO_NAME
    if name is None:
        name = UNNAMED_NODE
    parameter = spec.default_parameter if extra is None else extra

    try:
        node = Node(id=node_id, name=name, kind=node_kind, parameter=parameter, **fields)
    except (TypeError, ValueError) as e:
        raise ConstructionError(f"Cannot build {node_kind} node '{node_id}': {e}") from e

    if not node.is_valid():
        logger.warning(f"Validation failed in catalog for node: {name} ({node_kind})")
        raise ConstructionError(f"Node failed validation: {name}")

    return node
