"""
Graph Store - Owns the nodes and connections of one workflow.

The store is an explicit handle passed to every component that needs the
graph; there is no process-wide state.

A connection is registered in exactly two places: the graph-wide
connection list and the source node's outgoing index (plus the target's
incoming index). Only add_connection/remove_connection touch those
structures, and each updates all of them before returning.

Acyclicity is not an invariant of the store. Cycles may exist while a
graph is being edited; validation rejects them before execution.
"""

import logging
import math

from flowforge.errors import (
    DuplicateConnectionError,
    DuplicateNodeError,
    InvariantViolation,
    NodeNotFoundError,
)
from flowforge.graph.node import NO_LABEL, YES_LABEL, Connection, Node, NodeKind

logger = logging.getLogger(__name__)


class WorkflowGraph:
    """
    In-memory workflow graph.

    Example:
        graph = WorkflowGraph()
        graph.add_node(create_node(NodeKind.START, "s", "Start"))
        graph.add_node(create_node(NodeKind.END, "e", "End"))
        graph.connect("s", "e")
    """

    def __init__(self, graph_id: str = "workflow"):
        self.id = graph_id
        self._nodes: dict[str, Node] = {}
        self._connections: list[Connection] = []
        self._outgoing: dict[str, list[Connection]] = {}
        self._incoming: dict[str, list[Connection]] = {}

    # === NODES ===

    def add_node(self, node: Node) -> Node:
        """Add a node. Ids must be unique."""
        if node.id in self._nodes:
            raise DuplicateNodeError(node.id)
        self._nodes[node.id] = node
        self._outgoing[node.id] = []
        self._incoming[node.id] = []
        logger.debug(f"Added node {node}")
        return node

    def remove_node(self, node_id: str) -> list[Connection]:
        """
        Remove a node and every connection where it is source or target.

        Returns:
            The removed connections, in graph order
        """
        node = self.find_by_id(node_id)
        incident = [c for c in self._connections if node_id in (c.source_id, c.target_id)]
        for connection in incident:
            self._unregister(connection)

        del self._nodes[node_id]
        del self._outgoing[node_id]
        del self._incoming[node_id]
        logger.info(f"Removed node {node.name} with {len(incident)} connection(s)")
        return incident

    def find_by_id(self, node_id: str) -> Node:
        """Get a node by id, failing fast when it does not exist."""
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by id, or None."""
        return self._nodes.get(node_id)

    def list_nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def node_ids(self) -> list[str]:
        return list(self._nodes)

    def find_start_nodes(self) -> list[Node]:
        """All nodes of kind START, in insertion order."""
        return [n for n in self._nodes.values() if n.kind == NodeKind.START]

    def move_node(self, node_id: str, x: float, y: float) -> None:
        node = self.find_by_id(node_id)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise InvariantViolation(f"Position of node '{node_id}' must be finite, got ({x}, {y})")
        node.x = x
        node.y = y

    # === CONNECTIONS ===

    def connect(self, source_id: str, target_id: str, label: str | None = None) -> Connection:
        """Create and register a connection between two existing nodes."""
        return self.add_connection(
            Connection(source_id=source_id, target_id=target_id, label=label)
        )

    def add_connection(self, connection: Connection) -> Connection:
        """
        Register a connection.

        Both endpoints must already exist. A YES/NO label leaving a
        CONDITION node also sets that node's matching branch target.
        """
        source = self.find_by_id(connection.source_id)
        self.find_by_id(connection.target_id)
        if self.get_connection(connection.source_id, connection.target_id) is not None:
            raise DuplicateConnectionError(connection.source_id, connection.target_id)

        self._connections.append(connection)
        self._outgoing[connection.source_id].append(connection)
        self._incoming[connection.target_id].append(connection)

        if source.kind == NodeKind.CONDITION:
            if connection.has_label(YES_LABEL):
                source.yes_target = connection.target_id
            elif connection.has_label(NO_LABEL):
                source.no_target = connection.target_id

        logger.debug(f"Added {connection}")
        return connection

    def remove_connection(self, source_id: str, target_id: str) -> Connection | None:
        """
        Remove the connection between two nodes.

        Returns:
            The removed connection, or None if the pair was not connected
        """
        connection = self.get_connection(source_id, target_id)
        if connection is None:
            logger.warning(f"No connection found between: {source_id} and {target_id}")
            return None
        self._unregister(connection)
        logger.debug(f"Connection removed: {source_id} -> {target_id}")
        return connection

    def get_connection(self, source_id: str, target_id: str) -> Connection | None:
        for connection in self._outgoing.get(source_id, []):
            if connection.target_id == target_id:
                return connection
        return None

    def list_connections(self) -> list[Connection]:
        return list(self._connections)

    def connections_from(self, node_id: str) -> list[Connection]:
        """Outgoing connections of a node, in the order they were added."""
        self.find_by_id(node_id)
        return list(self._outgoing[node_id])

    def connections_to(self, node_id: str) -> list[Connection]:
        """Incoming connections of a node."""
        self.find_by_id(node_id)
        return list(self._incoming[node_id])

    def out_degree(self, node_id: str) -> int:
        return len(self._outgoing.get(node_id, []))

    def in_degree(self, node_id: str) -> int:
        return len(self._incoming.get(node_id, []))

    def branch_target(self, node_id: str, outcome: bool) -> str | None:
        """
        Resolve the successor a CONDITION node takes for a predicate outcome.

        Uses the explicit yes/no target when it is still connected, then a
        YES/NO labelled outgoing connection. Never infers a branch from
        connection order.
        """
        node = self.find_by_id(node_id)
        explicit = node.yes_target if outcome else node.no_target
        label = YES_LABEL if outcome else NO_LABEL
        outgoing = self._outgoing[node_id]

        if explicit is not None and any(c.target_id == explicit for c in outgoing):
            return explicit
        for connection in outgoing:
            if connection.has_label(label):
                return connection.target_id
        return None

    def _unregister(self, connection: Connection) -> None:
        self._connections.remove(connection)
        self._outgoing[connection.source_id].remove(connection)
        self._incoming[connection.target_id].remove(connection)

        source = self._nodes[connection.source_id]
        if source.kind == NodeKind.CONDITION:
            if source.yes_target == connection.target_id:
                source.yes_target = None
            if source.no_target == connection.target_id:
                source.no_target = None

    # === WHOLE GRAPH ===

    def clear_all(self) -> None:
        """Remove every node and connection."""
        self._nodes.clear()
        self._connections.clear()
        self._outgoing.clear()
        self._incoming.clear()
        logger.info("Cleared all workflow nodes and connections")

    def snapshot(self) -> tuple[frozenset, frozenset]:
        """
        Order-independent summary of the graph structure.

        Returns:
            (frozenset of (node_id, kind, x, y), frozenset of (source, target, label))
        """
        nodes = frozenset((n.id, n.kind, n.x, n.y) for n in self._nodes.values())
        connections = frozenset((c.source_id, c.target_id, c.label) for c in self._connections)
        return nodes, connections

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return (
            f"WorkflowGraph(id={self.id!r}, nodes={len(self._nodes)}, "
            f"connections={len(self._connections)})"
        )
