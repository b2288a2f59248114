"""Undoable actions for workflow graph edits.

Defines a discriminated union of frozen dataclasses, one per reversible
graph mutation. Every action is applied by apply_action() and reversed by
applying invert_action(action); there is no per-class undo/redo code.

Actions that remove something (DeleteNode, DisconnectNodes) snapshot what
they remove when the command is built, via their capture() constructors,
so the inverse can restore it exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from flowforge.errors import ConnectionNotFoundError, InvariantViolation
from flowforge.graph.node import Connection, Node
from flowforge.graph.store import WorkflowGraph


@dataclass(frozen=True)
class CreateNode:
    """Add a node, plus any connections that should come back with it."""

    type: Literal["create_node"] = field(default="create_node", init=False)
    node: Node
    connections: tuple[Connection, ...] = ()


@dataclass(frozen=True)
class DeleteNode:
    """Remove a node and every connection incident to it."""

    type: Literal["delete_node"] = field(default="delete_node", init=False)
    node: Node
    connections: tuple[Connection, ...] = ()  # incident connections at capture time

    @classmethod
    def capture(cls, graph: WorkflowGraph, node_id: str) -> DeleteNode:
        node = graph.find_by_id(node_id)
        incident = [
            c for c in graph.list_connections() if node_id in (c.source_id, c.target_id)
        ]
        return cls(node=node, connections=tuple(incident))


@dataclass(frozen=True)
class MoveNode:
    """Change a node's placement."""

    type: Literal["move_node"] = field(default="move_node", init=False)
    node_id: str
    old_x: float
    old_y: float
    new_x: float
    new_y: float

    @classmethod
    def capture(cls, graph: WorkflowGraph, node_id: str, x: float, y: float) -> MoveNode:
        node = graph.find_by_id(node_id)
        return cls(node_id=node_id, old_x=node.x, old_y=node.y, new_x=x, new_y=y)


@dataclass(frozen=True)
class ConnectNodes:
    """Add one connection."""

    type: Literal["connect_nodes"] = field(default="connect_nodes", init=False)
    connection: Connection


@dataclass(frozen=True)
class DisconnectNodes:
    """Remove one connection."""

    type: Literal["disconnect_nodes"] = field(default="disconnect_nodes", init=False)
    connection: Connection

    @classmethod
    def capture(cls, graph: WorkflowGraph, source_id: str, target_id: str) -> DisconnectNodes:
        connection = graph.get_connection(source_id, target_id)
        if connection is None:
            raise ConnectionNotFoundError(source_id, target_id)
        return cls(connection=connection)


# Discriminated union of all undoable actions
UndoableAction = CreateNode | DeleteNode | MoveNode | ConnectNodes | DisconnectNodes


def apply_action(graph: WorkflowGraph, action: UndoableAction) -> None:
    """
    Perform an action on the graph.

    Either the whole action takes effect or, when it raises, the graph is
    left as it was.
    """
    if isinstance(action, CreateNode):
        graph.add_node(action.node)
        try:
            for connection in action.connections:
                graph.add_connection(connection)
        except InvariantViolation:
            graph.remove_node(action.node.id)
            raise
    elif isinstance(action, DeleteNode):
        graph.remove_node(action.node.id)
    elif isinstance(action, MoveNode):
        graph.move_node(action.node_id, action.new_x, action.new_y)
    elif isinstance(action, ConnectNodes):
        graph.add_connection(action.connection)
    elif isinstance(action, DisconnectNodes):
        source_id, target_id = action.connection.key
        if graph.remove_connection(source_id, target_id) is None:
            raise ConnectionNotFoundError(source_id, target_id)
    else:
        raise TypeError(f"Unknown action: {action!r}")


def invert_action(action: UndoableAction) -> UndoableAction:
    """Build the action that exactly reverses `action`."""
    if isinstance(action, CreateNode):
        return DeleteNode(node=action.node, connections=action.connections)
    if isinstance(action, DeleteNode):
        return CreateNode(node=action.node, connections=action.connections)
    if isinstance(action, MoveNode):
        return MoveNode(
            node_id=action.node_id,
            old_x=action.new_x,
            old_y=action.new_y,
            new_x=action.old_x,
            new_y=action.old_y,
        )
    if isinstance(action, ConnectNodes):
        return DisconnectNodes(connection=action.connection)
    if isinstance(action, DisconnectNodes):
        return ConnectNodes(connection=action.connection)
    raise TypeError(f"Unknown action: {action!r}")


def involves_node(action: UndoableAction, node_id: str) -> bool:
    """True if the action touches the given node."""
    if isinstance(action, CreateNode | DeleteNode):
        return action.node.id == node_id
    if isinstance(action, MoveNode):
        return action.node_id == node_id
    return node_id in action.connection.key


def action_node_id(action: UndoableAction) -> str | None:
    """The node an action is about, or None for connection actions."""
    if isinstance(action, CreateNode | DeleteNode):
        return action.node.id
    if isinstance(action, MoveNode):
        return action.node_id
    return None
