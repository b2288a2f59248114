"""Undoable graph edits and the undo/redo history."""

from flowforge.history.actions import (
    ConnectNodes,
    CreateNode,
    DeleteNode,
    DisconnectNodes,
    MoveNode,
    UndoableAction,
    apply_action,
    invert_action,
    involves_node,
)
from flowforge.history.manager import HistoryManager

__all__ = [
    # Actions
    "UndoableAction",
    "CreateNode",
    "DeleteNode",
    "MoveNode",
    "ConnectNodes",
    "DisconnectNodes",
    "apply_action",
    "invert_action",
    "involves_node",
    # Manager
    "HistoryManager",
]
