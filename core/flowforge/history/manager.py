"""
History Manager - Bounded undo/redo over one workflow graph.

All graph edits that should be undoable go through do(). The manager
keeps two LIFO stacks of actions; pushing past max_history drops the
oldest entry.
"""

import logging
from collections import deque

from flowforge.graph.store import WorkflowGraph
from flowforge.history.actions import UndoableAction, apply_action, invert_action

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 100


class HistoryManager:
    """
    Undo/redo stacks for a graph.

    Example:
        history = HistoryManager(graph)
        history.do(CreateNode(node=create_node(NodeKind.START, "s", "Start")))
        history.undo()  # node removed
        history.redo()  # node back
    """

    def __init__(self, graph: WorkflowGraph, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self.graph = graph
        self.max_history = max_history
        self._undo: deque[UndoableAction] = deque(maxlen=max_history)
        self._redo: deque[UndoableAction] = deque(maxlen=max_history)

    def do(self, action: UndoableAction) -> UndoableAction:
        """
        Apply a new action and record it.

        A new action invalidates the redo stack. If applying raises, nothing
        is recorded and the error propagates.
        """
        apply_action(self.graph, action)
        self._undo.append(action)
        self._redo.clear()
        logger.debug(f"Applied {action.type}", extra={"action": action.type})
        return action

    def undo(self) -> UndoableAction | None:
        """
        Reverse the most recent action.

        Returns:
            The undone action, or None if there is nothing to undo
        """
        if not self._undo:
            return None
        action = self._undo.pop()
        try:
            apply_action(self.graph, invert_action(action))
        except Exception:
            self._undo.append(action)
            raise
        self._redo.append(action)
        logger.debug(f"Undid {action.type}", extra={"action": action.type})
        return action

    def redo(self) -> UndoableAction | None:
        """
        Re-apply the most recently undone action.

        Returns:
            The redone action, or None if there is nothing to redo
        """
        if not self._redo:
            return None
        action = self._redo.pop()
        try:
            apply_action(self.graph, action)
        except Exception:
            self._redo.append(action)
            raise
        self._undo.append(action)
        logger.debug(f"Redid {action.type}", extra={"action": action.type})
        return action

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        """Forget all recorded actions."""
        self._undo.clear()
        self._redo.clear()
