"""
Event Bus - Pub/sub channel between the workflow core and its host.

Graph mutations, history moves, validation and execution report what
happened here instead of calling UI listeners directly. A host can:
- Subscribe handlers for the event types it cares about
- Poll: drain() returns events published since the last drain
- Inspect recent history for debugging

Everything runs on the interaction thread; handlers are plain callables
invoked in subscription order.
"""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events that can be published."""

    # Structural edits
    NODE_CREATED = "node_created"
    NODE_DELETED = "node_deleted"
    NODE_MOVED = "node_moved"
    NODES_CONNECTED = "nodes_connected"
    NODES_DISCONNECTED = "nodes_disconnected"
    GRAPH_CLEARED = "graph_cleared"

    # History
    ACTION_UNDONE = "action_undone"
    ACTION_REDONE = "action_redone"

    # Persistence
    WORKFLOW_LOADED = "workflow_loaded"
    WORKFLOW_SAVED = "workflow_saved"

    # Validation / execution
    VALIDATION_COMPLETED = "validation_completed"
    EXECUTION_STARTED = "execution_started"
    NODE_STATE_CHANGED = "node_state_changed"
    EXECUTION_COMPLETED = "execution_completed"

    # Custom events
    CUSTOM = "custom"


@dataclass
class WorkflowEvent:
    """An event in the workflow system."""

    type: EventType
    node_id: str | None = None  # Node the event is about, if any
    run_id: str | None = None  # Execution run that emitted it, if any
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "node_id": self.node_id,
            "run_id": self.run_id,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


# Type for event handlers
EventHandler = Callable[[WorkflowEvent], None]


@dataclass
class Subscription:
    """A subscription to events."""

    id: str
    event_types: set[EventType]
    handler: EventHandler
    filter_node: str | None = None  # Only receive events about this node
    filter_run: str | None = None  # Only receive events from this run


class EventBus:
    """
    Pub/sub event bus.

    Example:
        bus = EventBus()

        def on_node_state(event: WorkflowEvent):
            print(f"{event.node_id}: {event.data['state']}")

        bus.subscribe(
            event_types=[EventType.NODE_STATE_CHANGED],
            handler=on_node_state,
        )

        bus.publish(WorkflowEvent(
            type=EventType.NODE_STATE_CHANGED,
            node_id="train",
            data={"state": "running"},
        ))
    """

    def __init__(self, max_history: int = 1000):
        """
        Initialize event bus.

        Args:
            max_history: Maximum events to keep in history and in the poll queue
        """
        self._subscriptions: dict[str, Subscription] = {}
        self._event_history: deque[WorkflowEvent] = deque(maxlen=max_history)
        self._pending: deque[WorkflowEvent] = deque(maxlen=max_history)
        self._subscription_counter = 0

    def subscribe(
        self,
        event_types: list[EventType],
        handler: EventHandler,
        filter_node: str | None = None,
        filter_run: str | None = None,
    ) -> str:
        """
        Subscribe to events.

        Args:
            event_types: Types of events to receive
            handler: Function to call when event occurs
            filter_node: Only receive events about this node
            filter_run: Only receive events from this execution run

        Returns:
            Subscription ID (use to unsubscribe)
        """
        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"

        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            event_types=set(event_types),
            handler=handler,
            filter_node=filter_node,
            filter_run=filter_run,
        )
        logger.debug(f"Subscription {sub_id} registered for {event_types}")
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if subscription was found and removed
        """
        if subscription_id in self._subscriptions:
            del self._subscriptions[subscription_id]
            logger.debug(f"Subscription {subscription_id} removed")
            return True
        return False

    def publish(self, event: WorkflowEvent) -> None:
        """Record an event and deliver it to every matching subscriber."""
        self._event_history.append(event)
        self._pending.append(event)

        for subscription in list(self._subscriptions.values()):
            if not self._matches(subscription, event):
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Handler error for {event.type}: {e}")

    def emit(
        self,
        event_type: EventType,
        node_id: str | None = None,
        message: str = "",
        run_id: str | None = None,
        **data: Any,
    ) -> WorkflowEvent:
        """Build and publish an event in one call."""
        event = WorkflowEvent(
            type=event_type,
            node_id=node_id,
            run_id=run_id,
            message=message,
            data=data,
        )
        self.publish(event)
        return event

    def _matches(self, subscription: Subscription, event: WorkflowEvent) -> bool:
        """Check if a subscription matches an event."""
        if event.type not in subscription.event_types:
            return False

        if subscription.filter_node and subscription.filter_node != event.node_id:
            return False

        if subscription.filter_run and subscription.filter_run != event.run_id:
            return False

        return True

    # === POLLING / INSPECTION ===

    def drain(self) -> list[WorkflowEvent]:
        """Return and forget every event published since the last drain."""
        events = list(self._pending)
        self._pending.clear()
        return events

    def get_history(
        self,
        event_type: EventType | None = None,
        node_id: str | None = None,
        limit: int | None = None,
    ) -> list[WorkflowEvent]:
        """
        Get recent events, oldest first.

        Args:
            event_type: Only events of this type
            node_id: Only events about this node
            limit: Only the most recent N matches
        """
        events = [
            e
            for e in self._event_history
            if (event_type is None or e.type == event_type)
            and (node_id is None or e.node_id == node_id)
        ]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear_history(self) -> None:
        self._event_history.clear()
        self._pending.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
