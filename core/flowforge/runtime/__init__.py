"""Runtime: event bus and the workflow runtime facade.

WorkflowRuntime lives in flowforge.runtime.workflow_runtime and is
re-exported from the top-level flowforge package.
"""

from flowforge.runtime.event_bus import EventBus, EventType, WorkflowEvent

__all__ = ["EventBus", "EventType", "WorkflowEvent"]
