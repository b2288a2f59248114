"""Storage layer for workflow files."""

from flowforge.storage.workflow_file import (
    WorkflowDocument,
    dump_workflow,
    load_workflow,
    parse_workflow,
    save_workflow,
)

__all__ = [
    "WorkflowDocument",
    "dump_workflow",
    "parse_workflow",
    "save_workflow",
    "load_workflow",
]
