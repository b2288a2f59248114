"""
Workflow file format - JSON persistence for workflow graphs.

Layout:
    {
      "nodes": [
        {"id": "s", "name": "Start", "type": "START", "x": 10.0, "y": 20.0},
        {"id": "c", "name": "Adult?", "type": "CONDITION", "x": 0, "y": 0,
         "parameter": "age > 18"}
      ],
      "connections": [
        {"sourceId": "s", "targetId": "c"},
        {"sourceId": "c", "targetId": "e", "label": "YES"}
      ]
    }

`parameter`, `details`, `description`, `metadata` and `label` are written
only when set. Readers that only know id/name/type/x/y still load the file.

Loading rebuilds every node through the catalog, so a file can never put
an invalid node into a graph.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flowforge.errors import ConstructionError, InvariantViolation, WorkflowFileError
from flowforge.graph.catalog import create_node
from flowforge.graph.node import Connection, Node
from flowforge.graph.store import WorkflowGraph
from flowforge.utils.io import atomic_write

logger = logging.getLogger(__name__)


class NodeRecord(BaseModel):
    """One node as stored on disk."""

    id: str
    name: str
    type: str
    x: float = 0.0
    y: float = 0.0
    parameter: str | None = None
    details: str | None = None
    description: str | None = None
    metadata: dict[str, str] | None = None

    @classmethod
    def from_node(cls, node: Node) -> "NodeRecord":
        return cls(
            id=node.id,
            name=node.name,
            type=node.kind.value,
            x=node.x,
            y=node.y,
            parameter=node.parameter or None,
            details=node.details or None,
            description=node.description or None,
            metadata=dict(node.metadata) or None,
        )

    def to_node(self) -> Node:
        fields = {}
        if self.details is not None:
            fields["details"] = self.details
        if self.description is not None:
            fields["description"] = self.description
        if self.metadata is not None:
            fields["metadata"] = self.metadata
        return create_node(
            self.type,
            node_id=self.id,
            name=self.name,
            extra=self.parameter,
            x=self.x,
            y=self.y,
            **fields,
        )


class ConnectionRecord(BaseModel):
    """One connection as stored on disk."""

    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")
    label: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class WorkflowDocument(BaseModel):
    """Top-level workflow file."""

    nodes: list[NodeRecord] = Field(default_factory=list)
    connections: list[ConnectionRecord] = Field(default_factory=list)

    @classmethod
    def from_graph(cls, graph: WorkflowGraph) -> "WorkflowDocument":
        return cls(
            nodes=[NodeRecord.from_node(n) for n in graph.list_nodes()],
            connections=[
                ConnectionRecord(source_id=c.source_id, target_id=c.target_id, label=c.label)
                for c in graph.list_connections()
            ],
        )


def dump_workflow(graph: WorkflowGraph) -> str:
    """Serialize a graph to workflow JSON text."""
    document = WorkflowDocument.from_graph(graph)
    return document.model_dump_json(indent=4, by_alias=True, exclude_none=True)


def parse_workflow(text: str, graph_id: str = "workflow") -> WorkflowGraph:
    """
    Build a new graph from workflow JSON text.

    Nodes are created in array order, then connections in array order.

    Raises:
        WorkflowFileError: malformed JSON, unknown kind, invalid node,
            duplicate id, or a connection to a node that does not exist
    """
    try:
        document = WorkflowDocument.model_validate_json(text)
    except ValidationError as e:
        raise WorkflowFileError(f"Malformed workflow file: {e}") from e

    graph = WorkflowGraph(graph_id)
    for index, record in enumerate(document.nodes):
        try:
            graph.add_node(record.to_node())
        except (ConstructionError, InvariantViolation) as e:
            raise WorkflowFileError(f"Cannot load node #{index} ('{record.id}'): {e}") from e

    for index, record in enumerate(document.connections):
        try:
            graph.add_connection(
                Connection(
                    source_id=record.source_id,
                    target_id=record.target_id,
                    label=record.label,
                )
            )
        except InvariantViolation as e:
            raise WorkflowFileError(
                f"Cannot load connection #{index} "
                f"('{record.source_id}' -> '{record.target_id}'): {e}"
            ) from e

    logger.info(
        f"Parsed workflow with {len(graph)} node(s) and "
        f"{len(graph.list_connections())} connection(s)"
    )
    return graph


def save_workflow(graph: WorkflowGraph, path: str | Path) -> Path:
    """
    Atomically write a graph to a workflow file.

    Uses temp file + rename for crash safety.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = dump_workflow(graph)
    with atomic_write(path) as f:
        f.write(text)
    logger.info(f"Saved workflow to {path}")
    return path


def load_workflow(path: str | Path, graph_id: str | None = None) -> WorkflowGraph:
    """
    Read a workflow file into a new graph.

    Args:
        path: File to read
        graph_id: Id for the new graph (default: the file stem)
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise WorkflowFileError(f"Cannot read workflow file {path}: {e}") from e
    graph = parse_workflow(text, graph_id=graph_id or path.stem)
    logger.info(f"Loaded workflow from {path}")
    return graph
