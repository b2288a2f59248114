"""Shared pytest fixtures."""

from pathlib import Path

import pytest

import flowforge.config
from flowforge.graph.catalog import create_node
from flowforge.graph.node import NodeKind
from flowforge.graph.store import WorkflowGraph
from flowforge.observability import clear_trace_context


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Never read the developer's real ~/.flowforge/configuration.json."""
    config_file = tmp_path / "flowforge-config" / "configuration.json"
    monkeypatch.setattr(flowforge.config, "FLOWFORGE_CONFIG_FILE", config_file)
    clear_trace_context()
    yield config_file
    clear_trace_context()


@pytest.fixture
def chain_graph() -> WorkflowGraph:
    """START -> DATA -> TASK -> END."""
    graph = WorkflowGraph("chain")
    graph.add_node(create_node(NodeKind.START, "start", "Start"))
    graph.add_node(create_node(NodeKind.DATA, "data", "Load data"))
    graph.add_node(create_node(NodeKind.TASK, "task", "Clean data", extra="drop nulls"))
    graph.add_node(create_node(NodeKind.END, "end", "End"))
    graph.connect("start", "data")
    graph.connect("data", "task")
    graph.connect("task", "end")
    return graph


@pytest.fixture
def branch_graph() -> WorkflowGraph:
    """START -> CONDITION(age > 18) -YES-> allow, -NO-> deny."""
    graph = WorkflowGraph("branch")
    graph.add_node(create_node(NodeKind.START, "start", "Start"))
    graph.add_node(create_node(NodeKind.CONDITION, "adult", "Adult?", extra="age > 18"))
    graph.add_node(create_node(NodeKind.OUTPUT, "allow", "Allow"))
    graph.add_node(create_node(NodeKind.OUTPUT, "deny", "Deny"))
    graph.connect("start", "adult")
    graph.connect("adult", "allow", label="YES")
    graph.connect("adult", "deny", label="NO")
    return graph
