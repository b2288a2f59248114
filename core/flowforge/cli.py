"""
Command-line interface for flowforge.

Usage:
    flowforge validate workflow.json
    flowforge run workflow.json --context '{"age": "21"}'
    flowforge run workflow.json --start start-a --start start-b --no-validate
    flowforge info workflow.json --metadata-key owner
"""

import argparse
import json
import sys

from flowforge.config import RuntimeConfig, get_log_format, get_log_level
from flowforge.errors import FlowforgeError, InvalidWorkflowError
from flowforge.graph.executor import ExecutionEvent, ExecutionSummary
from flowforge.graph.validator import ValidationReport, WorkflowValidator
from flowforge.observability import configure_logging
from flowforge.runtime.workflow_runtime import WorkflowRuntime
from flowforge.storage.workflow_file import load_workflow
from flowforge.utils.metadata import format_metadata


def _print_report(report: ValidationReport) -> None:
    for diagnostic in report.diagnostics:
        print(f"  [{diagnostic.severity}] {diagnostic.kind}: {diagnostic.message}")
    print("Validation passed" if report.ok else "Validation failed")


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a workflow file from every START node."""
    try:
        graph = load_workflow(args.file)
    except FlowforgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = WorkflowValidator().validate_all(graph)
    if args.json:
        print(
            json.dumps(
                {"ok": report.ok, "diagnostics": [d.to_dict() for d in report.diagnostics]},
                indent=2,
            )
        )
    else:
        print(f"Workflow: {args.file} ({len(graph)} nodes)")
        _print_report(report)
    return 0 if report.ok else 1


def _parse_context(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("--context must be a JSON object")
    return {str(k): str(v) for k, v in value.items()}


def _format_event(event: ExecutionEvent) -> str:
    text = f"  {event.node_id:<20} {event.state.upper():<8}"
    return f"{text} {event.message}" if event.message else text


def cmd_run(args: argparse.Namespace) -> int:
    """Execute a workflow file and print every node state change."""
    try:
        context = _parse_context(args.context)
    except ValueError as e:
        print(f"Error: invalid context: {e}", file=sys.stderr)
        return 1

    try:
        graph = load_workflow(args.file)
    except FlowforgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    runtime = WorkflowRuntime(graph=graph, config=RuntimeConfig())
    try:
        events = list(
            runtime.execute(
                start_ids=args.start or None,
                context=context,
                require_valid=not args.no_validate,
            )
        )
    except InvalidWorkflowError as e:
        print("Workflow is not valid:", file=sys.stderr)
        for diagnostic in e.report.errors:
            print(f"  {diagnostic.message}", file=sys.stderr)
        return 1
    except FlowforgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for event in events:
        print(_format_event(event))

    summary = ExecutionSummary.from_events(events)
    print(
        f"Execution {'succeeded' if summary.success else 'failed'}: "
        f"{len(summary.done)} done, {len(summary.failed)} failed, "
        f"{len(summary.skipped)} skipped"
    )
    return 0 if summary.success else 1


def cmd_info(args: argparse.Namespace) -> int:
    """Show the nodes, connections and metadata of a workflow file."""
    try:
        graph = load_workflow(args.file)
    except FlowforgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "nodes": [
                        {
                            "id": n.id,
                            "name": n.name,
                            "type": n.kind.value,
                            "parameter": n.parameter,
                            "metadata": n.metadata,
                        }
                        for n in graph.list_nodes()
                    ],
                    "connections": [
                        {"source": c.source_id, "target": c.target_id, "label": c.label}
                        for c in graph.list_connections()
                    ],
                    "start_nodes": [n.id for n in graph.find_start_nodes()],
                },
                indent=2,
            )
        )
        return 0

    print(f"Workflow: {args.file}")
    print(f"Nodes ({len(graph)}):")
    for node in graph.list_nodes():
        print(f"  {node.describe()}")
        for line in format_metadata(node.metadata, prefix="    ", key_contains=args.metadata_key):
            print(line)
    connections = graph.list_connections()
    print(f"Connections ({len(connections)}):")
    for connection in connections:
        print(f"  {connection}")
    starts = ", ".join(n.id for n in graph.find_start_nodes()) or "(none)"
    print(f"Start nodes: {starts}")
    return 0


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register workflow commands with the main CLI."""
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a workflow file",
        description="Check a workflow file for cycles, dangling branches and invalid nodes.",
    )
    validate_parser.add_argument("file", type=str, help="Path to a workflow JSON file")
    validate_parser.add_argument(
        "--json", action="store_true", help="Output diagnostics as JSON"
    )
    validate_parser.set_defaults(func=cmd_validate)

    run_parser = subparsers.add_parser(
        "run",
        help="Execute a workflow file",
        description="Execute a workflow depth-first from its START nodes.",
    )
    run_parser.add_argument("file", type=str, help="Path to a workflow JSON file")
    run_parser.add_argument(
        "--start",
        action="append",
        metavar="ID",
        help="Start node id (repeatable; default: every START node)",
    )
    run_parser.add_argument(
        "--context",
        type=str,
        help='Condition variables as a JSON object, e.g. \'{"age": "21"}\'',
    )
    run_parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Run even if the workflow fails validation",
    )
    run_parser.set_defaults(func=cmd_run)

    info_parser = subparsers.add_parser(
        "info",
        help="Show workflow details",
        description="List the nodes, connections and metadata of a workflow file.",
    )
    info_parser.add_argument("file", type=str, help="Path to a workflow JSON file")
    info_parser.add_argument(
        "--metadata-key",
        type=str,
        default=None,
        help="Only show metadata keys containing this text",
    )
    info_parser.add_argument("--json", action="store_true", help="Output as JSON")
    info_parser.set_defaults(func=cmd_info)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowforge",
        description="flowforge - Validate and run node-based workflows",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR); default from configuration",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "human", "auto"],
        default=None,
        help="Log output format; default from configuration",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_commands(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=args.log_level or get_log_level(),
        format=args.log_format or get_log_format(),
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
