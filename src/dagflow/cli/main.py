"""Main CLI for dagflow."""

import sys
from pathlib import Path
from typing import Dict, Tuple

import click
from rich.console import Console
from rich.table import Table

from ..core.config import DagflowConfig, load_config
from ..core.events import JsonlEventSink
from ..core.task import OwnerRecord
from ..core.task_board import InMemoryTaskBoard
from ..dispatch.local_dispatcher import LocalDispatcher
from ..errors.translator import ErrorTranslator
from ..store.workflow_store import FileWorkflowStore, WorkflowLoadError, WorkflowNotFoundError
from ..utils.atomic_io import atomic_write_model
from ..utils.rich_logging import setup_rich_logging
from ..workflow.engine import execution_order, validate
from ..workflow.executor import ExecutionOrchestrator, InstanceStatus
from ..workflow.graph import Graph


console = Console()
translator = ErrorTranslator()


def _parse_pairs(ctx, param, values: Tuple[str, ...]) -> Dict[str, str]:
    """Turn repeated ``key=value`` options into a dict."""
    pairs = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{raw}'", ctx=ctx, param=param)
        pairs[key] = value
    return pairs


def _resolve(ctx, path: Path) -> Path:
    return path if path.is_absolute() else ctx.obj["workspace"] / path


def _store(ctx) -> FileWorkflowStore:
    config: DagflowConfig = ctx.obj["config"]
    return FileWorkflowStore(_resolve(ctx, config.workflows_dir))


def _load_graph_or_exit(ctx, workflow_id: str) -> Graph:
    try:
        return _store(ctx).read_graph(workflow_id)
    except (WorkflowNotFoundError, WorkflowLoadError) as e:
        console.print(translator.format_for_cli(translator.translate(e)))
        sys.exit(1)


def _print_validation_errors(errors):
    table = Table(title="Validation errors")
    table.add_column("#", justify="right")
    table.add_column("Problem", style="red")
    table.add_column("Details")
    table.add_column("How to fix")

    for i, friendly in enumerate(translator.translate_validation(errors), 1):
        table.add_row(
            str(i),
            friendly.title,
            str(friendly.original_error),
            "\n".join(friendly.actions),
        )
    console.print(table)


@click.group()
@click.option("--workspace", "-w", default=".", help="Workspace directory")
@click.option("--config", "-c", "config_path", default=None, help="Config file (default: <workspace>/dagflow.yaml)")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx, workspace, config_path, log_level):
    """dagflow - DAG workflow validation, planning and simulation."""
    ctx.ensure_object(dict)
    workspace = Path(workspace)
    config = load_config(Path(config_path) if config_path else workspace / "dagflow.yaml")

    ctx.obj["workspace"] = workspace
    ctx.obj["config"] = config
    ctx.obj["log_level"] = (log_level or config.log_level).upper()


@cli.command("validate")
@click.argument("workflow_id")
@click.pass_context
def validate_command(ctx, workflow_id):
    """Check a workflow for structural problems."""
    graph = _load_graph_or_exit(ctx, workflow_id)
    result = validate(graph)

    console.print(
        f"[bold]{graph.name or workflow_id}[/]: "
        f"{len(graph.nodes)} nodes, {len(graph.edges)} edges"
    )
    if result.valid:
        console.print("[green]✓ Workflow is valid[/]")
        return

    _print_validation_errors(result.errors)
    sys.exit(1)


@cli.command()
@click.argument("workflow_id")
@click.pass_context
def plan(ctx, workflow_id):
    """Show the layered execution order of a workflow."""
    graph = _load_graph_or_exit(ctx, workflow_id)
    result = validate(graph)
    if not result.valid:
        _print_validation_errors(result.errors)
        sys.exit(1)

    table = Table(title=f"Execution plan: {graph.name or workflow_id}")
    table.add_column("Layer", justify="right")
    table.add_column("Nodes")

    for i, layer in enumerate(execution_order(graph), 1):
        labels = []
        for node_id in layer:
            node = graph.node(node_id)
            labels.append(f"{node.display_name} [dim]({node.kind.value})[/]")
        table.add_row(str(i), ", ".join(labels))

    console.print(table)


@cli.command()
@click.argument("workflow_id")
@click.option("--owner", "owner_id", default="sim-1", help="Owner task id for the run")
@click.option("--context", "context", multiple=True, callback=_parse_pairs, help="Initial context KEY=VALUE")
@click.option("--result", "results", multiple=True, callback=_parse_pairs, help="Result payload NODE=PAYLOAD")
@click.option("--fail", "failed_nodes", multiple=True, help="Report this node's work item as failed")
@click.option("--state-file", type=click.Path(path_type=Path), default=None, help="Write the final execution state here")
@click.pass_context
def simulate(ctx, workflow_id, owner_id, context, results, failed_nodes, state_file):
    """Run a workflow in-process, completing work items in dispatch order."""
    config: DagflowConfig = ctx.obj["config"]
    log = setup_rich_logging(
        "simulate",
        _resolve(ctx, config.logs_dir),
        log_level=ctx.obj["log_level"],
    )

    graph = _load_graph_or_exit(ctx, workflow_id)
    result = validate(graph)
    if not result.valid:
        _print_validation_errors(result.errors)
        sys.exit(1)

    board = InMemoryTaskBoard([
        OwnerRecord(id=owner_id, title=f"Simulation of {graph.name or workflow_id}"),
    ])
    dispatcher = LocalDispatcher(config.workers)
    events = JsonlEventSink(_resolve(ctx, config.events.path), enabled=config.events.enabled)
    orchestrator = ExecutionOrchestrator(_store(ctx), board, dispatcher, events, config.orchestrator)
    dispatcher.bind(orchestrator.on_external_completion)

    with events:
        log.workflow_started(owner_id, graph.name or workflow_id)
        if not orchestrator.start(workflow_id, owner_id, context):
            console.print(f"[red]Workflow {workflow_id} failed to start for {owner_id}[/]")

        while orchestrator.is_running(owner_id):
            pending = [item for item in dispatcher.pending() if item.owner_id == owner_id]
            if not pending:
                log.warning("No open work items left but the workflow is still running")
                break
            item = pending[0]
            succeeded = item.node_id not in failed_nodes
            dispatcher.finish(item.id, results.get(item.node_id), succeeded=succeeded)
            log.node_finished(item.node_id, f"{item.id} -> {item.assignee_id or 'unassigned'}")

        state = orchestrator.get_execution_state(owner_id) or orchestrator.last_finished_state(owner_id)
        log.workflow_finished(state.status.value if state else "not started")

    owner = board.get_owner(owner_id)

    table = Table(title=f"Simulation: {graph.name or workflow_id}")
    table.add_column("#", justify="right")
    table.add_column("Node")
    table.add_column("Kind")
    table.add_column("Result")
    if state:
        for i, node_id in enumerate(state.completion_order, 1):
            node = graph.node(node_id)
            table.add_row(str(i), node.display_name, node.kind.value, state.node_results.get(node_id, ""))
    console.print(table)

    console.print(f"Workflow status: [bold]{state.status.value if state else 'not started'}[/]")
    console.print(f"Owner {owner_id} status: [bold]{owner.status}[/]")

    if state_file and state:
        atomic_write_model(_resolve(ctx, state_file), state)
        console.print(f"[dim]State written to {state_file}[/]")

    if state is None or state.status == InstanceStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    cli()
