"""Caseflow CLI interface."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, cast

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from caseflow.core.exceptions import StorageKeyError
from caseflow.core.settings import get_settings
from caseflow.storage.store import WorkflowStateStorage
from caseflow.workflow.detection import analyze_request
from caseflow.workflow.loggers import ConsoleLogger, JsonLogger
from caseflow.workflow.models import Plan, PlanTask, TaskExecutionResult
from caseflow.workflow.orchestrator import WorkflowOrchestrator
from caseflow.workflow.plan import PlanModel, validate_plan_dependencies
from caseflow.workflow.transitions import PHASE_DISPLAY_NAMES, WORKFLOW_TRANSITIONS

console = Console()

DRY_RUN_FAILURE = "Dry-run failure"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the caseflow CLI.

    Args:
        verbose: Log at the configured level instead of warnings only
    """
    settings = get_settings()
    log_level = settings.log_level.upper() if verbose else "WARNING"
    log_format = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
    date_format = "%H:%M:%S"

    logging.basicConfig(
        level=log_level, format=log_format, datefmt=date_format, stream=sys.stderr, force=True
    )

    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)


def load_plan(plan_file: str) -> Plan:
    """Read a plan JSON file, exiting with an error message if it is not a valid plan"""
    try:
        return Plan.model_validate_json(Path(plan_file).read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Error: invalid plan file {plan_file}[/red]")
        console.print(f"[dim]{e}[/dim]")
        sys.exit(1)


def resolve_storage_dir(storage_dir: str | None) -> Path:
    if storage_dir:
        return Path(storage_dir).expanduser()
    return get_settings().storage_dir_path()


def make_dry_run_task(fail_ids: set[str]) -> Any:
    """execute_task callback that succeeds unless the task id is in fail_ids"""

    async def execute_task(task: PlanTask) -> TaskExecutionResult:
        if task.id in fail_ids:
            return TaskExecutionResult(task_id=task.id, success=False, error=DRY_RUN_FAILURE)
        target = task.tool_name or "no tool"
        return TaskExecutionResult(task_id=task.id, success=True, result=f"Dry run ({target})")

    return execute_task


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable workflow logging")
def cli(verbose: bool) -> None:
    """Caseflow - guided conversation workflows"""
    setup_logging(verbose)


@click.command()
def transitions() -> None:
    """Print the phase transition table"""
    table = Table(title="Workflow transitions")
    table.add_column("From", style="cyan")
    table.add_column("Event", style="green")
    table.add_column("To", style="cyan")

    for phase, edges in WORKFLOW_TRANSITIONS.items():
        for event, target in edges.items():
            table.add_row(phase.value, event.value, target.value)

    console.print(table)


@click.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
def validate(plan_file: str) -> None:
    """Check a plan file for unknown dependencies and cycles"""
    plan = load_plan(plan_file)
    model = PlanModel()
    model.set_plan(plan)
    result = model.validate()

    if result.is_err():
        err_result = cast(Any, result)
        console.print(f"[red]Invalid plan ({err_result.code}): {err_result.error}[/red]")
        for problem in validate_plan_dependencies(plan.tasks):
            console.print(f"[dim]  - {problem}[/dim]")
        sys.exit(1)

    ConsoleLogger.log_plan(plan, console)
    console.print(f"[green]Plan '{plan.id}' is valid ({len(plan.tasks)} tasks)[/green]")


@click.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--request", "-r", help="Request text that starts the workflow")
@click.option("--fail", "fail_ids", multiple=True, help="Task id the dry run should fail")
@click.option("--save", is_flag=True, help="Save the final workflow state")
@click.option("--storage-dir", type=click.Path(file_okay=False), help="Storage base directory")
@click.option("--json", "as_json", is_flag=True, help="Print the final state as JSON")
def run(
    plan_file: str,
    request: str | None,
    fail_ids: tuple[str, ...],
    save: bool,
    storage_dir: str | None,
    as_json: bool,
) -> None:
    """Drive a plan through the workflow with a dry-run task runner"""
    plan = load_plan(plan_file)
    request_text = request or plan.description or plan.title

    analysis = analyze_request(request_text)
    if not as_json:
        console.print(f"[dim]Request analysis: {analysis.reason}[/dim]")

    workflow = WorkflowOrchestrator()
    workflow.start_workflow(request_text)
    workflow.complete_clarification()
    workflow.set_plan(plan)

    if not workflow.transition_to("PLAN_CONFIRMED"):
        err_result = cast(Any, workflow.plan_model.validate())
        console.print(f"[red]Plan not confirmed ({err_result.code}): {err_result.error}[/red]")
        sys.exit(1)

    executor = workflow.create_executor(make_dry_run_task(set(fail_ids)))

    try:
        asyncio.run(workflow.execute_plan(executor))
    except KeyboardInterrupt:
        console.print()
        console.print("[yellow]Execution interrupted.[/yellow]")
        sys.exit(130)

    if as_json:
        click.echo(JsonLogger.log(workflow.state))
    else:
        ConsoleLogger.log_review(workflow.state.review, console)
        console.print(
            f"[dim]Phase: {PHASE_DISPLAY_NAMES[workflow.phase]} "
            f"(session {workflow.state.session_id})[/dim]"
        )

    if save:
        storage = WorkflowStateStorage(resolve_storage_dir(storage_dir))
        path = asyncio.run(storage.save_state(workflow.state))
        if not as_json:
            console.print(f"[green]Saved workflow state to {path}[/green]")


@click.command()
@click.argument("session_id", type=click.STRING)
@click.option("--storage-dir", type=click.Path(file_okay=False), help="Storage base directory")
@click.option("--json", "as_json", is_flag=True, help="Print the state as JSON")
def show(session_id: str, storage_dir: str | None, as_json: bool) -> None:
    """Show a saved workflow state"""
    storage = WorkflowStateStorage(resolve_storage_dir(storage_dir))
    try:
        state = asyncio.run(storage.load_state(session_id))
    except StorageKeyError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if state is None:
        console.print(f"[red]Workflow state not found: {session_id}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(JsonLogger.log(state))
    else:
        ConsoleLogger.log_state(state, console)


cast(Any, cli).add_command(transitions)
cast(Any, cli).add_command(validate)
cast(Any, cli).add_command(run)
cast(Any, cli).add_command(show)
