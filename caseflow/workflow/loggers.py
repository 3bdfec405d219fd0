"""Loggers for workflow state and execution reviews.

Loggers:
- ConsoleLogger: Human-readable terminal output (rich tables and panels)
- JsonLogger: Structured JSON export for downstream processing
"""

from __future__ import annotations

import json
from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from caseflow.workflow.models import (
    ConversationWorkflowState,
    OverallStatus,
    Plan,
    ReviewItemStatus,
    ReviewState,
    TaskExecutionResult,
    TaskStatus,
)
from caseflow.workflow.transitions import PHASE_DESCRIPTIONS, PHASE_DISPLAY_NAMES

TASK_STATUS_STYLES = {
    TaskStatus.PENDING: "dim",
    TaskStatus.IN_PROGRESS: "cyan",
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
    TaskStatus.SKIPPED: "yellow",
}

REVIEW_STATUS_STYLES = {
    ReviewItemStatus.SUCCESS: "green",
    ReviewItemStatus.WARNING: "yellow",
    ReviewItemStatus.ERROR: "red",
}

OVERALL_STATUS_STYLES = {
    OverallStatus.SUCCESS: "green",
    OverallStatus.PARTIAL: "yellow",
    OverallStatus.FAILED: "red",
}


class ConsoleLogger:
    """Human-readable console logger for workflow state.

    Every method takes an optional rich Console; a default one writing to
    stdout is used when omitted.
    """

    @staticmethod
    def log_plan(plan: Plan, console: Optional[Console] = None) -> None:
        """Print a plan's tasks with their status and dependencies.

        Args:
            plan: Plan to display
            console: Target console
        """
        console = console or Console()
        confirmed = "confirmed" if plan.is_confirmed else "draft"
        table = Table(title=f"{plan.title} (v{plan.version}, {confirmed})")
        table.add_column("#", style="dim", justify="right")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Depends on", style="dim")
        table.add_column("Status")

        for task in sorted(plan.tasks, key=lambda t: t.order):
            style = TASK_STATUS_STYLES.get(task.status, "")
            table.add_row(
                str(task.order),
                task.id,
                task.title,
                ", ".join(task.dependencies) or "-",
                f"[{style}]{task.status.value}[/{style}]",
            )
        console.print(table)

    @staticmethod
    def log_review(review: ReviewState, console: Optional[Console] = None) -> None:
        """Print review items and the overall outcome.

        Args:
            review: ReviewState to display
            console: Target console
        """
        console = console or Console()
        table = Table(title="Review")
        table.add_column("Task", style="cyan")
        table.add_column("Status")
        table.add_column("Summary")
        table.add_column("Details", style="dim")

        for item in review.items:
            style = REVIEW_STATUS_STYLES.get(item.status, "")
            table.add_row(
                item.task_title,
                f"[{style}]{item.status.value}[/{style}]",
                item.summary,
                item.details or "",
            )
        console.print(table)

        style = OVERALL_STATUS_STYLES.get(review.overall_status, "")
        console.print(
            Panel(
                review.summary or "No tasks executed",
                title=f"[{style}]{review.overall_status.value.upper()}[/{style}]",
                expand=False,
            )
        )

    @staticmethod
    def log_state(state: ConversationWorkflowState, console: Optional[Console] = None) -> None:
        """Print a full workflow snapshot: phase, request, questions, plan, progress, review.

        Args:
            state: Workflow state to display
            console: Target console
        """
        console = console or Console()
        header = [
            f"[bold]Phase:[/bold] {PHASE_DISPLAY_NAMES[state.phase]} ({state.phase.value})",
            f"[dim]{PHASE_DESCRIPTIONS[state.phase]}[/dim]",
        ]
        if state.session_id:
            header.append(f"[bold]Session:[/bold] {state.session_id}")
        if state.started_at:
            header.append(f"[bold]Started:[/bold] {state.started_at.strftime('%Y-%m-%d %H:%M:%S')}")
        if state.clarification.original_request:
            header.append(f"[bold]Request:[/bold] {state.clarification.original_request}")
        console.print(Panel("\n".join(header), title="Workflow", expand=False))

        questions = state.clarification.questions
        if questions:
            table = Table(title="Clarification")
            table.add_column("ID", style="cyan")
            table.add_column("Question")
            table.add_column("Answer")
            for question in questions:
                answer = question.answer
                if isinstance(answer, list):
                    answer = ", ".join(answer)
                if not question.has_answer:
                    answer = "[dim]-[/dim]" if not question.required else "[yellow]required[/yellow]"
                table.add_row(question.id, question.question, answer or "")
            console.print(table)

        plan = state.planning.current_plan
        if plan is not None:
            ConsoleLogger.log_plan(plan, console)

        progress = state.execution.progress
        if progress.total_tasks:
            console.print(
                f"[bold]Progress:[/bold] {progress.percentage}% "
                f"({progress.completed_tasks} completed, {progress.failed_tasks} failed, "
                f"{progress.skipped_tasks} skipped, {progress.remaining_tasks} remaining)"
            )

        if state.review.items:
            ConsoleLogger.log_review(state.review, console)


class JsonLogger:
    """Structured JSON logger for workflow state.

    Exports snapshots and reviews as JSON for downstream processing,
    analysis, or storage.
    """

    @staticmethod
    def log(state: ConversationWorkflowState, indent: int = 2) -> str:
        """Export a workflow state to JSON string.

        Args:
            state: Workflow state to export
            indent: Number of spaces for indentation (default: 2)

        Returns:
            JSON string representation of the state
        """
        return state.model_dump_json(indent=indent)

    @staticmethod
    def log_review(review: ReviewState, indent: int = 2) -> str:
        return review.model_dump_json(indent=indent)

    @staticmethod
    def log_results(results: Sequence[TaskExecutionResult], indent: int = 2) -> str:
        """Export executor results, in attempt order, to a JSON array."""
        return json.dumps([r.model_dump(mode="json") for r in results], indent=indent)
