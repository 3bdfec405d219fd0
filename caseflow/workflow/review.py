"""Review aggregation: turns task outcomes into the post-execution review.

Pure functions of the executed tasks and their results. A task that was
rationally not attempted (cancelled, or its prerequisites failed) is a
warning; anything else that did not succeed is an error.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from caseflow.workflow.models import (
    OverallStatus,
    PlanTask,
    ReviewItem,
    ReviewItemStatus,
    ReviewState,
    TaskExecutionResult,
)

CANCELLED_ERROR = "Execution cancelled"
DEPENDENCIES_NOT_MET_ERROR = "Dependencies not met"

SKIP_REASONS = frozenset({CANCELLED_ERROR, DEPENDENCIES_NOT_MET_ERROR})


def review_item_status(result: TaskExecutionResult | None) -> ReviewItemStatus:
    if result is not None and result.success:
        return ReviewItemStatus.SUCCESS
    if result is not None and result.error in SKIP_REASONS:
        return ReviewItemStatus.WARNING
    return ReviewItemStatus.ERROR


def overall_status(results: Sequence[TaskExecutionResult]) -> OverallStatus:
    """failed if every result failed, partial if some did, success otherwise.

    An empty run counts as failed: nothing was accomplished.
    """
    failures = sum(1 for r in results if not r.success)
    if failures == len(results):
        return OverallStatus.FAILED
    if failures > 0:
        return OverallStatus.PARTIAL
    return OverallStatus.SUCCESS


def summarize(results: Sequence[TaskExecutionResult]) -> str:
    successes = sum(1 for r in results if r.success)
    failures = len(results) - successes
    summary = f"Completed {successes} of {len(results)} tasks"
    if failures > 0:
        summary += f" ({failures} failed)"
    return summary


def build_review(
    tasks: Iterable[PlanTask],
    results: Sequence[TaskExecutionResult],
) -> ReviewState:
    """Build the review for a finished run.

    Args:
        tasks: Tasks in the order they were attempted
        results: One result per attempted (or skipped) task

    Returns:
        ReviewState with one item per task, the overall status and a summary line
    """
    by_task = {result.task_id: result for result in results}
    items: list[ReviewItem] = []
    for task in tasks:
        result = by_task.get(task.id)
        summary = "No result"
        if result is not None:
            summary = result.result or result.error or summary
        items.append(
            ReviewItem(
                task_id=task.id,
                task_title=task.title,
                status=review_item_status(result),
                summary=summary,
                details=f"Tool: {task.tool_name}" if task.tool_name else None,
            )
        )

    return ReviewState(
        items=items,
        overall_status=overall_status(results),
        summary=summarize(results),
    )
