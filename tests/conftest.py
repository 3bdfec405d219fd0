"""Shared fixtures for caseflow tests"""

from __future__ import annotations

from typing import Any

import pytest

from caseflow.workflow.models import (
    ClarificationQuestion,
    Plan,
    PlanTask,
    TaskExecutionResult,
)
from caseflow.workflow.orchestrator import WorkflowOrchestrator


def make_task(task_id: str, order: int = 0, dependencies: list[str] | None = None, **kwargs: Any) -> PlanTask:
    """Build a PlanTask with a title derived from its id."""
    return PlanTask(
        id=task_id,
        title=kwargs.pop("title", f"Task {task_id}"),
        order=order,
        dependencies=dependencies or [],
        **kwargs,
    )


def make_plan(*tasks: PlanTask, plan_id: str = "plan-1") -> Plan:
    return Plan(id=plan_id, title="Test plan", tasks=list(tasks))


class RecordingRunner:
    """execute_task double that records calls and fails listed task ids."""

    def __init__(self, fail: set[str] | None = None, raise_on: set[str] | None = None):
        self.fail = fail or set()
        self.raise_on = raise_on or set()
        self.calls: list[str] = []

    async def __call__(self, task: PlanTask) -> TaskExecutionResult:
        self.calls.append(task.id)
        if task.id in self.raise_on:
            raise RuntimeError(f"boom in {task.id}")
        if task.id in self.fail:
            return TaskExecutionResult(task_id=task.id, success=False, error="failed")
        return TaskExecutionResult(task_id=task.id, success=True, result=f"done {task.id}")


@pytest.fixture
def sample_questions() -> list[ClarificationQuestion]:
    """One required text question, one optional choice question."""
    return [
        ClarificationQuestion(id="q1", question="Which project?", required=True),
        ClarificationQuestion(
            id="q2",
            question="Notify the team?",
            type="choice",
            options=["Yes", "No"],
            required=False,
        ),
    ]


@pytest.fixture
def sample_plan() -> Plan:
    """Three tasks, c depends on a and b."""
    return make_plan(
        make_task("a", order=0),
        make_task("b", order=1, tool_name="search"),
        make_task("c", order=2, dependencies=["a", "b"]),
    )


@pytest.fixture
def planning_workflow(sample_plan: Plan) -> WorkflowOrchestrator:
    """Workflow sitting in planning with sample_plan set but not confirmed."""
    workflow = WorkflowOrchestrator()
    assert workflow.start_workflow("Create cases for every open alert", session_id="wf-test")
    assert workflow.complete_clarification()
    workflow.set_plan(sample_plan)
    return workflow
