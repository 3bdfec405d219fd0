"""Tests for ConsoleLogger and JsonLogger."""

import io
import json

import pytest
from rich.console import Console

from conftest import RecordingRunner

from caseflow.workflow.loggers import ConsoleLogger, JsonLogger


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
async def reviewed_workflow(planning_workflow):
    planning_workflow.transition_to("PLAN_CONFIRMED")
    executor = planning_workflow.create_executor(RecordingRunner(fail={"a"}))
    await planning_workflow.execute_plan(executor)
    return planning_workflow


class TestConsoleLogger:
    """Rich rendering of plans, reviews and whole states."""

    def test_log_plan(self, console, sample_plan):
        ConsoleLogger.log_plan(sample_plan, console)

        output = console.file.getvalue()
        assert "Test plan (v1, draft)" in output
        assert "a, b" in output
        assert "pending" in output

    @pytest.mark.asyncio
    async def test_log_review(self, console, reviewed_workflow):
        ConsoleLogger.log_review(reviewed_workflow.state.review, console)

        output = console.file.getvalue()
        assert "Completed 1 of 3 tasks (2 failed)" in output
        assert "PARTIAL" in output
        assert "Dependencies not met" in output
        assert "Tool: search" in output

    @pytest.mark.asyncio
    async def test_log_state(self, console, reviewed_workflow):
        ConsoleLogger.log_state(reviewed_workflow.state, console)

        output = console.file.getvalue()
        assert "Phase: Complete (review)" in output
        assert "Session: wf-test" in output
        assert "Create cases for every open alert" in output
        assert "100%" in output

    def test_log_state_shows_unanswered_required(self, console, sample_questions):
        from caseflow.workflow.orchestrator import WorkflowOrchestrator

        workflow = WorkflowOrchestrator()
        workflow.start_workflow("Do it", questions=sample_questions)
        ConsoleLogger.log_state(workflow.state, console)

        output = console.file.getvalue()
        assert "Which project?" in output
        assert "required" in output


class TestJsonLogger:
    """JSON export."""

    @pytest.mark.asyncio
    async def test_log_state(self, reviewed_workflow):
        data = json.loads(JsonLogger.log(reviewed_workflow.state))
        assert data["phase"] == "review"
        assert data["review"]["overall_status"] == "partial"

    @pytest.mark.asyncio
    async def test_log_review(self, reviewed_workflow):
        data = json.loads(JsonLogger.log_review(reviewed_workflow.state.review))
        assert [item["status"] for item in data["items"]] == ["error", "success", "warning"]

    def test_log_results(self):
        from caseflow.workflow.models import TaskExecutionResult

        data = json.loads(
            JsonLogger.log_results([TaskExecutionResult(task_id="a", success=False, error="x")])
        )
        assert data == [{"task_id": "a", "success": False, "result": None, "error": "x"}]
