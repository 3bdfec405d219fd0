"""Workflow orchestrator: owner of a session's ConversationWorkflowState.

Every phase change goes through the transition table (assert_transition);
an illegal event is logged and rejected with the state left untouched.
The orchestrator is also the ExecutionSink a TaskExecutor reports to, so
plan task statuses, progress counters and the review have a single writer.

One orchestrator per chat session; there is no shared or global instance.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Iterable, Optional, Union
from uuid import uuid4

from caseflow.core.result import Err, Ok, Result
from caseflow.core.settings import get_settings
from caseflow.workflow.clarification import ClarificationTracker
from caseflow.workflow.executor import ExecuteTaskFn, TaskExecutor
from caseflow.workflow.models import (
    Answer,
    ClarificationQuestion,
    ClarificationState,
    ConversationPhase,
    ConversationWorkflowState,
    ExecutionProgress,
    ExecutionState,
    PhaseTransitionEvent,
    PhaseValidation,
    Plan,
    PlanningState,
    ReviewState,
    TaskExecutionResult,
    TaskStatus,
    TERMINAL_TASK_STATUSES,
)
from caseflow.workflow.plan import PlanModel
from caseflow.workflow.transitions import (
    assert_transition,
    can_transition,
    get_valid_events,
    validate_phase_completion,
)

logger = logging.getLogger(__name__)


def generate_session_id(prefix: Optional[str] = None) -> str:
    """Session id of the form "<prefix>-<epoch millis>-<7 hex chars>"."""
    prefix = prefix or get_settings().session_prefix
    return f"{prefix}-{int(time.time() * 1000)}-{uuid4().hex[:7]}"


class WorkflowOrchestrator:
    """Drives one conversation workflow through its phases.

    Phase-changing methods return bool (False when the transition table
    rejects the event). Plan mutations return Result so callers can show
    why a change was refused.

    Example:
        >>> workflow = WorkflowOrchestrator()
        >>> workflow.start_workflow("Create a case for every open signal")
        True
        >>> workflow.phase
        <ConversationPhase.CLARIFICATION: 'clarification'>
        >>> workflow.transition_to(PhaseTransitionEvent.PLAN_CONFIRMED)
        False
    """

    def __init__(self, state: Optional[ConversationWorkflowState] = None):
        self._state = state if state is not None else ConversationWorkflowState()

    @property
    def state(self) -> ConversationWorkflowState:
        """Current workflow state. Read it freely; mutate through this class only."""
        return self._state

    @property
    def phase(self) -> ConversationPhase:
        return self._state.phase

    @property
    def is_workflow_active(self) -> bool:
        return self._state.phase != ConversationPhase.IDLE

    @property
    def clarification(self) -> ClarificationTracker:
        return ClarificationTracker(self._state.clarification)

    @property
    def plan_model(self) -> PlanModel:
        return PlanModel(self._state.planning)

    @property
    def plan(self) -> Optional[Plan]:
        return self._state.planning.current_plan

    # Phase transitions

    def can_transition(self, event: Union[PhaseTransitionEvent, str]) -> bool:
        return can_transition(self._state.phase, event)

    def valid_events(self) -> list[PhaseTransitionEvent]:
        return get_valid_events(self._state.phase)

    def _check(self, event: PhaseTransitionEvent) -> Result[ConversationPhase]:
        result = assert_transition(self._state.phase, event)
        if result.is_err():
            logger.warning(f"Invalid transition: {self._state.phase.value} -> {event.value}")
        return result

    def _enter(self, phase: ConversationPhase) -> None:
        session = self._state.session_id or "-"
        logger.info(f"Workflow {session}: {self._state.phase.value} -> {phase.value}")
        self._state.phase = phase

    def start_workflow(
        self,
        original_request: str,
        questions: Optional[Iterable[ClarificationQuestion]] = None,
        session_id: Optional[str] = None,
    ) -> bool:
        """Start a workflow from idle and enter clarification.

        Args:
            original_request: Free-text request that started the workflow
            questions: Optional clarification questions (from the caller or
                analyze_request)
            session_id: Optional session id; generated when omitted

        Returns:
            False if the workflow is not idle
        """
        transition = self._check(PhaseTransitionEvent.START_WORKFLOW)
        if transition.is_err():
            return False

        self._state = ConversationWorkflowState(
            session_id=session_id or generate_session_id(),
            started_at=datetime.now(),
            clarification=ClarificationState(original_request=original_request),
        )
        self._enter(transition.unwrap())
        self.set_questions(questions or [])
        return True

    def transition_to(self, event: Union[PhaseTransitionEvent, str]) -> bool:
        """Fire a transition event.

        START_WORKFLOW is rejected here because it needs a request; use
        start_workflow(). PLAN_CONFIRMED confirms the current plan first
        and is rejected if the plan cannot be confirmed.
        """
        try:
            event = PhaseTransitionEvent(event)
        except ValueError:
            logger.warning(f"Unknown transition event: {event}")
            return False

        handlers = {
            PhaseTransitionEvent.REQUIREMENTS_COMPLETE: self.complete_clarification,
            PhaseTransitionEvent.PLAN_CONFIRMED: self._confirm_and_execute,
            PhaseTransitionEvent.EXECUTION_COMPLETE: self.complete_execution,
            PhaseTransitionEvent.REQUEST_NEW_TASK: self.request_new_task,
            PhaseTransitionEvent.EXIT_WORKFLOW: self.exit_workflow,
            PhaseTransitionEvent.GO_BACK: self.go_back,
        }
        handler = handlers.get(event)
        if handler is None:
            self._check(event)
            return False
        return handler()

    # Clarification

    def set_questions(self, questions: Iterable[ClarificationQuestion]) -> None:
        self.clarification.set_questions(questions)

    def answer_question(self, question_id: str, answer: Answer) -> bool:
        return self.clarification.answer_question(question_id, answer)

    def complete_clarification(self) -> bool:
        """Leave clarification for planning (REQUIREMENTS_COMPLETE)."""
        transition = self._check(PhaseTransitionEvent.REQUIREMENTS_COMPLETE)
        if transition.is_err():
            return False
        self.clarification.mark_complete()
        self._enter(transition.unwrap())
        return True

    # Planning

    def set_plan(self, plan: Plan) -> Result[Plan]:
        """Replace the plan; refused while tasks are executing."""
        if self._state.phase == ConversationPhase.EXECUTION:
            return Err("Cannot replace the plan during execution", code="PLAN_LOCKED")
        model = self.plan_model
        model.set_plan(plan)
        return Ok(model.plan)

    def update_plan(self, **updates: Any) -> Result[Plan]:
        return self.plan_model.update_plan(updates)

    def add_plan_feedback(self, feedback: str) -> None:
        self.plan_model.add_feedback(feedback)

    def confirm_plan(self) -> Result[Plan]:
        """Confirm the plan without changing phase (see PLAN_CONFIRMED)."""
        result = self.plan_model.confirm_plan()
        if result.is_err():
            logger.warning(f"Plan not confirmed: {getattr(result, 'error', '')}")
        return result

    def _confirm_and_execute(self) -> bool:
        transition = self._check(PhaseTransitionEvent.PLAN_CONFIRMED)
        if transition.is_err():
            return False
        confirmed = self.confirm_plan()
        if confirmed.is_err():
            return False

        plan = confirmed.unwrap()
        self._state.execution = ExecutionState(
            progress=ExecutionProgress(total_tasks=len(plan.tasks)),
        )
        self._enter(transition.unwrap())
        return True

    # Execution (ExecutionSink)

    def create_executor(self, execute_task: ExecuteTaskFn, **callbacks: Any) -> TaskExecutor:
        """Build a TaskExecutor that reports into this workflow."""
        return TaskExecutor(execute_task, workflow=self, **callbacks)

    async def execute_plan(self, executor: TaskExecutor) -> list[TaskExecutionResult]:
        """Run the current plan's tasks with the given executor."""
        plan = self.plan
        tasks = plan.tasks if plan is not None else []
        return await executor.execute(tasks)

    def start_execution(self) -> None:
        progress = self._state.execution.progress
        progress.started_at = datetime.now()
        progress.completed_at = None
        if self.plan is not None:
            progress.total_tasks = len(self.plan.tasks)

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record a task status change and refresh progress counters."""
        task = self.plan_model.update_task(task_id, status, result, error)
        if task is None:
            logger.debug(f"Status update for task outside the current plan: {task_id}")
            return

        execution = self._state.execution
        if status in TERMINAL_TASK_STATUSES:
            execution.task_results[task_id] = TaskExecutionResult(
                task_id=task_id,
                success=status == TaskStatus.COMPLETED,
                result=result,
                error=error,
            )

        tasks = self.plan.tasks if self.plan is not None else []
        progress = execution.progress
        progress.total_tasks = len(tasks)
        progress.completed_tasks = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        progress.failed_tasks = sum(1 for t in tasks if t.status == TaskStatus.FAILED)
        progress.skipped_tasks = sum(1 for t in tasks if t.status == TaskStatus.SKIPPED)
        finished = progress.completed_tasks + progress.failed_tasks + progress.skipped_tasks
        progress.percentage = round(finished / len(tasks) * 100) if tasks else 0

    def set_current_task(self, task_id: Optional[str]) -> None:
        self._state.execution.progress.current_task_id = task_id

    def pause_execution(self) -> None:
        self._state.execution.is_paused = True

    def resume_execution(self) -> None:
        self._state.execution.is_paused = False

    def cancel_execution(self) -> None:
        """Flag the run as cancelled; the phase still only changes on EXECUTION_COMPLETE."""
        self._state.execution.is_cancelled = True

    def complete_execution(self) -> bool:
        """Leave execution for review (EXECUTION_COMPLETE)."""
        transition = self._check(PhaseTransitionEvent.EXECUTION_COMPLETE)
        if transition.is_err():
            return False
        progress = self._state.execution.progress
        progress.completed_at = datetime.now()
        progress.current_task_id = None
        self._state.execution.is_paused = False
        self._enter(transition.unwrap())
        return True

    # Review

    def set_review(self, review: ReviewState) -> None:
        self._state.review = review.model_copy(deep=True)

    def request_new_task(self, original_request: str = "") -> bool:
        """Loop from review back to clarification with fresh sub-states."""
        transition = self._check(PhaseTransitionEvent.REQUEST_NEW_TASK)
        if transition.is_err():
            return False
        self._state.clarification = ClarificationState(original_request=original_request)
        self._state.planning = PlanningState()
        self._state.execution = ExecutionState()
        self._state.review = ReviewState()
        self._enter(transition.unwrap())
        return True

    def exit_workflow(self) -> bool:
        """Return to idle, discarding the session's workflow state."""
        transition = self._check(PhaseTransitionEvent.EXIT_WORKFLOW)
        if transition.is_err():
            return False
        self._enter(transition.unwrap())
        self._state = ConversationWorkflowState()
        return True

    def go_back(self) -> bool:
        """Planning back to clarification; a no-op (False) from any other phase."""
        transition = self._check(PhaseTransitionEvent.GO_BACK)
        if transition.is_err():
            return False
        self._state.clarification.is_complete = not self.clarification.unanswered_required()
        self._enter(transition.unwrap())
        return True

    # Validation and persistence

    def validate_current_phase(self) -> PhaseValidation:
        """validate_phase_completion() fed from this workflow's state."""
        state = self._state
        plan = state.planning.current_plan
        progress = state.execution.progress
        questions = state.clarification.questions
        required = [q for q in questions if q.required]
        return validate_phase_completion(
            state.phase,
            {
                "questions": {
                    "answered": sum(1 for q in required if q.has_answer),
                    "total": len(required),
                },
                "plan": {
                    "confirmed": state.planning.is_confirmed,
                    "task_count": len(plan.tasks) if plan is not None else 0,
                },
                "execution": {
                    "total": progress.total_tasks,
                    "completed": progress.completed_tasks,
                    "failed": progress.failed_tasks,
                    "skipped": progress.skipped_tasks,
                },
            },
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible copy of the workflow state."""
        return self._state.model_dump(mode="json")

    def restore_state(self, state: Union[ConversationWorkflowState, dict[str, Any]]) -> None:
        """Replace the workflow state, e.g. with a saved snapshot."""
        self._state = ConversationWorkflowState.model_validate(state).model_copy(deep=True)
