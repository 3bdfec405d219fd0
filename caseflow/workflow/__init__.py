"""Guided conversation workflow.

A chat session moves through five phases:

    idle -> clarification -> planning -> execution -> review

Clarification collects answers to questions about the request, planning
produces a confirmable task list, execution runs the tasks one at a time
(pausable, cancellable, dependency-gated) and review summarizes the
outcomes. Review loops back to clarification for a new task or exits.

Example usage:
    >>> from caseflow.workflow import WorkflowOrchestrator, Plan, PlanTask
    >>> workflow = WorkflowOrchestrator()
    >>> workflow.start_workflow("Triage every open alert")
    >>> workflow.complete_clarification()
    >>> workflow.set_plan(Plan(id="p1", title="Triage", tasks=[PlanTask(id="t1", title="Fetch")]))
    >>> workflow.transition_to("PLAN_CONFIRMED")
    >>> executor = workflow.create_executor(run_task)
    >>> results = await workflow.execute_plan(executor)
    >>> ConsoleLogger.log_review(workflow.state.review)
"""

from caseflow.workflow.clarification import ClarificationTracker
from caseflow.workflow.detection import analyze_request, should_start_workflow
from caseflow.workflow.executor import ExecutionSink, TaskExecutor
from caseflow.workflow.loggers import ConsoleLogger, JsonLogger
from caseflow.workflow.models import (
    AnswerType,
    ClarificationQuestion,
    ClarificationState,
    ComplexityAnalysis,
    ConversationPhase,
    ConversationWorkflowState,
    ExecutionProgress,
    ExecutionState,
    OverallStatus,
    PhaseTransitionEvent,
    PhaseValidation,
    Plan,
    PlanningState,
    PlanTask,
    ReviewItem,
    ReviewItemStatus,
    ReviewState,
    TaskExecutionResult,
    TaskStatus,
)
from caseflow.workflow.orchestrator import WorkflowOrchestrator, generate_session_id
from caseflow.workflow.plan import PlanModel, validate_plan_dependencies
from caseflow.workflow.review import build_review
from caseflow.workflow.transitions import (
    WORKFLOW_TRANSITIONS,
    assert_transition,
    can_transition,
    get_next_phase,
    get_valid_events,
    validate_phase_completion,
)

__all__ = [
    # Models
    "AnswerType",
    "ClarificationQuestion",
    "ClarificationState",
    "ComplexityAnalysis",
    "ConversationPhase",
    "ConversationWorkflowState",
    "ExecutionProgress",
    "ExecutionState",
    "OverallStatus",
    "PhaseTransitionEvent",
    "PhaseValidation",
    "Plan",
    "PlanningState",
    "PlanTask",
    "ReviewItem",
    "ReviewItemStatus",
    "ReviewState",
    "TaskExecutionResult",
    "TaskStatus",
    # Transitions
    "WORKFLOW_TRANSITIONS",
    "assert_transition",
    "can_transition",
    "get_next_phase",
    "get_valid_events",
    "validate_phase_completion",
    # Components
    "ClarificationTracker",
    "PlanModel",
    "validate_plan_dependencies",
    "TaskExecutor",
    "ExecutionSink",
    "build_review",
    "WorkflowOrchestrator",
    "generate_session_id",
    "analyze_request",
    "should_start_workflow",
    # Loggers
    "ConsoleLogger",
    "JsonLogger",
]
