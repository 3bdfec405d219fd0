"""Data models for the conversation workflow.

The workflow guides a chat request through four phases (clarification,
planning, execution, review) and these models hold everything the
orchestrator tracks along the way. All models are plain data so that a
ConversationWorkflowState can be dumped to JSON between transitions.

Models:
- ConversationPhase / PhaseTransitionEvent: FSM vocabulary
- ClarificationQuestion / ClarificationState: requirement gathering
- PlanTask / Plan / PlanningState: the ordered task plan
- ExecutionProgress / ExecutionState / TaskExecutionResult: task runs
- ReviewItem / ReviewState: post-execution summary
- ConversationWorkflowState: aggregate root owned by the orchestrator
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class ConversationPhase(str, Enum):
    """The five mutually exclusive workflow phases."""

    IDLE = "idle"
    CLARIFICATION = "clarification"
    PLANNING = "planning"
    EXECUTION = "execution"
    REVIEW = "review"


class PhaseTransitionEvent(str, Enum):
    """Events that move the workflow between phases."""

    START_WORKFLOW = "START_WORKFLOW"
    REQUIREMENTS_COMPLETE = "REQUIREMENTS_COMPLETE"
    PLAN_CONFIRMED = "PLAN_CONFIRMED"
    EXECUTION_COMPLETE = "EXECUTION_COMPLETE"
    REQUEST_NEW_TASK = "REQUEST_NEW_TASK"
    EXIT_WORKFLOW = "EXIT_WORKFLOW"
    GO_BACK = "GO_BACK"


class AnswerType(str, Enum):
    """How a clarification question expects to be answered."""

    TEXT = "text"
    CHOICE = "choice"
    CONFIRMATION = "confirmation"
    MULTI_SELECT = "multi-select"


class TaskStatus(str, Enum):
    """Lifecycle of a single plan task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_TASK_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SKIPPED})


class ReviewItemStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class OverallStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


Answer = Union[str, list[str]]


class ClarificationQuestion(BaseModel):
    """A question asked before planning starts."""

    id: str = Field(..., description="Unique identifier", min_length=1)
    question: str = Field(..., description="Question text shown to the user", min_length=1)
    type: AnswerType = Field(default=AnswerType.TEXT, description="Expected answer type")
    options: Optional[list[str]] = Field(
        default=None,
        description="Available options for choice and multi-select questions",
    )
    required: bool = Field(default=True, description="Whether an answer is needed to proceed")
    answer: Optional[Answer] = Field(default=None, description="Recorded answer")
    answered_at: Optional[datetime] = Field(default=None, description="When the answer was given")

    @property
    def has_answer(self) -> bool:
        """True if the recorded answer is defined and non-empty."""
        if self.answer is None:
            return False
        if isinstance(self.answer, str):
            return bool(self.answer.strip())
        return len(self.answer) > 0


class ClarificationState(BaseModel):
    questions: list[ClarificationQuestion] = Field(default_factory=list)
    current_question_index: int = Field(
        default=0,
        description="Question currently presented (advisory, for pagination)",
    )
    is_complete: bool = Field(default=False)
    original_request: str = Field(default="", description="Request that started the workflow")


class PlanTask(BaseModel):
    """A single unit of planned work.

    Attributes:
        id: Unique identifier within the plan
        title: Short title shown in progress and review lists
        description: What the task does
        tool_name: Optional tool discriminator passed to the execution callback
        tool_input: Opaque payload for the tool
        dependencies: Ids of tasks that must succeed first
        status: Current status
        order: Execution rank (ascending, need not be contiguous)
        result: Result text once completed
        error: Error text once failed or skipped
    """

    id: str = Field(..., description="Unique identifier", min_length=1)
    title: str = Field(..., description="Task title", min_length=1)
    description: str = Field(default="", description="Task description")
    tool_name: Optional[str] = Field(default=None, description="Tool to dispatch to")
    tool_input: Optional[dict[str, Any]] = Field(default=None, description="Tool payload")
    dependencies: list[str] = Field(default_factory=list, description="Prerequisite task ids")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current status")
    order: int = Field(default=0, description="Execution rank")
    result: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)


class Plan(BaseModel):
    """Ordered, revisable task list produced during planning."""

    id: str = Field(..., description="Unique identifier", min_length=1)
    title: str = Field(..., description="Plan title", min_length=1)
    description: str = Field(default="", description="Plan description")
    tasks: list[PlanTask] = Field(default_factory=list)
    version: int = Field(default=1, description="Incremented on every update")
    confirmed_at: Optional[datetime] = Field(default=None)
    feedback: list[str] = Field(default_factory=list, description="Revision feedback")

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None

    def get_task(self, task_id: str) -> Optional[PlanTask]:
        """Get a task by ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


class PlanningState(BaseModel):
    current_plan: Optional[Plan] = None
    is_confirmed: bool = False
    user_feedback: list[str] = Field(default_factory=list)


class TaskExecutionResult(BaseModel):
    """Outcome of a single task attempt, as returned by the execution callback."""

    task_id: str = Field(..., min_length=1)
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None


class ExecutionProgress(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    skipped_tasks: int = 0
    current_task_id: Optional[str] = None
    percentage: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def remaining_tasks(self) -> int:
        return self.total_tasks - self.completed_tasks - self.failed_tasks - self.skipped_tasks


class ExecutionState(BaseModel):
    progress: ExecutionProgress = Field(default_factory=ExecutionProgress)
    is_paused: bool = False
    is_cancelled: bool = False
    task_results: dict[str, TaskExecutionResult] = Field(default_factory=dict)


class ReviewItem(BaseModel):
    task_id: str
    task_title: str
    status: ReviewItemStatus
    summary: str
    details: Optional[str] = None


class ReviewState(BaseModel):
    items: list[ReviewItem] = Field(default_factory=list)
    overall_status: OverallStatus = OverallStatus.SUCCESS
    summary: str = ""


class ConversationWorkflowState(BaseModel):
    """Aggregate root for one chat session's workflow.

    Owned by a WorkflowOrchestrator; callers read it but mutate it only
    through the orchestrator's action methods.
    """

    phase: ConversationPhase = ConversationPhase.IDLE
    session_id: str = ""
    started_at: Optional[datetime] = None
    clarification: ClarificationState = Field(default_factory=ClarificationState)
    planning: PlanningState = Field(default_factory=PlanningState)
    execution: ExecutionState = Field(default_factory=ExecutionState)
    review: ReviewState = Field(default_factory=ReviewState)


class ComplexityAnalysis(BaseModel):
    """Whether a chat request warrants the guided workflow."""

    is_complex: bool
    reason: str
    suggested_questions: list[ClarificationQuestion] = Field(default_factory=list)


class PhaseValidation(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
