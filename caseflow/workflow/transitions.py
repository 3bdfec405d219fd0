"""Phase transition table for the conversation workflow.

The table below is the single source of truth for which events are legal
in which phase. Every lookup is total: unknown (phase, event) pairs
report "not allowed" instead of raising.

    idle ──START_WORKFLOW──> clarification ──REQUIREMENTS_COMPLETE──> planning
    planning ──PLAN_CONFIRMED──> execution ──EXECUTION_COMPLETE──> review
    review ──REQUEST_NEW_TASK──> clarification
    clarification / planning / review ──EXIT_WORKFLOW──> idle
    planning ──GO_BACK──> clarification

There is deliberately no exit or back edge out of execution: a run has to
reach review, even when every task was skipped by a cancellation.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from caseflow.core.result import Err, Ok, Result
from caseflow.workflow.models import (
    ConversationPhase,
    PhaseTransitionEvent,
    PhaseValidation,
)

Phase = ConversationPhase
Event = PhaseTransitionEvent

WORKFLOW_TRANSITIONS: dict[ConversationPhase, dict[PhaseTransitionEvent, ConversationPhase]] = {
    Phase.IDLE: {
        Event.START_WORKFLOW: Phase.CLARIFICATION,
    },
    Phase.CLARIFICATION: {
        Event.REQUIREMENTS_COMPLETE: Phase.PLANNING,
        Event.EXIT_WORKFLOW: Phase.IDLE,
    },
    Phase.PLANNING: {
        Event.PLAN_CONFIRMED: Phase.EXECUTION,
        Event.GO_BACK: Phase.CLARIFICATION,
        Event.EXIT_WORKFLOW: Phase.IDLE,
    },
    Phase.EXECUTION: {
        Event.EXECUTION_COMPLETE: Phase.REVIEW,
    },
    Phase.REVIEW: {
        Event.REQUEST_NEW_TASK: Phase.CLARIFICATION,
        Event.EXIT_WORKFLOW: Phase.IDLE,
    },
}

PHASE_DISPLAY_NAMES: dict[ConversationPhase, str] = {
    Phase.IDLE: "Ready",
    Phase.CLARIFICATION: "Clarifying",
    Phase.PLANNING: "Planning",
    Phase.EXECUTION: "Executing",
    Phase.REVIEW: "Complete",
}

PHASE_DESCRIPTIONS: dict[ConversationPhase, str] = {
    Phase.IDLE: "Ready to help with your request",
    Phase.CLARIFICATION: "Gathering requirements to understand your needs",
    Phase.PLANNING: "Creating a detailed execution plan",
    Phase.EXECUTION: "Executing the planned tasks",
    Phase.REVIEW: "Reviewing results and next steps",
}

# Stepper order; idle is not a step
PHASE_ORDER: list[ConversationPhase] = [
    Phase.CLARIFICATION,
    Phase.PLANNING,
    Phase.EXECUTION,
    Phase.REVIEW,
]


def _coerce_phase(phase: Union[ConversationPhase, str]) -> Optional[ConversationPhase]:
    try:
        return ConversationPhase(phase)
    except ValueError:
        return None


def _coerce_event(event: Union[PhaseTransitionEvent, str]) -> Optional[PhaseTransitionEvent]:
    try:
        return PhaseTransitionEvent(event)
    except ValueError:
        return None


def get_next_phase(
    current: Union[ConversationPhase, str],
    event: Union[PhaseTransitionEvent, str],
) -> Optional[ConversationPhase]:
    """Return the destination phase for an event, or None if it is not allowed."""
    phase = _coerce_phase(current)
    transition_event = _coerce_event(event)
    if phase is None or transition_event is None:
        return None
    return WORKFLOW_TRANSITIONS.get(phase, {}).get(transition_event)


def can_transition(
    current: Union[ConversationPhase, str],
    event: Union[PhaseTransitionEvent, str],
) -> bool:
    """Check whether an event is legal in the given phase."""
    return get_next_phase(current, event) is not None


def get_valid_events(phase: Union[ConversationPhase, str]) -> list[PhaseTransitionEvent]:
    """List the events accepted in a phase, in table order."""
    current = _coerce_phase(phase)
    if current is None:
        return []
    return list(WORKFLOW_TRANSITIONS.get(current, {}))


def assert_transition(
    current: Union[ConversationPhase, str],
    event: Union[PhaseTransitionEvent, str],
) -> Result[ConversationPhase]:
    """Validate a transition and return its destination.

    Args:
        current: Phase the workflow is in
        event: Event being fired

    Returns:
        Result[ConversationPhase]: Ok(next_phase) if the event is legal,
        Err with code INVALID_TRANSITION otherwise
    """
    next_phase = get_next_phase(current, event)
    if next_phase is None:
        phase = _coerce_phase(current)
        valid = sorted(e.value for e in get_valid_events(phase)) if phase else []
        current_label = phase.value if phase else str(current)
        event_label = event.value if isinstance(event, PhaseTransitionEvent) else str(event)
        return Err(
            error=(
                f"Invalid transition: {current_label} -> {event_label}. "
                f"Valid events from {current_label}: {valid}"
            ),
            code="INVALID_TRANSITION",
        )
    return Ok(next_phase)


def get_phase_index(phase: Union[ConversationPhase, str]) -> int:
    """Position of a phase in the stepper; idle (and unknown phases) is -1."""
    current = _coerce_phase(phase)
    if current is None or current == Phase.IDLE:
        return -1
    return PHASE_ORDER.index(current)


def is_phase_before(phase: Union[ConversationPhase, str], other: Union[ConversationPhase, str]) -> bool:
    return get_phase_index(phase) < get_phase_index(other)


def is_phase_after(phase: Union[ConversationPhase, str], other: Union[ConversationPhase, str]) -> bool:
    return get_phase_index(phase) > get_phase_index(other)


def get_previous_phase(phase: Union[ConversationPhase, str]) -> Optional[ConversationPhase]:
    """Previous stepper phase, or None for idle and clarification.

    This is a display helper; going back is governed by the GO_BACK edge
    of the transition table, which only exists from planning.
    """
    index = get_phase_index(phase)
    if index <= 0:
        return None
    return PHASE_ORDER[index - 1]


def validate_phase_completion(
    phase: Union[ConversationPhase, str],
    state: Mapping[str, Mapping[str, Any]],
) -> PhaseValidation:
    """Check the preconditions for leaving a phase.

    The caller decides whether a failed validation blocks advancement.

    Args:
        phase: Phase being validated
        state: Counters for the phase, any of:
            questions: {"answered": int, "total": int}
            plan: {"confirmed": bool, "task_count": int}
            execution: {"completed": int, "failed": int, "total": int, "skipped": int}

    Returns:
        PhaseValidation with is_valid and the list of problems found
    """
    errors: list[str] = []
    current = _coerce_phase(phase)

    if current == Phase.CLARIFICATION:
        questions = state.get("questions")
        if questions is not None:
            answered = int(questions.get("answered", 0))
            total = int(questions.get("total", 0))
            if answered < total:
                errors.append(f"{total - answered} questions still need answers")

    elif current == Phase.PLANNING:
        plan = state.get("plan")
        if plan is not None:
            if not plan.get("confirmed", False):
                errors.append("Plan must be confirmed before execution")
            if int(plan.get("task_count", 0)) == 0:
                errors.append("Plan must have at least one task")

    elif current == Phase.EXECUTION:
        execution = state.get("execution")
        if execution is not None:
            remaining = (
                int(execution.get("total", 0))
                - int(execution.get("completed", 0))
                - int(execution.get("failed", 0))
                - int(execution.get("skipped", 0))
            )
            if remaining > 0:
                errors.append(f"{remaining} tasks still pending")

    # review and idle can always be left

    return PhaseValidation(is_valid=not errors, errors=errors)
