"""Plan model: the revisable, confirmable task list built during planning.

Dependency validation lives here too. The executor only checks
dependencies backward in execution order, so a plan whose dependencies
point at unknown tasks or form a cycle would leave tasks permanently
unsatisfiable; such plans are refused at confirmation time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from caseflow.core.result import Err, Ok, Result
from caseflow.workflow.models import Plan, PlanningState, PlanTask, TaskStatus

logger = logging.getLogger(__name__)

UPDATABLE_PLAN_FIELDS = frozenset({"title", "description", "tasks", "feedback"})


def find_unknown_dependencies(tasks: Iterable[PlanTask]) -> dict[str, list[str]]:
    """Map task id -> dependency ids that do not exist in the plan."""
    task_list = list(tasks)
    known = {task.id for task in task_list}
    unknown: dict[str, list[str]] = {}
    for task in task_list:
        missing = [dep for dep in task.dependencies if dep not in known]
        if missing:
            unknown[task.id] = missing
    return unknown


def find_dependency_cycle(tasks: Iterable[PlanTask]) -> Optional[list[str]]:
    """Return one dependency cycle as a list of task ids, or None.

    The returned path starts and ends with the same id, e.g. ["a", "b", "a"].
    Dependencies on unknown ids are ignored here.
    """
    graph = {task.id: list(task.dependencies) for task in tasks}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(task_id: str) -> Optional[list[str]]:
        if task_id in visiting:
            start = visiting.index(task_id)
            return visiting[start:] + [task_id]
        if task_id in done or task_id not in graph:
            return None
        visiting.append(task_id)
        for dep in graph[task_id]:
            cycle = visit(dep)
            if cycle:
                return cycle
        visiting.pop()
        done.add(task_id)
        return None

    for task_id in graph:
        cycle = visit(task_id)
        if cycle:
            return cycle
    return None


def validate_plan_dependencies(tasks: Iterable[PlanTask]) -> list[str]:
    """Describe every dependency problem in a task list (empty if none)."""
    task_list = list(tasks)
    errors = [
        f"Task '{task_id}' depends on unknown task(s): {', '.join(missing)}"
        for task_id, missing in find_unknown_dependencies(task_list).items()
    ]
    cycle = find_dependency_cycle(task_list)
    if cycle:
        errors.append(f"Dependency cycle: {' -> '.join(cycle)}")
    return errors


class PlanModel:
    """Holds the current plan inside a PlanningState.

    Content is frozen once the plan is confirmed: title and description may
    still be edited, tasks may not. Task statuses keep changing during
    execution through update_task.
    """

    def __init__(self, state: Optional[PlanningState] = None):
        self._state = state if state is not None else PlanningState()

    @property
    def state(self) -> PlanningState:
        return self._state

    @property
    def plan(self) -> Optional[Plan]:
        return self._state.current_plan

    @property
    def is_confirmed(self) -> bool:
        return self._state.is_confirmed

    def set_plan(self, plan: Plan) -> None:
        """Replace the whole plan and reset confirmation."""
        new_plan = plan.model_copy(deep=True)
        new_plan.confirmed_at = None
        self._state.current_plan = new_plan
        self._state.is_confirmed = False

    def update_plan(self, updates: dict[str, Any]) -> Result[Plan]:
        """Merge field updates into the current plan and bump its version.

        Args:
            updates: Any of title, description, tasks, feedback

        Returns:
            Ok(plan) on success; Err with NO_PLAN, UNKNOWN_FIELD or
            PLAN_LOCKED (tasks changed after confirmation) otherwise
        """
        plan = self._state.current_plan
        if plan is None:
            return Err("No plan to update", code="NO_PLAN")

        unknown = sorted(set(updates) - UPDATABLE_PLAN_FIELDS)
        if unknown:
            return Err(f"Cannot update plan field(s): {', '.join(unknown)}", code="UNKNOWN_FIELD")

        if "tasks" in updates and self._state.is_confirmed:
            return Err(
                "Plan tasks cannot change after the plan is confirmed",
                code="PLAN_LOCKED",
            )

        if "title" in updates:
            plan.title = updates["title"]
        if "description" in updates:
            plan.description = updates["description"]
        if "tasks" in updates:
            plan.tasks = [PlanTask.model_validate(task) for task in updates["tasks"]]
        if "feedback" in updates:
            plan.feedback = list(updates["feedback"])
        plan.version += 1
        return Ok(plan)

    def add_feedback(self, feedback: str) -> None:
        """Append revision feedback to the planning log and the current plan."""
        self._state.user_feedback.append(feedback)
        if self._state.current_plan is not None:
            self._state.current_plan.feedback.append(feedback)

    def validate(self) -> Result[Plan]:
        """Check that the current plan can be confirmed, without changing it."""
        plan = self._state.current_plan
        if plan is None:
            return Err("No plan to confirm", code="NO_PLAN")
        if not plan.tasks:
            return Err("Plan must have at least one task", code="EMPTY_PLAN")

        unknown = find_unknown_dependencies(plan.tasks)
        if unknown:
            details = "; ".join(f"{tid}: {', '.join(deps)}" for tid, deps in unknown.items())
            return Err(f"Unknown task dependencies ({details})", code="UNKNOWN_DEPENDENCY")

        cycle = find_dependency_cycle(plan.tasks)
        if cycle:
            return Err(f"Dependency cycle: {' -> '.join(cycle)}", code="DEPENDENCY_CYCLE")
        return Ok(plan)

    def confirm_plan(self, confirmed_at: Optional[datetime] = None) -> Result[Plan]:
        """Confirm the current plan, stamping confirmed_at.

        Returns:
            Ok(plan), or the Err from validate() with the state unchanged
        """
        validation = self.validate()
        if validation.is_err():
            return validation

        plan = validation.unwrap()
        if plan.confirmed_at is None:
            plan.confirmed_at = confirmed_at or datetime.now()
        self._state.is_confirmed = True
        logger.info(f"Plan '{plan.id}' v{plan.version} confirmed with {len(plan.tasks)} tasks")
        return Ok(plan)

    def update_task(
        self,
        task_id: str,
        status: TaskStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Optional[PlanTask]:
        """Set a task's status and outcome text; returns None for unknown ids."""
        plan = self._state.current_plan
        if plan is None:
            return None
        task = plan.get_task(task_id)
        if task is None:
            return None
        task.status = status
        task.result = result
        task.error = error
        return task
