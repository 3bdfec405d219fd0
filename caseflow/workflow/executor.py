"""Task executor: runs a confirmed plan one task at a time.

Execution model:
    - Tasks run strictly sequentially in ascending ``order`` (stable sort).
    - A task runs only if every dependency already produced a successful
      result earlier in the run; otherwise it is skipped with
      "Dependencies not met". Dependencies are never looked up forward.
    - pause() and cancel() are honored at task boundaries only. A task whose
      execute_task call has started always runs to completion.
    - Once cancelled, every remaining task is recorded as skipped with
      "Execution cancelled"; none is silently dropped.
    - An exception from execute_task, or a return value that is not a valid
      result, fails that task and the run goes on.

Status updates are written through an ExecutionSink (normally the
WorkflowOrchestrator), so the workflow state keeps a single writer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from caseflow.core.exceptions import ExecutionInProgressError, ExecutorConfigurationError
from caseflow.workflow.models import (
    PlanTask,
    ReviewState,
    TaskExecutionResult,
    TaskStatus,
)
from caseflow.workflow.review import CANCELLED_ERROR, DEPENDENCIES_NOT_MET_ERROR, build_review

logger = logging.getLogger(__name__)

ExecuteTaskFn = Callable[[PlanTask], Awaitable[TaskExecutionResult]]
TaskStartCallback = Callable[[PlanTask], Any]
TaskCompleteCallback = Callable[[PlanTask, TaskExecutionResult], Any]
AllCompleteCallback = Callable[[list[TaskExecutionResult]], Any]
TaskErrorCallback = Callable[[PlanTask, Exception], Any]


class ExecutionSink(Protocol):
    """Receiver of execution updates (implemented by WorkflowOrchestrator)."""

    def start_execution(self) -> None: ...

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None: ...

    def set_current_task(self, task_id: Optional[str]) -> None: ...

    def set_review(self, review: ReviewState) -> None: ...

    def complete_execution(self) -> bool: ...

    def pause_execution(self) -> None: ...

    def resume_execution(self) -> None: ...

    def cancel_execution(self) -> None: ...


class TaskExecutor:
    """Sequential, pausable, cancellable executor for plan tasks.

    Observer callbacks (on_task_start, on_task_complete, on_all_complete,
    on_error) are fire-and-continue: exceptions they raise are logged and
    ignored, and a callback returning an awaitable has it scheduled in the
    background rather than awaited.

    Example:
        >>> executor = TaskExecutor(run_task, workflow=orchestrator)
        >>> results = await executor.execute(orchestrator.state.planning.current_plan.tasks)
    """

    def __init__(
        self,
        execute_task: Optional[ExecuteTaskFn] = None,
        *,
        workflow: Optional[ExecutionSink] = None,
        on_task_start: Optional[TaskStartCallback] = None,
        on_task_complete: Optional[TaskCompleteCallback] = None,
        on_all_complete: Optional[AllCompleteCallback] = None,
        on_error: Optional[TaskErrorCallback] = None,
    ):
        self._execute_task = execute_task
        self._workflow = workflow
        self.on_task_start = on_task_start
        self.on_task_complete = on_task_complete
        self.on_all_complete = on_all_complete
        self.on_error = on_error

        self._executing = False
        self._paused = False
        self._cancelled = False
        # Created by execute(), on the running loop
        self._resume_event: Optional[asyncio.Event] = None

        self._current_task: Optional[PlanTask] = None
        self._results: list[TaskExecutionResult] = []
        self._statuses: dict[str, TaskStatus] = {}
        self._review: Optional[ReviewState] = None
        self._background: set[asyncio.Future[Any]] = set()

    @property
    def is_executing(self) -> bool:
        return self._executing

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def current_task(self) -> Optional[PlanTask]:
        return self._current_task

    @property
    def results(self) -> list[TaskExecutionResult]:
        """Results recorded so far, in attempt order."""
        return list(self._results)

    @property
    def statuses(self) -> dict[str, TaskStatus]:
        """Status of every task in the current (or last) run."""
        return dict(self._statuses)

    @property
    def review(self) -> Optional[ReviewState]:
        """Review built at the end of the last run."""
        return self._review

    def pause(self) -> None:
        """Suspend before the next task starts."""
        self._paused = True
        if self._resume_event is not None:
            self._resume_event.clear()
        if self._workflow is not None:
            self._workflow.pause_execution()

    def resume(self) -> None:
        self._paused = False
        self._wake()
        if self._workflow is not None:
            self._workflow.resume_execution()

    def cancel(self) -> None:
        """Skip every task that has not started yet.

        Also wakes a paused run so the remaining tasks can be marked skipped.
        Calling cancel() before execute() cancels that upcoming run.
        """
        self._cancelled = True
        self._wake()
        if self._workflow is not None:
            self._workflow.cancel_execution()

    async def execute(self, tasks: Iterable[PlanTask]) -> list[TaskExecutionResult]:
        """Run tasks in ascending order and build the review.

        Args:
            tasks: Tasks to run; not mutated (statuses go through the sink)

        Returns:
            One TaskExecutionResult per task, in attempt order

        Raises:
            ExecutorConfigurationError: No execute_task callback configured
            ExecutionInProgressError: Another run is in flight
        """
        execute_task = self._execute_task
        if execute_task is None:
            raise ExecutorConfigurationError("TaskExecutor requires an execute_task callback")
        if self._executing:
            raise ExecutionInProgressError("A task run is already in progress")

        self._executing = True
        self._resume_event = asyncio.Event()
        if not self._paused:
            self._resume_event.set()
        sorted_tasks = sorted(tasks, key=lambda t: t.order)
        self._results = []
        self._review = None
        self._statuses = {task.id: TaskStatus.PENDING for task in sorted_tasks}

        try:
            if self._workflow is not None:
                self._workflow.start_execution()
            logger.info(f"Executing {len(sorted_tasks)} tasks")

            for task in sorted_tasks:
                if self._cancelled:
                    self._skip(task, CANCELLED_ERROR)
                    continue

                await self._wait_while_paused()

                if self._cancelled:
                    self._skip(task, CANCELLED_ERROR)
                    continue

                if not self._dependencies_met(task):
                    self._skip(task, DEPENDENCIES_NOT_MET_ERROR)
                    continue

                await self._run_task(task, execute_task)

            review = build_review(sorted_tasks, self._results)
            self._review = review
            logger.info(f"Execution finished: {review.summary} [{review.overall_status.value}]")

            if self._workflow is not None:
                self._workflow.set_review(review)
                self._workflow.set_current_task(None)
            self._current_task = None
            if self._workflow is not None:
                self._workflow.complete_execution()

            results = list(self._results)
            self._notify(self.on_all_complete, results)
            return results
        finally:
            self._executing = False
            self._current_task = None
            self._paused = False
            self._cancelled = False
            self._resume_event = None

    async def _wait_while_paused(self) -> None:
        if self._paused and not self._cancelled:
            logger.info("Execution paused")
        while self._paused and not self._cancelled and self._resume_event is not None:
            await self._resume_event.wait()

    def _wake(self) -> None:
        if self._resume_event is not None:
            self._resume_event.set()

    def _dependencies_met(self, task: PlanTask) -> bool:
        succeeded = {result.task_id for result in self._results if result.success}
        return all(dep in succeeded for dep in task.dependencies)

    def _skip(self, task: PlanTask, reason: str) -> None:
        logger.debug(f"Skipping task {task.id}: {reason}")
        self._results.append(TaskExecutionResult(task_id=task.id, success=False, error=reason))
        self._set_status(task.id, TaskStatus.SKIPPED, error=reason)

    async def _run_task(self, task: PlanTask, execute_task: ExecuteTaskFn) -> None:
        self._current_task = task
        if self._workflow is not None:
            self._workflow.set_current_task(task.id)
        self._set_status(task.id, TaskStatus.IN_PROGRESS)
        self._notify(self.on_task_start, task)

        # A malformed return value fails the task the same way a raise does
        try:
            result = self._normalize_result(task, await execute_task(task))
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Task {task.id} raised: {message}")
            result = TaskExecutionResult(task_id=task.id, success=False, error=message)
            self._results.append(result)
            self._set_status(task.id, TaskStatus.FAILED, error=message)
            self._notify(self.on_error, task, e)
            return

        self._results.append(result)
        status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
        self._set_status(task.id, status, result=result.result, error=result.error)
        logger.debug(f"Task {task.id} {status.value}")
        self._notify(self.on_task_complete, task, result)

    @staticmethod
    def _normalize_result(task: PlanTask, raw_result: Any) -> TaskExecutionResult:
        """Accept a TaskExecutionResult or a dict of its fields.

        Raises:
            ValidationError: A dict that is not a valid result
            TypeError: Any other return value
        """
        if isinstance(raw_result, dict):
            raw_result = TaskExecutionResult.model_validate({"task_id": task.id, **raw_result})
        if not isinstance(raw_result, TaskExecutionResult):
            raise TypeError(
                f"execute_task returned {type(raw_result).__name__}, expected TaskExecutionResult"
            )
        if raw_result.task_id != task.id:
            logger.warning(
                f"execute_task returned result for {raw_result.task_id} while running {task.id}"
            )
            raw_result = raw_result.model_copy(update={"task_id": task.id})
        return raw_result

    def _set_status(
        self,
        task_id: str,
        status: TaskStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        self._statuses[task_id] = status
        if self._workflow is not None:
            self._workflow.update_task_status(task_id, status, result, error)

    def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
        except Exception:
            logger.exception("Executor callback failed")
            return
        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._background.add(future)
            future.add_done_callback(self._on_background_done)

    def _on_background_done(self, future: asyncio.Future[Any]) -> None:
        self._background.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Executor callback failed", exc_info=future.exception())
