"""Test suite for TaskExecutor.

Tests scenarios:
- Ordering by `order`, regardless of input order
- Dependency gating on earlier successful results
- Failures and exceptions never abort the run
- Cancellation before and during a run
- Pause / resume at task boundaries
- Observer callbacks are fire-and-continue
"""

import asyncio

import pytest
from pydantic import ValidationError

from conftest import RecordingRunner, make_task

from caseflow.core.exceptions import ExecutionInProgressError, ExecutorConfigurationError
from caseflow.workflow.executor import TaskExecutor
from caseflow.workflow.models import (
    OverallStatus,
    ReviewItemStatus,
    TaskExecutionResult,
    TaskStatus,
    TERMINAL_TASK_STATUSES,
)
from caseflow.workflow.review import CANCELLED_ERROR, DEPENDENCIES_NOT_MET_ERROR


async def settle(rounds: int = 20) -> None:
    """Let the event loop run pending callbacks."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class TestExecutionOrder:
    """Tasks run sequentially in ascending order."""

    @pytest.mark.asyncio
    async def test_runs_in_ascending_order(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        tasks = [make_task("three", order=3), make_task("one", order=1), make_task("two", order=2)]

        results = await executor.execute(tasks)

        assert runner.calls == ["one", "two", "three"]
        assert [r.task_id for r in results] == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_equal_order_keeps_input_order(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)

        await executor.execute([make_task("x", order=5), make_task("y", order=5), make_task("z", order=1)])

        assert runner.calls == ["z", "x", "y"]

    @pytest.mark.asyncio
    async def test_all_succeed(self):
        executor = TaskExecutor(RecordingRunner())

        await executor.execute([make_task("a", 0), make_task("b", 1), make_task("c", 2)])

        review = executor.review
        assert review.overall_status == OverallStatus.SUCCESS
        assert review.summary == "Completed 3 of 3 tasks"
        assert all(item.status == ReviewItemStatus.SUCCESS for item in review.items)

    @pytest.mark.asyncio
    async def test_input_tasks_are_not_mutated(self):
        tasks = [make_task("a"), make_task("b", 1)]
        executor = TaskExecutor(RecordingRunner(fail={"b"}))

        await executor.execute(tasks)

        assert [t.status for t in tasks] == [TaskStatus.PENDING, TaskStatus.PENDING]
        assert executor.statuses == {"a": TaskStatus.COMPLETED, "b": TaskStatus.FAILED}


class TestDependencies:
    """Dependency gating."""

    @pytest.mark.asyncio
    async def test_failed_dependency_skips_dependent(self):
        runner = RecordingRunner(fail={"a"})
        executor = TaskExecutor(runner)

        results = await executor.execute([make_task("a", 0), make_task("b", 1, dependencies=["a"])])

        assert runner.calls == ["a"]
        assert results[1] == TaskExecutionResult(
            task_id="b", success=False, error=DEPENDENCIES_NOT_MET_ERROR
        )
        assert executor.statuses["b"] == TaskStatus.SKIPPED
        assert executor.review.overall_status == OverallStatus.FAILED
        assert executor.review.items[1].status == ReviewItemStatus.WARNING

    @pytest.mark.asyncio
    async def test_skip_propagates_down_the_chain(self):
        runner = RecordingRunner(fail={"a"})
        executor = TaskExecutor(runner)

        await executor.execute(
            [
                make_task("a", 0),
                make_task("b", 1, dependencies=["a"]),
                make_task("c", 2, dependencies=["b"]),
                make_task("d", 3),
            ]
        )

        assert runner.calls == ["a", "d"]
        assert executor.statuses["c"] == TaskStatus.SKIPPED
        assert executor.review.overall_status == OverallStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_dependency_on_later_task_is_not_satisfied(self):
        """Dependencies are only looked up among earlier results."""
        runner = RecordingRunner()
        executor = TaskExecutor(runner)

        await executor.execute([make_task("a", 0, dependencies=["b"]), make_task("b", 1)])

        assert runner.calls == ["b"]
        assert executor.statuses["a"] == TaskStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_satisfied_dependencies_run(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)

        await executor.execute(
            [make_task("a", 0), make_task("b", 1), make_task("c", 2, dependencies=["a", "b"])]
        )

        assert runner.calls == ["a", "b", "c"]


class TestFailures:
    """No failure aborts the run; every task ends terminal."""

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self):
        errors = []
        runner = RecordingRunner(raise_on={"b"})
        executor = TaskExecutor(runner, on_error=lambda task, exc: errors.append((task.id, str(exc))))

        results = await executor.execute([make_task("a", 0), make_task("b", 1), make_task("c", 2)])

        assert runner.calls == ["a", "b", "c"]
        assert results[1].success is False
        assert results[1].error == "boom in b"
        assert errors == [("b", "boom in b")]
        assert executor.review.items[1].status == ReviewItemStatus.ERROR
        assert executor.review.summary == "Completed 2 of 3 tasks (1 failed)"

    @pytest.mark.asyncio
    async def test_every_task_ends_terminal(self):
        tasks = [
            make_task("a", 0),
            make_task("b", 1, dependencies=["a"]),
            make_task("c", 2),
            make_task("d", 3, dependencies=["c"]),
        ]
        executor = TaskExecutor(RecordingRunner(fail={"a"}, raise_on={"c"}))

        results = await executor.execute(tasks)

        assert len(results) == len(tasks)
        assert set(executor.statuses) == {t.id for t in tasks}
        assert all(status in TERMINAL_TASK_STATUSES for status in executor.statuses.values())

    @pytest.mark.asyncio
    async def test_dict_and_mismatched_results_are_normalized(self):
        async def runner(task):
            if task.id == "a":
                return {"success": True, "result": "made it"}
            return TaskExecutionResult(task_id="someone-else", success=True)

        executor = TaskExecutor(runner)
        results = await executor.execute([make_task("a", 0), make_task("b", 1)])

        assert results[0] == TaskExecutionResult(task_id="a", success=True, result="made it")
        assert results[1].task_id == "b"

    @pytest.mark.asyncio
    async def test_malformed_results_fail_the_task(self):
        """Invalid dicts and non-result values are failures, not crashes."""
        errors = []

        async def runner(task):
            if task.id == "a":
                return {"success": True, "result": 42}
            if task.id == "b":
                return None
            return TaskExecutionResult(task_id=task.id, success=True)

        executor = TaskExecutor(runner, on_error=lambda task, exc: errors.append((task.id, type(exc))))
        results = await executor.execute(
            [make_task("a", 0), make_task("b", 1), make_task("c", 2, dependencies=["a"]), make_task("d", 3)]
        )

        assert [r.success for r in results] == [False, False, False, True]
        assert "expected TaskExecutionResult" in results[1].error
        assert results[2].error == DEPENDENCIES_NOT_MET_ERROR
        assert executor.statuses == {
            "a": TaskStatus.FAILED,
            "b": TaskStatus.FAILED,
            "c": TaskStatus.SKIPPED,
            "d": TaskStatus.COMPLETED,
        }
        assert errors == [("a", ValidationError), ("b", TypeError)]
        assert executor.review.overall_status == OverallStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_missing_callback_raises(self):
        with pytest.raises(ExecutorConfigurationError):
            await TaskExecutor().execute([make_task("a")])


class TestCancellation:
    """Cooperative cancellation at task boundaries."""

    @pytest.mark.asyncio
    async def test_cancel_before_execute_skips_everything(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)

        executor.cancel()
        results = await executor.execute([make_task("a", 0), make_task("b", 1)])

        assert runner.calls == []
        assert results == [
            TaskExecutionResult(task_id="a", success=False, error=CANCELLED_ERROR),
            TaskExecutionResult(task_id="b", success=False, error=CANCELLED_ERROR),
        ]
        assert executor.review.overall_status == OverallStatus.FAILED
        assert all(item.status == ReviewItemStatus.WARNING for item in executor.review.items)

    @pytest.mark.asyncio
    async def test_cancel_is_cleared_after_run(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.cancel()
        await executor.execute([make_task("a")])

        await executor.execute([make_task("a")])

        assert runner.calls == ["a"]
        assert executor.is_cancelled is False

    @pytest.mark.asyncio
    async def test_cancel_during_task_lets_it_finish(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.on_task_start = lambda task: executor.cancel() if task.id == "b" else None

        results = await executor.execute([make_task("a", 0), make_task("b", 1), make_task("c", 2), make_task("d", 3)])

        assert runner.calls == ["a", "b"]
        assert [r.success for r in results] == [True, True, False, False]
        assert [r.error for r in results[2:]] == [CANCELLED_ERROR, CANCELLED_ERROR]
        assert executor.review.overall_status == OverallStatus.PARTIAL


class TestPauseResume:
    """Pause suspends between tasks only."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.on_task_start = lambda task: executor.pause() if task.id == "a" else None

        run = asyncio.create_task(executor.execute([make_task("a", 0), make_task("b", 1)]))
        await settle()

        assert runner.calls == ["a"]
        assert executor.is_paused is True
        assert executor.is_executing is True
        assert not run.done()

        executor.resume()
        results = await run

        assert runner.calls == ["a", "b"]
        assert all(r.success for r in results)
        assert executor.is_executing is False

    @pytest.mark.asyncio
    async def test_cancel_while_paused(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.on_task_start = lambda task: executor.pause()

        run = asyncio.create_task(executor.execute([make_task("a", 0), make_task("b", 1), make_task("c", 2)]))
        await settle()
        executor.cancel()
        results = await run

        assert runner.calls == ["a"]
        assert [r.error for r in results[1:]] == [CANCELLED_ERROR, CANCELLED_ERROR]

    @pytest.mark.asyncio
    async def test_second_execute_while_running_raises(self):
        executor = TaskExecutor(RecordingRunner())
        executor.on_task_start = lambda task: executor.pause()

        run = asyncio.create_task(executor.execute([make_task("a", 0), make_task("b", 1)]))
        await settle()

        with pytest.raises(ExecutionInProgressError):
            await executor.execute([make_task("c")])

        executor.resume()
        await run

    def test_executor_can_be_reused_across_event_loops(self):
        """Pausing works in every run, whichever loop it runs on."""
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.on_task_start = lambda task: executor.pause() if task.id == "a" else None

        async def paused_run():
            run = asyncio.create_task(executor.execute([make_task("a", 0), make_task("b", 1)]))
            await settle()
            assert executor.is_paused is True
            executor.resume()
            return await run

        first = asyncio.run(paused_run())
        second = asyncio.run(paused_run())

        assert runner.calls == ["a", "b", "a", "b"]
        assert all(r.success for r in first + second)

    @pytest.mark.asyncio
    async def test_pause_before_execute_holds_the_first_task(self):
        runner = RecordingRunner()
        executor = TaskExecutor(runner)
        executor.pause()

        run = asyncio.create_task(executor.execute([make_task("a", 0)]))
        await settle()
        assert runner.calls == []

        executor.resume()
        await run
        assert runner.calls == ["a"]


class TestCallbacks:
    """Observer callbacks never affect control flow."""

    @pytest.mark.asyncio
    async def test_callbacks_fire_in_order(self):
        events = []
        executor = TaskExecutor(
            RecordingRunner(),
            on_task_start=lambda task: events.append(("start", task.id)),
            on_task_complete=lambda task, result: events.append(("complete", task.id)),
            on_all_complete=lambda results: events.append(("all", len(results))),
        )

        await executor.execute([make_task("b", 1), make_task("a", 0)])

        assert events == [
            ("start", "a"),
            ("complete", "a"),
            ("start", "b"),
            ("complete", "b"),
            ("all", 2),
        ]

    @pytest.mark.asyncio
    async def test_raising_callback_is_ignored(self, caplog):
        def explode(*args):
            raise RuntimeError("observer bug")

        runner = RecordingRunner()
        executor = TaskExecutor(runner, on_task_start=explode, on_task_complete=explode)

        results = await executor.execute([make_task("a", 0), make_task("b", 1)])

        assert runner.calls == ["a", "b"]
        assert all(r.success for r in results)
        assert "Executor callback failed" in caplog.text

    @pytest.mark.asyncio
    async def test_async_callback_is_not_awaited_inline(self):
        seen = []
        gate = asyncio.Event()

        async def slow_observer(task, result):
            await gate.wait()
            seen.append(task.id)

        executor = TaskExecutor(RecordingRunner(), on_task_complete=slow_observer)

        results = await executor.execute([make_task("a")])

        assert results[0].success is True
        assert seen == []
        gate.set()
        await settle()
        assert seen == ["a"]
