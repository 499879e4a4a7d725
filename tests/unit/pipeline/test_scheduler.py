# tests/unit/pipeline/test_scheduler.py - v2
"""Tests for pipeline/scheduler.py: step ordering, concurrency, failure handling."""

from __future__ import annotations

import asyncio
import logging
import threading
import time

import pytest

from polyship.core.errors import PipelineDefinitionError, TaskExecutionError
from polyship.logging.context import get_context
from polyship.pipeline.definition import (
    Concurrent,
    Nested,
    PipelineCatalog,
    PipelineDefinition,
    Single,
)
from polyship.pipeline.models import PipelineStatus, TaskOutput
from polyship.pipeline.registry import TaskRegistry
from polyship.pipeline.scheduler import PipelineScheduler


class Recorder:
    """Collects start/finish events of fake tasks."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, float]] = []
        self._lock = threading.Lock()

    def log(self, kind: str, name: str) -> None:
        with self._lock:
            self.events.append((kind, name, time.monotonic()))

    def started(self) -> list[str]:
        return [name for kind, name, _ in self.events if kind == "start"]

    def window(self, name: str) -> tuple[float, float]:
        start = next(t for k, n, t in self.events if k == "start" and n == name)
        end = next(t for k, n, t in self.events if k == "end" and n == name)
        return start, end


def async_task(recorder: Recorder, name: str, delay: float = 0.0, fail: bool = False):
    async def run(state):
        recorder.log("start", name)
        await asyncio.sleep(delay)
        recorder.log("end", name)
        if fail:
            raise RuntimeError(f"{name} broke")
        return TaskOutput(files_written=1)

    return run


def sync_task(recorder: Recorder, name: str, delay: float = 0.0, fail: bool = False):
    def run(state):
        recorder.log("start", name)
        time.sleep(delay)
        recorder.log("end", name)
        if fail:
            raise ValueError(f"{name} broke")
        return TaskOutput(files_written=1)

    return run


def _scheduler(registry, *definitions):
    return PipelineScheduler(registry, PipelineCatalog(definitions))


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestSequentialSteps:
    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, recorder, state):
        registry = TaskRegistry()
        for name in ("a", "b", "c"):
            registry.register(name, [], async_task(recorder, name, 0.01))
        scheduler = _scheduler(
            registry,
            PipelineDefinition("p", (Single("a"), Single("b"), Single("c"))),
        )

        result = await scheduler.run("p", state)

        assert result.succeeded
        assert result.executed_tasks == ["a", "b", "c"]
        assert recorder.started() == ["a", "b", "c"]
        assert scheduler.status is PipelineStatus.COMPLETED
        assert set(state.task_outputs) == {"a", "b", "c"}

    @pytest.mark.asyncio
    async def test_next_step_waits_for_whole_concurrent_step(self, recorder, state):
        registry = TaskRegistry()
        registry.register("fast", [], async_task(recorder, "fast", 0.0))
        registry.register("slow", [], async_task(recorder, "slow", 0.05))
        registry.register("after", [], async_task(recorder, "after"))
        scheduler = _scheduler(
            registry,
            PipelineDefinition(
                "p", (Concurrent("fast", "slow"), Single("after"))
            ),
        )

        result = await scheduler.run("p", state)

        assert result.succeeded
        _, slow_end = recorder.window("slow")
        after_start, _ = recorder.window("after")
        assert after_start >= slow_end

    @pytest.mark.asyncio
    async def test_concurrent_sync_tasks_overlap(self, recorder, state):
        registry = TaskRegistry()
        registry.register("x", [], sync_task(recorder, "x", 0.2))
        registry.register("y", [], sync_task(recorder, "y", 0.2))
        scheduler = _scheduler(registry, PipelineDefinition("p", (Concurrent("x", "y"),)))

        result = await scheduler.run("p", state)

        assert result.succeeded
        x_start, x_end = recorder.window("x")
        y_start, y_end = recorder.window("y")
        assert x_start < y_end and y_start < x_end

    @pytest.mark.asyncio
    async def test_runner_returning_none_gets_empty_output(self, state):
        registry = TaskRegistry()
        registry.register("quiet", [], lambda s: None)
        scheduler = _scheduler(registry, PipelineDefinition("p", (Single("quiet"),)))

        result = await scheduler.run("p", state)

        assert result.task_results[0].output == TaskOutput()


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_in_concurrent_step_stops_pipeline(self, recorder, state):
        registry = TaskRegistry()
        registry.register("A", [], async_task(recorder, "A"))
        registry.register("B", [], async_task(recorder, "B", 0.02))
        registry.register("C", [], async_task(recorder, "C", fail=True))
        registry.register("D", [], async_task(recorder, "D"))
        scheduler = _scheduler(
            registry,
            PipelineDefinition(
                "p", (Single("A"), Concurrent("B", "C"), Single("D"))
            ),
        )

        result = await scheduler.run("p", state)

        assert result.status is PipelineStatus.FAILED
        assert "D" not in recorder.started()
        assert result.failed_step == 1
        assert result.failure.task_name == "C"
        assert result.failure.step_index == 1
        assert isinstance(result.failure.cause, RuntimeError)
        # B still ran to completion: the step drains before the run stops
        assert [r.task_name for r in result.steps[1].results] == ["B", "C"]
        assert scheduler.status is PipelineStatus.FAILED
        assert scheduler.current_step == 1

    @pytest.mark.asyncio
    async def test_earliest_failure_wins(self, recorder, state):
        registry = TaskRegistry()
        registry.register("late", [], async_task(recorder, "late", 0.05, fail=True))
        registry.register("early", [], async_task(recorder, "early", 0.0, fail=True))
        scheduler = _scheduler(
            registry, PipelineDefinition("p", (Concurrent("late", "early"),))
        )

        result = await scheduler.run("p", state)

        assert result.failure.task_name == "early"

    @pytest.mark.asyncio
    async def test_sync_failure_is_captured(self, recorder, state):
        registry = TaskRegistry()
        registry.register("bad", [], sync_task(recorder, "bad", fail=True))
        scheduler = _scheduler(registry, PipelineDefinition("p", (Single("bad"),)))

        result = await scheduler.run("p", state)

        assert not result.succeeded
        with pytest.raises(TaskExecutionError, match="Task 'bad' failed at step 0"):
            result.raise_for_status()

    @pytest.mark.asyncio
    async def test_no_retry(self, state):
        calls = []

        def flaky(s):
            calls.append(1)
            raise OSError("disk full")

        registry = TaskRegistry()
        registry.register("flaky", [], flaky)
        scheduler = _scheduler(registry, PipelineDefinition("p", (Single("flaky"),)))

        await scheduler.run("p", state)

        assert len(calls) == 1


class TestNested:
    @pytest.mark.asyncio
    async def test_nested_pipeline_runs_in_place(self, recorder, state):
        registry = TaskRegistry()
        for name in ("a", "b", "c"):
            registry.register(name, [], async_task(recorder, name))
        scheduler = _scheduler(
            registry,
            PipelineDefinition("inner", (Single("a"), Single("b"))),
            PipelineDefinition("outer", (Nested("inner"), Single("c"))),
        )

        result = await scheduler.run("outer", state)

        assert result.succeeded
        assert result.executed_tasks == ["a", "b", "c"]
        assert result.steps[0].nested.pipeline == "inner"
        assert result.steps[0].task_names == ["a", "b"]

    @pytest.mark.asyncio
    async def test_nested_failure_fails_outer_step(self, recorder, state):
        registry = TaskRegistry()
        registry.register("a", [], async_task(recorder, "a"))
        registry.register("b", [], async_task(recorder, "b", fail=True))
        registry.register("c", [], async_task(recorder, "c"))
        scheduler = _scheduler(
            registry,
            PipelineDefinition("inner", (Single("a"), Single("b"))),
            PipelineDefinition("outer", (Nested("inner"), Single("c"))),
        )

        result = await scheduler.run("outer", state)

        assert not result.succeeded
        assert "c" not in recorder.started()
        assert result.failed_step == 0
        assert result.failure.task_name == "b"
        assert result.failure.pipeline == "outer"
        assert result.failure.step_path == (0, 1)
        assert result.steps[0].nested.failure.step_index == 1


class TestSchedulerState:
    def test_invalid_catalog_rejected_at_construction(self):
        registry = TaskRegistry()
        with pytest.raises(PipelineDefinitionError):
            _scheduler(registry, PipelineDefinition("p", (Single("ghost"),)))

    @pytest.mark.asyncio
    async def test_concurrent_runs_rejected(self, state):
        gate = asyncio.Event()

        async def wait(s):
            await gate.wait()

        registry = TaskRegistry()
        registry.register("wait", [], wait)
        scheduler = _scheduler(registry, PipelineDefinition("p", (Single("wait"),)))

        first = asyncio.create_task(scheduler.run("p", state))
        await asyncio.sleep(0)
        assert scheduler.status is PipelineStatus.RUNNING
        with pytest.raises(RuntimeError, match="already running"):
            await scheduler.run("p", state)
        gate.set()
        result = await first
        assert result.succeeded
        assert scheduler.status is PipelineStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_run_task(self, recorder, state):
        registry = TaskRegistry()
        registry.register("solo", ["missing-from-run"], async_task(recorder, "solo"))
        registry.register("missing-from-run", [], async_task(recorder, "other"))
        scheduler = _scheduler(registry)

        result = await scheduler.run_task("solo", state)

        assert result.succeeded
        assert result.pipeline == "task:solo"
        assert recorder.started() == ["solo"]

    @pytest.mark.asyncio
    async def test_task_context_is_set_per_task(self, state):
        seen: dict[str, str | None] = {}

        async def capture(s):
            await asyncio.sleep(0)
            seen["async"] = get_context().task

        def capture_sync(s):
            seen["sync"] = get_context().task

        registry = TaskRegistry()
        registry.register("async", [], capture)
        registry.register("sync", [], capture_sync)
        scheduler = _scheduler(
            registry, PipelineDefinition("p", (Concurrent("async", "sync"),))
        )

        await scheduler.run("p", state)

        assert seen == {"async": "async", "sync": "sync"}

    @pytest.mark.asyncio
    async def test_task_context_does_not_leak_into_step_lines(self, state, recorder):
        lines: list[tuple[str, str | None]] = []

        class ContextHandler(logging.Handler):
            def emit(self, record):
                lines.append((record.getMessage(), get_context().task))

        registry = TaskRegistry()
        registry.register("a", [], async_task(recorder, "a"))
        registry.register("b", [], sync_task(recorder, "b"))
        scheduler = _scheduler(registry, PipelineDefinition("p", (Single("a"), Single("b"))))
        handler = ContextHandler()
        sched_logger = logging.getLogger("polyship.pipeline.scheduler")
        sched_logger.addHandler(handler)
        previous_level = sched_logger.level
        sched_logger.setLevel(logging.INFO)
        try:
            result = await scheduler.run("p", state)
        finally:
            sched_logger.removeHandler(handler)
            sched_logger.setLevel(previous_level)

        assert result.succeeded
        step_lines = [task for msg, task in lines if msg.startswith("p step") or " completed" in msg]
        assert len(step_lines) == 3
        assert step_lines == [None, None, None]
        assert ("Starting b", "b") in lines
        assert get_context().task is None
