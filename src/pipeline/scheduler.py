# src/pipeline/scheduler.py - v2
"""Pipeline scheduler: run a pipeline definition step by step.

State machine per run:
    Idle -> Running(i) -> Running(i+1) | Failed(i, cause) | Completed

Step i+1 starts only once every task of step i has finished. Tasks of a
concurrent step run together (async runners on the event loop, sync
runners in worker threads) and the step is done when all of them are.
The first failure observed in a step, by finish time with declaration
order breaking ties, fails the run; later steps never start. Nested
pipelines run in full as a single step of their parent. Tasks are never
retried: their inputs are deterministic.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time

from polyship.core.errors import TaskExecutionError
from polyship.logging.context import set_run_context, set_task_context
from polyship.pipeline.definition import (
    Concurrent,
    Nested,
    PipelineCatalog,
    PipelineDefinition,
    Single,
    Step,
)
from polyship.pipeline.models import (
    PipelineStatus,
    RunResult,
    StepRecord,
    TaskOutput,
    TaskResult,
)
from polyship.pipeline.registry import TaskRegistry, TaskSpec
from polyship.pipeline.state import BuildState

logger = logging.getLogger(__name__)


class PipelineScheduler:
    """Execute catalog pipelines against a BuildState.

    Args:
        registry: Registry holding every task referenced by the catalog.
        catalog: Pipeline definitions; validated against the registry here.
    """

    def __init__(self, registry: TaskRegistry, catalog: PipelineCatalog) -> None:
        catalog.validate(registry)
        self._registry = registry
        self._catalog = catalog
        self._status = PipelineStatus.IDLE
        self._current_step: int | None = None

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    @property
    def catalog(self) -> PipelineCatalog:
        return self._catalog

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def current_step(self) -> int | None:
        """Index of the outermost step being run, or where the last run stopped."""
        return self._current_step

    async def run(self, pipeline_name: str, state: BuildState) -> RunResult:
        """Run a catalog pipeline to completion or first failure."""
        definition = self._catalog.get(pipeline_name)
        return await self._run_top(definition, state)

    async def run_task(self, task_name: str, state: BuildState) -> RunResult:
        """Run one registered task as a single-step pipeline."""
        self._registry.resolve(task_name)
        definition = PipelineDefinition(name=f"task:{task_name}", steps=(Single(task_name),))
        return await self._run_top(definition, state)

    async def _run_top(self, definition: PipelineDefinition, state: BuildState) -> RunResult:
        if self._status is PipelineStatus.RUNNING:
            raise RuntimeError("Scheduler is already running a pipeline")
        self._status = PipelineStatus.RUNNING
        self._current_step = None
        set_run_context(state.run_id, definition.name)
        try:
            result = await self._run_definition(definition, state, path=(), top=True)
        except BaseException:
            self._status = PipelineStatus.FAILED
            raise
        self._status = result.status
        return result

    async def _run_definition(
        self,
        definition: PipelineDefinition,
        state: BuildState,
        path: tuple[int, ...],
        top: bool = False,
    ) -> RunResult:
        start_ns = time.monotonic_ns()
        result = RunResult(
            pipeline=definition.name, run_id=state.run_id, status=PipelineStatus.RUNNING
        )
        total = len(definition.steps)

        for index, step in enumerate(definition.steps):
            if top:
                self._current_step = index
            logger.info(
                "%s step %d/%d: %s", definition.name, index + 1, total, step.label
            )
            record = await self._run_step(step, index, state, path + (index,))
            result.steps.append(record)

            failure = _first_failure(record)
            if failure is not None:
                result.status = PipelineStatus.FAILED
                result.failed_step = index
                result.failure = failure.located(
                    index, definition.name, failure.step_path or path + (index,)
                )
                result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
                logger.error(
                    "%s failed at step %d (%s): %s",
                    definition.name,
                    index,
                    failure.task_name,
                    failure.cause,
                )
                return result

        result.status = PipelineStatus.COMPLETED
        result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        logger.info(
            "%s completed: %d steps, %d tasks, %dms",
            definition.name,
            total,
            len(result.task_results),
            result.duration_ms,
        )
        return result

    async def _run_step(
        self, step: Step, index: int, state: BuildState, path: tuple[int, ...]
    ) -> StepRecord:
        started = time.monotonic_ns()
        if isinstance(step, Nested):
            nested = await self._run_definition(self._catalog.get(step.pipeline), state, path)
            return StepRecord(
                index=index,
                label=step.label,
                task_names=nested.executed_tasks,
                nested=nested,
                started_ns=started,
                finished_ns=time.monotonic_ns(),
            )

        names = list(step.names) if isinstance(step, Concurrent) else [step.name]
        specs = [self._registry.resolve(n) for n in names]
        step_label = f"step {'.'.join(str(i) for i in path)}"
        # Every task runs as its own asyncio task so its context stays local to it
        results = list(
            await asyncio.gather(
                *(self._run_task(spec, state, step_label) for spec in specs)
            )
        )
        return StepRecord(
            index=index,
            label=step.label,
            task_names=names,
            results=results,
            started_ns=started,
            finished_ns=time.monotonic_ns(),
        )

    async def _run_task(self, spec: TaskSpec, state: BuildState, step_label: str) -> TaskResult:
        """Run one task; failures become a failed TaskResult, never an exception."""
        set_task_context(spec.name, step_label)
        logger.info("Starting %s", spec.name)
        started = time.monotonic_ns()
        try:
            if inspect.iscoroutinefunction(spec.runner):
                output = await spec.runner(state)
            else:
                output = await asyncio.to_thread(spec.runner, state)
                if inspect.isawaitable(output):
                    output = await output
        except Exception as exc:
            finished = time.monotonic_ns()
            logger.error("Task %s failed: %s", spec.name, exc, exc_info=True)
            return TaskResult(
                task_name=spec.name,
                success=False,
                error=exc,
                started_ns=started,
                finished_ns=finished,
            )

        finished = time.monotonic_ns()
        if not isinstance(output, TaskOutput):
            output = TaskOutput()
        state.record_task_output(spec.name, output)
        result = TaskResult(
            task_name=spec.name,
            success=True,
            output=output,
            started_ns=started,
            finished_ns=finished,
        )
        logger.info(
            "Finished %s in %dms (%d written, %d skipped)",
            spec.name,
            result.duration_ms,
            output.files_written,
            output.files_skipped,
        )
        return result


def _first_failure(record: StepRecord) -> TaskExecutionError | None:
    """Failure that fails this step, if any."""
    if record.nested is not None:
        return record.nested.failure
    failed = [
        (r.finished_ns, pos, r) for pos, r in enumerate(record.results) if not r.success
    ]
    if not failed:
        return None
    _, _, first = min(failed, key=lambda item: (item[0], item[1]))
    assert first.error is not None
    return TaskExecutionError(first.task_name, first.error)

