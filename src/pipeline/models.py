# src/pipeline/models.py - v1
"""Pipeline execution records: TaskOutput, TaskResult, StepRecord, RunResult.

Every task execution yields an explicit TaskResult (success with output,
or failure with cause) instead of signalling completion via callbacks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from polyship.core.errors import TaskExecutionError


class TaskOutput(BaseModel):
    """What a task reports back to the scheduler on success."""

    files_written: int = 0
    files_skipped: int = 0
    notes: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class PipelineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass
class TaskResult:
    """Result of one task execution.

    started_ns / finished_ns are time.monotonic_ns() readings, used to
    order failures inside a concurrent step and to check step ordering.
    """

    task_name: str
    success: bool
    output: TaskOutput | None = None
    error: BaseException | None = None
    started_ns: int = 0
    finished_ns: int = 0

    @property
    def duration_ms(self) -> int:
        return max(0, self.finished_ns - self.started_ns) // 1_000_000


@dataclass
class StepRecord:
    """Execution record of one step of a pipeline."""

    index: int
    label: str
    task_names: list[str]
    results: list[TaskResult] = field(default_factory=list)
    nested: RunResult | None = None
    started_ns: int = 0
    finished_ns: int = 0

    @property
    def success(self) -> bool:
        if self.nested is not None:
            return self.nested.succeeded
        return bool(self.results) and all(r.success for r in self.results)


@dataclass
class RunResult:
    """Result of a pipeline run."""

    pipeline: str
    run_id: str
    status: PipelineStatus = PipelineStatus.IDLE
    steps: list[StepRecord] = field(default_factory=list)
    failure: TaskExecutionError | None = None
    failed_step: int | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is PipelineStatus.COMPLETED

    @property
    def steps_completed(self) -> int:
        return sum(1 for s in self.steps if s.success)

    @property
    def task_results(self) -> list[TaskResult]:
        """All task results in execution order, nested pipelines flattened."""
        out: list[TaskResult] = []
        for step in self.steps:
            if step.nested is not None:
                out.extend(step.nested.task_results)
            else:
                out.extend(step.results)
        return out

    @property
    def executed_tasks(self) -> list[str]:
        return [r.task_name for r in self.task_results]

    def raise_for_status(self) -> None:
        """Raise the recorded failure, if any."""
        if self.failure is not None:
            raise self.failure
