# src/logging/context.py - v2
"""Contextual logging support: attach run_id, pipeline, task and step to log records.

The scheduler sets the run context once per run and the task context per
task execution. Each asyncio task and each worker thread started through
asyncio.to_thread works on its own copy of the context, so concurrent
tasks never see each other's task name.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_pipeline: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "pipeline", default=None
)
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    pipeline: str | None = None
    task: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        pipeline=_pipeline.get(),
        task=_task.get(),
        step=_step.get(),
    )


def set_run_context(run_id: str, pipeline: str) -> None:
    """Set run-level context (called once per pipeline run)."""
    _run_id.set(run_id)
    _pipeline.set(pipeline)


def set_task_context(task: str, step: str | None = None) -> None:
    """Set task-level context (called per task execution)."""
    _task.set(task)
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _pipeline.set(None)
    _task.set(None)
    _step.set(None)
