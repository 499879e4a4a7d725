# src/core/errors.py - v1
"""Error taxonomy shared by every polyship subsystem.

Registry misuse and definition errors are fatal at startup. Task
failures halt the running pipeline. Revisioning consistency errors are
never downgraded to warnings. Deploy errors leave the built tree intact,
so a deploy can be retried without rebuilding.
"""

from __future__ import annotations

from pathlib import Path


class PolyshipError(Exception):
    """Base class for all polyship errors."""


# === REGISTRY / DEFINITIONS ===


class DuplicateTaskError(PolyshipError):
    """Raised when a task name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Task '{name}' is already registered")
        self.name = name


class UnknownTaskError(PolyshipError):
    """Raised when a task name cannot be resolved in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Task '{name}' is not registered")
        self.name = name


class PipelineDefinitionError(PolyshipError):
    """Raised when a pipeline definition or the predecessor graph is invalid."""


# === EXECUTION ===


class TaskExecutionError(PolyshipError):
    """A task's runner failed; carries where in the pipeline it happened.

    step_index is the index of the failing step in the pipeline that was
    run; step_path lists indices from the outermost pipeline down to the
    step holding the failed task when nested pipelines are involved.
    """

    def __init__(
        self,
        task_name: str,
        cause: BaseException,
        step_index: int | None = None,
        pipeline: str | None = None,
        step_path: tuple[int, ...] = (),
    ) -> None:
        self.task_name = task_name
        self.cause = cause
        self.step_index = step_index
        self.pipeline = pipeline
        self.step_path = step_path
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = ""
        if self.step_index is not None:
            where = f" at step {self.step_index}"
            if self.pipeline:
                where += f" of '{self.pipeline}'"
            if len(self.step_path) > 1:
                where += " (step path " + ".".join(str(i) for i in self.step_path) + ")"
        return f"Task '{self.task_name}' failed{where}: {self.cause}"

    def located(
        self, step_index: int, pipeline: str, step_path: tuple[int, ...]
    ) -> TaskExecutionError:
        """Return a copy positioned at the given step of a containing pipeline."""
        return TaskExecutionError(
            task_name=self.task_name,
            cause=self.cause,
            step_index=step_index,
            pipeline=pipeline,
            step_path=step_path,
        )


class LintError(PolyshipError):
    """Raised by the lint task when problems are found and linting is strict."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__(f"{len(problems)} lint problem(s): " + "; ".join(problems[:5]))
        self.problems = problems


class FingerprintComputationError(PolyshipError):
    """Raised when a file cannot be read for digesting."""

    def __init__(self, path: Path | str, reason: str = "") -> None:
        msg = f"Cannot compute fingerprint of {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.path = Path(path)


# === REVISIONING ===


class UnresolvedReferenceError(PolyshipError):
    """Raised when a reference rewrite cannot be completed or verified."""


class CollisionError(PolyshipError):
    """Raised when two distinct originals map to the same revisioned path."""


# === DEPLOY ===


class UnknownEnvironmentError(PolyshipError):
    """Raised for an environment identifier outside the supported set."""

    def __init__(self, environment: str) -> None:
        super().__init__(f"Unknown environment: {environment!r}")
        self.environment = environment


class PublishError(PolyshipError):
    """Wraps any transport failure while publishing or promoting."""
