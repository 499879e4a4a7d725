# src/pipeline/registry.py - v2
"""Task registry: named units of build work and their declared contracts.

A registry is an explicit value built once at startup and handed to the
scheduler; there is no module-level task table. Tasks are immutable
after registration. Runners are invoked only by the scheduler.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from polyship.core.errors import (
    DuplicateTaskError,
    PipelineDefinitionError,
    UnknownTaskError,
)
from polyship.pipeline.dag_builder import DAGError, ExecutionPlan, build_dag

if TYPE_CHECKING:
    from polyship.pipeline.models import TaskOutput
    from polyship.pipeline.state import BuildState

logger = logging.getLogger(__name__)

Runner = Callable[
    ["BuildState"], Union["TaskOutput", None, Awaitable[Union["TaskOutput", None]]]
]


@dataclass(frozen=True)
class TaskSpec:
    """A registered task.

    reads / writes declare the subtrees (relative to the project root)
    the task consumes and produces. Tasks sharing a concurrent step must
    write disjoint subtrees; this is checked by tests, not enforced.
    """

    name: str
    runner: Runner
    predecessors: tuple[str, ...] = ()
    concurrency_safe: bool = True
    description: str = ""
    reads: tuple[str, ...] = ()
    writes: tuple[str, ...] = ()


class TaskRegistry:
    """Registry of all tasks available to pipelines."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskSpec] = {}

    @property
    def tasks(self) -> dict[str, TaskSpec]:
        return dict(self._tasks)

    @property
    def task_names(self) -> list[str]:
        return sorted(self._tasks.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def register(
        self,
        name: str,
        predecessors: Sequence[str],
        runner: Runner,
        concurrency_safe: bool = True,
        *,
        description: str = "",
        reads: Sequence[str] = (),
        writes: Sequence[str] = (),
    ) -> TaskSpec:
        """Register a task.

        Raises:
            DuplicateTaskError: If name is already registered.
        """
        if not name:
            raise PipelineDefinitionError("Task name must not be empty")
        if name in self._tasks:
            raise DuplicateTaskError(name)
        if name in predecessors:
            raise PipelineDefinitionError(f"Task '{name}' lists itself as predecessor")
        spec = TaskSpec(
            name=name,
            runner=runner,
            predecessors=tuple(predecessors),
            concurrency_safe=concurrency_safe,
            description=description,
            reads=tuple(reads),
            writes=tuple(writes),
        )
        self._tasks[name] = spec
        logger.debug("Registered task: %s (after %s)", name, list(spec.predecessors))
        return spec

    def resolve(self, name: str) -> TaskSpec:
        """Get a task by name.

        Raises:
            UnknownTaskError: If name is not registered.
        """
        spec = self._tasks.get(name)
        if spec is None:
            raise UnknownTaskError(name)
        return spec

    def get(self, name: str) -> TaskSpec | None:
        return self._tasks.get(name)

    def validate_dependencies(self) -> list[str]:
        """Return one message per predecessor that is not registered."""
        errors: list[str] = []
        for name, spec in self._tasks.items():
            for dep in spec.predecessors:
                if dep not in self._tasks:
                    errors.append(
                        f"Task '{name}' depends on '{dep}' which is not registered"
                    )
        return errors

    def get_dependency_map(self) -> dict[str, list[str]]:
        return {name: list(spec.predecessors) for name, spec in self._tasks.items()}

    def dependency_plan(self) -> ExecutionPlan:
        """Predecessor graph grouped in levels.

        Raises:
            PipelineDefinitionError: On unknown predecessors or cycles.
        """
        errors = self.validate_dependencies()
        if errors:
            raise PipelineDefinitionError("; ".join(errors))
        try:
            return build_dag(self.get_dependency_map())
        except DAGError as exc:
            raise PipelineDefinitionError(str(exc)) from exc

    def validate(self) -> None:
        """Check the predecessor graph is complete and acyclic."""
        self.dependency_plan()
