# src/pipeline/definition.py - v1
"""Typed pipeline definitions and the catalog that validates them.

A pipeline is an ordered sequence of steps. Each step is one of:
  - Single(name): run one task to completion,
  - Concurrent(names): run the tasks together, wait for all of them,
  - Nested(pipeline): run another pipeline of the catalog in full.

Definitions are checked against the task registry once, at startup, so
a misspelled task name fails before any work is done.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

from polyship.core.errors import PipelineDefinitionError
from polyship.pipeline.registry import TaskRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Single:
    name: str

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class Concurrent:
    names: tuple[str, ...]

    def __init__(self, *names: str) -> None:
        object.__setattr__(self, "names", tuple(names))

    @property
    def label(self) -> str:
        return "{" + ", ".join(self.names) + "}"


@dataclass(frozen=True)
class Nested:
    pipeline: str

    @property
    def label(self) -> str:
        return f"<{self.pipeline}>"


Step = Union[Single, Concurrent, Nested]


@dataclass(frozen=True)
class PipelineDefinition:
    name: str
    steps: tuple[Step, ...]
    description: str = ""

    @property
    def labels(self) -> list[str]:
        return [s.label for s in self.steps]


class PipelineCatalog:
    """Named pipeline definitions."""

    def __init__(self, definitions: Iterable[PipelineDefinition] = ()) -> None:
        self._definitions: dict[str, PipelineDefinition] = {}
        for definition in definitions:
            self.add(definition)

    def add(self, definition: PipelineDefinition) -> None:
        if definition.name in self._definitions:
            raise PipelineDefinitionError(
                f"Pipeline '{definition.name}' is already defined"
            )
        self._definitions[definition.name] = definition

    def get(self, name: str) -> PipelineDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise PipelineDefinitionError(f"Unknown pipeline: '{name}'")
        return definition

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    @property
    def names(self) -> list[str]:
        return sorted(self._definitions)

    def flatten(self, name: str) -> list[list[str]]:
        """Task names per executed step, nested pipelines expanded in place."""
        return list(self._flatten(name, ()))

    def _flatten(self, name: str, stack: tuple[str, ...]) -> Iterator[list[str]]:
        if name in stack:
            chain = " -> ".join(stack + (name,))
            raise PipelineDefinitionError(f"Pipeline nesting cycle: {chain}")
        for step in self.get(name).steps:
            if isinstance(step, Nested):
                yield from self._flatten(step.pipeline, stack + (name,))
            elif isinstance(step, Concurrent):
                yield list(step.names)
            else:
                yield [step.name]

    def validate(self, registry: TaskRegistry) -> None:
        """Check every definition against the registry.

        Raises:
            PipelineDefinitionError: Listing every problem found.
        """
        errors: list[str] = []
        try:
            registry.validate()
        except PipelineDefinitionError as exc:
            errors.append(str(exc))

        for name in self.names:
            errors.extend(self._check_steps(name, registry))
        if not errors:
            for name in self.names:
                try:
                    errors.extend(self._check_ordering(name, registry))
                except PipelineDefinitionError as exc:
                    errors.append(str(exc))

        if errors:
            raise PipelineDefinitionError("; ".join(dict.fromkeys(errors)))
        logger.debug("Validated %d pipelines against %d tasks", len(self.names), len(registry))

    def _check_steps(self, name: str, registry: TaskRegistry) -> list[str]:
        errors: list[str] = []
        definition = self.get(name)
        if not definition.steps:
            errors.append(f"Pipeline '{name}' has no steps")
        for index, step in enumerate(definition.steps):
            where = f"pipeline '{name}' step {index}"
            if isinstance(step, Nested):
                if step.pipeline not in self:
                    errors.append(f"{where}: unknown pipeline '{step.pipeline}'")
                continue
            names = step.names if isinstance(step, Concurrent) else (step.name,)
            if not names:
                errors.append(f"{where}: concurrent step is empty")
            if len(set(names)) != len(names):
                errors.append(f"{where}: duplicate task in concurrent step")
            for task_name in names:
                spec = registry.get(task_name)
                if spec is None:
                    errors.append(f"{where}: Task '{task_name}' is not registered")
                elif len(names) > 1 and not spec.concurrency_safe:
                    errors.append(
                        f"{where}: task '{task_name}' cannot run concurrently"
                    )
        return errors

    def _check_ordering(self, name: str, registry: TaskRegistry) -> list[str]:
        """Predecessors present in a run must finish in an earlier step."""
        errors: list[str] = []
        steps = self.flatten(name)
        for index, names in enumerate(steps):
            for task_name in names:
                for dep in registry.resolve(task_name).predecessors:
                    earlier = any(dep in s for s in steps[:index])
                    present = any(dep in s for s in steps)
                    if present and not earlier:
                        errors.append(
                            f"Pipeline '{name}': '{task_name}' runs before or "
                            f"alongside its predecessor '{dep}'"
                        )
        return errors
