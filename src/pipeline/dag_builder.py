# src/pipeline/dag_builder.py - v2
"""Predecessor graph levels: Kahn's algorithm with level detection.

Used to validate that task predecessors form an acyclic graph and to
show that graph. Pipelines never derive parallelism from it: concurrency
exists only where a pipeline definition lists a concurrent step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class DAGError(Exception):
    """Raised when the graph has a cycle or a dangling edge."""


@dataclass
class ExecutionPlan:
    """Tasks grouped in levels; every task's predecessors sit in earlier levels."""

    stages: list[list[str]] = field(default_factory=list)
    total_tasks: int = 0

    @property
    def flat_order(self) -> list[str]:
        return [task for stage in self.stages for task in stage]


def build_dag(dependency_map: dict[str, list[str]]) -> ExecutionPlan:
    """Group tasks into levels from task -> predecessors declarations.

    Raises:
        DAGError: If a cycle is detected or a predecessor is missing.
    """
    if not dependency_map:
        return ExecutionPlan()

    all_tasks = set(dependency_map.keys())
    for task, deps in dependency_map.items():
        for dep in deps:
            if dep not in all_tasks:
                raise DAGError(f"Task '{task}' depends on '{dep}' which is not registered")

    in_degree: dict[str, int] = {t: 0 for t in all_tasks}
    dependents: dict[str, list[str]] = {t: [] for t in all_tasks}
    for task, deps in dependency_map.items():
        for dep in set(deps):
            dependents[dep].append(task)
            in_degree[task] += 1

    stages: list[list[str]] = []
    queue = sorted(t for t, d in in_degree.items() if d == 0)
    processed = 0

    while queue:
        stages.append(queue)
        next_queue: list[str] = []
        for task in queue:
            processed += 1
            for dependent in dependents[task]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_queue.append(dependent)
        queue = sorted(next_queue)

    if processed != len(all_tasks):
        remaining = sorted(t for t in all_tasks if in_degree[t] > 0)
        raise DAGError(f"Cycle detected involving tasks: {remaining}")

    plan = ExecutionPlan(stages=stages, total_tasks=processed)
    logger.debug("Predecessor graph: %d tasks in %d levels", processed, len(stages))
    return plan
