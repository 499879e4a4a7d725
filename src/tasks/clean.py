# src/tasks/clean.py - v1
"""clean / clean-dist tasks.

clean wipes the tmp and dist trees before a build. The deploy directory
is left alone: local environments published there must survive the
next build so promote can read them.
"""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.files import remove_tree

logger = logging.getLogger(__name__)


def clean(state: BuildState) -> TaskOutput:
    removed = [p for p in (state.tmp_root, state.dist_root) if remove_tree(p)]
    for path in removed:
        logger.info("Removed %s", path)
    return TaskOutput(notes=[str(p) for p in removed])


def clean_dist(state: BuildState) -> TaskOutput:
    """Drop test folders, source maps and OS litter from dist."""
    root = state.dist_root
    doomed: set[str] = set()
    for pattern in state.settings.clean_dist_patterns_list:
        for path in root.glob(pattern):
            doomed.add(path.relative_to(root).as_posix())
    # Parents first; anything below an already removed directory is gone.
    removed: list[str] = []
    for rel in sorted(doomed):
        if remove_tree(root / rel):
            removed.append(rel)
    if removed:
        logger.info("Removed %d paths from %s", len(removed), root)
    return TaskOutput(notes=removed)
