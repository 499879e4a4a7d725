# src/tasks/scripts.py - v1
"""Script tasks: lint, minify-dist, fix-path-sw-toolbox."""

from __future__ import annotations

import logging

from polyship.core.errors import LintError
from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.files import list_files, read_text, write_text

logger = logging.getLogger(__name__)

_LINT_PATTERNS = ("scripts/**/*.js", "elements/**/*.js", "elements/**/*.html")
_MINIFY_PATTERNS = ("scripts/**/*.js", "elements/**/*.js")
_MINIFY_EXCLUDE = ("elements/bootstrap/*",)


def lint(state: BuildState) -> TaskOutput:
    """Run the configured linter over app scripts and element markup.

    Raises:
        LintError: If problems were reported and LINT_FAIL_ON_ERROR is set.
    """
    checker = state.transforms.lint
    files = list_files(state.source_root, _LINT_PATTERNS)
    problems: list[str] = []
    for rel in files:
        for message in checker(state.source_root / rel, read_text(state.source_root / rel)):
            problems.append(f"{rel}: {message}")
    for problem in problems:
        logger.warning(problem)
    if problems and state.settings.lint_fail_on_error:
        raise LintError(problems)
    logger.info("lint: %d files, %d problems", len(files), len(problems))
    return TaskOutput(notes=problems)


def minify_dist(state: BuildState) -> TaskOutput:
    """Minify scripts already in dist.

    Files matched by CLEAN_DIST_PATTERNS are left to clean-dist, which
    runs in the same step.
    """
    exclude = _MINIFY_EXCLUDE + tuple(state.settings.clean_dist_patterns_list)
    files = list_files(state.dist_root, _MINIFY_PATTERNS, exclude)
    minify = state.transforms.minify_js
    for rel in files:
        path = state.dist_root / rel
        write_text(path, minify(read_text(path)))
    logger.info("minify-dist: %d scripts", len(files))
    return TaskOutput(files_written=len(files))


def fix_path_sw_toolbox(state: BuildState) -> TaskOutput:
    """Point service-worker bootstrap scripts at the relocated sw-toolbox."""
    settings = state.settings
    old, new = settings.sw_toolbox_old_path, settings.sw_toolbox_new_path
    changed: list[str] = []
    for rel in list_files(state.dist_root, (settings.sw_toolbox_glob,)):
        path = state.dist_root / rel
        text = read_text(path)
        if old in text:
            write_text(path, text.replace(old, new))
            changed.append(rel)
    logger.info("fix-path-sw-toolbox: %d files updated", len(changed))
    return TaskOutput(files_written=len(changed), notes=changed)
