# src/tasks/styles.py - v1
"""styles / elements tasks: prefix stylesheets into tmp, minify them into dist.

Both tasks share the "styles" change cache, keyed by path relative to
the source root. A stylesheet is skipped only when its digest matches
the cached one and both of its outputs are still on disk; an entry is
recorded right after the file was transformed successfully.
"""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.files import list_files, read_text, write_text

logger = logging.getLogger(__name__)

STYLES_CACHE = "styles"


def run_style_task(state: BuildState, styles_path: str) -> TaskOutput:
    """Process every *.css under <source>/<styles_path>."""
    cache = state.cache(STYLES_CACHE)
    transforms = state.transforms
    src_dir = state.source_root / styles_path
    sources = [f"{styles_path}/{rel}" for rel in list_files(src_dir, ("**/*.css",))]

    written = skipped = 0
    for rel in sources:
        src = state.source_root / rel
        tmp_out = state.tmp_root / rel
        dist_out = state.dist_root / rel
        digest = cache.digest(src)

        if (
            not cache.should_process(rel, digest)
            and tmp_out.is_file()
            and dist_out.is_file()
        ):
            skipped += 1
            continue

        prefixed = transforms.prefix_styles(read_text(src))
        write_text(tmp_out, prefixed)
        write_text(dist_out, transforms.minify_css(prefixed))
        if digest is not None:
            cache.record(rel, digest)
        written += 1

    pruned = cache.prune(sources, prefix=f"{styles_path}/")
    logger.info(
        "%s: %d processed, %d unchanged, %d pruned",
        styles_path,
        written,
        skipped,
        len(pruned),
    )
    return TaskOutput(files_written=written, files_skipped=skipped)


def styles(state: BuildState) -> TaskOutput:
    return run_style_task(state, "styles")


def elements(state: BuildState) -> TaskOutput:
    return run_style_task(state, "elements")
