# src/tasks/images.py - v1
"""images task: optimize app images into dist/images, skipping unchanged ones."""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.files import list_files, write_bytes

logger = logging.getLogger(__name__)

IMAGES_CACHE = "images"


def images(state: BuildState) -> TaskOutput:
    cache = state.cache(IMAGES_CACHE)
    optimize = state.transforms.optimize_image
    sources = [f"images/{rel}" for rel in list_files(state.source_root / "images")]

    written = skipped = 0
    for rel in sources:
        src = state.source_root / rel
        out = state.dist_root / rel
        digest = cache.digest(src)
        if not cache.should_process(rel, digest) and out.is_file():
            skipped += 1
            continue
        write_bytes(out, optimize(src.read_bytes()))
        if digest is not None:
            cache.record(rel, digest)
        written += 1

    cache.prune(sources, prefix="images/")
    logger.info("images: %d optimized, %d unchanged", written, skipped)
    return TaskOutput(files_written=written, files_skipped=skipped)
