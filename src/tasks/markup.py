# src/tasks/markup.py - v1
"""html / vulcanize tasks."""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.copy import ELEMENTS_BUNDLE, VULCANIZED_BUNDLE
from polyship.tasks.files import list_files, read_text, write_text

logger = logging.getLogger(__name__)

_HTML_EXCLUDE = ("elements/*", "test/*")


def html(state: BuildState) -> TaskOutput:
    """Minify app pages into dist, pointing them at the vulcanized bundle.

    Element markup and test pages are left to the copy and vulcanize tasks.
    """
    minify = state.transforms.minify_html
    pages = list_files(state.source_root, ("**/*.html",), _HTML_EXCLUDE)
    for rel in pages:
        text = read_text(state.source_root / rel)
        text = text.replace(ELEMENTS_BUNDLE, VULCANIZED_BUNDLE)
        write_text(state.dist_root / rel, minify(text))
    logger.info("html: %d pages", len(pages))
    return TaskOutput(files_written=len(pages))


def vulcanize(state: BuildState) -> TaskOutput:
    bundle = state.dist_root / VULCANIZED_BUNDLE
    if not bundle.is_file():
        logger.warning("%s not found, skipping", bundle)
        return TaskOutput(notes=["no bundle"])
    before = bundle.stat().st_size
    write_text(bundle, state.transforms.vulcanize(read_text(bundle)))
    logger.info("vulcanize: %s %d -> %d bytes", VULCANIZED_BUNDLE, before, bundle.stat().st_size)
    return TaskOutput(files_written=1)
