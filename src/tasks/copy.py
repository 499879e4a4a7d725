# src/tasks/copy.py - v1
"""copy / fonts tasks: place files in dist that need no transform.

copy writes:
  - root-level app files (not the test folder, not a stale cache manifest),
  - app scripts and element markup/scripts,
  - vendor css/html/js, without index pages, demo and test folders,
  - sw-toolbox scripts to dist/sw-toolbox,
  - service-worker bootstrap scripts to dist/elements/bootstrap,
  - elements/elements.html a second time as the vulcanize input.
"""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.tasks.files import copy_file, copy_tree, list_files

logger = logging.getLogger(__name__)

ELEMENTS_BUNDLE = "elements/elements.html"
VULCANIZED_BUNDLE = "elements/elements.vulcanized.html"

_VENDOR_PATTERNS = ("**/*.css", "**/*.html", "**/*.js")
_VENDOR_EXCLUDE = ("index.html", "*/index.html", "demo/*", "*/demo/*", "test/*", "*/test/*")


def copy(state: BuildState) -> TaskOutput:
    src = state.source_root
    dist = state.dist_root
    settings = state.settings
    written = 0

    root_files = [
        rel
        for rel in list_files(src, ("*",))
        if rel not in ("test", settings.cache_manifest_name)
    ]
    for rel in root_files:
        copy_file(src / rel, dist / rel)
    written += len(root_files)

    written += len(copy_tree(src / "scripts", dist / "scripts"))
    written += len(
        copy_tree(src / "elements", dist / "elements", ("**/*.html", "**/*.js"))
    )

    vendor = settings.vendor_path
    written += len(
        copy_tree(vendor, dist / settings.vendor_dir, _VENDOR_PATTERNS, _VENDOR_EXCLUDE)
    )
    written += len(copy_tree(vendor / "sw-toolbox", dist / "sw-toolbox", ("*.js",)))
    written += len(
        copy_tree(
            vendor / "platinum-sw" / "bootstrap",
            dist / "elements" / "bootstrap",
            ("*.js",),
        )
    )

    bundle = src / ELEMENTS_BUNDLE
    if bundle.is_file():
        copy_file(bundle, dist / VULCANIZED_BUNDLE)
        written += 1
    else:
        logger.warning("%s not found, nothing to vulcanize", bundle)

    logger.info("copy: %d files", written)
    return TaskOutput(files_written=written)


def fonts(state: BuildState) -> TaskOutput:
    copied = copy_tree(state.source_root / "fonts", state.dist_root / "fonts")
    logger.info("fonts: %d files", len(copied))
    return TaskOutput(files_written=len(copied))
