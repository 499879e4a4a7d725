# src/tasks/cache_config.py - v1
"""cache-config task: regenerate the offline cache manifest in dist."""

from __future__ import annotations

import logging

from polyship.manifest.generator import build_cache_manifest, write_cache_manifest
from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState

logger = logging.getLogger(__name__)


def cache_config(state: BuildState) -> TaskOutput:
    settings = state.settings
    manifest = build_cache_manifest(
        state.dist_root,
        cache_id=settings.resolved_cache_id,
        patterns=settings.precache_patterns_list,
        extra=settings.precache_extra_list,
        disabled=settings.cache_disabled,
        exclude=[settings.cache_manifest_name],
    )
    path = write_cache_manifest(manifest, state.dist_root / settings.cache_manifest_name)
    state.manifest = manifest
    logger.info(
        "Wrote %s: %d entries, fingerprint %s",
        path.name,
        len(manifest.precache),
        manifest.precache_fingerprint,
    )
    return TaskOutput(
        files_written=1,
        data={"precache_fingerprint": manifest.precache_fingerprint},
    )
