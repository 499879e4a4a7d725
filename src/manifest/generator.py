# src/manifest/generator.py - v1
"""Cache manifest generation.

The manifest is always regenerated from the artifact tree, never merged
with a previous one. Discovery is sorted so that identical trees give
byte-identical manifests.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from polyship.cache.fingerprint import fingerprint
from polyship.core.errors import FingerprintComputationError
from polyship.manifest.models import CacheManifest

logger = logging.getLogger(__name__)


def discover_precache(dist_root: Path, patterns: Sequence[str]) -> list[str]:
    """Sorted union of relative file paths under dist_root matching any pattern.

    Raises:
        FingerprintComputationError: If the artifact tree cannot be listed.
    """
    if not dist_root.is_dir():
        raise FingerprintComputationError(dist_root, "artifact tree does not exist")
    found: set[str] = set()
    try:
        for pattern in patterns:
            for path in dist_root.glob(pattern):
                if path.is_file():
                    found.add(path.relative_to(dist_root).as_posix())
    except OSError as exc:
        raise FingerprintComputationError(dist_root, str(exc)) from exc
    return sorted(found)


def build_cache_manifest(
    dist_root: Path,
    cache_id: str,
    patterns: Sequence[str],
    extra: Sequence[str] = (),
    disabled: bool = False,
    exclude: Sequence[str] = (),
) -> CacheManifest:
    """Build the manifest for an artifact tree.

    Args:
        dist_root: Root of the artifact tree.
        cache_id: Stable per-project cache identifier.
        patterns: Glob patterns (relative to dist_root) of precache-worthy files.
        extra: Entries appended after discovery when not already listed.
        disabled: Value of the manifest's disabled flag.
        exclude: Relative paths never listed (e.g. the manifest itself).
    """
    skip = set(exclude)
    precache = [p for p in discover_precache(dist_root, patterns) if p not in skip]
    for item in extra:
        if item not in precache:
            precache.append(item)
    manifest = CacheManifest(
        cache_id=cache_id,
        disabled=disabled,
        precache=precache,
        precache_fingerprint=fingerprint(precache),
    )
    logger.debug(
        "Manifest '%s': %d entries, fingerprint %s",
        cache_id,
        len(precache),
        manifest.precache_fingerprint,
    )
    return manifest


def write_cache_manifest(manifest: CacheManifest, path: Path) -> Path:
    """Write the manifest, replacing any previous file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.to_json(), encoding="utf-8")
    return path


def read_cache_manifest(path: Path) -> CacheManifest:
    return CacheManifest.model_validate_json(path.read_text(encoding="utf-8"))
