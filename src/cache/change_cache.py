# src/cache/change_cache.py - v2
"""Change-detection cache: skip inputs whose content digest is unchanged.

Comparison is by content digest only, never by modification time. A
file whose digest cannot be computed is always processed. Each namespace
has a single writer (one task at a time), so no locking is done here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from polyship.cache.base_cache_store import BaseCacheStore
from polyship.cache.fingerprint import file_digest
from polyship.cache.models import CacheEntry, CacheSnapshot
from polyship.core.errors import FingerprintComputationError

logger = logging.getLogger(__name__)


class ChangeDetectionCache:
    """Per-namespace map of input path -> digest at last successful processing.

    Args:
        namespace: Cache namespace (e.g. "styles", "images").
        store: Optional persistent store. Without one, entries only live
            for the lifetime of this object.
    """

    def __init__(self, namespace: str, store: BaseCacheStore | None = None) -> None:
        self._namespace = namespace
        self._store = store
        self._entries: dict[str, CacheEntry] = {}
        if store is not None:
            self._entries = dict(store.load(namespace).entries)
            logger.debug(
                "Loaded %d cache entries for namespace '%s'",
                len(self._entries),
                namespace,
            )

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def entries(self) -> dict[str, CacheEntry]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def digest(self, file_path: Path) -> str | None:
        """Digest a file, or None if it cannot be read."""
        try:
            return file_digest(file_path)
        except FingerprintComputationError as exc:
            logger.warning("%s; it will be reprocessed", exc)
            return None

    def should_process(self, path: str, current_digest: str | None) -> bool:
        """False only when a prior entry exists with exactly this digest."""
        if current_digest is None:
            return True
        entry = self._entries.get(path)
        return entry is None or entry.digest != current_digest

    def record(self, path: str, digest: str) -> None:
        """Remember a digest; call only after the file was processed successfully."""
        self._entries[path] = CacheEntry(
            path=path, digest=digest, recorded_at=datetime.now(timezone.utc)
        )

    def prune(self, existing: Iterable[str], prefix: str = "") -> list[str]:
        """Drop entries under prefix whose path is not in existing.

        Returns:
            Sorted list of pruned paths.
        """
        keep = set(existing)
        stale = sorted(
            p for p in self._entries if p.startswith(prefix) and p not in keep
        )
        for p in stale:
            del self._entries[p]
        if stale:
            logger.debug("Pruned %d stale cache entries: %s", len(stale), stale)
        return stale

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(namespace=self._namespace, entries=dict(self._entries))

    def flush(self) -> None:
        """Persist entries when a store is attached."""
        if self._store is not None:
            self._store.save(self.snapshot())
