# src/cache/json_store.py - v3
"""JSON file-based change-cache store (CHANGE_CACHE_PERSIST=true).

One file per namespace under the cache root, rewritten whole on save.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from polyship.cache.base_cache_store import BaseCacheStore
from polyship.cache.models import CacheSnapshot

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based snapshot store using JSON files."""

    def __init__(self, cache_root: Path) -> None:
        self._root = Path(cache_root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def load(self, namespace: str) -> CacheSnapshot:
        path = self._snapshot_path(namespace)
        if not path.exists():
            return CacheSnapshot(namespace=namespace)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheSnapshot(**data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            # A corrupt snapshot only costs a full rebuild of the namespace.
            logger.warning("Ignoring unreadable cache snapshot %s: %s", path, e)
            return CacheSnapshot(namespace=namespace)

    def save(self, snapshot: CacheSnapshot) -> None:
        path = self._snapshot_path(snapshot.namespace)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)

    def _snapshot_path(self, namespace: str) -> Path:
        safe = namespace.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe}.json"
