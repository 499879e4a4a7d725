# src/cache/base_cache_store.py - v3
"""Abstract persistence backend for change-cache snapshots."""

from __future__ import annotations

from abc import ABC, abstractmethod

from polyship.cache.models import CacheSnapshot


class BaseCacheStore(ABC):
    """Loads and saves one snapshot per cache namespace."""

    @abstractmethod
    def load(self, namespace: str) -> CacheSnapshot:
        """Return the stored snapshot, or an empty one."""

    @abstractmethod
    def save(self, snapshot: CacheSnapshot) -> None:
        """Replace the stored snapshot for snapshot.namespace."""
