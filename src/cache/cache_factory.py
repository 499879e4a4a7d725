# src/cache/cache_factory.py - v2
"""Factory: instantiate the change-cache store from configuration."""

from __future__ import annotations

from polyship.cache.base_cache_store import BaseCacheStore
from polyship.cache.json_store import JsonCacheStore
from polyship.config.settings import Settings


def create_cache_store(settings: Settings) -> BaseCacheStore | None:
    """Return a persistent store, or None when digests are valid for one run only.

    The store lives outside the tmp directory because the clean task wipes
    .tmp at the start of every build.
    """
    if not settings.change_cache_persist:
        return None
    return JsonCacheStore(settings.root_path / ".polyship" / settings.change_cache_dir)
