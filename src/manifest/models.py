# src/manifest/models.py - v1
"""Offline cache manifest model, serialized with camelCase keys."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CacheManifest(BaseModel):
    """Descriptor of the paths an offline-capable client should precache."""

    model_config = ConfigDict(populate_by_name=True)

    cache_id: str = Field(alias="cacheId")
    disabled: bool = False
    precache: list[str] = Field(default_factory=list)
    precache_fingerprint: str = Field(alias="precacheFingerprint")

    def to_json(self) -> str:
        """Compact JSON, stable key order, as written into the artifact tree."""
        return self.model_dump_json(by_alias=True)
