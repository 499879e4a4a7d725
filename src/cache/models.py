# src/cache/models.py - v2
"""Change-cache models: CacheEntry and CacheSnapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """Digest an input file had when it was last processed successfully."""

    path: str
    digest: str
    recorded_at: datetime


class CacheSnapshot(BaseModel):
    """Serialized form of one change-cache namespace."""

    namespace: str
    version: int = 1
    entries: dict[str, CacheEntry] = Field(default_factory=dict)
