# src/pipeline/state.py - v2
"""Mutable build state shared by all tasks of a run.

The artifact tree itself lives on disk; this object carries the run's
identity, configuration, collaborators (transforms, change caches,
deployer) and whatever the tasks produce along the way.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from polyship.cache.cache_factory import create_cache_store
from polyship.cache.change_cache import ChangeDetectionCache
from polyship.config.settings import Settings
from polyship.deploy.models import DeployResult
from polyship.manifest.models import CacheManifest
from polyship.pipeline.models import TaskOutput
from polyship.revision.models import RevisionRecord
from polyship.tasks.transforms import TransformSet

# Each namespace is written by one task at a time: "styles" by the styles
# and elements tasks (ordered by predecessors), "images" by images.
CACHE_NAMESPACES: tuple[str, ...] = ("styles", "images")


def _generate_run_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{uuid.uuid4().hex[:6]}"


class BuildState(BaseModel):
    """State flowing through every task of a pipeline run."""

    model_config = {"arbitrary_types_allowed": True}

    # === IDENTITY ===
    run_id: str = Field(default_factory=_generate_run_id)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # === COLLABORATORS ===
    settings: Settings
    transforms: TransformSet = Field(default_factory=TransformSet)
    caches: dict[str, ChangeDetectionCache] = Field(default_factory=dict)
    deployer: Any = None

    # === PRODUCTS ===
    manifest: CacheManifest | None = None
    revision: RevisionRecord | None = None
    deploy_result: DeployResult | None = None
    task_outputs: dict[str, TaskOutput] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        settings: Settings,
        transforms: TransformSet | None = None,
        deployer: Any = None,
    ) -> BuildState:
        """Build a state with one change cache per namespace."""
        store = create_cache_store(settings)
        caches = {ns: ChangeDetectionCache(ns, store) for ns in CACHE_NAMESPACES}
        return cls(
            settings=settings,
            transforms=transforms or TransformSet(),
            caches=caches,
            deployer=deployer,
        )

    # --- Paths ---

    @property
    def source_root(self) -> Path:
        return self.settings.source_path

    @property
    def tmp_root(self) -> Path:
        return self.settings.tmp_path

    @property
    def dist_root(self) -> Path:
        return self.settings.dist_path

    # --- Helpers ---

    def cache(self, namespace: str) -> ChangeDetectionCache:
        """Change cache for a namespace, created on first use."""
        if namespace not in self.caches:
            self.caches[namespace] = ChangeDetectionCache(namespace)
        return self.caches[namespace]

    def record_task_output(self, task_name: str, output: TaskOutput) -> None:
        self.task_outputs[task_name] = output

    def flush_caches(self) -> None:
        for cache in self.caches.values():
            cache.flush()
