# src/storage/local_publisher.py - v1
"""Local filesystem publisher (DEPLOY_BACKEND=local, default).

Each environment lives at <deploy_dir>/<target>/<prefix>. A publish
stages the new tree next to the old one and swaps it in, so a failed
copy leaves the previous release in place.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from pydantic import ValidationError

from polyship.core.errors import PublishError
from polyship.deploy.models import EnvironmentTarget, ReleaseMarker
from polyship.storage.base_publisher import MARKER_NAME, BasePublisher
from polyship.tasks.files import list_files

logger = logging.getLogger(__name__)


class LocalPublisher(BasePublisher):
    """Publish to directories under a deploy root."""

    def __init__(self, deploy_root: Path) -> None:
        self._root = Path(deploy_root)

    def resolve(self, target: EnvironmentTarget) -> Path:
        path = self._root / target.target
        if target.prefix:
            path = path / target.prefix.strip("/")
        return path

    def describe(self, target: EnvironmentTarget) -> str:
        return str(self.resolve(target))

    async def publish(self, artifact_dir: Path, target: EnvironmentTarget) -> list[str]:
        return await asyncio.to_thread(self._replace, Path(artifact_dir), self.resolve(target))

    async def copy_release(
        self, source: EnvironmentTarget, target: EnvironmentTarget
    ) -> list[str]:
        return await asyncio.to_thread(
            self._replace, self.resolve(source), self.resolve(target)
        )

    async def read_marker(self, target: EnvironmentTarget) -> ReleaseMarker | None:
        path = self.resolve(target) / MARKER_NAME
        if not path.is_file():
            return None
        try:
            return ReleaseMarker.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            raise PublishError(f"Unreadable release marker {path}: {exc}") from exc

    async def write_marker(self, target: EnvironmentTarget, marker: ReleaseMarker) -> None:
        path = self.resolve(target) / MARKER_NAME
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(marker.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PublishError(f"Cannot write release marker {path}: {exc}") from exc

    @staticmethod
    def _replace(src: Path, dst: Path) -> list[str]:
        if not src.is_dir():
            raise PublishError(f"Nothing to publish: {src} does not exist")
        files = list_files(src, exclude=(MARKER_NAME,))
        staging = dst.with_name(dst.name + ".staging")
        try:
            if staging.exists():
                shutil.rmtree(staging)
            staging.mkdir(parents=True)
            for rel in files:
                out = staging / rel
                out.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(src / rel, out)
            if dst.exists():
                shutil.rmtree(dst)
            staging.rename(dst)
        except OSError as exc:
            raise PublishError(f"Cannot publish {src} to {dst}: {exc}") from exc
        logger.info("Published %d files to %s", len(files), dst)
        return files
