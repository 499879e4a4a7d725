# src/storage/base_publisher.py - v1
"""Abstract publisher interface: where a finished artifact tree goes.

A publisher knows nothing about environments; it is handed an
EnvironmentTarget (bucket or directory, prefix, credentials) and moves
files. The deployer decides which target to use and writes the release
marker after the files are in place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from polyship.deploy.models import EnvironmentTarget, ReleaseMarker

MARKER_NAME = ".release.json"


class BasePublisher(ABC):
    """Unified interface for deploy backends."""

    @abstractmethod
    async def publish(self, artifact_dir: Path, target: EnvironmentTarget) -> list[str]:
        """Replace the target's content with the tree; return the published paths.

        The release marker of the target is not part of the published set.

        Raises:
            PublishError: On any transport failure.
        """

    @abstractmethod
    async def copy_release(
        self, source: EnvironmentTarget, target: EnvironmentTarget
    ) -> list[str]:
        """Replace the target's content with the source's; return the copied paths."""

    @abstractmethod
    async def read_marker(self, target: EnvironmentTarget) -> ReleaseMarker | None:
        """Release marker of a target, or None if nothing was ever published there."""

    @abstractmethod
    async def write_marker(self, target: EnvironmentTarget, marker: ReleaseMarker) -> None:
        """Write the release marker of a target."""

    @abstractmethod
    def describe(self, target: EnvironmentTarget) -> str:
        """Human-readable location of a target (path or URL)."""
