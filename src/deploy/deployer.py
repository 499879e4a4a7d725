# src/deploy/deployer.py - v1
"""Environment deployer: publish a finished tree, or promote a release.

Every publish ends by writing a release marker at the root of the
environment. Promotion copies one environment's published files to
another and requires the source to carry a marker, so an environment
that was never deployed cannot be promoted. The deployer trusts its
callers for build preconditions: the deploy pipelines run pre-deploy
before handing a tree over.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from polyship.cache.fingerprint import file_digest, fingerprint
from polyship.config.settings import ConfigurationError, Settings
from polyship.core.errors import PublishError
from polyship.deploy.models import (
    REAL_ENVIRONMENTS,
    DeployResult,
    Environment,
    EnvironmentTarget,
    ReleaseMarker,
    parse_environment,
)
from polyship.storage.base_publisher import MARKER_NAME, BasePublisher
from polyship.storage.publisher_factory import create_publisher
from polyship.tasks.files import list_files

logger = logging.getLogger(__name__)

_RELEASE_ID_LENGTH = 12


class EnvironmentDeployer:
    """Publish artifact trees to named environments.

    Args:
        publisher: Transport used for every environment.
        targets: Deploy parameters per real environment.
        promote_source: Default source of promote.
        promote_target: Default target of promote.
    """

    def __init__(
        self,
        publisher: BasePublisher,
        targets: dict[Environment, EnvironmentTarget],
        promote_source: Environment | str = Environment.STAGING,
        promote_target: Environment | str = Environment.PRODUCTION,
    ) -> None:
        self._publisher = publisher
        self._targets = dict(targets)
        self.promote_source = parse_environment(promote_source)
        self.promote_target = parse_environment(promote_target)

    @property
    def publisher(self) -> BasePublisher:
        return self._publisher

    def target_for(self, environment: Environment | str) -> EnvironmentTarget:
        """Deploy parameters of a real environment.

        Raises:
            UnknownEnvironmentError: If the identifier is not recognized.
            ConfigurationError: If the environment has no target configured.
        """
        env = parse_environment(environment)
        if not env.is_real:
            raise ConfigurationError("'promote' is not a deploy target")
        target = self._targets.get(env)
        if target is None:
            raise ConfigurationError(f"No deploy target configured for '{env.value}'")
        return target

    async def deploy(
        self,
        environment: Environment | str,
        artifact_dir: Path | None,
        run_id: str | None = None,
    ) -> DeployResult:
        """Publish artifact_dir to an environment; promote ignores the tree.

        Raises:
            UnknownEnvironmentError: If the identifier is not recognized.
            PublishError: If the tree is missing or the transport fails.
        """
        env = parse_environment(environment)
        if env is Environment.PROMOTE:
            return await self.promote(run_id=run_id)

        target = self.target_for(env)
        if artifact_dir is None or not Path(artifact_dir).is_dir():
            raise PublishError(f"Artifact tree {artifact_dir} does not exist")

        start = time.monotonic()
        release_id = release_id_of(Path(artifact_dir))
        logger.info(
            "Deploying release %s to %s (%s)",
            release_id,
            env.value,
            self._publisher.describe(target),
        )
        files = await self._publisher.publish(Path(artifact_dir), target)
        await self._publisher.write_marker(
            target,
            ReleaseMarker(
                environment=env.value,
                release_id=release_id,
                run_id=run_id,
                published_at=datetime.now(timezone.utc),
                file_count=len(files),
            ),
        )
        result = DeployResult(
            environment=env.value,
            target=self._publisher.describe(target),
            release_id=release_id,
            files=files,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info("Deployed %d files to %s", len(files), env.value)
        return result

    async def promote(
        self,
        source: Environment | str | None = None,
        target: Environment | str | None = None,
        run_id: str | None = None,
    ) -> DeployResult:
        """Copy the release published in source to target. Runs no build.

        Raises:
            PublishError: If source has no release, the pair is invalid, or
                the transport fails.
        """
        src_env = parse_environment(source or self.promote_source)
        dst_env = parse_environment(target or self.promote_target)
        if not (src_env.is_real and dst_env.is_real):
            raise PublishError("promote needs two real environments")
        if src_env is dst_env:
            raise PublishError(f"Cannot promote '{src_env.value}' onto itself")

        src_target = self.target_for(src_env)
        dst_target = self.target_for(dst_env)
        marker = await self._publisher.read_marker(src_target)
        if marker is None:
            raise PublishError(
                f"Nothing to promote: '{src_env.value}' has no published release"
            )

        start = time.monotonic()
        logger.info(
            "Promoting release %s from %s to %s",
            marker.release_id,
            src_env.value,
            dst_env.value,
        )
        files = await self._publisher.copy_release(src_target, dst_target)
        await self._publisher.write_marker(
            dst_target,
            ReleaseMarker(
                environment=dst_env.value,
                release_id=marker.release_id,
                run_id=run_id,
                published_at=datetime.now(timezone.utc),
                file_count=len(files),
                promoted_from=src_env.value,
            ),
        )
        return DeployResult(
            environment=dst_env.value,
            target=self._publisher.describe(dst_target),
            release_id=marker.release_id,
            files=files,
            promoted_from=src_env.value,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def current_release(self, environment: Environment | str) -> ReleaseMarker | None:
        return await self._publisher.read_marker(self.target_for(environment))


def release_id_of(artifact_dir: Path) -> str:
    """Content identity of a tree: same files with same bytes, same id."""
    items = [
        f"{rel}:{file_digest(artifact_dir / rel)}"
        for rel in list_files(artifact_dir, exclude=(MARKER_NAME,))
    ]
    return fingerprint(items)[:_RELEASE_ID_LENGTH]


def create_deployer(
    settings: Settings,
    publisher: BasePublisher | None = None,
    promote_source: str | None = None,
    promote_target: str | None = None,
) -> EnvironmentDeployer:
    """Build a deployer from settings.

    With the local backend, an environment without a configured target
    publishes to a directory named after it. The s3 backend only knows
    the environments configured in ENVIRONMENTS.
    """
    targets: dict[Environment, EnvironmentTarget] = {}
    for env in REAL_ENVIRONMENTS:
        configured = settings.environments.get(env.value)
        if configured is not None:
            targets[env] = configured
        elif settings.deploy_backend == "local":
            targets[env] = EnvironmentTarget(target=env.value)

    return EnvironmentDeployer(
        publisher=publisher or create_publisher(settings),
        targets=targets,
        promote_source=promote_source or settings.promote_source,
        promote_target=promote_target or settings.promote_target,
    )
