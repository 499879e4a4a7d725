# src/api/facade.py - v1
"""Public API facade: build, serve-prepare, deploy and promote a project.

Usage:
    from polyship.api.facade import build, deploy
    result = await build(settings)
    result = await deploy("staging", settings)

Every call builds its own registry, catalog and scheduler; nothing is
shared between calls.
"""

from __future__ import annotations

import logging

from polyship.config.pipelines import (
    DEFAULT_PIPELINE,
    SERVE_PIPELINE,
    build_default_catalog,
    deploy_pipeline_name,
)
from polyship.config.settings import Settings
from polyship.core.errors import UnknownTaskError
from polyship.deploy.deployer import EnvironmentDeployer, create_deployer
from polyship.deploy.models import Environment, parse_environment
from polyship.pipeline.definition import PipelineCatalog
from polyship.pipeline.models import RunResult
from polyship.pipeline.registry import TaskRegistry
from polyship.pipeline.scheduler import PipelineScheduler
from polyship.pipeline.state import BuildState
from polyship.tasks.defaults import register_default_tasks
from polyship.tasks.transforms import TransformSet

logger = logging.getLogger(__name__)


def build_registry() -> TaskRegistry:
    return register_default_tasks(TaskRegistry())


def build_catalog() -> PipelineCatalog:
    return build_default_catalog()


def create_scheduler(
    registry: TaskRegistry | None = None, catalog: PipelineCatalog | None = None
) -> PipelineScheduler:
    """Scheduler over the built-in tasks and pipelines unless given others.

    Raises:
        PipelineDefinitionError: If the catalog does not validate.
    """
    return PipelineScheduler(registry or build_registry(), catalog or build_catalog())


def create_state(
    settings: Settings | None = None,
    transforms: TransformSet | None = None,
    deployer: EnvironmentDeployer | None = None,
) -> BuildState:
    settings = settings or Settings()
    return BuildState.create(
        settings,
        transforms=transforms,
        deployer=deployer or create_deployer(settings),
    )


async def run_pipeline(
    name: str,
    settings: Settings | None = None,
    *,
    transforms: TransformSet | None = None,
    deployer: EnvironmentDeployer | None = None,
    scheduler: PipelineScheduler | None = None,
    state: BuildState | None = None,
) -> RunResult:
    """Run a catalog pipeline, or a single registered task, by name.

    Change caches are flushed after the run, whatever its outcome; only
    successfully processed files ever get an entry.

    Raises:
        UnknownTaskError: If name is neither a pipeline nor a task.
    """
    scheduler = scheduler or create_scheduler()
    state = state or create_state(settings, transforms, deployer)
    catalog = scheduler.catalog
    registry = scheduler.registry

    logger.info("Run %s: %s (project %s)", state.run_id, name, state.settings.root_path)
    try:
        if name in catalog:
            return await scheduler.run(name, state)
        if name in registry:
            return await scheduler.run_task(name, state)
        raise UnknownTaskError(name)
    finally:
        state.flush_caches()


async def build(
    settings: Settings | None = None, transforms: TransformSet | None = None
) -> RunResult:
    """Full production build into dist."""
    return await run_pipeline(DEFAULT_PIPELINE, settings, transforms=transforms)


async def prepare_preview(
    settings: Settings | None = None, transforms: TransformSet | None = None
) -> RunResult:
    """Build the subset the preview server needs."""
    return await run_pipeline(SERVE_PIPELINE, settings, transforms=transforms)


async def deploy(
    environment: Environment | str,
    settings: Settings | None = None,
    *,
    transforms: TransformSet | None = None,
    deployer: EnvironmentDeployer | None = None,
    promote_source: str | None = None,
    promote_target: str | None = None,
) -> RunResult:
    """Build and publish to an environment, or promote for 'promote'.

    Raises:
        UnknownEnvironmentError: If environment is not recognized.
        ConfigurationError: If the environment has no deploy target.
    """
    env = parse_environment(environment)
    settings = settings or Settings()
    deployer = deployer or create_deployer(
        settings, promote_source=promote_source, promote_target=promote_target
    )
    if env is Environment.PROMOTE:
        deployer.target_for(deployer.promote_source)
        deployer.target_for(deployer.promote_target)
    else:
        deployer.target_for(env)
    return await run_pipeline(
        deploy_pipeline_name(env.value),
        settings,
        transforms=transforms,
        deployer=deployer,
    )


async def promote(
    settings: Settings | None = None,
    source: str | None = None,
    target: str | None = None,
) -> RunResult:
    """Copy one environment's release to another without building."""
    return await deploy(
        Environment.PROMOTE, settings, promote_source=source, promote_target=target
    )
