# src/tasks/deploy.py - v1
"""Deploy tasks: hand dist to the environment deployer held by the state."""

from __future__ import annotations

import logging

from polyship.core.errors import PublishError
from polyship.deploy.deployer import EnvironmentDeployer
from polyship.deploy.models import DeployResult, Environment
from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState

logger = logging.getLogger(__name__)


def _deployer(state: BuildState) -> EnvironmentDeployer:
    if state.deployer is None:
        raise PublishError("No deployer attached to this build")
    return state.deployer


def _output(result: DeployResult) -> TaskOutput:
    return TaskOutput(
        files_written=len(result.files),
        notes=[f"{result.environment}: release {result.release_id} at {result.target}"],
        data={"release_id": result.release_id, "environment": result.environment},
    )


def deploy_to(environment: Environment):
    """Runner publishing dist to one environment."""

    async def run(state: BuildState) -> TaskOutput:
        result = await _deployer(state).deploy(
            environment, state.dist_root, run_id=state.run_id
        )
        state.deploy_result = result
        return _output(result)

    run.__name__ = f"deploy_{environment.value}"
    return run


async def promote(state: BuildState) -> TaskOutput:
    result = await _deployer(state).promote(run_id=state.run_id)
    state.deploy_result = result
    return _output(result)
