# src/deploy/models.py - v1
"""Deploy domain models: Environment, EnvironmentTarget, ReleaseMarker, DeployResult."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from polyship.core.errors import UnknownEnvironmentError


class Environment(str, Enum):
    """Closed set of deploy targets plus the promote pseudo-environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    PROMOTE = "promote"

    @property
    def is_real(self) -> bool:
        return self is not Environment.PROMOTE


REAL_ENVIRONMENTS: tuple[Environment, ...] = (
    Environment.DEVELOPMENT,
    Environment.STAGING,
    Environment.PRODUCTION,
)

# Short names accepted on the command line.
ENVIRONMENT_ALIASES: dict[str, Environment] = {
    "dev": Environment.DEVELOPMENT,
    "stag": Environment.STAGING,
    "prod": Environment.PRODUCTION,
}


def parse_environment(value: str | Environment) -> Environment:
    """Resolve an environment name or alias.

    Raises:
        UnknownEnvironmentError: If the value is not a known environment.
    """
    if isinstance(value, Environment):
        return value
    key = (value or "").strip().lower()
    if key in ENVIRONMENT_ALIASES:
        return ENVIRONMENT_ALIASES[key]
    try:
        return Environment(key)
    except ValueError:
        raise UnknownEnvironmentError(value) from None


class EnvironmentTarget(BaseModel):
    """Deploy parameters for one environment. Opaque to the pipeline core."""

    target: str
    prefix: str = ""
    credentials: str | None = None
    region: str | None = None


class ReleaseMarker(BaseModel):
    """Written as .release.json at the root of every published environment."""

    environment: str
    release_id: str
    run_id: str | None = None
    published_at: datetime
    file_count: int
    promoted_from: str | None = None


class DeployResult(BaseModel):
    """Outcome of a deploy or promote invocation."""

    environment: str
    target: str
    release_id: str
    files: list[str] = Field(default_factory=list)
    promoted_from: str | None = None
    duration_ms: int = 0
