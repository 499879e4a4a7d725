# src/config/pipelines.py - v1
"""Declarative pipeline catalog.

  default            full production build into dist
  serve              the subset needed to preview from tmp + app
  pre-deploy         default, then sw-toolbox path fix, revisioning and
                     a manifest regenerated over the revisioned names
  deploy:<env>       pre-deploy, then publish to <env>
  deploy:promote     copy the staging release to production, no build
"""

from __future__ import annotations

from polyship.deploy.models import REAL_ENVIRONMENTS
from polyship.pipeline.definition import (
    Concurrent,
    Nested,
    PipelineCatalog,
    PipelineDefinition,
    Single,
)

DEFAULT_PIPELINE = "default"
SERVE_PIPELINE = "serve"
PRE_DEPLOY_PIPELINE = "pre-deploy"


def deploy_pipeline_name(environment: str) -> str:
    return f"deploy:{environment}"


def build_default_catalog() -> PipelineCatalog:
    catalog = PipelineCatalog(
        [
            PipelineDefinition(
                name=DEFAULT_PIPELINE,
                description="Build production files into dist",
                steps=(
                    Single("clean"),
                    Concurrent("copy", "styles"),
                    Single("elements"),
                    Concurrent("lint", "images", "fonts", "html"),
                    Single("vulcanize"),
                    Concurrent("clean-dist", "minify-dist"),
                    Single("cache-config"),
                ),
            ),
            PipelineDefinition(
                name=SERVE_PIPELINE,
                description="Prepare tmp for the local preview server",
                steps=(Single("styles"), Concurrent("elements", "images")),
            ),
            PipelineDefinition(
                name=PRE_DEPLOY_PIPELINE,
                description="Build, then revision dist for long-term caching",
                steps=(
                    Nested(DEFAULT_PIPELINE),
                    Single("fix-path-sw-toolbox"),
                    Single("revision"),
                    Single("cache-config"),
                ),
            ),
            PipelineDefinition(
                name=deploy_pipeline_name("promote"),
                description="Promote the staging release to production",
                steps=(Single("promote"),),
            ),
        ]
    )
    for env in REAL_ENVIRONMENTS:
        catalog.add(
            PipelineDefinition(
                name=deploy_pipeline_name(env.value),
                description=f"Build and deploy to {env.value}",
                steps=(Nested(PRE_DEPLOY_PIPELINE), Single(f"deploy-{env.value}")),
            )
        )
    return catalog
