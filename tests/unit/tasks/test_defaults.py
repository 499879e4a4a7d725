# tests/unit/tasks/test_defaults.py - v1
"""Tests for the built-in task registrations and pipeline catalog."""

from __future__ import annotations

import pytest

from polyship.config.pipelines import (
    DEFAULT_PIPELINE,
    PRE_DEPLOY_PIPELINE,
    SERVE_PIPELINE,
    build_default_catalog,
    deploy_pipeline_name,
)
from polyship.pipeline.definition import Concurrent
from polyship.pipeline.registry import TaskRegistry
from polyship.tasks.defaults import register_default_tasks


@pytest.fixture
def registry() -> TaskRegistry:
    return register_default_tasks(TaskRegistry())


@pytest.fixture
def catalog():
    return build_default_catalog()


def _overlaps(a: str, b: str) -> bool:
    return a == b or a.startswith(b + "/") or b.startswith(a + "/")


class TestRegistrations:
    def test_all_tasks_registered(self, registry):
        assert set(registry.task_names) == {
            "cache-config",
            "clean",
            "clean-dist",
            "copy",
            "deploy-development",
            "deploy-production",
            "deploy-staging",
            "elements",
            "fix-path-sw-toolbox",
            "fonts",
            "html",
            "images",
            "lint",
            "minify-dist",
            "promote",
            "revision",
            "styles",
            "vulcanize",
        }

    def test_predecessor_graph_is_acyclic(self, registry):
        plan = registry.dependency_plan()
        assert plan.stages[0] == ["clean", "lint", "promote"]

    def test_every_task_is_described(self, registry):
        assert all(spec.description for spec in registry.tasks.values())


class TestCatalog:
    def test_catalog_validates(self, registry, catalog):
        catalog.validate(registry)

    def test_pipeline_names(self, catalog):
        assert catalog.names == [
            DEFAULT_PIPELINE,
            "deploy:development",
            "deploy:production",
            "deploy:promote",
            "deploy:staging",
            PRE_DEPLOY_PIPELINE,
            SERVE_PIPELINE,
        ]

    def test_default_steps(self, catalog):
        assert catalog.flatten(DEFAULT_PIPELINE) == [
            ["clean"],
            ["copy", "styles"],
            ["elements"],
            ["lint", "images", "fonts", "html"],
            ["vulcanize"],
            ["clean-dist", "minify-dist"],
            ["cache-config"],
        ]

    def test_deploy_runs_pre_deploy_first(self, catalog):
        steps = catalog.flatten(deploy_pipeline_name("staging"))
        assert steps[0] == ["clean"]
        assert steps[-4:] == [
            ["fix-path-sw-toolbox"],
            ["revision"],
            ["cache-config"],
            ["deploy-staging"],
        ]

    def test_promote_runs_no_build(self, catalog):
        assert catalog.flatten("deploy:promote") == [["promote"]]

    def test_concurrent_steps_write_disjoint_subtrees(self, registry, catalog):
        for name in catalog.names:
            for step in catalog.get(name).steps:
                if not isinstance(step, Concurrent):
                    continue
                for i, first in enumerate(step.names):
                    for second in step.names[i + 1:]:
                        for a in registry.resolve(first).writes:
                            for b in registry.resolve(second).writes:
                                assert not _overlaps(a, b), (name, first, second, a, b)
