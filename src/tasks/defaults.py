# src/tasks/defaults.py - v1
"""Registration of the built-in build and deploy tasks.

Predecessors describe data dependencies (who must have written what a
task reads). Pipelines decide what actually runs and in which step.
"""

from __future__ import annotations

from polyship.deploy.models import REAL_ENVIRONMENTS
from polyship.pipeline.registry import TaskRegistry
from polyship.tasks import (
    cache_config,
    clean,
    copy,
    deploy,
    images,
    markup,
    revision,
    scripts,
    styles,
)


def register_default_tasks(registry: TaskRegistry) -> TaskRegistry:
    """Register every built-in task on registry and return it."""
    registry.register(
        "clean",
        [],
        clean.clean,
        concurrency_safe=False,
        description="Remove the tmp and dist trees",
        writes=[".tmp", "dist"],
    )
    registry.register(
        "copy",
        ["clean"],
        copy.copy,
        description="Copy root files, scripts, elements and vendor files to dist",
        reads=["app", "bower_components"],
        writes=[
            "dist/bower_components",
            "dist/elements",
            "dist/scripts",
            "dist/sw-toolbox",
            "dist/<root files>",
        ],
    )
    registry.register(
        "styles",
        ["clean"],
        styles.styles,
        description="Prefix and minify app stylesheets",
        reads=["app/styles"],
        writes=[".tmp/styles", "dist/styles"],
    )
    registry.register(
        "elements",
        ["styles"],
        styles.elements,
        description="Prefix and minify element stylesheets",
        reads=["app/elements"],
        writes=[".tmp/elements", "dist/elements"],
    )
    registry.register(
        "lint",
        [],
        scripts.lint,
        description="Lint app scripts and element markup",
        reads=["app/scripts", "app/elements"],
    )
    registry.register(
        "images",
        ["clean"],
        images.images,
        description="Optimize images",
        reads=["app/images"],
        writes=["dist/images"],
    )
    registry.register(
        "fonts",
        ["clean"],
        copy.fonts,
        description="Copy web fonts",
        reads=["app/fonts"],
        writes=["dist/fonts"],
    )
    registry.register(
        "html",
        ["copy", "styles"],
        markup.html,
        description="Minify app pages and point them at the vulcanized bundle",
        reads=["app"],
        writes=["dist/<pages>"],
    )
    registry.register(
        "vulcanize",
        ["copy", "elements"],
        markup.vulcanize,
        description="Flatten the elements bundle",
        reads=["dist/elements"],
        writes=["dist/elements/elements.vulcanized.html"],
    )
    registry.register(
        "clean-dist",
        ["vulcanize"],
        clean.clean_dist,
        description="Remove test folders, source maps and OS files from dist",
        writes=["dist/test", "dist/<*.map>", "dist/<.DS_Store>"],
    )
    registry.register(
        "minify-dist",
        ["vulcanize"],
        scripts.minify_dist,
        description="Minify scripts in dist",
        reads=["dist/scripts", "dist/elements"],
        writes=["dist/scripts", "dist/elements/<*.js>"],
    )
    registry.register(
        "cache-config",
        ["clean-dist", "minify-dist"],
        cache_config.cache_config,
        description="Write the offline cache manifest",
        reads=["dist"],
        writes=["dist/cache-config.json"],
    )
    registry.register(
        "fix-path-sw-toolbox",
        ["copy"],
        scripts.fix_path_sw_toolbox,
        description="Point service-worker bootstrap scripts at dist/sw-toolbox",
        reads=["dist/elements/bootstrap"],
        writes=["dist/elements/bootstrap"],
    )
    registry.register(
        "revision",
        ["cache-config", "fix-path-sw-toolbox"],
        revision.revision,
        concurrency_safe=False,
        description="Embed content tokens in asset filenames and rewrite references",
        reads=["dist"],
        writes=["dist", ".tmp/rev-manifest.json"],
    )
    for env in REAL_ENVIRONMENTS:
        registry.register(
            f"deploy-{env.value}",
            ["revision"],
            deploy.deploy_to(env),
            concurrency_safe=False,
            description=f"Publish dist to {env.value}",
            reads=["dist"],
            writes=["deploy"],
        )
    registry.register(
        "promote",
        [],
        deploy.promote,
        concurrency_safe=False,
        description="Copy the staging release to production",
        writes=["deploy"],
    )
    return registry
