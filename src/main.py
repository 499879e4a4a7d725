# src/main.py - v2
"""CLI entry point: build, serve, deploy, run and tasks commands.

Usage:
    polyship build
    polyship serve [--build-only]
    polyship deploy <dev|stag|prod|promote> [--from ENV --to ENV]
    polyship run <pipeline-or-task>
    polyship tasks

Exit codes: 0 success, 1 task failure, 2 unknown environment or invalid
definition/configuration, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from polyship.config.settings import ConfigurationError, Settings
from polyship.core.errors import (
    PipelineDefinitionError,
    PolyshipError,
    UnknownEnvironmentError,
    UnknownTaskError,
)
from polyship.logging.logger import setup_logging
from polyship.pipeline.models import RunResult
from polyship.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_USAGE

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=args.log_format or settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except (
        UnknownEnvironmentError,
        UnknownTaskError,
        PipelineDefinitionError,
        ConfigurationError,
    ) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except PolyshipError as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FAILURE


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="polyship",
        description=f"polyship v{__version__} - build and deploy a static front-end",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--project-root", type=Path, default=None,
        help="Project directory (default: PROJECT_ROOT or the current directory)",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default=None,
        help="Log output format (default: LOG_FORMAT)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- build ---
    p_build = subparsers.add_parser("build", help="Build production files into dist")
    p_build.set_defaults(func=_cmd_build)

    # --- serve ---
    p_serve = subparsers.add_parser(
        "serve", help="Prepare tmp and serve the app locally",
    )
    p_serve.add_argument(
        "--build-only", action="store_true",
        help="Run the serve pipeline without starting the server",
    )
    p_serve.add_argument("--port", type=int, default=None, help="Preview port")
    p_serve.set_defaults(func=_cmd_serve)

    # --- deploy ---
    p_deploy = subparsers.add_parser(
        "deploy", help="Build and publish to an environment, or promote",
    )
    p_deploy.add_argument(
        "environment",
        help="dev, development, stag, staging, prod, production or promote",
    )
    p_deploy.add_argument(
        "--from", dest="promote_source", default=None,
        help="Source environment for promote (default: PROMOTE_SOURCE)",
    )
    p_deploy.add_argument(
        "--to", dest="promote_target", default=None,
        help="Target environment for promote (default: PROMOTE_TARGET)",
    )
    p_deploy.set_defaults(func=_cmd_deploy)

    # --- run ---
    p_run = subparsers.add_parser("run", help="Run one pipeline or task by name")
    p_run.add_argument("name", help="Pipeline or task name")
    p_run.set_defaults(func=_cmd_run)

    # --- tasks ---
    p_tasks = subparsers.add_parser("tasks", help="List tasks and pipelines")
    p_tasks.set_defaults(func=_cmd_tasks)

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    if args.project_root is None:
        return Settings()
    root = Path(args.project_root)
    env_file = root / ".env"
    return Settings(
        _env_file=env_file if env_file.is_file() else None,
        project_root=root,
    )


async def _cmd_build(args: argparse.Namespace, settings: Settings) -> int:
    from polyship.api.facade import build

    return _report(await build(settings))


async def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    from polyship.api.facade import prepare_preview

    if args.port is not None:
        settings = settings.model_copy(update={"preview_port": args.port})
    code = _report(await prepare_preview(settings))
    if code != EXIT_OK or args.build_only:
        return code

    from polyship.preview.server import serve

    await serve(settings)
    return EXIT_OK


async def _cmd_deploy(args: argparse.Namespace, settings: Settings) -> int:
    from polyship.api.facade import deploy

    result = await deploy(
        args.environment,
        settings,
        promote_source=args.promote_source,
        promote_target=args.promote_target,
    )
    return _report(result)


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    from polyship.api.facade import run_pipeline

    return _report(await run_pipeline(args.name, settings))


async def _cmd_tasks(args: argparse.Namespace, settings: Settings) -> int:
    from polyship.api.facade import build_catalog, build_registry

    registry = build_registry()
    catalog = build_catalog()
    catalog.validate(registry)

    print("Tasks:")
    for name in registry.task_names:
        spec = registry.resolve(name)
        after = f" (after {', '.join(spec.predecessors)})" if spec.predecessors else ""
        print(f"  {name:<22} {spec.description}{after}")

    print("\nPredecessor levels:")
    for level, names in enumerate(registry.dependency_plan().stages):
        print(f"  {level}: {', '.join(names)}")

    print("\nPipelines:")
    for name in catalog.names:
        definition = catalog.get(name)
        print(f"  {name:<22} {' -> '.join(definition.labels)}")
    return EXIT_OK


def _report(result: RunResult) -> int:
    """Print a run summary; map the outcome to an exit code."""
    if result.succeeded:
        print(
            f"{result.pipeline}: completed {result.steps_completed} steps, "
            f"{len(result.task_results)} tasks in {result.duration_ms}ms"
        )
        return EXIT_OK

    failure = result.failure
    print(f"{result.pipeline}: FAILED", file=sys.stderr)
    if failure is not None:
        print(f"  task:  {failure.task_name}", file=sys.stderr)
        print(f"  step:  {failure.step_index}", file=sys.stderr)
        if len(failure.step_path) > 1:
            print(f"  path:  {'.'.join(str(i) for i in failure.step_path)}", file=sys.stderr)
        print(f"  cause: {failure.cause}", file=sys.stderr)
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
