# tests/unit/test_main.py - v1
"""Tests for the polyship CLI."""

from __future__ import annotations

import pytest

from polyship.main import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, main


@pytest.fixture(autouse=True)
def _isolated_logging():
    import logging

    root = logging.getLogger("polyship")
    saved = (list(root.handlers), root.level)
    yield
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])


def test_no_command_prints_help(capsys):
    assert main([]) == EXIT_USAGE
    assert "usage: polyship" in capsys.readouterr().out


def test_tasks_lists_tasks_and_pipelines(sample_project, capsys):
    assert main(["--project-root", str(sample_project), "tasks"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "vulcanize" in out
    assert "deploy:staging" in out
    assert "<pre-deploy> -> deploy-staging" in out


def test_unknown_environment_is_usage_error(sample_project, capsys):
    code = main(["--project-root", str(sample_project), "deploy", "qa"])
    assert code == EXIT_USAGE
    assert "qa" in capsys.readouterr().err


def test_unknown_task_is_usage_error(sample_project):
    assert main(["--project-root", str(sample_project), "run", "nope"]) == EXIT_USAGE


def test_build(sample_project, capsys):
    assert main(["--project-root", str(sample_project), "build"]) == EXIT_OK
    assert "default: completed 7 steps" in capsys.readouterr().out
    assert (sample_project / "dist" / "cache-config.json").is_file()


def test_failed_run_reports_task(sample_project, capsys):
    code = main(["--project-root", str(sample_project), "deploy", "promote"])
    err = capsys.readouterr().err
    assert code == EXIT_FAILURE
    assert "task:  promote" in err
    assert "Nothing to promote" in err


def test_invalid_configuration(sample_project, capsys):
    (sample_project / ".env").write_text("PROMOTE_TARGET=staging\n")
    assert main(["--project-root", str(sample_project), "tasks"]) == EXIT_USAGE
    assert "Invalid configuration" in capsys.readouterr().err
