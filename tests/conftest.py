# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides settings bound to a temporary project root and a small sample
front-end project. No network access: deploys go to local directories.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from polyship.config.settings import Settings
from polyship.pipeline.state import BuildState

SAMPLE_FILES: dict[str, str] = {
    "app/index.html": (
        "<!doctype html>\n<html>\n<head>\n"
        '  <link rel="stylesheet" href="styles/main.css">\n'
        '  <link rel="import" href="elements/elements.html">\n'
        "</head>\n<body>\n  <!-- app shell -->\n"
        '  <script src="scripts/app.js"></script>\n'
        "</body>\n</html>\n"
    ),
    "app/manifest.json": '{"name": "sample"}\n',
    "app/styles/main.css": "a{color:red}",
    "app/scripts/app.js": "(function () {\n\n  console.log('ready');\n})();\n",
    "app/elements/elements.html": '<link rel="import" href="my-card/my-card.html">\n',
    "app/elements/my-card/my-card.html": "<dom-module id=\"my-card\"></dom-module>\n",
    "app/elements/my-card/my-card.css": ":host { display: block; }\n",
    "app/images/logo.png": "PNGDATA",
    "app/fonts/icons.woff": "WOFF",
    "app/test/index.html": "<p>tests</p>\n",
    "bower_components/webcomponentsjs/webcomponents-lite.min.js": "/* wc */\n",
    "bower_components/polymer/polymer.html": "<script>Polymer=1</script>\n",
    "bower_components/polymer/index.html": "<p>docs</p>\n",
    "bower_components/polymer/demo/demo.html": "<p>demo</p>\n",
    "bower_components/sw-toolbox/sw-toolbox.js": "var toolbox = {};\n",
    "bower_components/platinum-sw/bootstrap/sw-toolbox-setup.js": (
        "importScripts('../sw-toolbox/sw-toolbox.js');\n"
    ),
}


def write_files(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "sample-app"
    root.mkdir()
    return root


@pytest.fixture
def settings(project_root: Path) -> Settings:
    """Settings bound to an empty project directory, ignoring any .env."""
    return Settings(_env_file=None, project_root=project_root)


@pytest.fixture
def sample_project(project_root: Path) -> Path:
    write_files(project_root, SAMPLE_FILES)
    return project_root


@pytest.fixture
def state(settings: Settings) -> BuildState:
    return BuildState.create(settings)
