# tests/unit/preview/test_server.py - v2
"""Tests for preview/server.py."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.testclient import TestClient

from polyship.preview.server import create_preview_app, serve


@pytest.fixture
def preview_settings(settings):
    for path, text in (
        (settings.tmp_path / "styles" / "main.css", "prefixed"),
        (settings.source_path / "styles" / "main.css", "source"),
        (settings.source_path / "index.html", "shell"),
        (settings.vendor_path / "polymer" / "polymer.html", "polymer"),
    ):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return settings


@pytest.fixture
def client(preview_settings):
    return TestClient(create_preview_app(preview_settings))


class TestPreviewApp:
    def test_first_root_wins(self, client):
        assert client.get("/styles/main.css").text == "prefixed"
        assert client.get("/index.html").text == "shell"

    def test_vendor_mount(self, client):
        response = client.get("/bower_components/polymer/polymer.html")
        assert response.status_code == 200
        assert response.text == "polymer"

    def test_history_fallback(self, client):
        assert client.get("/users/42").text == "shell"
        assert client.get("/").text == "shell"

    def test_missing_asset_is_not_found(self, client):
        assert client.get("/missing.js").status_code == 404

    def test_parent_segments_stay_inside_roots(self, client):
        assert client.get("/../../etc/passwd.txt").status_code == 404

    def test_missing_tmp_is_skipped(self, settings):
        settings.source_path.mkdir(parents=True, exist_ok=True)
        (settings.source_path / "index.html").write_text("shell")
        client = TestClient(create_preview_app(settings))
        assert client.get("/index.html").text == "shell"


@pytest.mark.asyncio
async def test_serve_runs_uvicorn_on_configured_port(preview_settings, monkeypatch):
    server_cls = MagicMock()
    server_cls.return_value.serve = AsyncMock()
    monkeypatch.setattr("polyship.preview.server.uvicorn.Server", server_cls)
    settings = preview_settings.model_copy(update={"preview_port": 8123})

    await serve(settings)

    config = server_cls.call_args.args[0]
    assert (config.host, config.port) == ("127.0.0.1", 8123)
    server_cls.return_value.serve.assert_awaited_once()
