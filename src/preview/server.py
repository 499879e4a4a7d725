# src/preview/server.py - v2
"""Local static preview server.

A Starlette app served by uvicorn. Several roots are layered in order
(tmp first, so freshly prefixed styles shadow the sources, then app),
vendor files are mounted under /<vendor_dir>, and extension-less paths
that match no file fall back to index.html so client-side routes work
on reload.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence
from pathlib import Path

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.responses import FileResponse, Response
from starlette.routing import Mount
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from polyship.config.settings import Settings

logger = logging.getLogger(__name__)


class LayeredStaticFiles(StaticFiles):
    """StaticFiles looking a path up in several directories, first match wins."""

    def __init__(self, directories: Sequence[Path], fallback: str = "index.html") -> None:
        super().__init__(directory=directories[0])
        self.all_directories = [str(d) for d in directories]
        self.fallback = fallback

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404 or posixpath.splitext(path)[1]:
                raise
        for directory in self.all_directories:
            index = Path(directory) / self.fallback
            if index.is_file():
                return FileResponse(index)
        raise HTTPException(status_code=404)


def create_preview_app(settings: Settings) -> Starlette:
    routes = []
    if settings.vendor_path.is_dir():
        routes.append(
            Mount(
                f"/{settings.vendor_dir}",
                app=StaticFiles(directory=settings.vendor_path),
                name="vendor",
            )
        )
    roots = [p for p in (settings.tmp_path, settings.source_path) if p.is_dir()]
    if not roots:
        raise FileNotFoundError(f"Nothing to preview: {settings.source_path} does not exist")
    routes.append(Mount("/", app=LayeredStaticFiles(roots), name="app"))
    return Starlette(routes=routes)


async def serve(settings: Settings) -> None:
    """Serve the preview until interrupted."""
    app = create_preview_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.preview_host,
        port=settings.preview_port,
        log_level="warning",
    )
    logger.info(
        "Preview at http://%s:%d (roots: %s, %s)",
        settings.preview_host,
        settings.preview_port,
        settings.tmp_dir,
        settings.source_dir,
    )
    await uvicorn.Server(config).serve()
