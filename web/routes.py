"""
web/routes.py -- Static serving for the built single-page frontend.

The SPA does its own client-side routing, so any unknown path must return
index.html and let the browser router take over. Real files inside the build
directory (JS bundles, CSS, favicon) are served as-is.

Rules:
  - Paths under api/ are never answered with index.html; an unknown API path
    is a JSON 404, not an HTML page with status 200.
  - A resolved path must stay inside the build directory. "../" segments that
    escape it are treated as unknown routes.
  - If the build directory does not exist (API-only deployment) every path
    here is 404.

This router is registered last (by asgi.py) so the catch-all never shadows
an API route.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from core.config import get_settings

logger = logging.getLogger("yamerito.web")

router = APIRouter()


def _dist_dir() -> Path:
    return Path(get_settings().frontend_dist_dir).resolve()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Not found."})


@router.get("/{full_path:path}", include_in_schema=False)
async def spa(full_path: str) -> FileResponse:
    """Serve a file from the SPA build, falling back to index.html."""
    if full_path == "api" or full_path.startswith("api/"):
        raise _not_found()

    dist = _dist_dir()
    index = dist / "index.html"
    if not index.is_file():
        raise _not_found()

    if full_path:
        candidate = (dist / full_path).resolve()
        if not candidate.is_relative_to(dist):
            logger.warning("Rejected path outside the frontend build: %r", full_path)
        elif candidate.is_file():
            return FileResponse(candidate)

    return FileResponse(index)
