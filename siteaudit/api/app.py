"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  On
shutdown it closes the connection cleanly.

Routers
-------
All endpoint groups are mounted under their respective path prefix:

    /projects  : project creation and crawl import
    /crawls    : analysis trigger, issue summaries, issue pages, resources
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siteaudit.db import get_connection, init_db

from siteaudit.api.routers import crawls as crawls_router
from siteaudit.api.routers import projects as projects_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="SiteAudit API",
        description=(
            "JSON interface to the SiteAudit issue engine. "
            "Imports finished crawls, runs the issue detectors in the "
            "background and serves severity-ranked issue reports page by page."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects_router.router, prefix="/projects", tags=["projects"])
    app.include_router(crawls_router.router, prefix="/crawls", tags=["crawls"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn siteaudit.api.app:app --reload
app = create_app()
