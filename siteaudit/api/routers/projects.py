"""Project endpoints.

Routes
------
GET  /projects                  List all projects with their last crawl
POST /projects                  Create a new project
POST /projects/{id}/crawls      Import a finished crawl for this project
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from siteaudit.api.serializers import crawl_dict, project_dict
from siteaudit.db.crawls import create_project, get_last_crawl, get_project, list_projects
from siteaudit.ingest import CrawlImport, import_crawl

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ProjectCreate(BaseModel):
    url: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[dict[str, Any]])
def list_projects_endpoint(request: Request) -> list[dict[str, Any]]:
    """Return all projects, each with its most recent crawl (or ``null``)."""
    conn = request.app.state.db
    result = []
    for p in list_projects(conn):
        crawl = get_last_crawl(conn, p.id)
        result.append({**project_dict(p), "crawl": crawl_dict(crawl) if crawl else None})
    return result


@router.post("", status_code=201, response_model=dict[str, Any])
def create_project_endpoint(body: ProjectCreate, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    return project_dict(create_project(conn, body.url))


@router.post("/{project_id}/crawls", status_code=201, response_model=dict[str, Any])
def import_crawl_endpoint(
    project_id: int,
    body: CrawlImport,
    request: Request,
) -> dict[str, Any]:
    """Store a finished crawl for the project.  Analysis is started separately
    with ``POST /crawls/{id}/analysis``."""
    conn = request.app.state.db
    if get_project(conn, project_id) is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    crawl = import_crawl(conn, body, project_id=project_id)
    return crawl_dict(crawl)
