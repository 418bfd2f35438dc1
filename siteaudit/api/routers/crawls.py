"""Crawl-scoped issue endpoints.

Routes
------
POST /crawls/{cid}/analysis             Start issue detection in the background (202)
GET  /crawls/{cid}/issues               Issue groups and severity totals, page counts per media type and status code
GET  /crawls/{cid}/issues/{kind}?p=N    Page N (1-based) of the pages carrying *kind*
GET  /crawls/{cid}/resources/{rid}      One page report; ?tab=details|inlinks|redirections
GET  /crawls/{cid}/inlinks?url=...      Pages linking to a URL
GET  /crawls/{cid}/redirect-chains      Multi-hop and looping redirects
GET  /crawls/{cid}/hreflang-gaps        Hreflang alternates missing a return link
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from siteaudit.api.serializers import (
    crawl_dict,
    hreflang_gap_dict,
    issue_page_dict,
    pagereport_dict,
    redirect_walk_dict,
    summary_dict,
)
from siteaudit.config import settings
from siteaudit.db.crawls import require_crawl
from siteaudit.db.pagereports import count_by_content_type, count_by_status_code, get_pagereport
from siteaudit.errors import (
    AnalysisInProgressError,
    AuditError,
    CrawlNotFoundError,
    PageOutOfRangeError,
    StoreUnavailableError,
    UnknownDefectKindError,
    store_guard,
)
from siteaudit.report import (
    aggregate,
    error_types_for_page,
    hreflang_gaps_for,
    inbound_links_for,
    page,
    redirect_chains_for,
    redirects_to,
    start_analysis,
)

router = APIRouter()

_TABS = ("details", "inlinks", "redirections")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _http_error(exc: AuditError) -> HTTPException:
    if isinstance(exc, (CrawlNotFoundError, UnknownDefectKindError, PageOutOfRangeError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AnalysisInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/{crawl_id}/analysis", status_code=202, response_model=dict[str, Any])
def start_analysis_endpoint(crawl_id: int, request: Request) -> dict[str, Any]:
    """Run the issue detectors for a finished crawl without waiting for them."""
    conn = request.app.state.db
    try:
        start_analysis(conn, crawl_id)
    except AuditError as exc:
        raise _http_error(exc) from exc
    return {"crawl_id": crawl_id, "status": "started"}


@router.get("/{crawl_id}/issues", response_model=dict[str, Any])
def issues_summary_endpoint(crawl_id: int, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    try:
        summary = aggregate(conn, crawl_id)
        with store_guard():
            crawl = require_crawl(conn, crawl_id)
            media_count = count_by_content_type(conn, crawl_id)
            status_code_count = count_by_status_code(conn, crawl_id)
    except AuditError as exc:
        raise _http_error(exc) from exc
    return {
        "crawl": crawl_dict(crawl),
        **summary_dict(summary),
        "media_count": media_count,
        "status_code_count": {str(code): n for code, n in status_code_count.items()},
    }


@router.get("/{crawl_id}/issues/{kind}", response_model=dict[str, Any])
def issues_page_endpoint(
    crawl_id: int,
    kind: str,
    request: Request,
    p: int = Query(1, ge=1, description="1-based page number."),
) -> dict[str, Any]:
    conn = request.app.state.db
    try:
        result = page(conn, crawl_id, kind, p - 1, settings.issues_page_size)
    except AuditError as exc:
        raise _http_error(exc) from exc
    return {"crawl_id": crawl_id, **issue_page_dict(result)}


@router.get("/{crawl_id}/resources/{pagereport_id}", response_model=dict[str, Any])
def resource_endpoint(
    crawl_id: int,
    pagereport_id: int,
    request: Request,
    tab: str = "details",
) -> dict[str, Any]:
    """One page report with the defect kinds found on it.

    ``tab=inlinks`` adds the pages linking to it, ``tab=redirections`` the
    pages redirecting to it.
    """
    if tab not in _TABS:
        raise HTTPException(status_code=400, detail=f"Unknown tab {tab!r}.")
    conn = request.app.state.db
    try:
        with store_guard():
            report = get_pagereport(conn, pagereport_id)
        if report is None or report.crawl_id != crawl_id:
            raise HTTPException(status_code=404, detail=f"Resource '{pagereport_id}' not found.")

        data: dict[str, Any] = {
            "page_report": pagereport_dict(report, full=True),
            "error_types": [k.value for k in error_types_for_page(conn, pagereport_id, crawl_id)],
            "tab": tab,
            "in_links": [],
            "redirects": [],
        }
        if tab == "inlinks":
            data["in_links"] = [pagereport_dict(p) for p in inbound_links_for(conn, report.url, crawl_id)]
        elif tab == "redirections":
            data["redirects"] = [pagereport_dict(p) for p in redirects_to(conn, report.url, crawl_id)]
    except AuditError as exc:
        raise _http_error(exc) from exc
    return data


@router.get("/{crawl_id}/inlinks", response_model=list[dict[str, Any]])
def inlinks_endpoint(crawl_id: int, request: Request, url: str = Query(...)) -> list[dict[str, Any]]:
    conn = request.app.state.db
    try:
        return [pagereport_dict(p) for p in inbound_links_for(conn, url, crawl_id)]
    except AuditError as exc:
        raise _http_error(exc) from exc


@router.get("/{crawl_id}/redirect-chains", response_model=list[dict[str, Any]])
def redirect_chains_endpoint(crawl_id: int, request: Request) -> list[dict[str, Any]]:
    conn = request.app.state.db
    try:
        return [redirect_walk_dict(w) for w in redirect_chains_for(conn, crawl_id)]
    except AuditError as exc:
        raise _http_error(exc) from exc


@router.get("/{crawl_id}/hreflang-gaps", response_model=list[dict[str, Any]])
def hreflang_gaps_endpoint(crawl_id: int, request: Request) -> list[dict[str, Any]]:
    conn = request.app.state.db
    try:
        return [hreflang_gap_dict(g) for g in hreflang_gaps_for(conn, crawl_id)]
    except AuditError as exc:
        raise _http_error(exc) from exc
