"""Plain-dict serialisation of engine results for JSON responses."""

from __future__ import annotations

from typing import Any

from siteaudit.db.models import Crawl, PageReport, Project
from siteaudit.report import HreflangGap, IssuePage, IssueSummary, RedirectWalk


def project_dict(project: Project) -> dict[str, Any]:
    return {"id": project.id, "url": project.url, "created_at": project.created_at}


def crawl_dict(crawl: Crawl) -> dict[str, Any]:
    return {
        "id": crawl.id,
        "project_id": crawl.project_id,
        "started_at": crawl.started_at,
        "ended_at": crawl.ended_at,
        "issues_end_at": crawl.issues_end_at,
        "total_issues": crawl.total_issues,
        "total_urls": crawl.total_urls,
    }


def pagereport_dict(report: PageReport, full: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": report.id,
        "url": report.url,
        "status_code": report.status_code,
        "content_type": report.content_type,
        "redirect_url": report.redirect_url,
        "canonical": report.canonical,
        "title": report.title,
        "description": report.description,
        "lang": report.lang,
        "h1": report.h1,
        "words": report.words,
        "size": report.size,
    }
    if full:
        data["headings"] = [[h.level, h.text] for h in report.headings]
        data["links"] = [
            {"url": l.url, "text": l.text, "external": l.external, "nofollow": l.nofollow}
            for l in report.links
        ]
        data["hreflangs"] = [{"lang": h.lang, "url": h.url} for h in report.hreflangs]
        data["images"] = [{"url": i.url, "alt": i.alt} for i in report.images]
    return data


def summary_dict(summary: IssueSummary) -> dict[str, Any]:
    return {
        "groups": [
            {"kind": g.kind.value, "count": g.count, "severity": g.severity.value}
            for g in summary.groups.values()
        ],
        "critical": summary.critical,
        "alert": summary.alert,
        "warning": summary.warning,
        "total": summary.total,
    }


def issue_page_dict(result: IssuePage) -> dict[str, Any]:
    """1-based page numbers; ``next_page`` / ``previous_page`` are 0 when absent."""
    current = result.page_index + 1
    return {
        "kind": result.kind.value,
        "page_reports": [pagereport_dict(p) for p in result.page_reports],
        "current_page": current,
        "next_page": current + 1 if result.has_next else 0,
        "previous_page": current - 1 if result.has_previous else 0,
        "total_pages": result.total_pages,
        "total_count": result.total_count,
    }


def redirect_walk_dict(walk: RedirectWalk) -> dict[str, Any]:
    return {
        "pagereport_id": walk.start.id,
        "url": walk.start.url,
        "urls": walk.urls,
        "hops": walk.hops,
        "loop": walk.loop,
        "terminal_status": walk.terminal.status_code if walk.terminal else None,
    }


def hreflang_gap_dict(gap: HreflangGap) -> dict[str, Any]:
    return {
        "pagereport_id": gap.page.id,
        "url": gap.page.url,
        "lang": gap.lang,
        "alternate_url": gap.url,
    }
