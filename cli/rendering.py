"""Utilities for rendering issue reports in the CLI."""

from __future__ import annotations

from typing import Any, List, Mapping

from siteaudit.db.models import PageReport
from siteaudit.report import IssuePage, IssueSummary, RedirectWalk, Severity

_ICONS = {
    Severity.CRITICAL: "🔴",
    Severity.ALERT: "🟠",
    Severity.WARNING: "🟡",
}


def render_summary(summary: IssueSummary) -> str:
    """Render issue groups, most severe tier first, with per-tier totals."""
    if not summary.groups:
        return "No issues found."

    lines = [
        f"Critical: {summary.critical}   Alert: {summary.alert}   Warning: {summary.warning}",
        "",
    ]
    for severity in (Severity.CRITICAL, Severity.ALERT, Severity.WARNING):
        groups = summary.by_severity(severity)
        if not groups:
            continue
        lines.append(f"{_ICONS[severity]} {severity.value.upper()}")
        for g in sorted(groups, key=lambda g: (-g.count, g.kind.value)):
            lines.append(f"    {g.count:>6}  {g.kind.value}")
    return "\n".join(lines)


def render_pagereports(reports: List[PageReport]) -> str:
    return "\n".join(f"  [{p.status_code}] {p.url}" for p in reports)


def render_issue_page(result: IssuePage) -> str:
    header = (
        f"{result.kind.value}: page {result.page_index + 1}/{result.total_pages} "
        f"({result.total_count} total)"
    )
    return header + "\n" + render_pagereports(result.page_reports)


def render_redirect_walk(walk: RedirectWalk) -> str:
    """``A → B → C  (2 hops)``; loops are marked, uncrawled ends are flagged."""
    path = " → ".join(walk.urls)
    if walk.loop:
        suffix = "loop"
    elif walk.terminal is None:
        suffix = f"{walk.hops} hops, not crawled"
    else:
        suffix = f"{walk.hops} hops, {walk.terminal.status_code}"
    return f"{path}  ({suffix})"


def render_breakdown(title: str, counts: Mapping[Any, int]) -> str:
    """A titled two-column table of page counts; an empty key shows as ``(none)``."""
    lines = [title]
    for key, n in counts.items():
        lines.append(f"    {n:>6}  {key if key != '' else '(none)'}")
    return "\n".join(lines)
