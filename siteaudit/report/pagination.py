"""Fixed-size slices of the pages carrying one defect kind.

Page indexes are zero-based here.  The API and CLI translate to the 1-based
page numbers users see.
"""

from __future__ import annotations

import math
import sqlite3
from dataclasses import dataclass

from siteaudit.db.crawls import require_crawl
from siteaudit.db.issues import count_issues, find_pagereports_for_issue
from siteaudit.db.models import PageReport
from siteaudit.errors import InputError, PageOutOfRangeError, store_guard
from siteaudit.report.taxonomy import DefectKind, parse_kind


@dataclass
class IssuePage:
    kind: DefectKind
    page_reports: list[PageReport]
    page_index: int
    page_size: int
    total_count: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page_index + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0


def _check_page_size(page_size: int) -> None:
    if page_size < 1:
        raise InputError(f"Page size must be at least 1, got {page_size}")


def total_pages(
    conn: sqlite3.Connection,
    crawl_id: int,
    kind: DefectKind | str,
    page_size: int,
) -> int:
    """``ceil(matches / page_size)`` for *kind* in *crawl_id*."""
    _check_page_size(page_size)
    kind = parse_kind(kind)
    with store_guard():
        require_crawl(conn, crawl_id)
        return math.ceil(count_issues(conn, crawl_id, kind.value) / page_size)


def page(
    conn: sqlite3.Connection,
    crawl_id: int,
    kind: DefectKind | str,
    page_index: int,
    page_size: int,
) -> IssuePage:
    """Return slice *page_index* of the pages carrying *kind*.

    Pages are ordered by URL, then by issue id, so the same arguments against
    an unchanged crawl always yield the same slice.

    Raises:
        UnknownDefectKindError: *kind* is not in the taxonomy.
        CrawlNotFoundError: *crawl_id* does not exist.
        PageOutOfRangeError: *page_index* is outside ``[0, total_pages)``.
        InputError: *page_size* is less than 1.
    """
    _check_page_size(page_size)
    kind = parse_kind(kind)
    with store_guard():
        require_crawl(conn, crawl_id)
        count = count_issues(conn, crawl_id, kind.value)
        pages = math.ceil(count / page_size)
        if not 0 <= page_index < pages:
            raise PageOutOfRangeError(page_index, pages)
        reports = find_pagereports_for_issue(
            conn, crawl_id, kind.value, limit=page_size, offset=page_index * page_size
        )

    return IssuePage(
        kind=kind,
        page_reports=reports,
        page_index=page_index,
        page_size=page_size,
        total_count=count,
        total_pages=pages,
    )
