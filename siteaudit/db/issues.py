"""Operations on the ``issues`` table.

Reads join back to ``pagereports`` on both id and crawl id, so an issue whose
page report is gone (or belongs to another crawl) is never counted or listed.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable

from siteaudit.db.models import Issue, PageReport
from siteaudit.db.pagereports import _row_to_pagereport

_LIVE_ISSUES = """
    FROM   issues i
    JOIN   pagereports p ON p.id = i.pagereport_id AND p.crawl_id = i.crawl_id
"""


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def save_issues(conn: sqlite3.Connection, issues: Iterable[Issue]) -> int:
    """Bulk-insert *issues*; returns the number of rows written.

    Runs inside the caller's transaction (no commit here) so it can be made
    atomic with :func:`siteaudit.db.crawls.save_end_issues`.
    """
    cursor = conn.executemany(
        "INSERT INTO issues (pagereport_id, crawl_id, error_type) VALUES (?, ?, ?)",
        [(i.pagereport_id, i.crawl_id, i.error_type) for i in issues],
    )
    return cursor.rowcount


def delete_issues(conn: sqlite3.Connection, crawl_id: int) -> int:
    """Remove every issue recorded for *crawl_id*; no commit here either."""
    cursor = conn.execute("DELETE FROM issues WHERE crawl_id = ?", (crawl_id,))
    return cursor.rowcount


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def count_issues_by_type(conn: sqlite3.Connection, crawl_id: int) -> dict[str, int]:
    """Map each stored error type of the crawl to its number of issues."""
    rows = conn.execute(
        f"""
        SELECT i.error_type AS error_type, COUNT(*) AS n
        {_LIVE_ISSUES}
        WHERE  i.crawl_id = ?
        GROUP  BY i.error_type
        ORDER  BY i.error_type
        """,  # noqa: S608
        (crawl_id,),
    ).fetchall()
    return {r["error_type"]: r["n"] for r in rows}


def count_issues(conn: sqlite3.Connection, crawl_id: int, error_type: str) -> int:
    row = conn.execute(
        f"SELECT COUNT(*) {_LIVE_ISSUES} WHERE i.crawl_id = ? AND i.error_type = ?",  # noqa: S608
        (crawl_id, error_type),
    ).fetchone()
    return row[0]


def find_pagereports_for_issue(
    conn: sqlite3.Connection,
    crawl_id: int,
    error_type: str,
    limit: int,
    offset: int,
) -> list[PageReport]:
    """One slice of the pages carrying *error_type*, ordered by URL then issue id."""
    rows = conn.execute(
        f"""
        SELECT p.*
        {_LIVE_ISSUES}
        WHERE  i.crawl_id = ? AND i.error_type = ?
        ORDER  BY p.url, i.id
        LIMIT  ? OFFSET ?
        """,  # noqa: S608
        (crawl_id, error_type, limit, offset),
    ).fetchall()
    return [_row_to_pagereport(r) for r in rows]


def find_error_types_by_page(
    conn: sqlite3.Connection, pagereport_id: int, crawl_id: int
) -> list[str]:
    """Distinct error types recorded for one page, sorted."""
    rows = conn.execute(
        f"""
        SELECT DISTINCT i.error_type AS error_type
        {_LIVE_ISSUES}
        WHERE  i.pagereport_id = ? AND i.crawl_id = ?
        ORDER  BY i.error_type
        """,  # noqa: S608
        (pagereport_id, crawl_id),
    ).fetchall()
    return [r["error_type"] for r in rows]
