"""Operations on the ``projects`` and ``crawls`` tables.

A Project is the site being audited; each crawler run against it produces a
Crawl.  Only the most recent analysed crawl of a project is kept: once a newer
crawl's issues are persisted, older crawls are deleted together with their
page reports, links and issues (``ON DELETE CASCADE``).
"""

from __future__ import annotations

import sqlite3
from time import time
from typing import Optional

from siteaudit.db.models import Crawl, Project
from siteaudit.errors import CrawlNotFoundError


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(id=row["id"], url=row["url"], created_at=row["created_at"])


def _row_to_crawl(row: sqlite3.Row) -> Crawl:
    return Crawl(
        id=row["id"],
        project_id=row["project_id"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
        issues_end_at=row["issues_end_at"],
        total_issues=row["total_issues"],
        total_urls=row["total_urls"],
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def create_project(conn: sqlite3.Connection, url: str) -> Project:
    """Insert a new project for the site rooted at *url* and return it."""
    now = int(time())
    with conn:
        cursor = conn.execute(
            "INSERT INTO projects (url, created_at) VALUES (?, ?)", (url, now)
        )
    return get_project(conn, cursor.lastrowid)  # type: ignore[return-value]


def get_project(conn: sqlite3.Connection, project_id: int) -> Optional[Project]:
    """Fetch a project by id.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM projects WHERE id = ?", (project_id,)
    ).fetchone()
    return _row_to_project(row) if row else None


def find_project_by_url(conn: sqlite3.Connection, url: str) -> Optional[Project]:
    row = conn.execute(
        "SELECT * FROM projects WHERE url = ? ORDER BY id LIMIT 1", (url,)
    ).fetchone()
    return _row_to_project(row) if row else None


def list_projects(conn: sqlite3.Connection) -> list[Project]:
    rows = conn.execute("SELECT * FROM projects ORDER BY id").fetchall()
    return [_row_to_project(r) for r in rows]


# ---------------------------------------------------------------------------
# Crawls
# ---------------------------------------------------------------------------

def create_crawl(conn: sqlite3.Connection, project_id: int) -> Crawl:
    """Start a new crawl for *project_id*.  ``ended_at`` stays NULL until
    :func:`finish_crawl` is called."""
    now = int(time())
    with conn:
        cursor = conn.execute(
            "INSERT INTO crawls (project_id, started_at) VALUES (?, ?)",
            (project_id, now),
        )
    return get_crawl(conn, cursor.lastrowid)  # type: ignore[return-value]


def get_crawl(conn: sqlite3.Connection, crawl_id: int) -> Optional[Crawl]:
    """Fetch a crawl by id.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM crawls WHERE id = ?", (crawl_id,)).fetchone()
    return _row_to_crawl(row) if row else None


def require_crawl(conn: sqlite3.Connection, crawl_id: int) -> Crawl:
    """Like :func:`get_crawl` but raises :class:`CrawlNotFoundError`."""
    crawl = get_crawl(conn, crawl_id)
    if crawl is None:
        raise CrawlNotFoundError(crawl_id)
    return crawl


def get_last_crawl(conn: sqlite3.Connection, project_id: int) -> Optional[Crawl]:
    """Return the most recent crawl of a project, finished or not."""
    row = conn.execute(
        "SELECT * FROM crawls WHERE project_id = ? ORDER BY id DESC LIMIT 1",
        (project_id,),
    ).fetchone()
    return _row_to_crawl(row) if row else None


def finish_crawl(conn: sqlite3.Connection, crawl_id: int) -> Crawl:
    """Mark crawling as done, making the crawl eligible for analysis.

    ``total_urls`` is recomputed from the stored page reports.
    """
    now = int(time())
    with conn:
        conn.execute(
            """
            UPDATE crawls
            SET    ended_at = ?,
                   total_urls = (SELECT COUNT(*) FROM pagereports WHERE crawl_id = ?)
            WHERE  id = ?
            """,
            (now, crawl_id, crawl_id),
        )
    return get_crawl(conn, crawl_id)  # type: ignore[return-value]


def save_end_issues(
    conn: sqlite3.Connection,
    crawl_id: int,
    ended_at: int,
    total_issues: int,
) -> None:
    """Record when issue creation finished and how many issues were found.

    Does not open its own transaction so callers can make it atomic with the
    bulk issue insert.
    """
    conn.execute(
        "UPDATE crawls SET issues_end_at = ?, total_issues = ? WHERE id = ?",
        (ended_at, total_issues, crawl_id),
    )


def delete_previous_crawls(
    conn: sqlite3.Connection,
    project_id: int,
    keep_crawl_id: int,
) -> int:
    """Delete every crawl of *project_id* older than *keep_crawl_id*.

    Returns the number of crawls removed.
    """
    with conn:
        cursor = conn.execute(
            "DELETE FROM crawls WHERE project_id = ? AND id < ?",
            (project_id, keep_crawl_id),
        )
    return cursor.rowcount
