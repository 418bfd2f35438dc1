"""Storage and lookups for the ``pagereports`` table and its child tables.

Page reports are written once per crawled URL by the crawl import and are
read-only afterwards.  The ``find_*`` functions are the filtered lookups the
issue detectors are built on; every one of them is scoped by crawl id and
returns page reports ordered by URL.

Lookup results carry the scalar columns and the heading sequence only.  Use
:func:`get_pagereport` or :func:`list_pagereports` with ``with_relations=True``
when the links, hreflang alternates and images are needed too.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Iterable, Optional

from siteaudit.db.models import Heading, Hreflang, Image, Link, PageReport

# 2xx responses whose content is (or may be) an HTML document.
_HTML_OK = (
    "p.status_code BETWEEN 200 AND 299 "
    "AND (p.content_type = '' OR p.content_type LIKE 'text/html%')"
)

# Columns that may be interpolated into the duplicate / length lookups.
_TEXT_FIELDS = {"title", "description"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_pagereport(row: sqlite3.Row) -> PageReport:
    return PageReport(
        id=row["id"],
        crawl_id=row["crawl_id"],
        url=row["url"],
        status_code=row["status_code"],
        content_type=row["content_type"],
        redirect_url=row["redirect_url"],
        canonical=row["canonical"],
        title=row["title"],
        description=row["description"],
        lang=row["lang"],
        h1=row["h1"],
        words=row["words"],
        size=row["size"],
        headings=[Heading(level=int(lvl), text=text) for lvl, text in json.loads(row["headings"] or "[]")],
    )


def _check_field(field: str) -> str:
    if field not in _TEXT_FIELDS:
        raise ValueError(f"Unsupported page report field {field!r}")
    return field


def _select(conn: sqlite3.Connection, where: str, params: Iterable) -> list[PageReport]:
    rows = conn.execute(
        f"SELECT p.* FROM pagereports p WHERE {where} ORDER BY p.url",  # noqa: S608
        tuple(params),
    ).fetchall()
    return [_row_to_pagereport(r) for r in rows]


def _attach_relations(conn: sqlite3.Connection, reports: list[PageReport]) -> None:
    """Fill ``links``, ``hreflangs`` and ``images`` in place, one query per table."""
    if not reports:
        return
    by_id = {r.id: r for r in reports}
    if len(reports) == 1:
        clause, params = "pagereport_id = ?", (reports[0].id,)
    else:
        crawl_ids = sorted({r.crawl_id for r in reports})
        clause = f"crawl_id IN ({','.join('?' for _ in crawl_ids)})"
        params = tuple(crawl_ids)

    for row in conn.execute(
        f"SELECT * FROM links WHERE {clause} ORDER BY id", params  # noqa: S608
    ):
        report = by_id.get(row["pagereport_id"])
        if report is not None:
            report.links.append(
                Link(
                    url=row["url"],
                    text=row["text"],
                    external=bool(row["external"]),
                    nofollow=bool(row["nofollow"]),
                )
            )

    for row in conn.execute(
        f"SELECT * FROM hreflangs WHERE {clause} ORDER BY id", params  # noqa: S608
    ):
        report = by_id.get(row["pagereport_id"])
        if report is not None:
            report.hreflangs.append(Hreflang(lang=row["lang"], url=row["url"]))

    for row in conn.execute(
        f"SELECT * FROM images WHERE {clause} ORDER BY id", params  # noqa: S608
    ):
        report = by_id.get(row["pagereport_id"])
        if report is not None:
            report.images.append(Image(url=row["url"], alt=row["alt"]))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def save_pagereport(conn: sqlite3.Connection, report: PageReport) -> PageReport:
    """Insert a page report with its links, hreflangs and images.

    Returns a copy carrying the assigned id.
    """
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO pagereports (
                crawl_id, url, status_code, content_type, redirect_url, canonical,
                title, description, lang, h1, words, size, headings
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                report.crawl_id,
                report.url,
                report.status_code,
                report.content_type,
                report.redirect_url,
                report.canonical,
                report.title,
                report.description,
                report.lang,
                report.h1,
                report.words,
                report.size,
                report.headings_json(),
            ),
        )
        pid = cursor.lastrowid
        conn.executemany(
            """
            INSERT INTO links (pagereport_id, crawl_id, url, text, external, nofollow)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (pid, report.crawl_id, link.url, link.text, int(link.external), int(link.nofollow))
                for link in report.links
            ],
        )
        conn.executemany(
            "INSERT INTO hreflangs (pagereport_id, crawl_id, lang, url) VALUES (?, ?, ?, ?)",
            [(pid, report.crawl_id, h.lang, h.url) for h in report.hreflangs],
        )
        conn.executemany(
            "INSERT INTO images (pagereport_id, crawl_id, url, alt) VALUES (?, ?, ?, ?)",
            [(pid, report.crawl_id, img.url, img.alt) for img in report.images],
        )

    return get_pagereport(conn, pid)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_pagereport(conn: sqlite3.Connection, pagereport_id: int) -> Optional[PageReport]:
    """Fetch one page report with all its relations.  ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM pagereports WHERE id = ?", (pagereport_id,)
    ).fetchone()
    if row is None:
        return None
    report = _row_to_pagereport(row)
    _attach_relations(conn, [report])
    return report


def list_pagereports(
    conn: sqlite3.Connection,
    crawl_id: int,
    with_relations: bool = False,
) -> list[PageReport]:
    """Return every page report of a crawl, ordered by URL."""
    reports = _select(conn, "p.crawl_id = ?", (crawl_id,))
    if with_relations:
        _attach_relations(conn, reports)
    return reports


def count_by_content_type(conn: sqlite3.Connection, crawl_id: int) -> dict[str, int]:
    """Number of pages per media type, with any ``; charset=...`` parameters dropped."""
    rows = conn.execute(
        """
        SELECT lower(trim(CASE WHEN instr(content_type, ';') > 0
                               THEN substr(content_type, 1, instr(content_type, ';') - 1)
                               ELSE content_type END)) AS media_type,
               COUNT(*) AS n
        FROM   pagereports
        WHERE  crawl_id = ?
        GROUP  BY media_type
        ORDER  BY media_type
        """,
        (crawl_id,),
    ).fetchall()
    return {r["media_type"]: r["n"] for r in rows}


def count_by_status_code(conn: sqlite3.Connection, crawl_id: int) -> dict[int, int]:
    rows = conn.execute(
        """
        SELECT status_code, COUNT(*) AS n FROM pagereports
        WHERE  crawl_id = ?
        GROUP  BY status_code
        ORDER  BY status_code
        """,
        (crawl_id,),
    ).fetchall()
    return {r["status_code"]: r["n"] for r in rows}


# ---------------------------------------------------------------------------
# Status codes
# ---------------------------------------------------------------------------

def find_by_status_range(
    conn: sqlite3.Connection, crawl_id: int, low: int, high: int
) -> list[PageReport]:
    """Page reports whose status code lies in ``[low, high]``."""
    return _select(
        conn,
        "p.crawl_id = ? AND p.status_code BETWEEN ? AND ?",
        (crawl_id, low, high),
    )


# ---------------------------------------------------------------------------
# Text fields
# ---------------------------------------------------------------------------

def find_duplicated_field(
    conn: sqlite3.Connection, crawl_id: int, field: str
) -> list[PageReport]:
    """Pages sharing the same non-empty *field* value with at least one other page."""
    col = _check_field(field)
    return _select(
        conn,
        f"""
        p.crawl_id = ? AND {_HTML_OK} AND p.{col} IN (
            SELECT p.{col} FROM pagereports p
            WHERE  p.crawl_id = ? AND {_HTML_OK} AND p.{col} != ''
            GROUP  BY p.{col}
            HAVING COUNT(*) > 1
        )
        """,
        (crawl_id, crawl_id),
    )


def find_empty_field(conn: sqlite3.Connection, crawl_id: int, field: str) -> list[PageReport]:
    col = _check_field(field)
    return _select(conn, f"p.crawl_id = ? AND {_HTML_OK} AND p.{col} = ''", (crawl_id,))


def find_short_field(
    conn: sqlite3.Connection, crawl_id: int, field: str, min_length: int
) -> list[PageReport]:
    """Non-empty *field* values shorter than *min_length* characters."""
    col = _check_field(field)
    return _select(
        conn,
        f"p.crawl_id = ? AND {_HTML_OK} AND LENGTH(p.{col}) > 0 AND LENGTH(p.{col}) < ?",
        (crawl_id, min_length),
    )


def find_long_field(
    conn: sqlite3.Connection, crawl_id: int, field: str, max_length: int
) -> list[PageReport]:
    col = _check_field(field)
    return _select(
        conn,
        f"p.crawl_id = ? AND {_HTML_OK} AND LENGTH(p.{col}) > ?",
        (crawl_id, max_length),
    )


def find_little_content(
    conn: sqlite3.Connection, crawl_id: int, min_words: int
) -> list[PageReport]:
    return _select(
        conn, f"p.crawl_id = ? AND {_HTML_OK} AND p.words < ?", (crawl_id, min_words)
    )


# ---------------------------------------------------------------------------
# Missing elements
# ---------------------------------------------------------------------------

def find_without_h1(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return _select(conn, f"p.crawl_id = ? AND {_HTML_OK} AND p.h1 = ''", (crawl_id,))


def find_without_lang(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return _select(conn, f"p.crawl_id = ? AND {_HTML_OK} AND p.lang = ''", (crawl_id,))


def find_images_without_alt(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return _select(
        conn,
        f"""
        p.crawl_id = ? AND {_HTML_OK} AND EXISTS (
            SELECT 1 FROM images i WHERE i.pagereport_id = p.id AND i.alt = ''
        )
        """,
        (crawl_id,),
    )


# ---------------------------------------------------------------------------
# Outbound links
# ---------------------------------------------------------------------------

def find_with_http_links(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    """HTTPS pages linking to plain ``http://`` URLs."""
    return _select(
        conn,
        """
        p.crawl_id = ? AND p.url LIKE 'https://%' AND EXISTS (
            SELECT 1 FROM links l WHERE l.pagereport_id = p.id AND l.url LIKE 'http://%'
        )
        """,
        (crawl_id,),
    )


def find_too_many_links(
    conn: sqlite3.Connection, crawl_id: int, max_links: int
) -> list[PageReport]:
    return _select(
        conn,
        "p.crawl_id = ? AND (SELECT COUNT(*) FROM links l WHERE l.pagereport_id = p.id) > ?",
        (crawl_id, max_links),
    )


def find_internal_nofollow(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return _select(
        conn,
        """
        p.crawl_id = ? AND EXISTS (
            SELECT 1 FROM links l
            WHERE  l.pagereport_id = p.id AND l.external = 0 AND l.nofollow = 1
        )
        """,
        (crawl_id,),
    )


def find_external_without_nofollow(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return _select(
        conn,
        """
        p.crawl_id = ? AND EXISTS (
            SELECT 1 FROM links l
            WHERE  l.pagereport_id = p.id AND l.external = 1 AND l.nofollow = 0
        )
        """,
        (crawl_id,),
    )


# ---------------------------------------------------------------------------
# Relationships between pages
# ---------------------------------------------------------------------------

def find_in_links(conn: sqlite3.Connection, url: str, crawl_id: int) -> list[PageReport]:
    """Pages of the crawl with at least one outbound link to *url*."""
    return _select(
        conn,
        """
        p.crawl_id = ? AND p.id IN (
            SELECT l.pagereport_id FROM links l WHERE l.crawl_id = ? AND l.url = ?
        )
        """,
        (crawl_id, crawl_id, url),
    )


def find_redirecting_to(conn: sqlite3.Connection, url: str, crawl_id: int) -> list[PageReport]:
    """Pages of the crawl answering with a redirect to *url*."""
    return _select(
        conn,
        "p.crawl_id = ? AND p.status_code BETWEEN 300 AND 399 AND p.redirect_url = ?",
        (crawl_id, url),
    )
