"""Single-record issue detectors.

Every detector has the same shape: it takes the read-only connection and a
crawl id and returns the page reports exhibiting one defect.  Most are thin
wrappers over the store lookups in :mod:`siteaudit.db.pagereports`; thresholds
are read from :data:`siteaudit.config.settings` at call time so tests can
monkeypatch them.
"""

from __future__ import annotations

import sqlite3
from typing import Callable

from siteaudit.config import settings
from siteaudit.db import pagereports as store
from siteaudit.db.models import Heading, PageReport

Detector = Callable[[sqlite3.Connection, int], list[PageReport]]


# ---------------------------------------------------------------------------
# Status codes
# ---------------------------------------------------------------------------

def find_30x(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_by_status_range(conn, crawl_id, 300, 399)


def find_40x(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_by_status_range(conn, crawl_id, 400, 499)


def find_50x(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_by_status_range(conn, crawl_id, 500, 599)


# ---------------------------------------------------------------------------
# Titles and descriptions
# ---------------------------------------------------------------------------

def find_duplicated_title(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_duplicated_field(conn, crawl_id, "title")


def find_duplicated_description(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_duplicated_field(conn, crawl_id, "description")


def find_empty_title(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_empty_field(conn, crawl_id, "title")


def find_short_title(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_short_field(conn, crawl_id, "title", settings.title_min_length)


def find_long_title(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_long_field(conn, crawl_id, "title", settings.title_max_length)


def find_empty_description(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_empty_field(conn, crawl_id, "description")


def find_short_description(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_short_field(
        conn, crawl_id, "description", settings.description_min_length
    )


def find_long_description(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_long_field(
        conn, crawl_id, "description", settings.description_max_length
    )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

def find_little_content(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_little_content(conn, crawl_id, settings.little_content_words)


def find_images_without_alt(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_images_without_alt(conn, crawl_id)


def find_without_h1(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_without_h1(conn, crawl_id)


def find_without_lang(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_without_lang(conn, crawl_id)


def headings_in_order(headings: list[Heading]) -> bool:
    """False when a heading is more than one level deeper than the one before
    it (``h2`` followed by ``h4``).  Going back up any number of levels is fine."""
    previous: int | None = None
    for heading in headings:
        if previous is not None and heading.level > previous + 1:
            return False
        previous = heading.level
    return True


def find_not_valid_headings(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return [
        p
        for p in store.find_by_status_range(conn, crawl_id, 200, 299)
        if not headings_in_order(p.headings)
    ]


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------

def find_http_links(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_with_http_links(conn, crawl_id)


def find_too_many_links(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_too_many_links(conn, crawl_id, settings.max_page_links)


def find_internal_nofollow(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_internal_nofollow(conn, crawl_id)


def find_external_without_nofollow(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return store.find_external_without_nofollow(conn, crawl_id)
