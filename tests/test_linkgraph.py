"""Tests for the link-graph queries: redirects, inbound links, hreflang and
canonicals."""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from siteaudit.db.connection import get_connection
from siteaudit.db.crawls import create_crawl, create_project
from siteaudit.db.migrations import init_db
from siteaudit.db.models import Hreflang, Link, PageReport
from siteaudit.db.pagereports import save_pagereport
from siteaudit.errors import CrawlNotFoundError
from siteaudit.report import linkgraph
from siteaudit.report.linkgraph import CrawlGraph, walk_redirects

BASE = "https://example.com"


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def crawl_id(conn: sqlite3.Connection) -> int:
    project = create_project(conn, BASE + "/")
    return create_crawl(conn, project.id).id


def _save(conn: sqlite3.Connection, crawl_id: int, path: str, **kwargs) -> PageReport:
    kwargs.setdefault("status_code", 200)
    return save_pagereport(conn, PageReport(id=None, crawl_id=crawl_id, url=BASE + path, **kwargs))


def _redirect(conn: sqlite3.Connection, crawl_id: int, path: str, target: str) -> PageReport:
    return _save(conn, crawl_id, path, status_code=301, redirect_url=BASE + target)


def _urls(reports: list[PageReport]) -> list[str]:
    return [r.url[len(BASE):] for r in reports]


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------

class TestRedirectChains:
    def test_two_hops_is_a_chain(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/c")
        _save(conn, crawl_id, "/c")
        assert _urls(linkgraph.find_redirect_chains(conn, crawl_id)) == ["/a"]
        assert linkgraph.find_redirect_loops(conn, crawl_id) == []

    def test_single_hop_is_not_a_chain(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _save(conn, crawl_id, "/b")
        assert linkgraph.find_redirect_chains(conn, crawl_id) == []

    def test_chain_into_uncrawled_url(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/elsewhere")
        graph = CrawlGraph.load(conn, crawl_id)
        walk = walk_redirects(graph, graph.get(BASE + "/a"))
        assert walk.hops == 2
        assert walk.terminal is None
        assert walk.is_chain

    def test_walk_records_path(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/c")
        _save(conn, crawl_id, "/c")
        graph = CrawlGraph.load(conn, crawl_id)
        walk = walk_redirects(graph, graph.get(BASE + "/a"))
        assert walk.urls == [BASE + "/a", BASE + "/b", BASE + "/c"]
        assert walk.terminal.url == BASE + "/c"


class TestRedirectLoops:
    def test_two_page_loop_terminates(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/a")
        assert _urls(linkgraph.find_redirect_loops(conn, crawl_id)) == ["/a", "/b"]
        assert linkgraph.find_redirect_chains(conn, crawl_id) == []

    def test_self_redirect(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/a")
        assert _urls(linkgraph.find_redirect_loops(conn, crawl_id)) == ["/a"]

    def test_fragment_is_ignored(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b#top")
        _redirect(conn, crawl_id, "/b", "/a")
        assert _urls(linkgraph.find_redirect_loops(conn, crawl_id)) == ["/a", "/b"]

    def test_entry_into_loop_is_flagged(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/start", "/a")
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/a")
        assert _urls(linkgraph.find_redirect_loops(conn, crawl_id)) == ["/a", "/b", "/start"]

    def test_redirect_chains_for_lists_chains_and_loops(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/a", "/b")
        _redirect(conn, crawl_id, "/b", "/c")
        _save(conn, crawl_id, "/c")
        _redirect(conn, crawl_id, "/x", "/y")
        _redirect(conn, crawl_id, "/y", "/x")
        _redirect(conn, crawl_id, "/single", "/c")
        walks = linkgraph.redirect_chains_for(conn, crawl_id)
        assert [(w.start.url[len(BASE):], w.loop) for w in walks] == [
            ("/a", False),
            ("/x", True),
            ("/y", True),
        ]

    def test_unknown_crawl(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(CrawlNotFoundError):
            linkgraph.redirect_chains_for(conn, 999)


# ---------------------------------------------------------------------------
# Inbound links
# ---------------------------------------------------------------------------

class TestInboundLinks:
    def test_each_linking_page_listed_once(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        target = BASE + "/t"
        _save(conn, crawl_id, "/a", links=[Link(url=target), Link(url=target)])
        _save(conn, crawl_id, "/b", links=[Link(url=target)])
        _save(conn, crawl_id, "/c", links=[Link(url=BASE + "/other")])
        assert _urls(linkgraph.inbound_links_for(conn, target, crawl_id)) == ["/a", "/b"]

    def test_no_inbound_links(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        assert linkgraph.inbound_links_for(conn, BASE + "/orphan", crawl_id) == []

    def test_redirects_to(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _redirect(conn, crawl_id, "/old", "/new")
        _save(conn, crawl_id, "/new")
        assert _urls(linkgraph.redirects_to(conn, BASE + "/new", crawl_id)) == ["/old"]

    def test_unknown_crawl(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(CrawlNotFoundError):
            linkgraph.inbound_links_for(conn, BASE + "/", 999)


# ---------------------------------------------------------------------------
# Hreflang
# ---------------------------------------------------------------------------

class TestHreflang:
    def test_reciprocal_pair_is_clean(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(conn, crawl_id, "/en", hreflangs=[Hreflang("fr", BASE + "/fr")])
        _save(conn, crawl_id, "/fr", hreflangs=[Hreflang("en", BASE + "/en")])
        assert linkgraph.find_missing_hreflang_return_links(conn, crawl_id) == []

    def test_missing_return_link(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(conn, crawl_id, "/en", hreflangs=[Hreflang("fr", BASE + "/fr"), Hreflang("de", BASE + "/de")])
        _save(conn, crawl_id, "/fr", hreflangs=[Hreflang("en", BASE + "/en")])
        _save(conn, crawl_id, "/de")
        assert _urls(linkgraph.find_missing_hreflang_return_links(conn, crawl_id)) == ["/en"]

        gaps = linkgraph.hreflang_gaps_for(conn, crawl_id)
        assert [(g.page.url, g.lang, g.url) for g in gaps] == [(BASE + "/en", "de", BASE + "/de")]

    def test_self_reference_and_uncrawled_peer_ignored(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(
            conn,
            crawl_id,
            "/en",
            hreflangs=[Hreflang("en", BASE + "/en"), Hreflang("es", "https://other.example/es")],
        )
        assert linkgraph.find_missing_hreflang_return_links(conn, crawl_id) == []

    def test_page_flagged_once_for_several_gaps(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(conn, crawl_id, "/en", hreflangs=[Hreflang("fr", BASE + "/fr"), Hreflang("de", BASE + "/de")])
        _save(conn, crawl_id, "/fr")
        _save(conn, crawl_id, "/de")
        assert _urls(linkgraph.find_missing_hreflang_return_links(conn, crawl_id)) == ["/en"]


# ---------------------------------------------------------------------------
# Canonicals
# ---------------------------------------------------------------------------

class TestCanonicals:
    def test_canonical_to_non_canonical(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(conn, crawl_id, "/a", canonical=BASE + "/b")
        _save(conn, crawl_id, "/b", canonical=BASE + "/c")
        _save(conn, crawl_id, "/c", canonical=BASE + "/c")
        assert _urls(linkgraph.find_canonicalized_to_non_canonical(conn, crawl_id)) == ["/a"]

    def test_canonical_to_self_canonical_page(self, conn: sqlite3.Connection, crawl_id: int) -> None:
        _save(conn, crawl_id, "/a", canonical=BASE + "/b")
        _save(conn, crawl_id, "/b", canonical=BASE + "/b")
        _save(conn, crawl_id, "/c", canonical=BASE + "/missing")
        assert linkgraph.find_canonicalized_to_non_canonical(conn, crawl_id) == []
