"""Queries that follow relationships between the pages of one crawl.

Unlike the single-record detectors, these load the crawl's page reports once
into a :class:`CrawlGraph` (an index by URL) and walk it in memory.  Nothing
here issues network requests; a URL that was not crawled is simply absent
from the graph.

URLs are compared without their fragment (``/a#top`` and ``/a`` are the same
page).
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urldefrag

from siteaudit.db.crawls import require_crawl
from siteaudit.db.models import PageReport
from siteaudit.db.pagereports import find_in_links, find_redirecting_to, list_pagereports
from siteaudit.errors import store_guard

log = logging.getLogger(__name__)


def _url_key(url: str) -> str:
    return urldefrag(url.strip())[0]


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

@dataclass
class CrawlGraph:
    pages: list[PageReport]
    by_url: dict[str, PageReport]

    @classmethod
    def from_pages(cls, pages: list[PageReport]) -> CrawlGraph:
        by_url: dict[str, PageReport] = {}
        for page in pages:
            by_url.setdefault(_url_key(page.url), page)
        return cls(pages=pages, by_url=by_url)

    @classmethod
    def load(
        cls,
        conn: sqlite3.Connection,
        crawl_id: int,
        with_relations: bool = False,
    ) -> CrawlGraph:
        return cls.from_pages(list_pagereports(conn, crawl_id, with_relations=with_relations))

    def get(self, url: str) -> Optional[PageReport]:
        return self.by_url.get(_url_key(url))


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------

@dataclass
class RedirectWalk:
    """The path followed from one redirecting page.

    ``urls`` starts with the page's own URL and lists every target visited.
    ``terminal`` is the first non-redirect page reached, or ``None`` when the
    walk ended on a URL that was not crawled or on a loop.
    """

    start: PageReport
    urls: list[str]
    hops: int
    loop: bool
    terminal: Optional[PageReport]

    @property
    def is_chain(self) -> bool:
        return not self.loop and self.hops >= 2


def walk_redirects(graph: CrawlGraph, start: PageReport) -> RedirectWalk:
    """Follow redirect targets from *start* until a non-redirect, an uncrawled
    URL, or a URL already visited in this walk.

    The number of hops is capped at the number of pages in the graph, so the
    walk terminates even if the visited set were bypassed by malformed data.
    """
    urls = [start.url]
    seen = {_url_key(start.url)}
    limit = len(graph.pages)
    hops = 0
    current: Optional[PageReport] = start

    while current is not None and current.is_redirect and hops <= limit:
        hops += 1
        target = current.redirect_url
        urls.append(target)
        key = _url_key(target)
        if key in seen:
            return RedirectWalk(start=start, urls=urls, hops=hops, loop=True, terminal=None)
        seen.add(key)
        current = graph.get(target)

    if current is not None and current.is_redirect:
        # Cap reached without resolving.
        return RedirectWalk(start=start, urls=urls, hops=hops, loop=True, terminal=None)

    return RedirectWalk(start=start, urls=urls, hops=hops, loop=False, terminal=current)


def walk_all_redirects(graph: CrawlGraph) -> list[RedirectWalk]:
    return [walk_redirects(graph, page) for page in graph.pages if page.is_redirect]


def find_redirect_chains(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    """Redirecting pages that need two or more hops to resolve."""
    graph = CrawlGraph.load(conn, crawl_id)
    return [w.start for w in walk_all_redirects(graph) if w.is_chain]


def find_redirect_loops(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    """Redirecting pages whose walk comes back to a URL it already visited."""
    graph = CrawlGraph.load(conn, crawl_id)
    return [w.start for w in walk_all_redirects(graph) if w.loop]


def redirect_chains_for(conn: sqlite3.Connection, crawl_id: int) -> list[RedirectWalk]:
    """Every multi-hop or looping redirect walk of the crawl, ordered by start URL."""
    with store_guard():
        require_crawl(conn, crawl_id)
        graph = CrawlGraph.load(conn, crawl_id)
    return [w for w in walk_all_redirects(graph) if w.is_chain or w.loop]


# ---------------------------------------------------------------------------
# Inbound links
# ---------------------------------------------------------------------------

def inbound_links_for(conn: sqlite3.Connection, url: str, crawl_id: int) -> list[PageReport]:
    """Pages of the crawl linking to *url*."""
    with store_guard():
        require_crawl(conn, crawl_id)
        return find_in_links(conn, url, crawl_id)


def redirects_to(conn: sqlite3.Connection, url: str, crawl_id: int) -> list[PageReport]:
    """Pages of the crawl redirecting to *url*."""
    with store_guard():
        require_crawl(conn, crawl_id)
        return find_redirecting_to(conn, url, crawl_id)


# ---------------------------------------------------------------------------
# Hreflang
# ---------------------------------------------------------------------------

@dataclass
class HreflangGap:
    """*page* declares *url* as its *lang* alternate, but that page does not
    declare *page* back."""

    page: PageReport
    lang: str
    url: str


def find_hreflang_gaps(graph: CrawlGraph) -> list[HreflangGap]:
    gaps: list[HreflangGap] = []
    for page in graph.pages:
        page_key = _url_key(page.url)
        for alternate in page.hreflangs:
            if _url_key(alternate.url) == page_key:
                continue
            peer = graph.get(alternate.url)
            if peer is None:
                continue
            if not any(_url_key(h.url) == page_key for h in peer.hreflangs):
                gaps.append(HreflangGap(page=page, lang=alternate.lang, url=alternate.url))
    return gaps


def find_missing_hreflang_return_links(
    conn: sqlite3.Connection, crawl_id: int
) -> list[PageReport]:
    graph = CrawlGraph.load(conn, crawl_id, with_relations=True)
    pages: dict[int, PageReport] = {}
    for gap in find_hreflang_gaps(graph):
        pages.setdefault(gap.page.id, gap.page)  # type: ignore[arg-type]
    return list(pages.values())


def hreflang_gaps_for(conn: sqlite3.Connection, crawl_id: int) -> list[HreflangGap]:
    with store_guard():
        require_crawl(conn, crawl_id)
        graph = CrawlGraph.load(conn, crawl_id, with_relations=True)
    return find_hreflang_gaps(graph)


# ---------------------------------------------------------------------------
# Canonicals
# ---------------------------------------------------------------------------

def find_canonicalized_to_non_canonical(
    conn: sqlite3.Connection, crawl_id: int
) -> list[PageReport]:
    """Pages canonicalised to a crawled page that is itself canonicalised elsewhere."""
    graph = CrawlGraph.load(conn, crawl_id)
    flagged: list[PageReport] = []
    for page in graph.pages:
        if not page.canonical or _url_key(page.canonical) == _url_key(page.url):
            continue
        target = graph.get(page.canonical)
        if target is None or not target.canonical:
            continue
        if _url_key(target.canonical) != _url_key(target.url):
            log.debug("%s -> %s -> %s", page.url, target.url, target.canonical)
            flagged.append(page)
    return flagged
