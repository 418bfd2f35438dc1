"""Crawl import: loads crawler output into the page report store.

The crawler itself lives outside this package.  It hands over a finished crawl
as one JSON document::

    {
      "project_url": "https://example.com/",
      "pages": [
        {"url": "https://example.com/", "status_code": 200, "title": "...",
         "headings": [[1, "Welcome"]], "links": [{"url": "...", "external": false}],
         "hreflangs": [{"lang": "fr", "url": "..."}], "images": [{"url": "...", "alt": ""}]},
        ...
      ]
    }

``import_crawl`` validates it, creates (or reuses) the project, writes one page
report per entry and marks the crawl finished so it can be analysed.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from siteaudit.db.crawls import create_crawl, create_project, find_project_by_url, finish_crawl
from siteaudit.db.models import Crawl, Heading, Hreflang, Image, Link, PageReport
from siteaudit.db.pagereports import save_pagereport

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class LinkIn(BaseModel):
    url: str
    text: str = ""
    external: bool = False
    nofollow: bool = False


class HreflangIn(BaseModel):
    lang: str
    url: str


class ImageIn(BaseModel):
    url: str
    alt: str = ""


class PageReportIn(BaseModel):
    url: str
    status_code: int
    content_type: str = ""
    redirect_url: str = ""
    canonical: str = ""
    title: str = ""
    description: str = ""
    lang: str = ""
    h1: str = ""
    words: int = 0
    size: int = 0
    headings: list[tuple[int, str]] = Field(default_factory=list)
    links: list[LinkIn] = Field(default_factory=list)
    hreflangs: list[HreflangIn] = Field(default_factory=list)
    images: list[ImageIn] = Field(default_factory=list)

    def to_pagereport(self, crawl_id: int) -> PageReport:
        h1 = self.h1 or next((text for level, text in self.headings if level == 1), "")
        return PageReport(
            id=None,
            crawl_id=crawl_id,
            url=self.url,
            status_code=self.status_code,
            content_type=self.content_type,
            redirect_url=self.redirect_url,
            canonical=self.canonical,
            title=self.title,
            description=self.description,
            lang=self.lang,
            h1=h1,
            words=self.words,
            size=self.size,
            headings=[Heading(level=level, text=text) for level, text in self.headings],
            links=[Link(**link.model_dump()) for link in self.links],
            hreflangs=[Hreflang(**h.model_dump()) for h in self.hreflangs],
            images=[Image(**img.model_dump()) for img in self.images],
        )


class CrawlImport(BaseModel):
    project_url: str
    pages: list[PageReportIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_crawl_file(path: Path) -> CrawlImport:
    """Parse and validate a crawl JSON file.

    Raises:
        pydantic.ValidationError: If the document does not match the schema.
    """
    return CrawlImport.model_validate_json(Path(path).read_text(encoding="utf-8"))


def import_crawl(
    conn: sqlite3.Connection,
    data: CrawlImport,
    project_id: Optional[int] = None,
) -> Crawl:
    """Store *data* as a new finished crawl.

    Args:
        conn: Open, initialised DB connection.
        data: The validated crawl document.
        project_id: Attach the crawl to this project.  When omitted the
            project is looked up by ``data.project_url`` and created if
            missing.

    Returns:
        The finished :class:`~siteaudit.db.models.Crawl`.
    """
    if project_id is None:
        project = find_project_by_url(conn, data.project_url) or create_project(
            conn, data.project_url
        )
        project_id = project.id

    crawl = create_crawl(conn, project_id)
    seen: set[str] = set()
    for page in data.pages:
        if page.url in seen:
            log.warning("Skipping duplicate page %s in crawl %d", page.url, crawl.id)
            continue
        seen.add(page.url)
        save_pagereport(conn, page.to_pagereport(crawl.id))

    crawl = finish_crawl(conn, crawl.id)
    log.info("Imported %d page(s) into crawl %d", crawl.total_urls, crawl.id)
    return crawl
