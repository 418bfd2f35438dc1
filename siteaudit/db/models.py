"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class Link:
    url: str
    text: str = ""
    external: bool = False
    nofollow: bool = False


@dataclass
class Hreflang:
    lang: str
    url: str


@dataclass
class Image:
    url: str
    alt: str = ""


@dataclass
class Heading:
    level: int
    text: str


@dataclass
class PageReport:
    id: int | None
    crawl_id: int
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
    headings: list[Heading] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    hreflangs: list[Hreflang] = field(default_factory=list)
    images: list[Image] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400 and bool(self.redirect_url)

    def headings_json(self) -> str:
        """Serialise the heading sequence to a JSON string for storage."""
        return json.dumps([[h.level, h.text] for h in self.headings])


@dataclass
class Project:
    id: int
    url: str
    created_at: int


@dataclass
class Crawl:
    id: int
    project_id: int
    started_at: int
    ended_at: int | None
    issues_end_at: int | None
    total_issues: int
    total_urls: int

    @property
    def finished(self) -> bool:
        return self.ended_at is not None


@dataclass
class Issue:
    crawl_id: int
    error_type: str
    pagereport_id: int
