"""Exceptions raised by the issue engine.

Input errors are the caller's fault and are never retried.
:class:`StoreUnavailableError` is retryable; the engine itself never retries.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator


class AuditError(Exception):
    """Base class for every error raised by SiteAudit."""


class InputError(AuditError):
    """Invalid caller input (unknown ids, bad page numbers, ...)."""


class CrawlNotFoundError(InputError):
    def __init__(self, crawl_id: int) -> None:
        super().__init__(f"Crawl not found: {crawl_id}")
        self.crawl_id = crawl_id


class CrawlNotFinishedError(InputError):
    def __init__(self, crawl_id: int) -> None:
        super().__init__(f"Crawl {crawl_id} has not finished crawling yet")
        self.crawl_id = crawl_id


class UnknownDefectKindError(InputError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown defect kind: {kind!r}")
        self.kind = kind


class PageOutOfRangeError(InputError):
    def __init__(self, page_index: int, total_pages: int) -> None:
        super().__init__(
            f"Page index {page_index} is outside [0, {total_pages})"
        )
        self.page_index = page_index
        self.total_pages = total_pages


class StoreUnavailableError(AuditError):
    """The page report store could not be queried.  Safe to retry."""


class AnalysisInProgressError(AuditError):
    """Another analysis already holds the lease for this project."""

    def __init__(self, project_id: int) -> None:
        super().__init__(f"An analysis is already running for project {project_id}")
        self.project_id = project_id


@contextmanager
def store_guard() -> Iterator[None]:
    """Re-raise SQLite operational failures (locked, missing file, I/O) as
    :class:`StoreUnavailableError`."""
    try:
        yield
    except sqlite3.OperationalError as exc:
        raise StoreUnavailableError(str(exc)) from exc
