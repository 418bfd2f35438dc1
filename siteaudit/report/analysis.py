"""End-of-crawl analysis: detect issues, persist them, retire the old crawl.

``run_analysis`` does the work synchronously.  ``start_analysis`` validates
the crawl and takes the project lease in the caller's thread, then runs the
rest on a background executor with its own DB connection and returns the
``Future`` immediately.

At most one analysis per project runs at a time.  A second request while the
lease is held is rejected with :class:`AnalysisInProgressError`.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from time import time
from typing import Iterator, Optional

from siteaudit.config import settings
from siteaudit.db import get_connection
from siteaudit.db.crawls import delete_previous_crawls, require_crawl, save_end_issues
from siteaudit.db.issues import delete_issues, save_issues
from siteaudit.db.models import Crawl, Issue
from siteaudit.errors import (
    AnalysisInProgressError,
    CrawlNotFinishedError,
    store_guard,
)
from siteaudit.report.manager import ReportManager, default_manager

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Leases
# ---------------------------------------------------------------------------

class LeaseRegistry:
    """Process-wide set of project ids with an analysis in flight."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._held: set[int] = set()

    def acquire(self, project_id: int) -> None:
        with self._lock:
            if project_id in self._held:
                raise AnalysisInProgressError(project_id)
            self._held.add(project_id)

    def release(self, project_id: int) -> None:
        with self._lock:
            self._held.discard(project_id)

    def is_held(self, project_id: int) -> bool:
        with self._lock:
            return project_id in self._held

    @contextmanager
    def hold(self, project_id: int) -> Iterator[None]:
        self.acquire(project_id)
        try:
            yield
        finally:
            self.release(project_id)


leases = LeaseRegistry()

_executor = ThreadPoolExecutor(
    max_workers=settings.analysis_max_workers, thread_name_prefix="analysis"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _eligible_crawl(conn: sqlite3.Connection, crawl_id: int) -> Crawl:
    with store_guard():
        crawl = require_crawl(conn, crawl_id)
    if not crawl.finished:
        raise CrawlNotFinishedError(crawl_id)
    return crawl


def _analyse(
    conn: sqlite3.Connection,
    crawl: Crawl,
    manager: Optional[ReportManager],
) -> list[Issue]:
    rm = manager or default_manager()

    log.info("Creating issues for crawl %d", crawl.id)
    started = time()
    issues = rm.run(conn, crawl.id)

    # Issues replace those of any earlier run and land with the completion
    # marker, before the previous crawl is torn down.
    with store_guard():
        with conn:
            delete_issues(conn, crawl.id)
            save_issues(conn, issues)
            save_end_issues(conn, crawl.id, int(time()), len(issues))
    log.info(
        "Done creating %d issue(s) for crawl %d in %.2fs",
        len(issues), crawl.id, time() - started,
    )

    with store_guard():
        removed = delete_previous_crawls(conn, crawl.project_id, crawl.id)
    log.info("Deleted %d previous crawl(s) of project %d", removed, crawl.project_id)

    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_analysis(
    conn: sqlite3.Connection,
    crawl_id: int,
    manager: Optional[ReportManager] = None,
) -> list[Issue]:
    """Analyse a finished crawl and return the issues persisted for it.

    Raises:
        CrawlNotFoundError: The crawl does not exist.
        CrawlNotFinishedError: Crawling has not finished yet.
        AnalysisInProgressError: The project's lease is held.
        StoreUnavailableError: The store could not be read or written.
    """
    crawl = _eligible_crawl(conn, crawl_id)
    with leases.hold(crawl.project_id):
        return _analyse(conn, crawl, manager)


def _run_in_background(
    crawl: Crawl,
    manager: Optional[ReportManager],
    db_path: Optional[Path],
) -> list[Issue]:
    conn = get_connection(db_path)
    try:
        return _analyse(conn, crawl, manager)
    except Exception:
        log.exception("Analysis of crawl %d failed", crawl.id)
        raise
    finally:
        conn.close()
        leases.release(crawl.project_id)


def start_analysis(
    conn: sqlite3.Connection,
    crawl_id: int,
    manager: Optional[ReportManager] = None,
    db_path: Optional[Path] = None,
) -> "Future[list[Issue]]":
    """Validate *crawl_id*, take the project lease and analyse in the background.

    Errors from validation and from the lease are raised here, in the caller.
    Errors from the analysis itself are logged and stored on the returned
    future.
    """
    crawl = _eligible_crawl(conn, crawl_id)
    leases.acquire(crawl.project_id)
    try:
        return _executor.submit(_run_in_background, crawl, manager, db_path)
    except Exception:
        leases.release(crawl.project_id)
        raise
