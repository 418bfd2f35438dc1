"""Tests for the end-of-crawl analysis runner."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Generator

import pytest

from siteaudit.db.connection import get_connection
from siteaudit.db.crawls import create_crawl, create_project, finish_crawl, get_crawl
from siteaudit.db.issues import count_issues_by_type
from siteaudit.db.migrations import init_db
from siteaudit.db.models import PageReport
from siteaudit.db.pagereports import list_pagereports, save_pagereport
from siteaudit.errors import (
    AnalysisInProgressError,
    CrawlNotFinishedError,
    CrawlNotFoundError,
)
from siteaudit.report.analysis import leases, run_analysis, start_analysis
from siteaudit.report.manager import ReportManager
from siteaudit.report.pagination import page
from siteaudit.report.taxonomy import DefectKind


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


def _crawl(conn: sqlite3.Connection, project_id: int, statuses: list[int], finish: bool = True) -> int:
    cid = create_crawl(conn, project_id).id
    for i, status in enumerate(statuses):
        save_pagereport(
            conn,
            PageReport(id=None, crawl_id=cid, url=f"https://example.com/{i}", status_code=status),
        )
    if finish:
        finish_crawl(conn, cid)
    return cid


def _count_404s(conn: sqlite3.Connection, crawl_id: int) -> list[PageReport]:
    return [p for p in list_pagereports(conn, crawl_id) if p.status_code == 404]


def _manager() -> ReportManager:
    rm = ReportManager()
    rm.register(_count_404s, DefectKind.ERROR_40X)
    return rm


class TestRunAnalysis:
    def test_persists_issues_and_marks_crawl(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [200, 404, 404])

        issues = run_analysis(conn, cid, _manager())

        assert len(issues) == 2
        assert count_issues_by_type(conn, cid) == {"error_40x": 2}
        crawl = get_crawl(conn, cid)
        assert crawl.total_issues == 2
        assert crawl.issues_end_at is not None

    def test_reanalysis_replaces_issues(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [200, 404, 404])

        run_analysis(conn, cid, _manager())
        run_analysis(conn, cid, _manager())

        assert count_issues_by_type(conn, cid) == {"error_40x": 2}
        assert get_crawl(conn, cid).total_issues == 2
        urls = [p.url for p in page(conn, cid, "error_40x", 0, 25).page_reports]
        assert urls == ["https://example.com/1", "https://example.com/2"]

    def test_deletes_previous_crawls(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        old = _crawl(conn, project.id, [404])
        run_analysis(conn, old, _manager())
        new = _crawl(conn, project.id, [200])

        run_analysis(conn, new, _manager())

        assert get_crawl(conn, old) is None
        assert get_crawl(conn, new) is not None

    def test_other_projects_untouched(self, conn: sqlite3.Connection) -> None:
        a = create_project(conn, "https://a.example/")
        b = create_project(conn, "https://b.example/")
        b_crawl = _crawl(conn, b.id, [200])
        a_crawl = _crawl(conn, a.id, [200])
        run_analysis(conn, a_crawl, _manager())
        assert get_crawl(conn, b_crawl) is not None

    def test_default_manager(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [200, 500])
        run_analysis(conn, cid)
        assert count_issues_by_type(conn, cid)["error_50x"] == 1

    def test_unknown_crawl(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(CrawlNotFoundError):
            run_analysis(conn, 999)

    def test_unfinished_crawl(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [200], finish=False)
        with pytest.raises(CrawlNotFinishedError):
            run_analysis(conn, cid)

    def test_rejected_while_lease_held(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [404])
        with leases.hold(project.id):
            with pytest.raises(AnalysisInProgressError):
                run_analysis(conn, cid, _manager())
        assert get_crawl(conn, cid).issues_end_at is None
        assert not leases.is_held(project.id)

    def test_lease_released_after_run(self, conn: sqlite3.Connection) -> None:
        project = create_project(conn, "https://example.com/")
        cid = _crawl(conn, project.id, [200])
        run_analysis(conn, cid, _manager())
        assert not leases.is_held(project.id)


class TestStartAnalysis:
    @pytest.fixture()
    def db_path(self, tmp_path: Path) -> Path:
        path = tmp_path / "audit.db"
        setup = get_connection(path)
        init_db(setup)
        setup.close()
        return path

    def test_runs_in_background(self, db_path: Path) -> None:
        conn = get_connection(db_path)
        try:
            project = create_project(conn, "https://example.com/")
            cid = _crawl(conn, project.id, [404, 200])

            future = start_analysis(conn, cid, _manager(), db_path=db_path)
            issues = future.result(timeout=10)

            assert len(issues) == 1
            assert get_crawl(conn, cid).total_issues == 1
            assert not leases.is_held(project.id)
        finally:
            conn.close()

    def test_validation_errors_raised_in_caller(self, db_path: Path) -> None:
        conn = get_connection(db_path)
        try:
            with pytest.raises(CrawlNotFoundError):
                start_analysis(conn, 999, db_path=db_path)
        finally:
            conn.close()

    def test_second_trigger_rejected(self, db_path: Path) -> None:
        conn = get_connection(db_path)
        try:
            project = create_project(conn, "https://example.com/")
            cid = _crawl(conn, project.id, [200])
            leases.acquire(project.id)
            try:
                with pytest.raises(AnalysisInProgressError):
                    start_analysis(conn, cid, _manager(), db_path=db_path)
            finally:
                leases.release(project.id)
        finally:
            conn.close()
