"""Tests for the 'report' CLI command group."""

import pytest
from typer.testing import CliRunner

from siteaudit.db import get_connection, init_db
from siteaudit.ingest import CrawlImport, import_crawl
from siteaudit.report import run_analysis
from cli.context import CliContext, save_context
from cli.commands.report import report_app

runner = CliRunner()

PAGES = [
    {"url": "https://example.com/", "status_code": 200,
     "links": [{"url": "https://example.com/b"}],
     "hreflangs": [{"lang": "fr", "url": "https://example.com/fr"}]},
    {"url": "https://example.com/fr", "status_code": 200},
    {"url": "https://example.com/a", "status_code": 301, "redirect_url": "https://example.com/b"},
    {"url": "https://example.com/b", "status_code": 301, "redirect_url": "https://example.com/"},
    {"url": "https://example.com/x", "status_code": 404},
]


@pytest.fixture
def crawl_id(tmp_path, monkeypatch):
    """An analysed crawl selected as the active crawl."""
    monkeypatch.setattr("siteaudit.config.settings.workspace_dir", tmp_path)
    monkeypatch.setattr("siteaudit.config.settings.issues_page_size", 1)
    cli_dir = tmp_path / ".siteaudit_cli"
    cli_dir.mkdir()
    monkeypatch.setattr("cli.context.settings.cli_config_dir", cli_dir)

    conn = get_connection()
    init_db(conn)
    crawl = import_crawl(conn, CrawlImport.model_validate({"project_url": "https://example.com/", "pages": PAGES}))
    run_analysis(conn, crawl.id)
    conn.close()

    save_context(CliContext(active_crawl_id=crawl.id, active_project_url="https://example.com/"))
    return crawl.id


def test_summary(crawl_id):
    result = runner.invoke(report_app, ["summary"])
    assert result.exit_code == 0
    assert "CRITICAL" in result.stdout
    assert "error_40x" in result.stdout


def test_summary_breakdowns(crawl_id):
    result = runner.invoke(report_app, ["summary"])
    assert result.exit_code == 0
    assert "Pages by media type" in result.stdout
    assert "(none)" in result.stdout
    assert "Pages by status code" in result.stdout
    assert "     2  301" in result.stdout


def test_summary_unknown_crawl(crawl_id):
    result = runner.invoke(report_app, ["summary", "--crawl-id", "999"])
    assert result.exit_code == 1
    assert "❌ Error:" in result.stdout


def test_issues_page(crawl_id):
    result = runner.invoke(report_app, ["issues", "error_30x", "--page", "2"])
    assert result.exit_code == 0
    assert "page 2/2" in result.stdout
    assert "https://example.com/b" in result.stdout


def test_issues_unknown_kind(crawl_id):
    result = runner.invoke(report_app, ["issues", "bogus"])
    assert result.exit_code == 1
    assert "Unknown defect kind" in result.stdout


def test_issues_out_of_range(crawl_id):
    result = runner.invoke(report_app, ["issues", "error_40x", "--page", "3"])
    assert result.exit_code == 1


def test_inlinks(crawl_id):
    result = runner.invoke(report_app, ["inlinks", "https://example.com/b"])
    assert result.exit_code == 0
    assert "[200] https://example.com/" in result.stdout


def test_inlinks_none(crawl_id):
    result = runner.invoke(report_app, ["inlinks", "https://example.com/nowhere"])
    assert result.exit_code == 0
    assert "No pages link to" in result.stdout


def test_redirects(crawl_id):
    result = runner.invoke(report_app, ["redirects"])
    assert result.exit_code == 0
    assert "https://example.com/a → https://example.com/b → https://example.com/" in result.stdout
    assert "2 hops, 200" in result.stdout


def test_hreflang(crawl_id):
    result = runner.invoke(report_app, ["hreflang"])
    assert result.exit_code == 0
    assert "[fr] → https://example.com/fr" in result.stdout
