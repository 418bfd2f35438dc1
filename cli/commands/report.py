"""Issue report commands: summary, per-kind listing and link-graph views."""

from typing import Optional

import typer

from siteaudit.config import settings
from siteaudit.db import get_connection, init_db
from siteaudit.db.pagereports import count_by_content_type, count_by_status_code
from siteaudit.errors import AuditError, store_guard
from siteaudit.report import (
    aggregate,
    hreflang_gaps_for,
    inbound_links_for,
    page,
    redirect_chains_for,
)

from cli.context import resolve_crawl_id
from cli.rendering import (
    render_breakdown,
    render_issue_page,
    render_pagereports,
    render_redirect_walk,
    render_summary,
)

report_app = typer.Typer(help="Browse the issues found in a crawl.")


@report_app.command("summary")
def report_summary(
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """Issue counts per kind, grouped by severity, then pages per media type and status code."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        typer.echo(render_summary(aggregate(conn, cid)))
        with store_guard():
            media_count = count_by_content_type(conn, cid)
            status_code_count = count_by_status_code(conn, cid)
        typer.echo("")
        typer.echo(render_breakdown("Pages by media type", media_count))
        typer.echo(render_breakdown("Pages by status code", status_code_count))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@report_app.command("issues")
def report_issues(
    kind: str = typer.Argument(..., help="Issue kind, e.g. error_40x or short_title."),
    page_number: int = typer.Option(1, "--page", "-p", min=1, help="1-based page number."),
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """List one page of the page reports carrying an issue kind."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        result = page(conn, cid, kind, page_number - 1, settings.issues_page_size)
        typer.echo(render_issue_page(result))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@report_app.command("inlinks")
def report_inlinks(
    url: str = typer.Argument(..., help="Target URL."),
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """Pages in the crawl that link to URL."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        reports = inbound_links_for(conn, url, cid)
        if not reports:
            typer.echo(f"No pages link to {url}.")
            return
        typer.echo(render_pagereports(reports))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@report_app.command("redirects")
def report_redirects(
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """Redirect chains and loops."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        walks = redirect_chains_for(conn, cid)
        if not walks:
            typer.echo("No redirect chains or loops.")
            return
        for w in walks:
            typer.echo(render_redirect_walk(w))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@report_app.command("hreflang")
def report_hreflang(
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """Hreflang alternates that do not link back."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        gaps = hreflang_gaps_for(conn, cid)
        if not gaps:
            typer.echo("All hreflang alternates link back.")
            return
        for g in gaps:
            typer.echo(f"  {g.page.url}  [{g.lang}] → {g.url}  (no return link)")
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()
