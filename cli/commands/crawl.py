"""Crawl management commands: import, select and analyse."""

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from siteaudit.db import get_connection, init_db
from siteaudit.db.crawls import get_crawl, get_last_crawl, get_project, list_projects
from siteaudit.errors import AuditError
from siteaudit.ingest import import_crawl, load_crawl_file
from siteaudit.report import aggregate, run_analysis

from cli.context import load_context, resolve_crawl_id, save_context
from cli.rendering import render_summary

crawl_app = typer.Typer(help="Import crawls and run the issue detectors.")


@crawl_app.command("import")
def crawl_import(
    path: Path = typer.Argument(..., help="Crawl JSON file produced by the crawler."),
    analyse: bool = typer.Option(False, "--analyse", help="Run the issue detectors right away."),
) -> None:
    """Load a finished crawl and make it the active crawl."""
    try:
        data = load_crawl_file(path)
    except (OSError, ValidationError) as e:
        typer.echo(f"❌ Could not read {path}: {e}")
        raise typer.Exit(code=1)

    conn = get_connection()
    init_db(conn)
    try:
        crawl = import_crawl(conn, data)
        typer.echo(f"✅ Imported crawl {crawl.id}: {crawl.total_urls} page(s) from {data.project_url}")

        ctx = load_context()
        ctx.active_crawl_id = crawl.id
        ctx.active_project_url = data.project_url
        save_context(ctx)

        if analyse:
            issues = run_analysis(conn, crawl.id)
            typer.echo(f"🔎 Found {len(issues)} issue(s)")
            typer.echo(render_summary(aggregate(conn, crawl.id)))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@crawl_app.command("use")
def crawl_use(
    crawl_id: int = typer.Argument(..., help="Crawl id."),
) -> None:
    """Switch the active crawl."""
    conn = get_connection()
    init_db(conn)
    try:
        crawl = get_crawl(conn, crawl_id)
        if crawl is None:
            typer.echo(f"❌ Crawl {crawl_id} not found.")
            raise typer.Exit(code=1)
        project = get_project(conn, crawl.project_id)
    finally:
        conn.close()

    ctx = load_context()
    ctx.active_crawl_id = crawl.id
    ctx.active_project_url = project.url if project else None
    save_context(ctx)
    typer.echo(f"📂 Switched to crawl {crawl.id} ({ctx.active_project_url})")


@crawl_app.command("list")
def crawl_list() -> None:
    """List projects with their most recent crawl."""
    conn = get_connection()
    init_db(conn)
    try:
        projects = list_projects(conn)
        if not projects:
            typer.echo("No projects found.")
            return

        active = load_context().active_crawl_id
        for p in projects:
            crawl = get_last_crawl(conn, p.id)
            if crawl is None:
                typer.echo(f"  {p.url}\t(no crawls)")
                continue
            marker = "*" if crawl.id == active else " "
            status = f"{crawl.total_issues} issues" if crawl.issues_end_at else "not analysed"
            typer.echo(f"{marker} {p.url}\tcrawl {crawl.id}\t{crawl.total_urls} urls\t{status}")
    finally:
        conn.close()


@crawl_app.command("analyse")
def crawl_analyse(
    crawl_id: Optional[int] = typer.Option(None, "--crawl-id", help="Defaults to the active crawl."),
) -> None:
    """Run every issue detector against a finished crawl and store the issues."""
    cid = resolve_crawl_id(crawl_id)
    conn = get_connection()
    init_db(conn)
    try:
        issues = run_analysis(conn, cid)
        typer.echo(f"🔎 Found {len(issues)} issue(s) in crawl {cid}")
        typer.echo(render_summary(aggregate(conn, cid)))
    except AuditError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()
