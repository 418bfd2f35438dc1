"""SiteAudit CLI entry-point.

Usage:
    python cli/main.py --help

Sub-command groups:
    db        → database setup
    crawl     → import, select and analyse crawls
    report    → browse the issues of a crawl
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from siteaudit.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging

import typer

from siteaudit.config import settings
from siteaudit.db import get_connection, init_db
from siteaudit.db.migrations import current_version

from cli.commands.crawl import crawl_app
from cli.commands.report import report_app

app = typer.Typer(
    name="siteaudit",
    help="SiteAudit SEO issue detection CLI.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log analysis progress."),
) -> None:
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    version = current_version(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path} (schema v{version})")


# ---------------------------------------------------------------------------
# Crawl and report commands
# ---------------------------------------------------------------------------
app.add_typer(crawl_app, name="crawl")
app.add_typer(report_app, name="report")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
