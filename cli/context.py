"""Persistent state management for the SiteAudit CLI.

Tracks the "active crawl" so report commands can omit ``--crawl-id``.
Stored in `~/.siteaudit_cli/context.json`.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import typer
from siteaudit.config import settings


@dataclass
class CliContext:
    active_crawl_id: int | None = None
    active_project_url: str | None = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            raw = json.loads(data)
            return cls(**raw)
        except (json.JSONDecodeError, TypeError):
            return cls()


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()
    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError:
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


def resolve_crawl_id(crawl_id: Optional[int]) -> int:
    """Return *crawl_id* if given, else the active crawl; exit if neither is set."""
    if crawl_id is not None:
        return crawl_id
    ctx = load_context()
    if ctx.active_crawl_id is None:
        typer.echo("❌ No crawl selected.")
        typer.echo("Pass --crawl-id or run 'crawl use <id>' first.")
        raise typer.Exit(code=1)
    return ctx.active_crawl_id

