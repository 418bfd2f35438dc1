"""Centralised settings for SiteAudit.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SITEAUDIT_WORKSPACE", Path.home() / ".siteaudit_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "audit.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # Directory holding the CLI context file (active crawl).
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SITEAUDIT_CLI_DIR", Path.home() / ".siteaudit_cli")
        )
    )

    # ------------------------------------------------------------------
    # Issue browsing
    # ------------------------------------------------------------------
    issues_page_size: int = field(
        default_factory=lambda: int(os.environ.get("ISSUES_PAGE_SIZE", "25"))
    )

    # ------------------------------------------------------------------
    # Detector thresholds
    # ------------------------------------------------------------------
    title_min_length: int = field(
        default_factory=lambda: int(os.environ.get("TITLE_MIN_LENGTH", "20"))
    )
    title_max_length: int = field(
        default_factory=lambda: int(os.environ.get("TITLE_MAX_LENGTH", "70"))
    )
    description_min_length: int = field(
        default_factory=lambda: int(os.environ.get("DESCRIPTION_MIN_LENGTH", "80"))
    )
    description_max_length: int = field(
        default_factory=lambda: int(os.environ.get("DESCRIPTION_MAX_LENGTH", "160"))
    )
    little_content_words: int = field(
        default_factory=lambda: int(os.environ.get("LITTLE_CONTENT_WORDS", "200"))
    )
    max_page_links: int = field(
        default_factory=lambda: int(os.environ.get("MAX_PAGE_LINKS", "100"))
    )

    # ------------------------------------------------------------------
    # Analysis runner
    # ------------------------------------------------------------------
    analysis_max_workers: int = field(
        default_factory=lambda: int(os.environ.get("ANALYSIS_MAX_WORKERS", "2"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("SITEAUDIT_LOG_LEVEL", "WARNING")
    )


# Module-level singleton, import this everywhere:
#   from siteaudit.config import settings
settings = Settings()
