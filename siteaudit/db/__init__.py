"""Database layer package.

Public re-exports so callers can write::

    from siteaudit.db import get_connection, init_db
    from siteaudit.db import pagereports
"""

from siteaudit.db.connection import get_connection
from siteaudit.db.migrations import init_db
from siteaudit.db import crawls, issues, pagereports

__all__ = ["get_connection", "init_db", "crawls", "issues", "pagereports"]
