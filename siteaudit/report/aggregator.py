"""Per-kind issue counts and crawl-wide severity totals."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from siteaudit.db.crawls import require_crawl
from siteaudit.db.issues import count_issues_by_type, find_error_types_by_page
from siteaudit.errors import store_guard
from siteaudit.report.taxonomy import DefectKind, Severity, severity_of

log = logging.getLogger(__name__)


@dataclass
class IssueGroup:
    kind: DefectKind
    count: int
    severity: Severity


@dataclass
class IssueSummary:
    groups: dict[DefectKind, IssueGroup] = field(default_factory=dict)
    critical: int = 0
    alert: int = 0
    warning: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.alert + self.warning

    def by_severity(self, severity: Severity) -> list[IssueGroup]:
        return [g for g in self.groups.values() if g.severity == severity]


def summarise(counts: dict[DefectKind, int]) -> IssueSummary:
    """Build the summary for already-counted kinds.  Kinds with a zero count
    are left out."""
    summary = IssueSummary()
    for kind in sorted(counts, key=lambda k: k.value):
        count = counts[kind]
        if count <= 0:
            continue
        group = IssueGroup(kind=kind, count=count, severity=severity_of(kind))
        summary.groups[kind] = group
        if group.severity is Severity.CRITICAL:
            summary.critical += count
        elif group.severity is Severity.ALERT:
            summary.alert += count
        else:
            summary.warning += count
    return summary


def aggregate(conn: sqlite3.Connection, crawl_id: int) -> IssueSummary:
    """Group the persisted issues of *crawl_id* by defect kind.

    Raises:
        CrawlNotFoundError: If the crawl does not exist.
        StoreUnavailableError: If the store cannot be queried.
    """
    with store_guard():
        require_crawl(conn, crawl_id)
        raw = count_issues_by_type(conn, crawl_id)

    counts: dict[DefectKind, int] = {}
    for error_type, count in raw.items():
        try:
            counts[DefectKind(error_type)] = count
        except ValueError:
            log.warning("Skipping %d issue(s) of unknown type %r in crawl %d", count, error_type, crawl_id)
    return summarise(counts)


def error_types_for_page(
    conn: sqlite3.Connection, pagereport_id: int, crawl_id: int
) -> list[DefectKind]:
    """Defect kinds recorded against one page of the crawl."""
    with store_guard():
        require_crawl(conn, crawl_id)
        raw = find_error_types_by_page(conn, pagereport_id, crawl_id)
    kinds = []
    for error_type in raw:
        try:
            kinds.append(DefectKind(error_type))
        except ValueError:
            log.warning("Unknown issue type %r on page %d", error_type, pagereport_id)
    return kinds
