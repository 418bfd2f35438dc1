"""Issue detection and aggregation.

Public re-exports::

    from siteaudit.report import aggregate, page, run_analysis
"""

from siteaudit.report.aggregator import IssueGroup, IssueSummary, aggregate, error_types_for_page
from siteaudit.report.analysis import run_analysis, start_analysis
from siteaudit.report.linkgraph import (
    HreflangGap,
    RedirectWalk,
    hreflang_gaps_for,
    inbound_links_for,
    redirect_chains_for,
    redirects_to,
)
from siteaudit.report.manager import ReportManager, default_manager
from siteaudit.report.pagination import IssuePage, page, total_pages
from siteaudit.report.taxonomy import SEVERITY, DefectKind, Severity

__all__ = [
    "SEVERITY",
    "DefectKind",
    "HreflangGap",
    "IssueGroup",
    "IssuePage",
    "IssueSummary",
    "RedirectWalk",
    "ReportManager",
    "Severity",
    "aggregate",
    "default_manager",
    "error_types_for_page",
    "hreflang_gaps_for",
    "inbound_links_for",
    "page",
    "redirect_chains_for",
    "redirects_to",
    "run_analysis",
    "start_analysis",
    "total_pages",
]
