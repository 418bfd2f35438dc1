"""Detector registry.

A :class:`ReportManager` is an ordered list of ``(detector, kind)`` pairs.
``run`` calls each detector in registration order and turns its matches into
:class:`~siteaudit.db.models.Issue` rows tagged with the kind.  Nothing is
written here; persisting the issues is the analysis runner's job.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from siteaudit.db.models import Issue
from siteaudit.errors import StoreUnavailableError
from siteaudit.report import detectors, linkgraph
from siteaudit.report.detectors import Detector
from siteaudit.report.taxonomy import DefectKind

log = logging.getLogger(__name__)


@dataclass
class ReportManager:
    reporters: list[tuple[Detector, DefectKind]] = field(default_factory=list)

    def register(self, detector: Detector, kind: DefectKind) -> None:
        self.reporters.append((detector, kind))

    def registered_kinds(self) -> list[DefectKind]:
        return [kind for _, kind in self.reporters]

    def run(self, conn: sqlite3.Connection, crawl_id: int) -> list[Issue]:
        """Run every detector against *crawl_id* and return all issues found.

        A detector that fails is logged and contributes no issues; the others
        still run.  A store failure (``sqlite3.OperationalError``) aborts the
        run as :class:`StoreUnavailableError`, since every later detector
        would hit the same store.
        """
        issues: list[Issue] = []
        for detector, kind in self.reporters:
            name = getattr(detector, "__name__", repr(detector))
            try:
                matches = detector(conn, crawl_id)
            except sqlite3.OperationalError as exc:
                raise StoreUnavailableError(str(exc)) from exc
            except Exception:
                log.exception("Detector %s (%s) failed for crawl %d", name, kind.value, crawl_id)
                continue

            log.debug("Detector %s found %d page(s) for %s", name, len(matches), kind.value)
            issues.extend(
                Issue(crawl_id=crawl_id, error_type=kind.value, pagereport_id=p.id)  # type: ignore[arg-type]
                for p in matches
            )
        return issues


def default_manager() -> ReportManager:
    """A manager with one detector registered for every defect kind."""
    rm = ReportManager()

    rm.register(detectors.find_30x, DefectKind.ERROR_30X)
    rm.register(detectors.find_40x, DefectKind.ERROR_40X)
    rm.register(detectors.find_50x, DefectKind.ERROR_50X)
    rm.register(detectors.find_duplicated_title, DefectKind.DUPLICATED_TITLE)
    rm.register(detectors.find_duplicated_description, DefectKind.DUPLICATED_DESCRIPTION)
    rm.register(detectors.find_empty_title, DefectKind.EMPTY_TITLE)
    rm.register(detectors.find_short_title, DefectKind.SHORT_TITLE)
    rm.register(detectors.find_long_title, DefectKind.LONG_TITLE)
    rm.register(detectors.find_empty_description, DefectKind.EMPTY_DESCRIPTION)
    rm.register(detectors.find_short_description, DefectKind.SHORT_DESCRIPTION)
    rm.register(detectors.find_long_description, DefectKind.LONG_DESCRIPTION)
    rm.register(detectors.find_little_content, DefectKind.LITTLE_CONTENT)
    rm.register(detectors.find_images_without_alt, DefectKind.IMAGES_NO_ALT)
    rm.register(linkgraph.find_redirect_chains, DefectKind.REDIRECT_CHAIN)
    rm.register(detectors.find_without_h1, DefectKind.NO_H1)
    rm.register(detectors.find_without_lang, DefectKind.NO_LANG)
    rm.register(detectors.find_http_links, DefectKind.HTTP_LINKS)
    rm.register(linkgraph.find_missing_hreflang_return_links, DefectKind.HREFLANG_RETURN_LINK)
    rm.register(detectors.find_too_many_links, DefectKind.TOO_MANY_LINKS)
    rm.register(detectors.find_internal_nofollow, DefectKind.INTERNAL_NOFOLLOW)
    rm.register(detectors.find_external_without_nofollow, DefectKind.EXTERNAL_WITHOUT_NOFOLLOW)
    rm.register(linkgraph.find_canonicalized_to_non_canonical, DefectKind.CANONICALIZED_TO_NON_CANONICAL)
    rm.register(linkgraph.find_redirect_loops, DefectKind.REDIRECT_LOOP)
    rm.register(detectors.find_not_valid_headings, DefectKind.NOT_VALID_HEADINGS)

    return rm
