"""Defect kinds and their severity tiers.

``SEVERITY`` is the single source of truth for how bad each kind is; both the
per-kind issue groups and the crawl-wide totals read it.  The mapping is
checked for totality when this module is imported.
"""

from __future__ import annotations

from enum import Enum

from siteaudit.errors import UnknownDefectKindError


class Severity(str, Enum):
    CRITICAL = "critical"
    ALERT = "alert"
    WARNING = "warning"


class DefectKind(str, Enum):
    ERROR_30X = "error_30x"
    ERROR_40X = "error_40x"
    ERROR_50X = "error_50x"
    DUPLICATED_TITLE = "duplicated_title"
    DUPLICATED_DESCRIPTION = "duplicated_description"
    EMPTY_TITLE = "empty_title"
    SHORT_TITLE = "short_title"
    LONG_TITLE = "long_title"
    EMPTY_DESCRIPTION = "empty_description"
    SHORT_DESCRIPTION = "short_description"
    LONG_DESCRIPTION = "long_description"
    LITTLE_CONTENT = "little_content"
    IMAGES_NO_ALT = "images_no_alt"
    REDIRECT_CHAIN = "redirect_chain"
    REDIRECT_LOOP = "redirect_loop"
    NO_H1 = "no_h1"
    NO_LANG = "no_lang"
    HTTP_LINKS = "http_links"
    HREFLANG_RETURN_LINK = "hreflang_return_link"
    TOO_MANY_LINKS = "too_many_links"
    INTERNAL_NOFOLLOW = "internal_nofollow"
    EXTERNAL_WITHOUT_NOFOLLOW = "external_without_nofollow"
    CANONICALIZED_TO_NON_CANONICAL = "canonicalized_to_non_canonical"
    NOT_VALID_HEADINGS = "not_valid_headings"


SEVERITY: dict[DefectKind, Severity] = {
    # Broken functionality or indexing
    DefectKind.ERROR_40X: Severity.CRITICAL,
    DefectKind.ERROR_50X: Severity.CRITICAL,
    DefectKind.REDIRECT_LOOP: Severity.CRITICAL,
    DefectKind.CANONICALIZED_TO_NON_CANONICAL: Severity.CRITICAL,
    # Material SEO harm
    DefectKind.ERROR_30X: Severity.ALERT,
    DefectKind.REDIRECT_CHAIN: Severity.ALERT,
    DefectKind.EMPTY_TITLE: Severity.ALERT,
    DefectKind.DUPLICATED_TITLE: Severity.ALERT,
    DefectKind.EMPTY_DESCRIPTION: Severity.ALERT,
    DefectKind.DUPLICATED_DESCRIPTION: Severity.ALERT,
    DefectKind.NO_H1: Severity.ALERT,
    DefectKind.NO_LANG: Severity.ALERT,
    DefectKind.HREFLANG_RETURN_LINK: Severity.ALERT,
    # Soft issues
    DefectKind.SHORT_TITLE: Severity.WARNING,
    DefectKind.LONG_TITLE: Severity.WARNING,
    DefectKind.SHORT_DESCRIPTION: Severity.WARNING,
    DefectKind.LONG_DESCRIPTION: Severity.WARNING,
    DefectKind.LITTLE_CONTENT: Severity.WARNING,
    DefectKind.IMAGES_NO_ALT: Severity.WARNING,
    DefectKind.HTTP_LINKS: Severity.WARNING,
    DefectKind.TOO_MANY_LINKS: Severity.WARNING,
    DefectKind.INTERNAL_NOFOLLOW: Severity.WARNING,
    DefectKind.EXTERNAL_WITHOUT_NOFOLLOW: Severity.WARNING,
    DefectKind.NOT_VALID_HEADINGS: Severity.WARNING,
}

_unmapped = [k.value for k in DefectKind if k not in SEVERITY]
if _unmapped:
    raise RuntimeError(f"Defect kinds without a severity: {', '.join(_unmapped)}")


def severity_of(kind: DefectKind) -> Severity:
    return SEVERITY[kind]


def parse_kind(value: str) -> DefectKind:
    """Return the :class:`DefectKind` named by *value*.

    Raises:
        UnknownDefectKindError: If *value* is not part of the taxonomy.
    """
    try:
        return DefectKind(value)
    except ValueError:
        raise UnknownDefectKindError(value) from None
