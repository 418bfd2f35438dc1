"""Tests for the defect taxonomy and severity mapping."""

from __future__ import annotations

import pytest

from siteaudit.errors import UnknownDefectKindError
from siteaudit.report.taxonomy import SEVERITY, DefectKind, Severity, parse_kind, severity_of


class TestSeverity:
    def test_every_kind_has_a_severity(self) -> None:
        assert set(SEVERITY) == set(DefectKind)

    def test_there_are_24_kinds(self) -> None:
        assert len(DefectKind) == 24

    @pytest.mark.parametrize(
        "kind",
        [
            DefectKind.ERROR_40X,
            DefectKind.ERROR_50X,
            DefectKind.REDIRECT_LOOP,
            DefectKind.CANONICALIZED_TO_NON_CANONICAL,
        ],
    )
    def test_critical_kinds(self, kind: DefectKind) -> None:
        assert severity_of(kind) is Severity.CRITICAL

    def test_redirects_and_missing_metadata_are_alerts(self) -> None:
        for kind in (DefectKind.ERROR_30X, DefectKind.REDIRECT_CHAIN, DefectKind.EMPTY_TITLE, DefectKind.NO_H1):
            assert severity_of(kind) is Severity.ALERT

    def test_length_issues_are_warnings(self) -> None:
        for kind in (DefectKind.SHORT_TITLE, DefectKind.LONG_DESCRIPTION, DefectKind.LITTLE_CONTENT):
            assert severity_of(kind) is Severity.WARNING


class TestParseKind:
    def test_known_value(self) -> None:
        assert parse_kind("error_40x") is DefectKind.ERROR_40X

    def test_enum_passes_through(self) -> None:
        assert parse_kind(DefectKind.NO_LANG) is DefectKind.NO_LANG

    def test_unknown_value(self) -> None:
        with pytest.raises(UnknownDefectKindError) as exc:
            parse_kind("bogus")
        assert exc.value.kind == "bogus"
