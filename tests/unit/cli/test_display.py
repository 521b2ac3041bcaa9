"""Tests for the rich display helpers.

Output goes to a StringIO-backed Console; assertions look for the
values a user needs to see, not for table layout.
"""

from __future__ import annotations

import re
from io import StringIO

from rich.console import Console

from phenotab.cli.display import (
    display_diagnostics,
    display_fix_actions,
    display_records_summary,
    display_validation_issues,
    display_validation_summary,
)
from phenotab.models.context import HPO_LABEL_OR_ID, SUBJECT_SEX
from phenotab.models.diagnostics import Diagnostic, DiagnosticKind
from phenotab.models.records import Observation, SubjectRecord
from phenotab.validation.engine import ValidationEngine
from phenotab.validation.fixer import RecordFixer
from phenotab.validation.report import ValidationReport


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _console() -> tuple[Console, StringIO]:
    buf = StringIO()
    return Console(file=buf, width=160), buf


def _records() -> list[SubjectRecord]:
    hpo = Observation(context=HPO_LABEL_OR_ID, value="HP:0001250", header="hpo")
    return [
        SubjectRecord(
            subject_id="P1",
            fields={SUBJECT_SEX.key: "MALE"},
            observations=(hpo, hpo),
            sources=("demo.csv", "clinic.xlsx"),
        ),
        SubjectRecord(subject_id="P2", observations=(hpo.model_copy(update={"value": "HP:1"}),)),
    ]


def test_records_summary() -> None:
    console, buf = _console()
    display_records_summary(_records(), console)
    output = _strip_ansi(buf.getvalue())
    assert "Subject Records" in output
    assert "P1" in output
    assert "demo.csv, clinic.xlsx" in output


class TestDiagnostics:
    def test_empty(self) -> None:
        console, buf = _console()
        display_diagnostics([], console=console)
        assert "No diagnostics." in buf.getvalue()

    def test_counts_and_limit(self) -> None:
        diagnostics = [
            Diagnostic(
                kind=DiagnosticKind.ONTOLOGY_LOOKUP,
                message=f"Unresolved label 'term {i}'",
                table="phenotypes",
                column="hpo",
                row=i,
            )
            for i in range(3)
        ]
        diagnostics.append(
            Diagnostic(kind=DiagnosticKind.MISSING_SUBJECT_ID, message="Row without subject id")
        )
        console, buf = _console()
        display_diagnostics(diagnostics, console=console, limit=2)
        output = _strip_ansi(buf.getvalue())
        assert "ontology_lookup" in output
        assert "missing_subject_id" in output
        assert "term 1" in output
        assert "term 2" not in output
        assert "... and 2 more" in output


class TestValidationDisplay:
    def test_summary_and_issues(self) -> None:
        records = _records()
        results = ValidationEngine().validate_all(records)
        report = ValidationReport.from_results(results, [r.subject_id for r in records])
        console, buf = _console()
        display_validation_summary(report, console)
        display_validation_issues(report.results, console=console)
        output = _strip_ansi(buf.getvalue())
        assert "Subjects Validated" in output
        assert "50%" in output
        assert "PTAB-V001" in output
        assert output.index("PTAB-V001") < output.index("PTAB-V003")

    def test_no_issues(self) -> None:
        console, buf = _console()
        display_validation_issues([], console=console)
        assert "No validation issues found." in buf.getvalue()

    def test_fix_actions(self) -> None:
        records = _records()
        outcome = RecordFixer().apply(records, ValidationEngine().validate_all(records))
        console, buf = _console()
        display_fix_actions(outcome.actions, console)
        output = _strip_ansi(buf.getvalue())
        assert "Applied Fixes" in output
        assert "HP:0001250 (OBSERVED) x2" in output

        console, buf = _console()
        display_fix_actions([], console)
        assert "No fixes applied." in buf.getvalue()
