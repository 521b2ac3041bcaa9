"""Tests for SubjectRecord views and the DiagnosticsReport."""

from __future__ import annotations

import threading

from phenotab.models.context import (
    DISEASE_LABEL_OR_ID,
    HPO_LABEL_OR_ID,
    OBSERVATION_STATUS,
    SUBJECT_SEX,
    Context,
    TimeElementType,
)
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.records import EXCLUDED, OBSERVED, BuildingBlock, Observation, SubjectRecord


def _record() -> SubjectRecord:
    onset = Context.onset(TimeElementType.AGE)
    block = BuildingBlock(
        block_id="disease",
        entries=(
            Observation(context=DISEASE_LABEL_OR_ID, value="OMIM:168600", header="dx"),
            Observation(context=onset, value="P45Y", header="dx_onset"),
        ),
    )
    return SubjectRecord(
        subject_id="P001",
        fields={SUBJECT_SEX.key: "MALE"},
        observations=(
            Observation(context=HPO_LABEL_OR_ID, value="HP:0001250", header="hpo", source="s1"),
            Observation(
                context=OBSERVATION_STATUS,
                value=EXCLUDED,
                header="HP:0004322",
                header_context=HPO_LABEL_OR_ID,
                source="s2",
            ),
            Observation(context=HPO_LABEL_OR_ID, value=None, header="hpo"),
        ),
        blocks={"disease": (block,)},
        sources=("s1", "s2"),
    )


class TestSubjectRecord:
    def test_field(self) -> None:
        record = _record()
        assert record.field(SUBJECT_SEX) == "MALE"
        assert record.field(HPO_LABEL_OR_ID) is None

    def test_phenotypes_from_cells_and_headers(self) -> None:
        phenotypes = _record().phenotypes()
        assert [(p.term, p.status) for p in phenotypes] == [
            ("HP:0001250", OBSERVED),
            ("HP:0004322", EXCLUDED),
        ]
        assert phenotypes[1].source == "s2"

    def test_diseases_include_block_entries(self) -> None:
        assert _record().diseases() == ["OMIM:168600"]

    def test_block_get(self) -> None:
        block = _record().blocks["disease"][0]
        assert block.get(Context.onset(TimeElementType.AGE)) == "P45Y"
        assert block.get(SUBJECT_SEX) is None

    def test_json_round_trip(self) -> None:
        record = _record()
        assert SubjectRecord.model_validate_json(record.model_dump_json()) == record


class TestDiagnosticsReport:
    def test_record_stringifies_value(self) -> None:
        report = DiagnosticsReport()
        diagnostic = report.record(
            DiagnosticKind.TYPE_COERCION, "bad", table="t", column="age", row=3, value=12.5
        )
        assert diagnostic.value == "12.5"
        assert len(report) == 1
        assert report

    def test_counts_and_by_kind(self) -> None:
        report = DiagnosticsReport()
        report.record(DiagnosticKind.ONTOLOGY_LOOKUP, "a")
        report.record(DiagnosticKind.ONTOLOGY_LOOKUP, "b")
        report.record(DiagnosticKind.MISSING_SUBJECT_ID, "c")
        assert report.counts() == {"ontology_lookup": 2, "missing_subject_id": 1}
        assert [d.message for d in report.by_kind(DiagnosticKind.ONTOLOGY_LOOKUP)] == ["a", "b"]

    def test_extend(self) -> None:
        a = DiagnosticsReport()
        b = DiagnosticsReport()
        b.record(DiagnosticKind.CONFLICTING_VALUE, "x")
        a.extend(b)
        assert len(a) == 1
        assert not DiagnosticsReport()

    def test_concurrent_record(self) -> None:
        report = DiagnosticsReport()

        def worker() -> None:
            for i in range(200):
                report.record(DiagnosticKind.MAPPING_VIOLATION, f"m{i}")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(report) == 1600
