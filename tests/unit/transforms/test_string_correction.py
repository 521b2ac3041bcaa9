"""Tests for whitespace and casing correction."""

from __future__ import annotations

import pandas as pd
import pytest

from phenotab.models.context import HPO_LABEL_OR_ID, SUBJECT_ID, SUBJECT_SEX
from phenotab.models.diagnostics import DiagnosticsReport
from phenotab.models.table_context import Identifier, SeriesContext, TableContext
from phenotab.tagging import TaggedTable, tag_table
from phenotab.transforms.string_correction import (
    CaseMode,
    StringCorrectionStrategy,
    correct_string,
)


def _table() -> TaggedTable:
    df = pd.DataFrame(
        {
            "id": [" p 1 ", "P2"],
            "sex": ["  male", "FE  MALE"],
            "hpo": ["Short   stature", 7],
            "free": ["a  b", None],
        }
    )
    tc = TableContext(
        name="t",
        context=[
            SeriesContext(identifier=Identifier.exact("id"), data_context=SUBJECT_ID),
            SeriesContext(identifier=Identifier.exact("sex"), data_context=SUBJECT_SEX),
            SeriesContext(identifier=Identifier.exact("hpo"), data_context=HPO_LABEL_OR_ID),
        ],
    )
    return tag_table(df, tc)


@pytest.mark.parametrize(
    ("case", "expected"),
    [
        (CaseMode.PRESERVE, "Short stature"),
        (CaseMode.LOWER, "short stature"),
        (CaseMode.UPPER, "SHORT STATURE"),
        (CaseMode.TITLE, "Short Stature"),
    ],
)
def test_correct_string(case: CaseMode, expected: str) -> None:
    assert correct_string("  Short \t\n stature ", case) == expected


def test_nfkc_folds_compatibility_forms() -> None:
    assert correct_string("ＨＰ") == "HP"


class TestStringCorrectionStrategy:
    def test_all_bound_columns_except_subject_id(self) -> None:
        result = StringCorrectionStrategy().apply(_table(), DiagnosticsReport())
        assert list(result.data["id"]) == ["p 1", "P2"]
        assert list(result.data["sex"]) == ["male", "FE MALE"]
        assert list(result.data["hpo"]) == ["Short stature", 7]
        assert list(result.data["free"]) == ["a  b", None]

    def test_restricted_contexts_and_case(self) -> None:
        strategy = StringCorrectionStrategy(contexts=[SUBJECT_SEX], case="lower")
        result = strategy.apply(_table(), DiagnosticsReport())
        assert list(result.data["sex"]) == ["male", "fe male"]
        assert list(result.data["hpo"]) == ["Short   stature", 7]

    def test_target_columns(self) -> None:
        assert StringCorrectionStrategy().target_columns(_table()) == ["sex", "hpo"]
