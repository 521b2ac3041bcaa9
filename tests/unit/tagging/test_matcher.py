"""Tests for column matching, cell cleaning and TaggedTable helpers."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from phenotab.errors import ConfigurationError, IdentifierMatchError
from phenotab.models.context import (
    HPO_LABEL_OR_ID,
    OBSERVATION_STATUS,
    SUBJECT_ID,
    SUBJECT_SEX,
    Context,
    ContextKind,
)
from phenotab.models.table_context import Identifier, SeriesContext, TableContext
from phenotab.tagging.matcher import match_columns, tag_table
from phenotab.tagging.tagged_table import TaggedTable, is_missing


def _context(*extra: SeriesContext, name: str = "patients") -> TableContext:
    return TableContext(
        name=name,
        context=[
            SeriesContext(identifier=Identifier.exact("patient_id"), data_context=SUBJECT_ID),
            *extra,
        ],
    )


class TestMatchColumns:
    def test_binds_exact_and_regex(self) -> None:
        tc = _context(
            SeriesContext(identifier=Identifier.exact("sex"), data_context=SUBJECT_SEX),
            SeriesContext(
                identifier=Identifier.regex(r"HP:\d{7}"),
                header_context=HPO_LABEL_OR_ID,
                data_context=OBSERVATION_STATUS,
            ),
        )
        bindings = match_columns(tc, ["patient_id", "HP:0001250", "sex", "notes"])
        assert list(bindings) == ["patient_id", "HP:0001250", "sex"]
        assert bindings["HP:0001250"][0].header_context == HPO_LABEL_OR_ID

    def test_missing_required_exact(self) -> None:
        tc = _context(SeriesContext(identifier=Identifier.exact("sex")))
        with pytest.raises(IdentifierMatchError) as exc_info:
            match_columns(tc, ["patient_id"])
        assert exc_info.value.table == "patients"
        assert exc_info.value.available == ["patient_id"]

    def test_regex_matching_nothing_is_an_error(self) -> None:
        tc = _context(SeriesContext(identifier=Identifier.regex("HP:.*")))
        with pytest.raises(IdentifierMatchError, match="HP:"):
            match_columns(tc, ["patient_id", "sex"])

    def test_regex_binds_headers_containing_the_pattern(self) -> None:
        tc = _context(
            SeriesContext(identifier=Identifier.regex("hpo"), data_context=HPO_LABEL_OR_ID)
        )
        bindings = match_columns(tc, ["patient_id", "hpo_1", "hpo_2"])
        assert list(bindings) == ["patient_id", "hpo_1", "hpo_2"]

    def test_list_with_one_missing_name(self) -> None:
        tc = _context(SeriesContext(identifier=Identifier.of_list(["a", "b"])))
        with pytest.raises(IdentifierMatchError):
            match_columns(tc, ["patient_id", "a"])

    def test_optional_missing_is_skipped(self) -> None:
        tc = _context(SeriesContext(identifier=Identifier.exact("sex"), optional=True))
        assert list(match_columns(tc, ["patient_id"])) == ["patient_id"]

    def test_overlapping_identifiers_bind_both(self) -> None:
        first = SeriesContext(identifier=Identifier.exact("sex"), data_context=SUBJECT_SEX)
        second = SeriesContext(identifier=Identifier.regex("s.x"))
        bindings = match_columns(_context(first, second), ["patient_id", "sex"])
        assert bindings["sex"] == [first, second]


class TestTagTable:
    def test_cleans_cells(self) -> None:
        df = pd.DataFrame({"patient_id": ["P1", "P2"], "sex": ["  M ", "   "]})
        tc = _context(SeriesContext(identifier=Identifier.exact("sex"), data_context=SUBJECT_SEX))
        table = tag_table(df, tc, source="cohort")
        assert list(table.data["sex"]) == ["M", None]
        assert table.source == "cohort"
        assert table.name == "patients"

    def test_subject_ids_become_strings(self) -> None:
        df = pd.DataFrame({"patient_id": [1.0, 2.0, None]})
        table = tag_table(df, _context())
        assert list(table.data["patient_id"]) == ["1", "2", None]

    def test_fill_missing(self) -> None:
        df = pd.DataFrame({"patient_id": ["P1", "P2"], "hpo": [None, "HP:0001250"]})
        tc = _context(
            SeriesContext(
                identifier=Identifier.exact("hpo"),
                data_context=HPO_LABEL_OR_ID,
                fill_missing="HP:0000001",
            )
        )
        table = tag_table(df, tc)
        assert list(table.data["hpo"]) == ["HP:0000001", "HP:0001250"]

    def test_integers_stay_integers(self) -> None:
        df = pd.DataFrame({"patient_id": ["P1", "P2"], "age": [30, None]}, dtype=object)
        tc = _context(SeriesContext(identifier=Identifier.exact("age")))
        table = tag_table(df, tc)
        values = list(table.data["age"])
        assert values[0] == 30
        assert isinstance(values[0], int)
        assert values[1] is None

    def test_numpy_scalars_and_datetimes(self) -> None:
        df = pd.DataFrame(
            {
                "patient_id": ["P1", "P2"],
                "age": [41, 42],
                "seen": [datetime(2020, 1, 2), datetime(2020, 1, 2, 8, 30)],
            }
        )
        tc = _context(SeriesContext(identifier=Identifier.exact("age")))
        table = tag_table(df, tc)
        assert type(table.data["age"].iloc[0]) is int
        assert list(table.data["seen"]) == ["2020-01-02", "2020-01-02T08:30:00"]

    def test_non_string_headers(self) -> None:
        df = pd.DataFrame({"patient_id": ["P1"], 2019: ["x"]})
        table = tag_table(df, _context())
        assert "2019" in table.data.columns

    def test_malformed_declaration(self) -> None:
        tc = TableContext(name="t", context=[SeriesContext(identifier=Identifier.exact("a"))])
        with pytest.raises(ConfigurationError):
            tag_table(pd.DataFrame({"a": [1]}), tc)


class TestTaggedTable:
    def _table(self) -> TaggedTable:
        df = pd.DataFrame(
            {"patient_id": ["P1", "P2"], "sex": ["M", None], "HP:0001250": ["yes", "no"]}
        )
        tc = _context(
            SeriesContext(identifier=Identifier.exact("sex"), data_context=SUBJECT_SEX),
            SeriesContext(
                identifier=Identifier.regex("HP:.*"),
                header_context=HPO_LABEL_OR_ID,
                data_context=OBSERVATION_STATUS,
            ),
        )
        return tag_table(df, tc)

    def test_columns_with(self) -> None:
        table = self._table()
        assert table.columns_with(data_context=SUBJECT_SEX) == ["sex"]
        assert table.columns_with(header_context=HPO_LABEL_OR_ID) == ["HP:0001250"]
        assert table.columns_with_kind(ContextKind.SUBJECT_ID) == ["patient_id"]
        assert table.subject_id_column == "patient_id"

    def test_rows(self) -> None:
        rows = list(self._table().rows())
        assert rows[0].position == 0
        assert rows[0].get("sex") == "M"
        assert rows[1].get("sex") is None
        assert rows[1].get("absent") is None

    def test_replace_leaves_input_untouched(self) -> None:
        table = self._table()
        data = table.data.drop(columns=["sex"])
        bindings = {k: v for k, v in table.bindings.items() if k != "sex"}
        replaced = table.replace(data, bindings)
        assert "sex" in table.bindings
        assert "sex" not in replaced.bindings
        assert table.replace(data, {}).bindings == {}
        assert len(replaced) == 2

    def test_series_for_unbound(self) -> None:
        assert self._table().series_for("nope") == []


class TestIsMissing:
    @pytest.mark.parametrize("value", [None, float("nan"), pd.NA, pd.NaT])
    def test_missing(self, value: object) -> None:
        assert is_missing(value)

    @pytest.mark.parametrize("value", ["", 0, False, [None]])
    def test_present(self, value: object) -> None:
        assert not is_missing(value)


def test_context_payload_is_kept_in_bindings() -> None:
    onset = Context.onset("age")
    df = pd.DataFrame({"patient_id": ["P1"], "onset": ["P3Y"]})
    series = SeriesContext(identifier=Identifier.exact("onset"), data_context=onset)
    table = tag_table(df, _context(series))
    assert table.columns_with(data_context=onset) == ["onset"]
