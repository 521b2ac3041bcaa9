"""Tests for alias-map rewriting and output type coercion."""

from __future__ import annotations

import pandas as pd
import pytest

from phenotab.errors import TransformError
from phenotab.models.context import SUBJECT_ID, Context, ContextKind
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.table_context import (
    AliasMap,
    Identifier,
    OutputDataType,
    SeriesContext,
    TableContext,
)
from phenotab.tagging import TaggedTable, tag_table
from phenotab.transforms.alias_map import AliasMapStrategy, cell_key, coerce


def _table(values: list[object], alias_map: AliasMap | None, *extra: SeriesContext) -> TaggedTable:
    df = pd.DataFrame(
        {"id": [f"P{i}" for i in range(len(values))], "value": values}, dtype=object
    )
    tc = TableContext(
        name="labs",
        context=[
            SeriesContext(identifier=Identifier.exact("id"), data_context=SUBJECT_ID),
            SeriesContext(
                identifier=Identifier.exact("value"),
                data_context=Context.of(ContextKind.SURVIVAL_TIME_DAYS),
                alias_map=alias_map,
            ),
            *extra,
        ],
    )
    return tag_table(df, tc, source="lab-source")


class TestCoerce:
    @pytest.mark.parametrize(
        ("value", "dtype", "expected"),
        [
            ("12", OutputDataType.INT, 12),
            (12.0, OutputDataType.INT, 12),
            ("1.5", OutputDataType.FLOAT, 1.5),
            (3, OutputDataType.STRING, "3"),
            (2.0, OutputDataType.STRING, "2"),
            ("Yes", OutputDataType.BOOLEAN, True),
            ("n", OutputDataType.BOOLEAN, False),
            (1, OutputDataType.BOOLEAN, True),
        ],
    )
    def test_valid(self, value: object, dtype: OutputDataType, expected: object) -> None:
        result = coerce(value, dtype)
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize(
        ("value", "dtype"),
        [
            ("1.5", OutputDataType.INT),
            ("abc", OutputDataType.FLOAT),
            (True, OutputDataType.INT),
            (False, OutputDataType.FLOAT),
            ("maybe", OutputDataType.BOOLEAN),
            ("nan", OutputDataType.FLOAT),
        ],
    )
    def test_invalid(self, value: object, dtype: OutputDataType) -> None:
        with pytest.raises(ValueError):
            coerce(value, dtype)

    def test_cell_key(self) -> None:
        assert cell_key(1.0) == "1"
        assert cell_key(1.5) == "1.5"
        assert cell_key(True) == "true"


class TestAliasMapStrategy:
    def test_replaces_and_coerces(self) -> None:
        alias = AliasMap(
            mapping={"unknown": None, "one year": 365}, output_dtype=OutputDataType.INT
        )
        table = _table(["one year", "unknown", "30", None], alias)
        diagnostics = DiagnosticsReport()
        result = AliasMapStrategy().apply(table, diagnostics)
        assert list(result.data["value"]) == [365, None, 30, None]
        assert len(diagnostics) == 0

    def test_keys_are_case_sensitive(self) -> None:
        alias = AliasMap(mapping={"Male": "M"})
        result = AliasMapStrategy().apply(_table(["male", "Male"], alias), DiagnosticsReport())
        assert list(result.data["value"]) == ["male", "M"]

    def test_uncoercible_value_is_nulled_and_reported(self) -> None:
        alias = AliasMap(mapping={}, output_dtype=OutputDataType.FLOAT)
        diagnostics = DiagnosticsReport()
        result = AliasMapStrategy().apply(_table(["1.5", "lots"], alias), diagnostics)
        assert list(result.data["value"]) == [1.5, None]
        (diagnostic,) = diagnostics.by_kind(DiagnosticKind.TYPE_COERCION)
        assert diagnostic.table == "labs"
        assert diagnostic.column == "value"
        assert diagnostic.row == 1
        assert diagnostic.value == "lots"
        assert diagnostic.source == "lab-source"
        assert diagnostic.strategy == "alias_map"

    def test_malformed_alias_map_aborts_table(self) -> None:
        alias = AliasMap(mapping={"x": "not a number"}, output_dtype=OutputDataType.INT)
        with pytest.raises(TransformError, match="not a valid int"):
            AliasMapStrategy().apply(_table(["x"], alias), DiagnosticsReport())

    def test_conflicting_alias_maps_on_one_column(self) -> None:
        second = SeriesContext(
            identifier=Identifier.regex("val.*"),
            alias_map=AliasMap(mapping={"a": "b"}),
        )
        table = _table(["a"], AliasMap(mapping={"a": "c"}), second)
        with pytest.raises(TransformError, match="different alias maps"):
            AliasMapStrategy().apply(table, DiagnosticsReport())

    def test_not_applicable_without_alias_maps(self) -> None:
        table = _table(["a"], None)
        strategy = AliasMapStrategy()
        assert not strategy.is_valid(table)
        assert strategy.apply(table, DiagnosticsReport()) is table

    def test_input_table_untouched(self) -> None:
        table = _table(["a"], AliasMap(mapping={"a": "b"}))
        AliasMapStrategy().apply(table, DiagnosticsReport())
        assert list(table.data["value"]) == ["a"]
