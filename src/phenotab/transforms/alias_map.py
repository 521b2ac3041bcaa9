"""Literal value rewriting through per-column alias maps."""

from __future__ import annotations

import math

from loguru import logger

from phenotab.errors import TransformError, TypeCoercionError
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.table_context import AliasMap, CellValue, OutputDataType
from phenotab.tagging.tagged_table import TaggedTable, is_missing, object_series
from phenotab.transforms.base import Strategy

_TRUE = frozenset({"true", "yes", "y", "1"})
_FALSE = frozenset({"false", "no", "n", "0"})


def cell_key(value: object) -> str:
    """String form used to look a cell up in an alias map.

    Integral floats (as produced by spreadsheet readers) drop their
    fractional part so ``1.0`` matches the key ``"1"``.
    """
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce(value: CellValue, dtype: OutputDataType) -> CellValue:
    """Coerce ``value`` to ``dtype``.

    Raises:
        ValueError: The value has no representation in ``dtype``.
    """
    match dtype:
        case OutputDataType.STRING:
            return value if isinstance(value, str) else cell_key(value)
        case OutputDataType.FLOAT:
            if isinstance(value, bool):
                raise ValueError("boolean is not a float")
            result = float(value)
            if math.isnan(result):
                raise ValueError("NaN is not a value")
            return result
        case OutputDataType.INT:
            if isinstance(value, bool):
                raise ValueError("boolean is not an int")
            if isinstance(value, int):
                return value
            number = float(value)
            if not number.is_integer():
                raise ValueError(f"{value!r} is not integral")
            return int(number)
        case OutputDataType.BOOLEAN:
            if isinstance(value, bool):
                return value
            text = cell_key(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(f"{value!r} is not a boolean")


class AliasMapStrategy(Strategy):
    """Replace cell values through each column's alias map, then coerce.

    Keys match the cell's string form case-sensitively. Unmapped values
    pass through unchanged apart from coercion to the declared output
    type. A value that cannot be coerced is nulled and recorded as a
    TYPE_COERCION diagnostic. An alias map whose own replacement values
    cannot be coerced is malformed and aborts the table.
    """

    name = "alias_map"

    def target_columns(self, table: TaggedTable) -> list[str]:
        return [
            column
            for column, series_contexts in table.bindings.items()
            if any(sc.alias_map is not None for sc in series_contexts)
        ]

    def _alias_map_for(self, table: TaggedTable, column: str) -> AliasMap:
        maps = [sc.alias_map for sc in table.series_for(column) if sc.alias_map is not None]
        if any(other != maps[0] for other in maps[1:]):
            msg = f"column '{column}' is bound to {len(maps)} different alias maps"
            raise TransformError(self.name, table.name, msg)
        return maps[0]

    def _check_alias_map(self, table: TaggedTable, column: str, alias_map: AliasMap) -> None:
        for key, replacement in alias_map.mapping.items():
            if replacement is None:
                continue
            try:
                coerce(replacement, alias_map.output_dtype)
            except (TypeError, ValueError) as exc:
                msg = (
                    f"alias map of column '{column}' maps {key!r} to {replacement!r}, "
                    f"which is not a valid {alias_map.output_dtype}: {exc}"
                )
                raise TransformError(self.name, table.name, msg) from exc

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        data = table.data.copy()
        for column in self.target_columns(table):
            alias_map = self._alias_map_for(table, column)
            self._check_alias_map(table, column, alias_map)
            values: list[object] = []
            for row, value in enumerate(data[column]):
                values.append(self._rewrite(table, column, row, value, alias_map, diagnostics))
            data[column] = object_series(values, data.index)
        return table.replace(data)

    def _rewrite(
        self,
        table: TaggedTable,
        column: str,
        row: int,
        value: object,
        alias_map: AliasMap,
        diagnostics: DiagnosticsReport,
    ) -> CellValue | None:
        if is_missing(value):
            return None
        key = cell_key(value)
        replaced = alias_map.mapping[key] if key in alias_map.mapping else value
        if replaced is None:
            return None
        try:
            return coerce(replaced, alias_map.output_dtype)
        except (TypeError, ValueError):
            error = TypeCoercionError(table.name, column, row, replaced, alias_map.output_dtype)
            logger.warning("{}", error)
            diagnostics.record(
                DiagnosticKind.TYPE_COERCION,
                str(error),
                table=table.name,
                column=column,
                row=row,
                value=replaced,
                source=table.source,
                strategy=self.name,
            )
            return None
