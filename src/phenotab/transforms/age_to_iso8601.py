"""Normalise ages given in whole years to ISO 8601 durations."""

from __future__ import annotations

import re

from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.tagging.tagged_table import TaggedTable
from phenotab.transforms.base import Strategy, map_cells

_ISO8601_DURATION = re.compile(r"^P(\d+Y)?(\d+M)?(\d+D)?(T(\d+H)?(\d+M)?(\d+S)?)?$")
_WHOLE_NUMBER = re.compile(r"^[+-]?\d+$")

MIN_AGE = 0
MAX_AGE = 150


def is_iso8601_duration(value: str) -> bool:
    return _ISO8601_DURATION.match(value) is not None


def years(value: object) -> int | None:
    """Whole years held by ``value``, or None when it is not an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    return int(text) if _WHOLE_NUMBER.match(text) else None


class AgeToIso8601Strategy(Strategy):
    """Rewrite integer ages as ``P{n}Y`` in columns tagged with an age context.

    Only columns whose header is untagged and whose data context carries
    ``time_element: age`` are touched. Values that already are ISO 8601
    durations pass through. Integers outside ``min_age..max_age`` and
    anything else unparseable are kept and reported as MAPPING_VIOLATION.
    """

    name = "age_to_iso8601"

    def __init__(self, min_age: int = MIN_AGE, max_age: int = MAX_AGE) -> None:
        if min_age > max_age:
            msg = f"min_age {min_age} is greater than max_age {max_age}"
            raise ValueError(msg)
        self.min_age = min_age
        self.max_age = max_age

    def target_columns(self, table: TaggedTable) -> list[str]:
        return [
            column
            for column in table.data.columns
            if any(
                sc.header_context.is_none and sc.data_context.is_age
                for sc in table.series_for(column)
            )
        ]

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        def to_duration(row: int, column: str, value: object) -> object:
            if isinstance(value, str) and is_iso8601_duration(value.strip()):
                return value.strip()
            age = years(value)
            if age is not None and self.min_age <= age <= self.max_age:
                return f"P{age}Y"
            diagnostics.record(
                DiagnosticKind.MAPPING_VIOLATION,
                f"'{value}' is not an ISO 8601 duration or a whole number of years "
                f"between {self.min_age} and {self.max_age}",
                table=table.name,
                column=column,
                row=row,
                value=value,
                source=table.source,
                strategy=self.name,
            )
            return value

        return map_cells(table, self.target_columns(table), to_duration)
