"""A pandas DataFrame paired with the SeriesContexts bound to its columns."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

import pandas as pd

from phenotab.errors import ConfigurationError
from phenotab.models.context import Context, ContextKind
from phenotab.models.table_context import SeriesContext, TableContext


def is_missing(value: object) -> bool:
    """True for None, NaN/NaT and pandas NA scalars."""
    if value is None:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    return bool(pd.isna(value))


def object_series(values: list[object], index: pd.Index) -> pd.Series:
    """Wrap ``values`` in an object-dtype Series so ints never widen to float."""
    return pd.Series(values, index=index, dtype=object)


@dataclass(frozen=True)
class TaggedRow:
    """One row of a tagged table, with nulls as None."""

    position: int
    values: dict[str, object]

    def get(self, column: str) -> object | None:
        return self.values.get(column)


@dataclass
class TaggedTable:
    """Table data plus the column -> SeriesContext bindings found by the matcher.

    A column may be bound by several SeriesContexts when their identifiers
    overlap. Strategies return new TaggedTables rather than mutating the
    one they receive.
    """

    name: str
    data: pd.DataFrame
    context: TableContext
    bindings: dict[str, list[SeriesContext]] = field(default_factory=dict)
    source: str = ""

    def series_for(self, column: str) -> list[SeriesContext]:
        return list(self.bindings.get(column, []))

    def columns_with(
        self,
        *,
        data_context: Context | None = None,
        header_context: Context | None = None,
    ) -> list[str]:
        """Columns bound by a SeriesContext matching every given context."""
        result: list[str] = []
        for column in self.data.columns:
            for sc in self.bindings.get(column, []):
                if data_context is not None and sc.data_context != data_context:
                    continue
                if header_context is not None and sc.header_context != header_context:
                    continue
                result.append(column)
                break
        return result

    def columns_with_kind(self, kind: ContextKind) -> list[str]:
        """Columns whose data context has ``kind``, regardless of payload."""
        return [
            column
            for column in self.data.columns
            if any(sc.data_context.kind == kind for sc in self.bindings.get(column, []))
        ]

    @property
    def subject_id_column(self) -> str:
        columns = self.columns_with_kind(ContextKind.SUBJECT_ID)
        if len(columns) != 1:
            msg = (
                f"Table '{self.name}' must bind exactly one subject_id column, "
                f"found {columns}"
            )
            raise ConfigurationError(msg)
        return columns[0]

    def replace(
        self,
        data: pd.DataFrame,
        bindings: dict[str, list[SeriesContext]] | None = None,
    ) -> TaggedTable:
        """Return a new table with replaced data and (optionally) bindings."""
        kept = self.bindings if bindings is None else bindings
        return TaggedTable(
            name=self.name,
            data=data,
            context=self.context,
            bindings={k: list(v) for k, v in kept.items()},
            source=self.source,
        )

    def rows(self) -> Iterator[TaggedRow]:
        columns = list(self.data.columns)
        for position, values in enumerate(self.data.itertuples(index=False, name=None)):
            yield TaggedRow(
                position=position,
                values={
                    column: (None if is_missing(value) else value)
                    for column, value in zip(columns, values, strict=True)
                },
            )

    def __len__(self) -> int:
        return len(self.data)
