"""Strategy interface for the tagged-table transform pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from loguru import logger

from phenotab.models.diagnostics import DiagnosticsReport
from phenotab.tagging.tagged_table import TaggedTable, is_missing, object_series


class Strategy(ABC):
    """One named transform step.

    A strategy receives a TaggedTable and returns a new one; it never
    mutates its input. Row-scoped problems go to the DiagnosticsReport.
    Structural problems raise TransformError and abort the table.
    """

    name: str = "strategy"

    def prepare(self, tables: list[TaggedTable]) -> None:
        """Inspect every table of a run before any table is transformed.

        Called once, from a single thread, ahead of the per-table
        ``apply`` calls. Most strategies need nothing from other tables.
        """

    def is_valid(self, table: TaggedTable) -> bool:
        """True when the table has at least one column this strategy touches."""
        return bool(self.target_columns(table))

    @abstractmethod
    def target_columns(self, table: TaggedTable) -> list[str]:
        """Columns of ``table`` this strategy rewrites."""
        ...

    @abstractmethod
    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        """Return the rewritten table."""
        ...

    def apply(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        """Run ``transform`` when the table is applicable, else return it unchanged."""
        if not self.is_valid(table):
            logger.debug("Strategy {} skipped table {}", self.name, table.name)
            return table
        before = len(diagnostics)
        result = self.transform(table, diagnostics)
        logger.debug(
            "Strategy {} rewrote table {} ({} new diagnostics)",
            self.name,
            table.name,
            len(diagnostics) - before,
        )
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def map_cells(
    table: TaggedTable,
    columns: list[str],
    func: Callable[[int, str, object], object],
) -> TaggedTable:
    """Apply ``func(row, column, value)`` to every non-null cell of ``columns``.

    Returns a new TaggedTable with the same bindings. Null cells are
    passed through untouched.
    """
    data = table.data.copy()
    for column in columns:
        values = [
            None if is_missing(value) else func(row, column, value)
            for row, value in enumerate(data[column])
        ]
        data[column] = object_series(values, data.index)
    return table.replace(data)
