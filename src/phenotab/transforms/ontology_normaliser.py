"""Replace ontology labels and synonyms with canonical ids."""

from __future__ import annotations

from loguru import logger

from phenotab.errors import OntologyLookupError
from phenotab.models.context import Context
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.table_context import SeriesContext
from phenotab.ontology.bidict import OntologyBiDict
from phenotab.tagging.tagged_table import TaggedTable, is_missing, object_series
from phenotab.transforms.base import Strategy


class OntologyNormaliserStrategy(Strategy):
    """Resolve values tagged with ``context`` through one OntologyBiDict.

    Cells whose data context is ``context`` are rewritten in place:
    valid ids pass through, labels and synonyms become their canonical
    id. Headers whose header context is ``context`` are renamed the same
    way. Unresolved values are kept as they are and reported once per
    (column, value) as ONTOLOGY_LOOKUP diagnostics.

    Args:
        bidict: Shared dictionary of the target ontology.
        context: Data or header context selecting the columns.
    """

    name = "ontology_normaliser"

    def __init__(self, bidict: OntologyBiDict, context: Context) -> None:
        self.bidict = bidict
        self.context = context

    def __repr__(self) -> str:
        return f"OntologyNormaliserStrategy(ref={self.bidict.ref}, context={self.context})"

    def _data_columns(self, table: TaggedTable) -> list[str]:
        return table.columns_with(data_context=self.context)

    def _header_columns(self, table: TaggedTable) -> list[str]:
        return table.columns_with(header_context=self.context)

    def target_columns(self, table: TaggedTable) -> list[str]:
        data_columns = self._data_columns(table)
        return data_columns + [
            c for c in self._header_columns(table) if c not in data_columns
        ]

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        resolved: dict[str, str | None] = {}
        reported: set[tuple[str, str]] = set()

        def resolve(value: str, column: str, row: int) -> str | None:
            if value not in resolved:
                try:
                    resolved[value] = self.bidict.get_id(value)
                except OntologyLookupError as exc:
                    resolved[value] = None
                    logger.warning(
                        "Unresolved {} value '{}' in {}.{}: {}",
                        self.bidict.ref,
                        value,
                        table.name,
                        column,
                        exc.reason,
                    )
            if resolved[value] is None and (column, value) not in reported:
                reported.add((column, value))
                diagnostics.record(
                    DiagnosticKind.ONTOLOGY_LOOKUP,
                    f"No {self.bidict.ref} term for '{value}'",
                    table=table.name,
                    column=column,
                    row=row,
                    value=value,
                    source=table.source,
                    strategy=self.name,
                )
            return resolved[value]

        data = table.data.copy()
        for column in self._data_columns(table):
            values: list[object] = []
            for row, value in enumerate(data[column]):
                if is_missing(value):
                    values.append(None)
                    continue
                text = str(value)
                values.append(resolve(text, column, row) or text)
            data[column] = object_series(values, data.index)

        renames: dict[str, str] = {}
        for column in self._header_columns(table):
            canonical = resolve(column, column, 0)
            if canonical is None or canonical == column:
                continue
            if canonical in data.columns or canonical in renames.values():
                logger.warning(
                    "Not renaming {}.{} to {}: column already exists",
                    table.name,
                    column,
                    canonical,
                )
                continue
            renames[column] = canonical

        if not renames:
            return table.replace(data)

        data = data.rename(columns=renames)
        bindings: dict[str, list[SeriesContext]] = {}
        for column, series_contexts in table.bindings.items():
            bindings[renames.get(column, column)] = series_contexts
        return table.replace(data, bindings)
