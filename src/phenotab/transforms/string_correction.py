"""Whitespace and casing clean-up ahead of exact-match lookups."""

from __future__ import annotations

import unicodedata
from enum import StrEnum

from phenotab.models.context import Context, ContextKind
from phenotab.models.diagnostics import DiagnosticsReport
from phenotab.tagging.tagged_table import TaggedTable
from phenotab.transforms.base import Strategy, map_cells


class CaseMode(StrEnum):
    """Casing applied after whitespace normalisation."""

    PRESERVE = "preserve"
    LOWER = "lower"
    UPPER = "upper"
    TITLE = "title"


def correct_string(value: str, case: CaseMode = CaseMode.PRESERVE) -> str:
    """NFKC-normalise, collapse whitespace runs and apply ``case``."""
    text = " ".join(unicodedata.normalize("NFKC", value).split())
    match case:
        case CaseMode.PRESERVE:
            return text
        case CaseMode.LOWER:
            return text.lower()
        case CaseMode.UPPER:
            return text.upper()
        case CaseMode.TITLE:
            return text.title()


class StringCorrectionStrategy(Strategy):
    """Normalise string cells so later lookups see canonical keys.

    Must run before ``alias_map`` and ``ontology_normaliser``; the
    pipeline rejects any other order. Subject ids are never touched.

    Args:
        contexts: Only columns whose data context is one of these are
            corrected. None means every bound column.
        case: Casing applied after whitespace normalisation.
    """

    name = "string_correction"

    def __init__(
        self,
        contexts: list[Context] | None = None,
        case: CaseMode = CaseMode.PRESERVE,
    ) -> None:
        self.contexts = list(contexts) if contexts is not None else None
        self.case = CaseMode(case)

    def target_columns(self, table: TaggedTable) -> list[str]:
        columns: list[str] = []
        for column, series_contexts in table.bindings.items():
            if any(sc.data_context.kind == ContextKind.SUBJECT_ID for sc in series_contexts):
                continue
            if self.contexts is None or any(
                sc.data_context in self.contexts for sc in series_contexts
            ):
                columns.append(column)
        return columns

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        def correct(row: int, column: str, value: object) -> object:
            if not isinstance(value, str):
                return value
            return correct_string(value, self.case) or None

        return map_cells(table, self.target_columns(table), correct)
