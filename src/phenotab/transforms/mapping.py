"""Controlled-vocabulary mapping (sex, vital status, custom tables)."""

from __future__ import annotations

from phenotab.models.context import SUBJECT_SEX, VITAL_STATUS, Context
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.ontology.providers import normalize_key
from phenotab.tagging.tagged_table import TaggedTable
from phenotab.transforms.base import Strategy, map_cells

SEX_VOCABULARY: dict[str, str] = {
    "m": "MALE",
    "male": "MALE",
    "man": "MALE",
    "boy": "MALE",
    "f": "FEMALE",
    "female": "FEMALE",
    "woman": "FEMALE",
    "girl": "FEMALE",
    "o": "OTHER_SEX",
    "other": "OTHER_SEX",
    "intersex": "OTHER_SEX",
    "u": "UNKNOWN_SEX",
    "unknown": "UNKNOWN_SEX",
    "unk": "UNKNOWN_SEX",
    "not known": "UNKNOWN_SEX",
}

VITAL_STATUS_VOCABULARY: dict[str, str] = {
    "alive": "ALIVE",
    "living": "ALIVE",
    "a": "ALIVE",
    "deceased": "DECEASED",
    "dead": "DECEASED",
    "died": "DECEASED",
    "d": "DECEASED",
    "unknown": "UNKNOWN_STATUS",
    "unk": "UNKNOWN_STATUS",
    "u": "UNKNOWN_STATUS",
}


class MappingStrategy(Strategy):
    """Map values of one data context onto a small fixed vocabulary.

    Lookup keys are trimmed and case-insensitive. Values already equal
    to a vocabulary term are kept. Unknown values are left unmapped and
    recorded as MAPPING_VIOLATION diagnostics; they never abort the table.
    """

    def __init__(self, name: str, context: Context, vocabulary: dict[str, str]) -> None:
        self.name = name
        self.context = context
        self._lookup = {normalize_key(k): v for k, v in vocabulary.items()}
        for term in set(vocabulary.values()):
            self._lookup.setdefault(normalize_key(term), term)

    @classmethod
    def sex_mapping(cls, vocabulary: dict[str, str] | None = None) -> MappingStrategy:
        return cls("sex_mapping", SUBJECT_SEX, vocabulary or SEX_VOCABULARY)

    @classmethod
    def vital_status_mapping(cls, vocabulary: dict[str, str] | None = None) -> MappingStrategy:
        return cls("vital_status_mapping", VITAL_STATUS, vocabulary or VITAL_STATUS_VOCABULARY)

    @property
    def vocabulary(self) -> list[str]:
        return sorted(set(self._lookup.values()))

    def target_columns(self, table: TaggedTable) -> list[str]:
        return table.columns_with(data_context=self.context)

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        def map_value(row: int, column: str, value: object) -> object:
            mapped = self._lookup.get(normalize_key(str(value)))
            if mapped is not None:
                return mapped
            diagnostics.record(
                DiagnosticKind.MAPPING_VIOLATION,
                f"'{value}' is not a known {self.context} value; "
                f"expected one of {self.vocabulary}",
                table=table.name,
                column=column,
                row=row,
                value=value,
                source=table.source,
                strategy=self.name,
            )
            return value

        return map_cells(table, self.target_columns(table), map_value)
