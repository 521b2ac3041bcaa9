"""Row-scoped diagnostics collected during a pipeline run.

Row-scoped problems (a value that fails coercion, an unresolved ontology
label, a row without subject id) never abort a table. Strategies and the
collector record them here and the report is returned to the caller
alongside the records.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from enum import StrEnum
from threading import Lock

from pydantic import BaseModel, Field


class DiagnosticKind(StrEnum):
    """Category of a row-scoped problem."""

    TYPE_COERCION = "type_coercion"
    ONTOLOGY_LOOKUP = "ontology_lookup"
    MAPPING_VIOLATION = "mapping_violation"
    MISSING_SUBJECT_ID = "missing_subject_id"
    INCOMPLETE_BLOCK = "incomplete_block"
    CONFLICTING_VALUE = "conflicting_value"
    COLUMN_COLLISION = "column_collision"


class Diagnostic(BaseModel):
    """One recorded row-scoped problem."""

    kind: DiagnosticKind
    message: str
    table: str | None = Field(default=None, description="Table name")
    column: str | None = Field(default=None, description="Column name")
    row: int | None = Field(default=None, description="Zero-based row position")
    value: str | None = Field(default=None, description="Offending value, as text")
    source: str | None = Field(default=None, description="Data source name")
    strategy: str | None = Field(default=None, description="Strategy that reported it")


class DiagnosticsReport:
    """Thread-safe, append-only list of diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic] | None = None) -> None:
        self._items: list[Diagnostic] = list(diagnostics or [])
        self._lock = Lock()

    def add(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._items.append(diagnostic)

    def record(self, kind: DiagnosticKind, message: str, **details: object) -> Diagnostic:
        """Build a Diagnostic from keyword details and append it."""
        if details.get("value") is not None:
            details["value"] = str(details["value"])
        diagnostic = Diagnostic(kind=kind, message=message, **details)
        self.add(diagnostic)
        return diagnostic

    def extend(self, other: DiagnosticsReport) -> None:
        items = other.to_list()
        with self._lock:
            self._items.extend(items)

    def to_list(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._items)

    def by_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.to_list() if d.kind == kind]

    def counts(self) -> dict[str, int]:
        return dict(Counter(d.kind.value for d in self.to_list()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.to_list())

    def __bool__(self) -> bool:
        return len(self) > 0
