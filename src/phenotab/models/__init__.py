"""Pydantic data models shared across all phenotab components.

All models are re-exported here for convenient imports:
    from phenotab.models import Context, SeriesContext, TableContext, SubjectRecord
"""

from phenotab.models.context import (
    Boundary,
    Context,
    ContextKind,
    Multiplicity,
    TimeElementType,
)
from phenotab.models.diagnostics import Diagnostic, DiagnosticKind, DiagnosticsReport
from phenotab.models.records import (
    BuildingBlock,
    Observation,
    PhenotypeEntry,
    SubjectRecord,
)
from phenotab.models.table_context import (
    AliasMap,
    CellValue,
    Identifier,
    IdentifierKind,
    OutputDataType,
    SeriesContext,
    TableContext,
)

__all__ = [
    # context
    "Boundary",
    "Context",
    "ContextKind",
    "Multiplicity",
    "TimeElementType",
    # table context
    "AliasMap",
    "CellValue",
    "Identifier",
    "IdentifierKind",
    "OutputDataType",
    "SeriesContext",
    "TableContext",
    # records
    "BuildingBlock",
    "Observation",
    "PhenotypeEntry",
    "SubjectRecord",
    # diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsReport",
]
