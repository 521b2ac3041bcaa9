"""Exception hierarchy for the phenotab pipeline.

Structural errors (bad declarations, missing required columns, malformed
alias maps) are raised and abort the owning table or the whole run.
Row-scoped problems are not raised past the strategy or collector that
finds them; they are recorded in a DiagnosticsReport instead.
"""

from __future__ import annotations


class PhenotabError(Exception):
    """Base class for all phenotab errors."""


class ConfigurationError(PhenotabError):
    """Malformed mapping declaration or pipeline configuration."""


class IdentifierMatchError(PhenotabError):
    """A required SeriesContext matched no physical column."""

    def __init__(self, table: str, identifier: str, available: list[str]) -> None:
        self.table = table
        self.identifier = identifier
        self.available = available
        super().__init__(
            f"Identifier '{identifier}' matched no column in table '{table}'. "
            f"Available: {available}"
        )


class TransformError(PhenotabError):
    """A strategy could not process a table at all."""

    def __init__(self, strategy: str, table: str, message: str) -> None:
        self.strategy = strategy
        self.table = table
        super().__init__(f"[{strategy}] table '{table}': {message}")


class TypeCoercionError(PhenotabError):
    """A cell value could not be coerced to its declared output type."""

    def __init__(self, table: str, column: str, row: int, value: object, dtype: str) -> None:
        self.table = table
        self.column = column
        self.row = row
        self.value = value
        self.dtype = dtype
        super().__init__(
            f"Cannot coerce {value!r} to {dtype} (table '{table}', column '{column}', row {row})"
        )


class CacheError(PhenotabError):
    """The backing store of a cache failed for one key."""

    def __init__(self, key: object, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Cache lookup failed for {key!r}: {reason}")


class OntologyLookupError(CacheError):
    """An ontology id or label could not be resolved."""


class InvalidIdError(OntologyLookupError):
    """An identifier does not match the ontology's id grammar."""


class LoadError(PhenotabError):
    """The loader could not persist the finalized records."""


class PipelineError(PhenotabError):
    """A fatal error terminated a pipeline run.

    Wraps the structural error that aborted the run together with the
    name of the table that caused it, when known.
    """

    def __init__(self, message: str, *, table: str | None = None) -> None:
        self.table = table
        super().__init__(message)
