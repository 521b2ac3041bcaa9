"""Declarative mapping from physical columns to semantic roles.

A TableContext describes the expected semantic shape of one physical
table (a CSV file or one spreadsheet sheet) as an ordered list of
SeriesContexts. Each SeriesContext selects columns through an Identifier
and says what the header and the cells of those columns mean.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from phenotab.errors import ConfigurationError
from phenotab.models.context import NONE, Context, ContextKind

CellValue = str | int | float | bool


class IdentifierKind(StrEnum):
    """How an Identifier selects physical columns.

    EXACT: a single header name that must exist.
    REGEX: every header the pattern fully matches.
    LIST: an explicit ordered list of header names.
    """

    EXACT = "exact"
    REGEX = "regex"
    LIST = "list"


class Identifier(BaseModel):
    """Rule selecting the physical columns of a SeriesContext.

    Parsed from configuration as a plain string (regex), a list of names,
    or an explicit ``{"exact": ...}`` / ``{"regex": ...}`` / ``{"list": [...]}``.
    """

    model_config = ConfigDict(frozen=True)

    kind: IdentifierKind
    pattern: str | None = Field(default=None, description="Header name or regex pattern")
    names: tuple[str, ...] = Field(default=(), description="Header names for LIST identifiers")

    @model_validator(mode="before")
    @classmethod
    def _accept_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"kind": IdentifierKind.REGEX, "pattern": data}
        if isinstance(data, (list, tuple)):
            return {"kind": IdentifierKind.LIST, "names": tuple(data)}
        if isinstance(data, dict) and "kind" not in data and len(data) == 1:
            (kind, value), = data.items()
            if kind == IdentifierKind.LIST:
                return {"kind": kind, "names": tuple(value)}
            return {"kind": kind, "pattern": value}
        return data

    @model_validator(mode="after")
    def _check_shape(self) -> Identifier:
        if self.kind == IdentifierKind.LIST:
            if not self.names:
                raise ValueError("List identifier needs at least one column name")
            if len(set(self.names)) != len(self.names):
                raise ValueError(f"List identifier repeats a column name: {list(self.names)}")
            return self
        if not self.pattern:
            raise ValueError(f"{self.kind} identifier needs a non-empty pattern")
        if self.kind == IdentifierKind.REGEX:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                msg = f"Invalid regex identifier '{self.pattern}': {exc}"
                raise ValueError(msg) from exc
        return self

    @classmethod
    def exact(cls, name: str) -> Identifier:
        return cls(kind=IdentifierKind.EXACT, pattern=name)

    @classmethod
    def regex(cls, pattern: str) -> Identifier:
        return cls(kind=IdentifierKind.REGEX, pattern=pattern)

    @classmethod
    def of_list(cls, names: list[str]) -> Identifier:
        return cls(kind=IdentifierKind.LIST, names=tuple(names))

    def select(self, headers: list[str]) -> list[str]:
        """Return the headers this identifier binds, in binding order.

        Exact and list identifiers return only names present in ``headers``.
        A regex that equals a header verbatim selects just that header;
        otherwise every header the pattern matches anywhere is selected.
        Anchor the pattern with ``^...$`` to require a whole-header match.
        """
        match self.kind:
            case IdentifierKind.EXACT:
                return [self.pattern] if self.pattern in headers else []
            case IdentifierKind.LIST:
                return [name for name in self.names if name in headers]
            case IdentifierKind.REGEX:
                if self.pattern in headers:
                    return [self.pattern]
                compiled = re.compile(self.pattern)
                return [h for h in headers if compiled.search(h)]

    def missing(self, headers: list[str]) -> list[str]:
        """Return the explicitly named columns absent from ``headers``."""
        match self.kind:
            case IdentifierKind.EXACT:
                return [] if self.pattern in headers else [self.pattern]
            case IdentifierKind.LIST:
                return [name for name in self.names if name not in headers]
            case IdentifierKind.REGEX:
                return []

    def __str__(self) -> str:
        if self.kind == IdentifierKind.LIST:
            return ",".join(self.names)
        return str(self.pattern)


class OutputDataType(StrEnum):
    """Scalar type an alias-mapped column is coerced to."""

    STRING = "string"
    FLOAT = "float"
    INT = "int"
    BOOLEAN = "boolean"


class AliasMap(BaseModel):
    """Literal value rewrite for a column, followed by type coercion.

    Keys are matched case-sensitively against the string form of the cell.
    A key mapped to None nulls the cell.
    """

    model_config = ConfigDict(frozen=True)

    mapping: dict[str, CellValue | None] = Field(..., description="Raw value -> replacement")
    output_dtype: OutputDataType = Field(
        default=OutputDataType.STRING, description="Type the column is coerced to"
    )


class SeriesContext(BaseModel):
    """Meaning of one or more columns selected by an Identifier."""

    model_config = ConfigDict(frozen=True)

    identifier: Identifier
    header_context: Context = Field(default=NONE, description="Meaning of the header itself")
    data_context: Context = Field(default=NONE, description="Meaning of the cell values")
    fill_missing: CellValue | None = Field(
        default=None, description="Value substituted for null or absent cells"
    )
    alias_map: AliasMap | None = Field(default=None, description="Optional value rewrite")
    building_block_id: str | None = Field(
        default=None, description="Groups series that form one sub-record per row"
    )
    optional: bool = Field(
        default=False, description="Missing columns are a no-op instead of an error"
    )

    @field_validator("building_block_id")
    @classmethod
    def _blank_block_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    def with_contexts(
        self,
        *,
        header_context: Context | None = None,
        data_context: Context | None = None,
    ) -> SeriesContext:
        """Return a copy with replaced header and/or data contexts."""
        update: dict[str, Context] = {}
        if header_context is not None:
            update["header_context"] = header_context
        if data_context is not None:
            update["data_context"] = data_context
        return self.model_copy(update=update)


class TableContext(BaseModel):
    """Declared semantic shape of one physical table."""

    name: str = Field(..., description="Table name (file stem or sheet name)")
    context: list[SeriesContext] = Field(default_factory=list)

    def validate_declaration(self) -> None:
        """Check structural rules that apply before any data is seen.

        Raises:
            ConfigurationError: No or several subject id series, or an
                identifier declared twice.
        """
        subject_series = [
            sc for sc in self.context if sc.data_context.kind == ContextKind.SUBJECT_ID
        ]
        if len(subject_series) != 1:
            msg = (
                f"Table '{self.name}' must declare exactly one subject_id series, "
                f"found {len(subject_series)}"
            )
            raise ConfigurationError(msg)
        if subject_series[0].optional:
            msg = f"Table '{self.name}': the subject_id series cannot be optional"
            raise ConfigurationError(msg)
        if subject_series[0].identifier.kind == IdentifierKind.LIST and (
            len(subject_series[0].identifier.names) > 1
        ):
            msg = f"Table '{self.name}': subject_id series must bind a single column"
            raise ConfigurationError(msg)

        seen: set[Identifier] = set()
        for sc in self.context:
            if sc.identifier in seen:
                msg = f"Table '{self.name}': identifier '{sc.identifier}' declared twice"
                raise ConfigurationError(msg)
            seen.add(sc.identifier)

    @property
    def subject_id_series(self) -> SeriesContext:
        for sc in self.context:
            if sc.data_context.kind == ContextKind.SUBJECT_ID:
                return sc
        msg = f"Table '{self.name}' declares no subject_id series"
        raise ConfigurationError(msg)

    def block_members(self, building_block_id: str) -> list[SeriesContext]:
        """Series sharing a building block id, in declaration order."""
        return [sc for sc in self.context if sc.building_block_id == building_block_id]
