"""Bind a TableContext's SeriesContexts to the physical columns of a table.

The matcher is the only place where declared identifiers meet real
headers. It resolves every identifier, fails the table on a missing
required column, and prepares cell values for the strategy pipeline:
strings are trimmed, blank strings become null, subject ids become
strings and ``fill_missing`` defaults are substituted for nulls.
"""

from __future__ import annotations

from datetime import date, datetime, time

import pandas as pd
from loguru import logger

from phenotab.errors import IdentifierMatchError
from phenotab.models.context import ContextKind
from phenotab.models.table_context import SeriesContext, TableContext
from phenotab.tagging.tagged_table import TaggedTable, is_missing, object_series


def match_columns(
    table_context: TableContext,
    headers: list[str],
) -> dict[str, list[SeriesContext]]:
    """Resolve each SeriesContext's identifier against ``headers``.

    A header matched by several SeriesContexts is bound to all of them,
    in declaration order.

    Args:
        table_context: Declared shape of the table.
        headers: Physical column headers of the raw table.

    Returns:
        Mapping of header -> bound SeriesContexts, in header order.
        Unbound headers are omitted.

    Raises:
        IdentifierMatchError: A required SeriesContext names a column that
            is absent, or its regex matches nothing.
    """
    bindings: dict[str, list[SeriesContext]] = {}
    for sc in table_context.context:
        missing = sc.identifier.missing(headers)
        selected = sc.identifier.select(headers)
        if (missing or not selected) and not sc.optional:
            raise IdentifierMatchError(table_context.name, str(sc.identifier), list(headers))
        if missing or not selected:
            logger.debug(
                "Optional identifier '{}' unmatched in table {}",
                sc.identifier,
                table_context.name,
            )
        for header in selected:
            bindings.setdefault(header, []).append(sc)

    return {h: bindings[h] for h in headers if h in bindings}


def _clean_cell(value: object) -> object | None:
    if is_missing(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, datetime):
        if value.time() == time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    # numpy scalars from spreadsheet readers
    if hasattr(value, "item") and pd.api.types.is_scalar(value):
        return value.item()
    return value


def _stringify_id(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def tag_table(
    df: pd.DataFrame,
    table_context: TableContext,
    *,
    source: str = "",
) -> TaggedTable:
    """Match ``df`` against ``table_context`` and return a TaggedTable.

    Args:
        df: Raw table from an extraction collaborator.
        table_context: Declared semantic shape of the table.
        source: Name of the data source the table came from.

    Returns:
        TaggedTable whose data is an object-dtype copy of ``df``.

    Raises:
        ConfigurationError: The table context is malformed.
        IdentifierMatchError: A required column is absent.
    """
    table_context.validate_declaration()
    headers = [str(c) for c in df.columns]
    data = df.copy()
    data.columns = headers
    bindings = match_columns(table_context, headers)

    data = data.astype(object)
    for column in data.columns:
        data[column] = object_series([_clean_cell(v) for v in data[column]], data.index)

    for column, series_contexts in bindings.items():
        if any(sc.data_context.kind == ContextKind.SUBJECT_ID for sc in series_contexts):
            data[column] = object_series([_stringify_id(v) for v in data[column]], data.index)
        fill = next(
            (sc.fill_missing for sc in series_contexts if sc.fill_missing is not None), None
        )
        if fill is not None:
            filled = [fill if v is None else v for v in data[column]]
            data[column] = object_series(filled, data.index)

    logger.info(
        "Tagged table {} ({} rows, {}/{} columns bound)",
        table_context.name,
        len(data),
        len(bindings),
        len(headers),
    )
    return TaggedTable(
        name=table_context.name,
        data=data,
        context=table_context,
        bindings=bindings,
        source=source,
    )
