"""Expand delimited HPO lists into one observation-status column per term."""

from __future__ import annotations

import re

import pandas as pd
from loguru import logger

from phenotab.models.context import HPO_LABEL_OR_ID, OBSERVATION_STATUS, ContextKind
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.records import OBSERVED, UNKNOWN
from phenotab.models.table_context import Identifier, SeriesContext
from phenotab.tagging.tagged_table import TaggedTable, is_missing, object_series
from phenotab.transforms.base import Strategy

_SEPARATORS = re.compile(r"[,;|\t\n]")
_HPO_ID = re.compile(r"HP:\d{7}")


def split_terms(value: object) -> list[str]:
    """Split one cell into distinct terms, in order of appearance.

    An element containing an HPO id (``"HP:0001250 Seizure"``) yields
    the id; any other element yields its trimmed text.
    """
    if is_missing(value):
        return []
    terms: list[str] = []
    for element in _SEPARATORS.split(str(value)):
        element = element.strip()
        if not element:
            continue
        found = _HPO_ID.search(element)
        term = found.group(0) if found else element
        if term not in terms:
            terms.append(term)
    return terms


class MultiHpoColExpansionStrategy(Strategy):
    """Turn each ``multi_hpo_id`` column into per-term status columns.

    Terms are gathered per subject across every row and every
    multi-valued column of the table. Each distinct term becomes a column
    header-tagged ``hpo_label_or_id`` and data-tagged
    ``observation_status``. On the first row of each subject the cell is
    ``OBSERVED`` when any of the subject's rows listed the term and
    ``UNKNOWN`` otherwise; the subject's other rows stay null so the
    collector sees one status per subject and term. The source columns
    are removed.

    A term equal to an existing header-tagged HPO column is merged into
    that column. A term equal to any other existing column is skipped
    and reported as COLUMN_COLLISION.
    """

    name = "multi_hpo_col_expansion"

    def target_columns(self, table: TaggedTable) -> list[str]:
        return table.columns_with_kind(ContextKind.MULTI_HPO_ID)

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        sources = self.target_columns(table)
        kept = [c for c in table.data.columns if c not in sources]
        subject_ids = list(table.data[table.subject_id_column])

        # subject -> row positions; rows without a subject id stand alone
        groups: dict[object, list[int]] = {}
        observed: dict[object, set[str]] = {}
        terms: list[str] = []
        for row, subject in enumerate(subject_ids):
            key = (None, row) if is_missing(subject) else subject
            groups.setdefault(key, []).append(row)
            found = observed.setdefault(key, set())
            for column in sources:
                for term in split_terms(table.data[column].iat[row]):
                    found.add(term)
                    if term not in terms:
                        terms.append(term)

        data = table.data[kept].copy()
        bindings = {c: table.series_for(c) for c in kept if c in table.bindings}
        added: list[str] = []
        for term in terms:
            if term in kept:
                self._merge(table, data, term, groups, observed, diagnostics)
                continue
            cells: list[object] = [None] * len(table)
            for key, rows in groups.items():
                cells[rows[0]] = OBSERVED if term in observed[key] else UNKNOWN
            data[term] = object_series(cells, data.index)
            bindings[term] = [
                SeriesContext(
                    identifier=Identifier.exact(term),
                    header_context=HPO_LABEL_OR_ID,
                    data_context=OBSERVATION_STATUS,
                )
            ]
            added.append(term)

        logger.info(
            "Expanded {} multi-HPO column(s) of table {} into {} term column(s)",
            len(sources),
            table.name,
            len(added),
        )
        return table.replace(data, bindings)

    def _merge(
        self,
        table: TaggedTable,
        data: pd.DataFrame,
        term: str,
        groups: dict[object, list[int]],
        observed: dict[object, set[str]],
        diagnostics: DiagnosticsReport,
    ) -> None:
        """Write OBSERVED into an existing column named ``term``.

        Only header-tagged HPO columns accept the merge. A subject that
        already has a status in that column keeps it; a status other than
        OBSERVED is reported as CONFLICTING_VALUE.
        """
        header_tagged = any(
            sc.header_context.kind == ContextKind.HPO_LABEL_OR_ID
            for sc in table.series_for(term)
        )
        if not header_tagged:
            diagnostics.record(
                DiagnosticKind.COLUMN_COLLISION,
                f"Term '{term}' from a multi-HPO column of table '{table.name}' "
                "collides with an existing column; term skipped",
                table=table.name,
                column=term,
                value=term,
                source=table.source,
                strategy=self.name,
            )
            logger.warning("Skipping multi-HPO term {} in table {}", term, table.name)
            return

        column = data[term].astype(object)
        for key, rows in groups.items():
            if term not in observed[key]:
                continue
            first = rows[0]
            present = [column.iat[r] for r in rows if not is_missing(column.iat[r])]
            if not present:
                column.iat[first] = OBSERVED
            elif OBSERVED not in present:
                diagnostics.record(
                    DiagnosticKind.CONFLICTING_VALUE,
                    f"Term '{term}' is listed as observed in a multi-HPO column but "
                    f"column '{term}' already has status {present[0]!r}",
                    table=table.name,
                    column=term,
                    row=first,
                    value=present[0],
                    source=table.source,
                    strategy=self.name,
                )
        data[term] = column
