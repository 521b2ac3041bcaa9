"""Convert calendar dates in age columns to the subject's age at that date."""

from __future__ import annotations

import re
from datetime import date, datetime

import pandas as pd
from dateutil.relativedelta import relativedelta
from loguru import logger

from phenotab.models.context import ContextKind
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.tagging.tagged_table import TaggedTable, is_missing
from phenotab.transforms.base import Strategy, map_cells

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_date(value: object) -> date | None:
    """Calendar date of an ISO 8601 date or datetime value, else None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _ISO_DATE.match(text):
        return None
    parsed = pd.to_datetime(text, format="ISO8601", errors="coerce")
    return None if pd.isna(parsed) else parsed.date()


def age_between(birth: date, at: date) -> str:
    """Age at ``at`` for someone born on ``birth``, e.g. ``P3Y2M5D``."""
    delta = relativedelta(at, birth)
    parts = [(delta.years, "Y"), (delta.months, "M"), (delta.days, "D")]
    duration = "".join(f"{amount}{unit}" for amount, unit in parts if amount)
    return f"P{duration or '0D'}"


def _birth_dates(table: TaggedTable) -> dict[str, date]:
    columns = table.columns_with_kind(ContextKind.DATE_OF_BIRTH)
    if not columns:
        return {}
    subject_column = table.subject_id_column
    found: dict[str, date] = {}
    for row in table.rows():
        subject = row.get(subject_column)
        if subject is None:
            continue
        for column in columns:
            value = row.get(column)
            birth = None if value is None else parse_date(value)
            if birth is not None:
                found.setdefault(str(subject), birth)
    return found


class DateToAgeStrategy(Strategy):
    """Replace dates in age-typed columns with the subject's age at that date.

    Dates of birth come from every ``date_of_birth`` column of the run,
    gathered by ``prepare``; the table's own column is used as a fallback
    when ``prepare`` did not see it. The first date of birth found for a
    subject wins.

    Cells that are not dates are left alone for ``age_to_iso8601``. A
    date for a subject without a date of birth, or a date before birth,
    is kept and reported as MAPPING_VIOLATION.
    """

    name = "date_to_age"

    def __init__(self) -> None:
        self._birth_dates: dict[str, date] = {}

    def prepare(self, tables: list[TaggedTable]) -> None:
        birth_dates: dict[str, date] = {}
        for table in tables:
            for subject, birth in _birth_dates(table).items():
                birth_dates.setdefault(subject, birth)
        self._birth_dates = birth_dates
        logger.debug("Collected {} date(s) of birth for {}", len(birth_dates), self.name)

    def target_columns(self, table: TaggedTable) -> list[str]:
        return [
            column
            for column in table.data.columns
            if any(sc.data_context.is_age for sc in table.series_for(column))
        ]

    def transform(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        birth_dates = dict(self._birth_dates)
        for subject, birth in _birth_dates(table).items():
            birth_dates.setdefault(subject, birth)
        subject_ids = list(table.data[table.subject_id_column])

        def to_age(row: int, column: str, value: object) -> object:
            at = parse_date(value)
            if at is None:
                return value
            subject = subject_ids[row]
            birth = None if is_missing(subject) else birth_dates.get(str(subject))
            if birth is None:
                problem = f"subject '{subject}' has no date of birth"
            elif at < birth:
                problem = f"it is before the date of birth {birth.isoformat()}"
            else:
                return age_between(birth, at)
            diagnostics.record(
                DiagnosticKind.MAPPING_VIOLATION,
                f"Date '{value}' cannot be converted to an age: {problem}",
                table=table.name,
                column=column,
                row=row,
                value=value,
                source=table.source,
                strategy=self.name,
            )
            return value

        return map_cells(table, self.target_columns(table), to_age)
