"""Extraction adapters: files in, raw DataFrames plus their TableContexts out.

Readers keep cell values as raw as pandas allows (strings for CSV,
whatever openpyxl yields for spreadsheets). Trimming, null handling and
type coercion happen later in tagging and the strategy pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple

import pandas as pd
from loguru import logger

from phenotab.config.settings import DataSourceConfig, DataSourceKind
from phenotab.errors import ConfigurationError
from phenotab.models.table_context import TableContext


class ExtractedTable(NamedTuple):
    """One raw table and the context declared for it."""

    data: pd.DataFrame
    context: TableContext


class DataSource(ABC):
    """Something that yields raw tables for the pipeline."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def extract(self) -> list[ExtractedTable]:
        """Read every declared table of this source."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class InMemoryDataSource(DataSource):
    """Tables that are already DataFrames."""

    def __init__(self, name: str, tables: list[tuple[pd.DataFrame, TableContext]]) -> None:
        super().__init__(name)
        self._tables = [ExtractedTable(df, ctx) for df, ctx in tables]

    def extract(self) -> list[ExtractedTable]:
        return [ExtractedTable(t.data.copy(), t.context) for t in self._tables]


class CsvDataSource(DataSource):
    """A delimited text file holding one table.

    Every cell is read as a string; only empty fields become null.
    """

    def __init__(
        self,
        path: str | Path,
        context: TableContext,
        *,
        name: str | None = None,
        separator: str = ",",
    ) -> None:
        self.path = Path(path)
        super().__init__(name or self.path.name)
        self.context = context
        self.separator = separator

    def extract(self) -> list[ExtractedTable]:
        if not self.path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.path}")
        logger.info("Reading CSV file: {}", self.path.name)
        df = pd.read_csv(
            self.path,
            sep=self.separator,
            dtype=str,
            keep_default_na=False,
            na_values=[""],
        )
        logger.info("Read {}: {} rows x {} cols", self.path.name, len(df), len(df.columns))
        return [ExtractedTable(df, self.context)]


class ExcelDataSource(DataSource):
    """A workbook whose sheets are tables; one TableContext per sheet name.

    Sheets without a declared context are skipped. A declared sheet that
    is absent from the workbook is a configuration error.
    """

    def __init__(
        self,
        path: str | Path,
        contexts: list[TableContext],
        *,
        name: str | None = None,
    ) -> None:
        self.path = Path(path)
        super().__init__(name or self.path.name)
        self.contexts = list(contexts)

    def extract(self) -> list[ExtractedTable]:
        if not self.path.exists():
            raise FileNotFoundError(f"Excel file not found: {self.path}")
        logger.info("Reading workbook: {}", self.path.name)
        sheets: dict[str, pd.DataFrame] = pd.read_excel(
            self.path,
            sheet_name=None,
            engine="openpyxl",
            dtype=object,
        )

        declared = {ctx.name for ctx in self.contexts}
        for sheet in sheets:
            if sheet not in declared:
                logger.debug("Skipping undeclared sheet '{}' in {}", sheet, self.path.name)

        tables: list[ExtractedTable] = []
        for ctx in self.contexts:
            if ctx.name not in sheets:
                msg = (
                    f"Sheet '{ctx.name}' declared for {self.path.name} not found. "
                    f"Available: {list(sheets)}"
                )
                raise ConfigurationError(msg)
            df = sheets[ctx.name]
            logger.info(
                "Read {}[{}]: {} rows x {} cols",
                self.path.name,
                ctx.name,
                len(df),
                len(df.columns),
            )
            tables.append(ExtractedTable(df, ctx))
        return tables


def data_source_from_config(config: DataSourceConfig) -> DataSource:
    """Build the reader for one configured data source."""
    match config.kind:
        case DataSourceKind.CSV:
            return CsvDataSource(
                config.path,
                config.tables[0],
                name=config.source_name,
                separator=config.separator,
            )
        case DataSourceKind.EXCEL:
            return ExcelDataSource(config.path, config.tables, name=config.source_name)
