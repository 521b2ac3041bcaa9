"""Extraction adapters for delimited files and spreadsheets."""

from phenotab.io.readers import (
    CsvDataSource,
    DataSource,
    ExcelDataSource,
    ExtractedTable,
    InMemoryDataSource,
    data_source_from_config,
)

__all__ = [
    "CsvDataSource",
    "DataSource",
    "ExcelDataSource",
    "ExtractedTable",
    "InMemoryDataSource",
    "data_source_from_config",
]
