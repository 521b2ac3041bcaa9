"""Destinations for finalized subject records."""

from phenotab.load.loaders import (
    InMemoryLoader,
    JsonDirectoryLoader,
    Loader,
    loader_from_config,
    record_filename,
)

__all__ = [
    "InMemoryLoader",
    "JsonDirectoryLoader",
    "Loader",
    "loader_from_config",
    "record_filename",
]
