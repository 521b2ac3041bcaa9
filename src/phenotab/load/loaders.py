"""Loaders persist finalized subject records.

Any failure while persisting is raised as LoadError and ends the run.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from phenotab.config.settings import LoaderConfig, LoaderKind
from phenotab.errors import LoadError
from phenotab.models.records import SubjectRecord

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class Loader(ABC):
    """Destination for finalized records."""

    @abstractmethod
    def load(self, records: list[SubjectRecord]) -> None:
        """Persist ``records``.

        Raises:
            LoadError: The records could not be persisted.
        """
        ...


class InMemoryLoader(Loader):
    """Keeps loaded records in a list; useful for tests and library callers."""

    def __init__(self) -> None:
        self.records: list[SubjectRecord] = []

    def load(self, records: list[SubjectRecord]) -> None:
        self.records.extend(records)
        logger.info("Loaded {} record(s) into memory", len(records))


def record_filename(subject_id: str) -> str:
    """File name for a subject's record, safe on every filesystem."""
    stem = _UNSAFE.sub("_", subject_id).strip("._") or "subject"
    return f"{stem}.json"


class JsonDirectoryLoader(Loader):
    """Writes one pretty-printed JSON document per subject."""

    def __init__(self, output_dir: str | Path, *, overwrite: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.overwrite = overwrite

    def load(self, records: list[SubjectRecord]) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create output directory {self.output_dir}: {exc}"
            raise LoadError(msg) from exc

        written: set[str] = set()
        for record in records:
            filename = record_filename(record.subject_id)
            if filename in written:
                msg = f"Subjects map to the same file name {filename}"
                raise LoadError(msg)
            target = self.output_dir / filename
            if target.exists() and not self.overwrite:
                msg = f"Refusing to overwrite existing record file {target}"
                raise LoadError(msg)
            try:
                target.write_text(record.model_dump_json(indent=2), encoding="utf-8")
            except OSError as exc:
                msg = f"Cannot write {target}: {exc}"
                raise LoadError(msg) from exc
            written.add(filename)

        logger.info("Wrote {} record file(s) to {}", len(written), self.output_dir)


def loader_from_config(config: LoaderConfig) -> Loader:
    match config.kind:
        case LoaderKind.MEMORY:
            return InMemoryLoader()
        case LoaderKind.JSON_DIRECTORY:
            assert config.output_dir is not None
            return JsonDirectoryLoader(config.output_dir, overwrite=config.overwrite)
