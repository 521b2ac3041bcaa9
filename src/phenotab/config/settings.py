"""Pipeline configuration models.

A pipeline is configured by one JSON document parsed into
PipelineConfig. The document declares the data sources with their table
contexts, the ordered strategy list, the ontologies to pre-populate,
the loader and optional credentials. Credentials missing from the file
fall back to environment variables.
"""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from phenotab.errors import ConfigurationError
from phenotab.models.context import Context
from phenotab.models.table_context import TableContext
from phenotab.ontology.factory import ProviderBuilder
from phenotab.ontology.providers import (
    BIOPORTAL_API_KEY_ENV,
    BIOPORTAL_BASE_URL,
    OLS_BASE_URL,
    BioPortalOntologyProvider,
    InMemoryOntologyProvider,
    OlsOntologyProvider,
    OntologyProvider,
)
from phenotab.ontology.references import LATEST, OntologyRef


class DataSourceKind(StrEnum):
    CSV = "csv"
    EXCEL = "excel"


class DataSourceConfig(BaseModel):
    """One file and the table contexts declared for it.

    A CSV source carries exactly one table context. An Excel source
    carries one table context per sheet, named after the sheet.
    """

    name: str | None = Field(default=None, description="Source name; defaults to the file name")
    kind: DataSourceKind = Field(..., description="File format")
    path: Path = Field(..., description="Path to the file")
    separator: str = Field(default=",", description="CSV field separator")
    tables: list[TableContext] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_tables(self) -> DataSourceConfig:
        if self.kind == DataSourceKind.CSV and len(self.tables) != 1:
            msg = f"CSV source {self.path} must declare exactly one table"
            raise ValueError(msg)
        names = [t.name for t in self.tables]
        if len(set(names)) != len(names):
            msg = f"Source {self.path} declares a table name twice: {names}"
            raise ValueError(msg)
        return self

    @property
    def source_name(self) -> str:
        return self.name or self.path.name


class StrategyConfig(BaseModel):
    """One entry of the ordered strategy list.

    Accepts a bare strategy name (``"alias_map"``) or a mapping with
    strategy-specific options.
    """

    name: str = Field(..., description="Registered strategy name")
    ontology: str | None = Field(
        default=None, description="Ontology prefix[@version] for ontology_normaliser"
    )
    context: Context | None = Field(
        default=None, description="Context selecting the columns (ontology_normaliser)"
    )
    contexts: list[Context] | None = Field(
        default=None, description="Contexts selecting the columns (string_correction)"
    )
    case: str = Field(default="preserve", description="Casing for string_correction")
    vocabulary: dict[str, str] | None = Field(
        default=None, description="Replacement vocabulary for mapping strategies"
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        return data


class ProviderKind(StrEnum):
    OLS = "ols"
    BIOPORTAL = "bioportal"
    FILE = "file"


class OntologyConfig(BaseModel):
    """An ontology reference and the provider that backs it."""

    prefix: str
    version: str = LATEST
    provider: ProviderKind = ProviderKind.OLS
    path: Path | None = Field(default=None, description="obographs JSON for FILE providers")
    base_url: str | None = Field(default=None, description="Override the provider's URL")
    timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")

    @model_validator(mode="after")
    def _check_path(self) -> OntologyConfig:
        if self.provider == ProviderKind.FILE and self.path is None:
            msg = f"Ontology {self.prefix}: file provider needs a path"
            raise ValueError(msg)
        return self

    @property
    def ref(self) -> OntologyRef:
        return OntologyRef(prefix=self.prefix, version=self.version)


class LoaderKind(StrEnum):
    MEMORY = "memory"
    JSON_DIRECTORY = "json_directory"


class LoaderConfig(BaseModel):
    kind: LoaderKind = LoaderKind.MEMORY
    output_dir: Path | None = Field(default=None, description="Target for json_directory")
    overwrite: bool = Field(default=False, description="Replace existing record files")

    @model_validator(mode="after")
    def _check_output_dir(self) -> LoaderConfig:
        if self.kind == LoaderKind.JSON_DIRECTORY and self.output_dir is None:
            raise ValueError("json_directory loader needs an output_dir")
        return self


class Credentials(BaseModel):
    """Secrets for authenticated providers. Missing values come from the environment."""

    bioportal_api_key: str | None = Field(default=None)

    @model_validator(mode="after")
    def _from_environment(self) -> Credentials:
        if self.bioportal_api_key is None:
            self.bioportal_api_key = os.environ.get(BIOPORTAL_API_KEY_ENV)
        return self


class PipelineConfig(BaseModel):
    """Complete configuration of one pipeline run."""

    data_sources: list[DataSourceConfig] = Field(..., min_length=1)
    strategies: list[StrategyConfig] = Field(default_factory=list)
    ontologies: list[OntologyConfig] = Field(default_factory=list)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    credentials: Credentials = Field(default_factory=Credentials)
    max_workers: int = Field(default=4, ge=1, description="Tables processed in parallel")
    run_validation: bool = Field(default=True, description="Lint records before loading")

    def ontology_for(self, ref: OntologyRef) -> OntologyConfig | None:
        for ontology in self.ontologies:
            if ontology.ref == ref:
                return ontology
        return None


def load_pipeline_config(path: Path) -> PipelineConfig:
    """Parse a JSON pipeline configuration file.

    Relative data source, ontology and loader paths are resolved against
    the configuration file's directory.

    Raises:
        ConfigurationError: The file is unreadable or invalid.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read configuration {path}: {exc}"
        raise ConfigurationError(msg) from exc
    try:
        config = PipelineConfig.model_validate_json(raw)
    except ValidationError as exc:
        msg = f"Invalid configuration {path}:\n{exc}"
        raise ConfigurationError(msg) from exc

    base = path.parent
    for source in config.data_sources:
        if not source.path.is_absolute():
            source.path = base / source.path
    for ontology in config.ontologies:
        if ontology.path is not None and not ontology.path.is_absolute():
            ontology.path = base / ontology.path
    if config.loader.output_dir is not None and not config.loader.output_dir.is_absolute():
        config.loader.output_dir = base / config.loader.output_dir
    return config


def make_provider_builder(config: PipelineConfig) -> ProviderBuilder:
    """Return a builder choosing each ontology's provider from ``config``.

    Ontologies not declared in the configuration are served by OLS.
    """

    def build(ref: OntologyRef) -> OntologyProvider:
        ontology = config.ontology_for(ref)
        if ontology is None:
            return OlsOntologyProvider(ref)
        match ontology.provider:
            case ProviderKind.FILE:
                assert ontology.path is not None
                return InMemoryOntologyProvider.from_obographs(ref, ontology.path)
            case ProviderKind.BIOPORTAL:
                return BioPortalOntologyProvider(
                    ref,
                    api_key=config.credentials.bioportal_api_key,
                    base_url=ontology.base_url or BIOPORTAL_BASE_URL,
                    timeout=ontology.timeout,
                )
            case ProviderKind.OLS:
                return OlsOntologyProvider(
                    ref,
                    base_url=ontology.base_url or OLS_BASE_URL,
                    timeout=ontology.timeout,
                )

    return build
