"""Pipeline orchestrator: extraction -> tagging -> strategies -> collection -> load.

Every table is tagged up front so strategies can look across tables
(``Strategy.prepare``) before any of them runs. Tables are then independent
until they reach the collector, so each table's strategy pipeline runs as
one job on a bounded thread pool. The only state the jobs share is the
ontology factory (through the strategies) and the collector, both of
which are thread-safe.

A structural error in any table aborts the whole run: pending jobs are
cancelled and the error is raised as PipelineError. Row-scoped problems
are collected in a DiagnosticsReport that is returned with the records.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from loguru import logger
from pydantic import BaseModel, Field

from phenotab.collecting.collector import DEFAULT_SHARDS, Collector
from phenotab.config.settings import PipelineConfig, make_provider_builder
from phenotab.errors import PhenotabError, PipelineError
from phenotab.io.readers import DataSource, ExtractedTable, data_source_from_config
from phenotab.load.loaders import Loader, loader_from_config
from phenotab.models.diagnostics import Diagnostic, DiagnosticsReport
from phenotab.models.records import SubjectRecord
from phenotab.ontology.factory import CachedOntologyFactory
from phenotab.tagging.matcher import tag_table
from phenotab.tagging.tagged_table import TaggedTable
from phenotab.transforms.pipeline import StrategyPipeline
from phenotab.transforms.registry import build_pipeline
from phenotab.validation.engine import ValidationEngine
from phenotab.validation.report import ValidationReport


class PipelineResult(BaseModel):
    """Everything a successful run produces."""

    records: list[SubjectRecord] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    validation: ValidationReport | None = Field(default=None)
    tables_processed: int = Field(default=0)

    def diagnostic_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for diagnostic in self.diagnostics:
            counts[diagnostic.kind.value] = counts.get(diagnostic.kind.value, 0) + 1
        return counts


class PipelineOrchestrator:
    """Runs the strategy pipeline over every table of every data source.

    Usage::

        factory = CachedOntologyFactory(lambda ref: OlsOntologyProvider(ref))
        orchestrator = PipelineOrchestrator(
            build_pipeline(configs, factory),
            loader=InMemoryLoader(),
            validation_engine=ValidationEngine(),
        )
        result = orchestrator.run([CsvDataSource("patients.csv", table_context)])
    """

    def __init__(
        self,
        pipeline: StrategyPipeline,
        *,
        loader: Loader | None = None,
        validation_engine: ValidationEngine | None = None,
        max_workers: int = 4,
        collector_shards: int = DEFAULT_SHARDS,
    ) -> None:
        if max_workers < 1:
            msg = f"max_workers must be >= 1, got {max_workers}"
            raise ValueError(msg)
        self.pipeline = pipeline
        self.loader = loader
        self.validation_engine = validation_engine
        self.max_workers = max_workers
        self.collector_shards = collector_shards

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        factory: CachedOntologyFactory | None = None,
        loader: Loader | None = None,
    ) -> PipelineOrchestrator:
        """Build an orchestrator from configuration.

        The ontology factory is created from the configured providers
        unless one is passed in, and the configured ontologies are
        pre-populated before any table is read.
        """
        factory = factory or CachedOntologyFactory(make_provider_builder(config))
        factory.prepopulate([ontology.ref for ontology in config.ontologies])
        return cls(
            build_pipeline(config.strategies, factory),
            loader=loader or loader_from_config(config.loader),
            validation_engine=ValidationEngine() if config.run_validation else None,
            max_workers=config.max_workers,
        )

    def run(self, data_sources: list[DataSource]) -> PipelineResult:
        """Process ``data_sources`` and return records with diagnostics.

        Raises:
            PipelineError: Extraction failed, a table declaration is
                invalid, or a table hit a structural error.
            LoadError: The loader could not persist the records.
        """
        diagnostics = DiagnosticsReport()
        collector = Collector(diagnostics, shards=self.collector_shards)

        jobs = self._extract(data_sources)
        for source_name, table in jobs:
            try:
                table.context.validate_declaration()
            except PhenotabError as exc:
                msg = f"Invalid table declaration in source '{source_name}': {exc}"
                raise PipelineError(msg, table=table.context.name) from exc

        tagged = [(source_name, self._tag(source_name, table)) for source_name, table in jobs]
        self.pipeline.prepare([table for _, table in tagged])

        logger.info(
            "Processing {} table(s) from {} source(s) with {} worker(s)",
            len(jobs),
            len(data_sources),
            self.max_workers,
        )
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="phenotab"
        ) as pool:
            futures: dict[Future[int], tuple[str, str]] = {
                pool.submit(self._process_table, table, collector, diagnostics): (
                    source_name,
                    table.name,
                )
                for source_name, table in tagged
            }
            for future in as_completed(futures):
                source_name, table_name = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    pool.shutdown(wait=False, cancel_futures=True)
                    logger.error(
                        "Table {} of source {} failed, aborting run: {}",
                        table_name,
                        source_name,
                        exc,
                    )
                    msg = f"Table '{table_name}' of source '{source_name}' failed: {exc}"
                    raise PipelineError(msg, table=table_name) from exc

        records = collector.finalize()

        report = None
        if self.validation_engine is not None:
            results = self.validation_engine.validate_all(records)
            report = ValidationReport.from_results(results, [r.subject_id for r in records])

        if self.loader is not None:
            self.loader.load(records)

        logger.info(
            "Pipeline finished: {} record(s), {} diagnostic(s)",
            len(records),
            len(diagnostics),
        )
        return PipelineResult(
            records=records,
            diagnostics=diagnostics.to_list(),
            validation=report,
            tables_processed=len(jobs),
        )

    def _extract(self, data_sources: list[DataSource]) -> list[tuple[str, ExtractedTable]]:
        jobs: list[tuple[str, ExtractedTable]] = []
        for source in data_sources:
            try:
                tables = source.extract()
            except (PhenotabError, OSError, ValueError) as exc:
                msg = f"Extraction of source '{source.name}' failed: {exc}"
                raise PipelineError(msg) from exc
            jobs.extend((source.name, table) for table in tables)
        return jobs

    def _tag(self, source_name: str, table: ExtractedTable) -> TaggedTable:
        try:
            return tag_table(table.data, table.context, source=source_name)
        except Exception as exc:
            logger.error(
                "Tagging table {} of source {} failed: {}", table.context.name, source_name, exc
            )
            msg = f"Table '{table.context.name}' of source '{source_name}' failed: {exc}"
            raise PipelineError(msg, table=table.context.name) from exc

    def _process_table(
        self,
        table: TaggedTable,
        collector: Collector,
        diagnostics: DiagnosticsReport,
    ) -> int:
        transformed = self.pipeline.run(table, diagnostics)
        return collector.ingest_table(transformed)


def run_pipeline(
    config: PipelineConfig,
    *,
    factory: CachedOntologyFactory | None = None,
    loader: Loader | None = None,
) -> PipelineResult:
    """Build the orchestrator and data sources from ``config`` and run once."""
    orchestrator = PipelineOrchestrator.from_config(config, factory=factory, loader=loader)
    data_sources = [data_source_from_config(source) for source in config.data_sources]
    return orchestrator.run(data_sources)
