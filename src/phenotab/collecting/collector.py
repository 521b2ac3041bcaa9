"""Fold tagged rows from many tables and sources into per-subject records.

Every row is routed to its subject by the table's ``subject_id`` column.
Within a row, each bound SeriesContext contributes in one of three ways:

* series with a ``building_block_id`` are grouped with the other members
  of their block into one BuildingBlock per row;
* series whose header carries a context (e.g. the header names an HPO
  term and the cells hold its observation status) become Observations;
* all others follow the multiplicity of their data context: SINGLE
  values become subject-level fields, MULTI values become Observations
  and IGNORED values are dropped.

Concurrent ingestion is safe. Aggregates are sharded over a fixed set of
locks by subject id, so two threads never mutate the same subject at
once while rows for unrelated subjects proceed in parallel.
"""

from __future__ import annotations

from threading import Lock

from loguru import logger

from phenotab.collecting.aggregate import AggregateRecord
from phenotab.models.context import ContextKind, Multiplicity
from phenotab.models.diagnostics import DiagnosticKind, DiagnosticsReport
from phenotab.models.records import BuildingBlock, Observation, SubjectRecord
from phenotab.models.table_context import CellValue, SeriesContext
from phenotab.tagging.tagged_table import TaggedRow, TaggedTable

DEFAULT_SHARDS = 16


class Collector:
    """Accumulates AggregateRecords until ``finalize`` is called.

    Ingesting the same row twice is not deduplicated; callers submit each
    row once.
    """

    def __init__(
        self,
        diagnostics: DiagnosticsReport | None = None,
        *,
        shards: int = DEFAULT_SHARDS,
    ) -> None:
        if shards < 1:
            msg = f"shards must be >= 1, got {shards}"
            raise ValueError(msg)
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()
        self._aggregates: dict[str, AggregateRecord] = {}
        self._registry_lock = Lock()
        self._shard_locks = [Lock() for _ in range(shards)]

    def _shard_lock(self, subject_id: str) -> Lock:
        return self._shard_locks[hash(subject_id) % len(self._shard_locks)]

    def _aggregate_for(self, subject_id: str) -> AggregateRecord:
        with self._registry_lock:
            aggregate = self._aggregates.get(subject_id)
            if aggregate is None:
                aggregate = AggregateRecord(subject_id=subject_id)
                self._aggregates[subject_id] = aggregate
            return aggregate

    def ingest(self, row: TaggedRow, table: TaggedTable, source: str | None = None) -> bool:
        """Fold one row into its subject's aggregate.

        Args:
            row: Transformed row of ``table``.
            table: The table the row belongs to; supplies the bindings.
            source: Data source name; defaults to ``table.source``.

        Returns:
            False when the row had no subject id and was skipped.
        """
        source = table.source if source is None else source
        subject_column = table.subject_id_column
        raw_id = row.get(subject_column)
        if raw_id is None or not str(raw_id).strip():
            self.diagnostics.record(
                DiagnosticKind.MISSING_SUBJECT_ID,
                f"Row {row.position} of table '{table.name}' has no subject id",
                table=table.name,
                column=subject_column,
                row=row.position,
                source=source,
            )
            return False
        subject_id = str(raw_id).strip()

        fields: list[tuple[SeriesContext, str, CellValue]] = []
        observations: list[Observation] = []
        block_members: dict[str, list[tuple[str, SeriesContext]]] = {}

        for column, series_contexts in table.bindings.items():
            value = row.get(column)
            for sc in series_contexts:
                if sc.data_context.kind == ContextKind.SUBJECT_ID:
                    continue
                if sc.building_block_id is not None:
                    block_members.setdefault(sc.building_block_id, []).append((column, sc))
                    continue
                if value is None:
                    continue
                if not sc.header_context.is_none:
                    observations.append(self._observation(sc, column, value, table, source))
                    continue
                match sc.data_context.multiplicity:
                    case Multiplicity.SINGLE:
                        fields.append((sc, column, value))
                    case Multiplicity.MULTI:
                        observations.append(self._observation(sc, column, value, table, source))
                    case Multiplicity.IGNORED:
                        pass

        blocks = [
            block
            for block_id, members in block_members.items()
            if (block := self._block(block_id, members, row, table, source)) is not None
        ]

        aggregate = self._aggregate_for(subject_id)
        with self._shard_lock(subject_id):
            aggregate.add_source(source)
            for sc, column, value in fields:
                conflict = aggregate.set_field(
                    sc.data_context, value, table=table.name, source=source
                )
                if conflict is not None:
                    self.diagnostics.record(
                        DiagnosticKind.CONFLICTING_VALUE,
                        f"Subject {subject_id}: {sc.data_context} is already "
                        f"{conflict.value!r} (from {conflict.source or conflict.table}); "
                        f"ignoring {value!r}",
                        table=table.name,
                        column=column,
                        row=row.position,
                        value=value,
                        source=source,
                    )
            for observation in observations:
                aggregate.add_observation(observation)
            for block in blocks:
                aggregate.add_block(block)
        return True

    def ingest_table(self, table: TaggedTable) -> int:
        """Ingest every row of ``table``; returns the number of rows kept."""
        kept = sum(1 for row in table.rows() if self.ingest(row, table))
        logger.info(
            "Collected {}/{} rows of table {} ({})",
            kept,
            len(table),
            table.name,
            table.source or "unnamed source",
        )
        return kept

    @staticmethod
    def _observation(
        sc: SeriesContext,
        column: str,
        value: CellValue,
        table: TaggedTable,
        source: str,
    ) -> Observation:
        return Observation(
            context=sc.data_context,
            value=value,
            header=column,
            header_context=sc.header_context,
            table=table.name,
            source=source,
        )

    def _block(
        self,
        block_id: str,
        members: list[tuple[str, SeriesContext]],
        row: TaggedRow,
        table: TaggedTable,
        source: str,
    ) -> BuildingBlock | None:
        missing = [column for column, _ in members if row.get(column) is None]
        if missing:
            detail = "has no values" if len(missing) == len(members) else f"is missing {missing}"
            self.diagnostics.record(
                DiagnosticKind.INCOMPLETE_BLOCK,
                f"Building block '{block_id}' in row {row.position} of table "
                f"'{table.name}' {detail}; block dropped",
                table=table.name,
                column=missing[0],
                row=row.position,
                source=source,
            )
            return None
        return BuildingBlock(
            block_id=block_id,
            entries=tuple(
                self._observation(sc, column, row.get(column), table, source)
                for column, sc in members
            ),
            table=table.name,
            source=source,
        )

    def finalize(self) -> list[SubjectRecord]:
        """Freeze every aggregate into a SubjectRecord and reset the collector.

        Returns:
            Records sorted by subject id.
        """
        with self._registry_lock:
            aggregates = self._aggregates
            self._aggregates = {}
        records = [aggregates[sid].finalize() for sid in sorted(aggregates)]
        logger.info("Finalized {} subject record(s)", len(records))
        return records

    @property
    def subject_ids(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._aggregates)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._aggregates)
