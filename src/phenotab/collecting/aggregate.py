"""In-progress per-subject accumulator."""

from __future__ import annotations

from dataclasses import dataclass, field

from phenotab.models.context import Context
from phenotab.models.records import BuildingBlock, Observation, SubjectRecord
from phenotab.models.table_context import CellValue


@dataclass
class FieldValue:
    """A subject-level value and where it first came from."""

    context: Context
    value: CellValue
    table: str
    source: str


@dataclass
class AggregateRecord:
    """Mutable accumulator for one subject.

    Created on the first row naming the subject, extended by later rows
    from any table or source, and frozen into a SubjectRecord by
    ``finalize``. Not thread-safe on its own; the Collector serializes
    access per subject.
    """

    subject_id: str
    fields: dict[str, FieldValue] = field(default_factory=dict)
    observations: list[Observation] = field(default_factory=list)
    blocks: dict[str, list[BuildingBlock]] = field(default_factory=dict)
    sources: list[str] = field(default_factory=list)

    def add_source(self, source: str) -> None:
        if source and source not in self.sources:
            self.sources.append(source)

    def set_field(
        self,
        context: Context,
        value: CellValue,
        *,
        table: str,
        source: str,
    ) -> FieldValue | None:
        """Store a subject-level value unless one is already present.

        Returns:
            None when the value was stored or equals the stored one, else
            the existing, conflicting FieldValue (which is kept).
        """
        existing = self.fields.get(context.key)
        if existing is None:
            self.fields[context.key] = FieldValue(context, value, table, source)
            return None
        if existing.value == value:
            return None
        return existing

    def add_observation(self, observation: Observation) -> None:
        self.observations.append(observation)

    def add_block(self, block: BuildingBlock) -> None:
        self.blocks.setdefault(block.block_id, []).append(block)

    def finalize(self) -> SubjectRecord:
        return SubjectRecord(
            subject_id=self.subject_id,
            fields={key: fv.value for key, fv in self.fields.items()},
            observations=tuple(self.observations),
            blocks={block_id: tuple(blocks) for block_id, blocks in self.blocks.items()},
            sources=tuple(self.sources),
        )
