"""Immutable per-subject output records.

A SubjectRecord is what the collector hands to validation and to the
loader once all data sources have been consumed. Subject-level values
are keyed by ``Context.key``; repeatable values are kept as
Observations; grouped values are kept as BuildingBlocks keyed by their
building block id.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from phenotab.models.context import NONE, Context, ContextKind
from phenotab.models.table_context import CellValue

OBSERVED = "OBSERVED"
EXCLUDED = "EXCLUDED"
UNKNOWN = "UNKNOWN"


class Observation(BaseModel):
    """One tagged value contributed by one cell."""

    model_config = ConfigDict(frozen=True)

    context: Context = Field(..., description="Meaning of the value")
    value: CellValue | None = Field(default=None, description="Cell value after transforms")
    header: str = Field(..., description="Column the value came from")
    header_context: Context = Field(default=NONE, description="Meaning of the column header")
    table: str = Field(default="", description="Table the value came from")
    source: str = Field(default="", description="Data source the value came from")


class BuildingBlock(BaseModel):
    """Values from one row that belong together (e.g. disease + onset)."""

    model_config = ConfigDict(frozen=True)

    block_id: str
    entries: tuple[Observation, ...] = Field(default=())
    table: str = ""
    source: str = ""

    def get(self, context: Context) -> CellValue | None:
        """Return the first value tagged with ``context``, or None."""
        for entry in self.entries:
            if entry.context == context:
                return entry.value
        return None


class PhenotypeEntry(BaseModel):
    """Flattened view of a phenotype observation."""

    model_config = ConfigDict(frozen=True)

    term: str
    status: str = OBSERVED
    source: str = ""


class SubjectRecord(BaseModel):
    """Finalized, immutable record for one subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    fields: dict[str, CellValue] = Field(
        default_factory=dict, description="Context key -> subject-level value"
    )
    observations: tuple[Observation, ...] = Field(default=())
    blocks: dict[str, tuple[BuildingBlock, ...]] = Field(default_factory=dict)
    sources: tuple[str, ...] = Field(default=(), description="Contributing data sources")

    def field(self, context: Context) -> CellValue | None:
        return self.fields.get(context.key)

    def _all_entries(self) -> list[Observation]:
        entries = list(self.observations)
        for blocks in self.blocks.values():
            for block in blocks:
                entries.extend(block.entries)
        return entries

    def phenotypes(self) -> list[PhenotypeEntry]:
        """Phenotype terms from cells and from HPO-tagged headers.

        A cell tagged hpo_label_or_id is an observed term. A column whose
        header is tagged hpo_label_or_id names the term; its cell carries
        the observation status.
        """
        result: list[PhenotypeEntry] = []
        for obs in self._all_entries():
            if obs.value is None:
                continue
            if obs.header_context.kind == ContextKind.HPO_LABEL_OR_ID:
                result.append(
                    PhenotypeEntry(term=obs.header, status=str(obs.value), source=obs.source)
                )
            elif obs.context.kind == ContextKind.HPO_LABEL_OR_ID:
                result.append(PhenotypeEntry(term=str(obs.value), source=obs.source))
        return result

    def diseases(self) -> list[str]:
        return [
            str(obs.value)
            for obs in self._all_entries()
            if obs.context.kind == ContextKind.DISEASE_LABEL_OR_ID and obs.value is not None
        ]
