"""Explicit remediation of lint findings.

Nothing in the pipeline calls RecordFixer; applying fixes is a separate
step the user opts into (``phenotab lint --fix``). Records are immutable,
so every fix produces a new record, and every change is logged as a
FixAction.
"""

from __future__ import annotations

from datetime import UTC, datetime

from loguru import logger
from pydantic import BaseModel, Field

from phenotab.models.context import ContextKind
from phenotab.models.records import OBSERVED, Observation, SubjectRecord
from phenotab.validation.rules.base import FixKind, RuleResult


class FixAction(BaseModel):
    """Audit trail record for a single applied fix."""

    rule_id: str = Field(..., description="Which rule triggered this fix")
    subject_id: str = Field(..., description="Subject being fixed")
    fix_type: FixKind = Field(..., description="Kind of fix applied")
    before_value: str = Field(..., description="Value/state before fix")
    after_value: str = Field(..., description="Value/state after fix")
    affected_count: int = Field(..., description="Number of values changed")
    timestamp: str = Field(..., description="ISO 8601 timestamp of fix")


class FixOutcome(BaseModel):
    records: list[SubjectRecord] = Field(default_factory=list)
    actions: list[FixAction] = Field(default_factory=list)


def phenotype_key(observation: Observation) -> tuple[str, str] | None:
    """(term, status) of a phenotype observation, or None for other observations."""
    if observation.value is None:
        return None
    if observation.header_context.kind == ContextKind.HPO_LABEL_OR_ID:
        return observation.header, str(observation.value)
    if observation.context.kind == ContextKind.HPO_LABEL_OR_ID:
        return str(observation.value), OBSERVED
    return None


class RecordFixer:
    """Applies the fixes carried by RuleResults to subject records.

    Only top-level observations are removed. Phenotypes inside building
    blocks are never dropped, because that would split a block.
    """

    def apply(self, records: list[SubjectRecord], results: list[RuleResult]) -> FixOutcome:
        """Return fixed copies of ``records`` and the audit trail."""
        hints: dict[str, list[RuleResult]] = {}
        for result in results:
            if result.fix is not None and result.subject_id is not None:
                hints.setdefault(result.subject_id, []).append(result)

        outcome = FixOutcome()
        for record in records:
            subject_results = hints.get(record.subject_id)
            if not subject_results:
                outcome.records.append(record)
                continue
            fixed, actions = self._fix_record(record, subject_results)
            outcome.records.append(fixed)
            outcome.actions.extend(actions)

        logger.info(
            "Applied {} fix(es) across {} record(s)",
            len(outcome.actions),
            len({a.subject_id for a in outcome.actions}),
        )
        return outcome

    def _fix_record(
        self,
        record: SubjectRecord,
        results: list[RuleResult],
    ) -> tuple[SubjectRecord, list[FixAction]]:
        duplicates: dict[tuple[str, str], RuleResult] = {}
        for result in results:
            if result.fix is not None and result.fix.kind == FixKind.REMOVE_DUPLICATE_PHENOTYPE:
                duplicates[(result.fix.term, result.fix.status)] = result
        if not duplicates:
            return record, []

        seen: set[tuple[str, str]] = set()
        for blocks in record.blocks.values():
            for block in blocks:
                for entry in block.entries:
                    key = phenotype_key(entry)
                    if key is not None:
                        seen.add(key)

        kept: list[Observation] = []
        removed: dict[tuple[str, str], int] = {}
        for observation in record.observations:
            key = phenotype_key(observation)
            if key in duplicates and key in seen:
                removed[key] = removed.get(key, 0) + 1
                continue
            if key is not None:
                seen.add(key)
            kept.append(observation)

        timestamp = datetime.now(tz=UTC).isoformat()
        actions = [
            FixAction(
                rule_id=duplicates[key].rule_id,
                subject_id=record.subject_id,
                fix_type=FixKind.REMOVE_DUPLICATE_PHENOTYPE,
                before_value=f"{key[0]} ({key[1]}) x{count + 1}",
                after_value=f"{key[0]} ({key[1]}) x1",
                affected_count=count,
                timestamp=timestamp,
            )
            for key, count in removed.items()
        ]
        if not actions:
            return record, []
        return record.model_copy(update={"observations": tuple(kept)}), actions
