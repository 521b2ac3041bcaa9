"""Rules for values that repeat or contradict each other within a record."""

from __future__ import annotations

from collections import Counter

from phenotab.models.context import VITAL_STATUS, ContextKind
from phenotab.models.records import SubjectRecord
from phenotab.validation.rules.base import (
    FixHint,
    FixKind,
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)


class DuplicatePhenotypeRule(ValidationRule):
    """A subject should list each (term, status) phenotype once."""

    rule_id: str = "PTAB-V002"
    description: str = "Phenotypes must not be repeated within a subject"
    category: RuleCategory = RuleCategory.CONSISTENCY
    severity: RuleSeverity = RuleSeverity.WARNING

    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        counts = Counter((p.term, p.status) for p in record.phenotypes())
        return [
            self.result(
                record,
                f"Phenotype {term} ({status}) is listed {count} times",
                affected_count=count - 1,
                fix_suggestion="Remove the repeated phenotype entries",
                fix=FixHint(kind=FixKind.REMOVE_DUPLICATE_PHENOTYPE, term=term, status=status),
            )
            for (term, status), count in counts.items()
            if count > 1
        ]


class DeceasedWithoutTimeOfDeathRule(ValidationRule):
    """A deceased subject should carry a time of death."""

    rule_id: str = "PTAB-V005"
    description: str = "Deceased subjects should have a time of death"
    category: RuleCategory = RuleCategory.CONSISTENCY
    severity: RuleSeverity = RuleSeverity.NOTICE

    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        status = record.field(VITAL_STATUS)
        if status is None or str(status).strip().upper() != "DECEASED":
            return []
        prefix = ContextKind.TIME_OF_DEATH.value
        if any(key.split(":", 1)[0] == prefix for key in record.fields):
            return []
        return [
            self.result(
                record,
                f"Subject {record.subject_id} is DECEASED but has no time of death",
                context_key=prefix,
                affected_count=1,
                fix_suggestion="Map a time_of_death column for this subject",
            )
        ]


def get_consistency_rules() -> list[ValidationRule]:
    """Return all consistency rule instances."""
    return [DuplicatePhenotypeRule(), DeceasedWithoutTimeOfDeathRule()]
