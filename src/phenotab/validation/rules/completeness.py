"""Rules for information a subject record is expected to carry."""

from __future__ import annotations

from phenotab.models.context import SUBJECT_SEX
from phenotab.models.records import SubjectRecord
from phenotab.validation.rules.base import (
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)


class MissingSexRule(ValidationRule):
    """Subjects should have a recorded sex."""

    rule_id: str = "PTAB-V003"
    description: str = "Subjects should have a sex"
    category: RuleCategory = RuleCategory.COMPLETENESS
    severity: RuleSeverity = RuleSeverity.NOTICE

    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        if record.field(SUBJECT_SEX) is not None:
            return []
        return [
            self.result(
                record,
                f"Subject {record.subject_id} has no sex",
                context_key=SUBJECT_SEX.key,
                affected_count=1,
            )
        ]


class EmptyRecordRule(ValidationRule):
    """A record without phenotypes, diseases or building blocks carries no findings."""

    rule_id: str = "PTAB-V004"
    description: str = "Records should contain phenotypes, diseases or building blocks"
    category: RuleCategory = RuleCategory.COMPLETENESS
    severity: RuleSeverity = RuleSeverity.WARNING

    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        if record.phenotypes() or record.diseases() or record.blocks:
            return []
        return [
            self.result(
                record,
                f"Subject {record.subject_id} has no phenotypes, diseases or building blocks",
                fix_suggestion="Check that the phenotype and disease columns were matched",
            )
        ]


def get_completeness_rules() -> list[ValidationRule]:
    """Return all completeness rule instances."""
    return [MissingSexRule(), EmptyRecordRule()]
