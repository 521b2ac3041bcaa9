"""Ontology id rules."""

from __future__ import annotations

from phenotab.models.records import SubjectRecord
from phenotab.ontology.references import id_pattern, looks_like_curie
from phenotab.validation.rules.base import (
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)


class InvalidOntologyIdRule(ValidationRule):
    """Phenotype and disease values shaped like ids must match their prefix's grammar.

    Labels are not checked; only values of the form ``PREFIX:local``.
    """

    rule_id: str = "PTAB-V001"
    description: str = "Ontology ids must match the id grammar of their prefix"
    category: RuleCategory = RuleCategory.ONTOLOGY
    severity: RuleSeverity = RuleSeverity.ERROR

    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        candidates = [p.term for p in record.phenotypes()] + record.diseases()
        results: list[RuleResult] = []
        seen: set[str] = set()
        for value in candidates:
            if value in seen or not looks_like_curie(value):
                continue
            seen.add(value)
            prefix = value.split(":", 1)[0]
            if id_pattern(prefix).fullmatch(value):
                continue
            results.append(
                self.result(
                    record,
                    f"'{value}' is not a valid {prefix.upper()} id",
                    affected_count=candidates.count(value),
                    fix_suggestion="Correct the id in the source data or map it by label",
                )
            )
        return results


def get_ontology_rules() -> list[ValidationRule]:
    """Return all ontology rule instances."""
    return [InvalidOntologyIdRule()]
