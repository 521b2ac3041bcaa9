"""Validation engine orchestrator.

Registers and runs lint rules against finalized subject records. Rules
only report; nothing here changes a record. See RecordFixer for the
explicit, user-invoked remediation step.
"""

from __future__ import annotations

from loguru import logger

from phenotab.models.records import SubjectRecord
from phenotab.validation.rules.base import (
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)
from phenotab.validation.rules.completeness import get_completeness_rules
from phenotab.validation.rules.consistency import get_consistency_rules
from phenotab.validation.rules.ontology import get_ontology_rules


class ValidationEngine:
    """Runs registered rules over subject records.

    A rule that raises is isolated: the failure is logged and reported
    as a WARNING result for that subject, and the remaining rules still
    run.
    """

    def __init__(self, *, register_defaults: bool = True) -> None:
        """Initialize the engine.

        Args:
            register_defaults: Register the built-in PTAB rules.
        """
        self._rules: list[ValidationRule] = []
        if register_defaults:
            self.register_defaults()

    @property
    def rules(self) -> list[ValidationRule]:
        """Return the list of registered rules."""
        return list(self._rules)

    def register(self, rule: ValidationRule) -> None:
        """Register a rule with the engine."""
        self._rules.append(rule)
        logger.debug("Registered validation rule: {}", rule.rule_id)

    def register_defaults(self) -> None:
        """Register all built-in rules, ordered by rule id."""
        rules = get_ontology_rules() + get_consistency_rules() + get_completeness_rules()
        for rule in sorted(rules, key=lambda r: r.rule_id):
            self.register(rule)

    def validate_record(self, record: SubjectRecord) -> list[RuleResult]:
        """Run all registered rules against one record."""
        results: list[RuleResult] = []
        for rule in self._rules:
            try:
                results.extend(rule.evaluate(record))
            except Exception as exc:
                logger.error(
                    "Rule {} failed on subject {}: {}", rule.rule_id, record.subject_id, exc
                )
                results.append(
                    RuleResult(
                        rule_id=rule.rule_id,
                        rule_description=rule.description,
                        category=rule.category,
                        severity=RuleSeverity.WARNING,
                        subject_id=record.subject_id,
                        message=f"Rule execution failed: {exc}",
                    )
                )
        return results

    def validate_all(self, records: list[SubjectRecord]) -> list[RuleResult]:
        """Run all registered rules across ``records``."""
        logger.info("Validating {} record(s) with {} rule(s)", len(records), len(self._rules))
        all_results: list[RuleResult] = []
        for record in records:
            all_results.extend(self.validate_record(record))
        return all_results

    @staticmethod
    def filter_results(
        results: list[RuleResult],
        *,
        category: RuleCategory | None = None,
        severity: RuleSeverity | None = None,
        subject_id: str | None = None,
    ) -> list[RuleResult]:
        """Filter results by category, severity and/or subject."""
        filtered = results
        if category is not None:
            filtered = [r for r in filtered if r.category == category]
        if severity is not None:
            filtered = [r for r in filtered if r.severity == severity]
        if subject_id is not None:
            filtered = [r for r in filtered if r.subject_id == subject_id]
        return filtered
