"""Lint rules for finalized subject records.

Rules are organized by category:
- ontology: lexical validity of ontology ids (PTAB-V001)
- consistency: repeated or contradictory values (PTAB-V002, PTAB-V005)
- completeness: expected but absent information (PTAB-V003, PTAB-V004)
"""

from phenotab.validation.rules.base import (
    FixHint,
    FixKind,
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)

__all__ = [
    "FixHint",
    "FixKind",
    "RuleCategory",
    "RuleResult",
    "RuleSeverity",
    "ValidationRule",
]
