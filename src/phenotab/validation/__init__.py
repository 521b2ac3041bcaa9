"""Post-assembly linting of subject records.

Rules are organized by category (ontology, consistency, completeness)
and produce structured results with severity levels. Fixes are applied
only through RecordFixer, never during a pipeline run.
"""

from phenotab.validation.engine import ValidationEngine
from phenotab.validation.fixer import FixAction, FixOutcome, RecordFixer
from phenotab.validation.report import ValidationReport
from phenotab.validation.rules.base import (
    FixHint,
    FixKind,
    RuleCategory,
    RuleResult,
    RuleSeverity,
    ValidationRule,
)

__all__ = [
    "FixAction",
    "FixHint",
    "FixKind",
    "FixOutcome",
    "RecordFixer",
    "RuleCategory",
    "RuleResult",
    "RuleSeverity",
    "ValidationEngine",
    "ValidationReport",
    "ValidationRule",
]
