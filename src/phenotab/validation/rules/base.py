"""Base models for subject-record linting rules.

Defines the core abstractions: RuleSeverity, RuleCategory, FixHint,
RuleResult and ValidationRule. All concrete rules subclass
ValidationRule and implement evaluate().
"""

from __future__ import annotations

from abc import abstractmethod
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from phenotab.models.records import SubjectRecord


class RuleSeverity(StrEnum):
    """Severity classification for lint findings.

    ERROR: The record carries data that downstream consumers will reject.
    WARNING: Likely a mapping mistake; review before publishing.
    NOTICE: Informational; the record is valid but thin.
    """

    ERROR = "ERROR"
    WARNING = "WARNING"
    NOTICE = "NOTICE"

    @property
    def display_name(self) -> str:
        """Human-friendly display name."""
        return self.value.capitalize()


class RuleCategory(StrEnum):
    """What aspect of a record a rule inspects.

    ONTOLOGY: lexical validity of ontology ids.
    CONSISTENCY: values that contradict or repeat each other.
    COMPLETENESS: expected information that is absent.
    """

    ONTOLOGY = "ONTOLOGY"
    CONSISTENCY = "CONSISTENCY"
    COMPLETENESS = "COMPLETENESS"


class FixKind(StrEnum):
    """Remediations RecordFixer knows how to apply."""

    REMOVE_DUPLICATE_PHENOTYPE = "remove_duplicate_phenotype"


class FixHint(BaseModel):
    """Machine-readable remediation attached to a finding."""

    model_config = ConfigDict(frozen=True)

    kind: FixKind
    term: str = Field(..., description="Phenotype term the fix applies to")
    status: str = Field(..., description="Observation status of the term")


class RuleResult(BaseModel):
    """One finding of one rule on one subject record."""

    rule_id: str = Field(..., description="Unique rule identifier (e.g. 'PTAB-V001')")
    rule_description: str = Field(..., description="Human-readable rule description")
    category: RuleCategory = Field(..., description="Rule category")
    severity: RuleSeverity = Field(..., description="Finding severity")
    subject_id: str | None = Field(default=None, description="Subject the finding is about")
    context_key: str | None = Field(default=None, description="Context key of the field, if any")
    message: str = Field(..., description="Detailed finding message")
    affected_count: int = Field(default=0, description="Number of affected values")
    fix_suggestion: str | None = Field(default=None, description="Suggested remediation")
    fix: FixHint | None = Field(default=None, description="Remediation RecordFixer can apply")


class ValidationRule(BaseModel):
    """Abstract base class for all record lint rules.

    Subclasses implement evaluate(), which inspects one finalized
    SubjectRecord. Rules never modify records.
    """

    rule_id: str = Field(..., description="Unique rule identifier")
    description: str = Field(..., description="Human-readable rule description")
    category: RuleCategory = Field(..., description="Rule category")
    severity: RuleSeverity = Field(..., description="Default severity for findings")

    def result(self, record: SubjectRecord, message: str, **details: object) -> RuleResult:
        """Build a RuleResult for ``record`` with this rule's metadata."""
        return RuleResult(
            rule_id=self.rule_id,
            rule_description=self.description,
            category=self.category,
            severity=self.severity,
            subject_id=record.subject_id,
            message=message,
            **details,
        )

    @abstractmethod
    def evaluate(self, record: SubjectRecord) -> list[RuleResult]:
        """Evaluate this rule against one subject record.

        Args:
            record: Finalized record produced by the collector.

        Returns:
            List of RuleResult findings. Empty list means the rule passed.
        """
        ...
