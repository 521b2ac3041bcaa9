"""Validation report model.

Aggregates lint results into severity counts, per-rule and per-category
breakdowns and a pass rate, and renders them as Markdown. The report is
returned to the caller; persisting it is the caller's decision.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from phenotab.validation.rules.base import RuleResult, RuleSeverity

_COUNT_KEYS: dict[RuleSeverity, str] = {
    RuleSeverity.ERROR: "errors",
    RuleSeverity.WARNING: "warnings",
    RuleSeverity.NOTICE: "notices",
}
_SEVERITY_RANK: dict[RuleSeverity, int] = {s: i for i, s in enumerate(_COUNT_KEYS)}
_MESSAGE_WIDTH = 80


def _tally(
    results: list[RuleResult], group: Callable[[RuleResult], str]
) -> dict[str, dict[str, int]]:
    """Severity counts per group, groups in sorted order."""
    tally: dict[str, dict[str, int]] = {}
    for result in results:
        counts = tally.setdefault(group(result), dict.fromkeys(_COUNT_KEYS.values(), 0))
        counts[_COUNT_KEYS[result.severity]] += 1
    return dict(sorted(tally.items()))


def _count_table(heading: str, label: str, tally: dict[str, dict[str, int]]) -> list[str]:
    rows = [f"## {heading}", "", f"| {label} | Errors | Warnings | Notices |", "|---|---|---|---|"]
    rows.extend(
        f"| {name} | {c['errors']} | {c['warnings']} | {c['notices']} |"
        for name, c in tally.items()
    )
    rows.append("")
    return rows


class ValidationReport(BaseModel):
    """Aggregated lint report for one pipeline run."""

    subjects_validated: int = Field(default=0, description="Number of records linted")
    results: list[RuleResult] = Field(default_factory=list, description="All findings")
    error_count: int = Field(default=0)
    warning_count: int = Field(default=0)
    notice_count: int = Field(default=0)
    pass_rate: float = Field(default=1.0, description="Share of subjects without an ERROR")
    generated_at: str = Field(default="", description="ISO 8601 creation time")
    summary_by_rule: dict[str, dict[str, int]] = Field(default_factory=dict)
    summary_by_category: dict[str, dict[str, int]] = Field(default_factory=dict)

    @property
    def is_clean(self) -> bool:
        """True when no ERROR was found."""
        return self.error_count == 0

    @property
    def fixable_results(self) -> list[RuleResult]:
        return [r for r in self.results if r.fix is not None]

    @classmethod
    def from_results(cls, results: list[RuleResult], subject_ids: list[str]) -> ValidationReport:
        """Summarise engine findings for the linted ``subject_ids``."""
        totals = dict.fromkeys(_COUNT_KEYS.values(), 0)
        for result in results:
            totals[_COUNT_KEYS[result.severity]] += 1

        failing = {r.subject_id for r in results if r.severity == RuleSeverity.ERROR}
        passed = [s for s in subject_ids if s not in failing]

        return cls(
            subjects_validated=len(subject_ids),
            results=results,
            error_count=totals["errors"],
            warning_count=totals["warnings"],
            notice_count=totals["notices"],
            pass_rate=len(passed) / len(subject_ids) if subject_ids else 1.0,
            generated_at=datetime.now(tz=UTC).isoformat(),
            summary_by_rule=_tally(results, lambda r: r.rule_id),
            summary_by_category=_tally(results, lambda r: r.category.value),
        )

    def to_markdown(self) -> str:
        """Render the report as a Markdown document."""
        lines = [
            "# Phenotab Validation Report",
            "",
            f"Generated {self.generated_at}",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|---|---|",
            f"| Subjects Validated | {self.subjects_validated} |",
            f"| Total Findings | {len(self.results)} |",
            f"| Errors | {self.error_count} |",
            f"| Warnings | {self.warning_count} |",
            f"| Notices | {self.notice_count} |",
            f"| Pass Rate | {self.pass_rate:.0%} |",
            "",
        ]
        if not self.results:
            lines.extend(["No findings.", ""])
            return "\n".join(lines)

        lines += _count_table("By Rule", "Rule", self.summary_by_rule)
        lines += _count_table("By Category", "Category", self.summary_by_category)

        lines += ["## Findings", "", "| Severity | Rule | Subject | Message | Fix |"]
        lines.append("|---|---|---|---|---|")
        ordered = sorted(
            self.results,
            key=lambda r: (_SEVERITY_RANK[r.severity], r.subject_id or "", r.rule_id),
        )
        for r in ordered:
            message = r.message
            if len(message) > _MESSAGE_WIDTH:
                message = message[: _MESSAGE_WIDTH - 3] + "..."
            fix = r.fix.kind.value if r.fix is not None else "-"
            lines.append(
                f"| {r.severity.display_name} | {r.rule_id} | {r.subject_id or '-'} "
                f"| {message} | {fix} |"
            )
        lines.append("")
        return "\n".join(lines)
