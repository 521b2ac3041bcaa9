"""Rich display helpers for terminal output.

Provides formatted display functions for pipeline results, diagnostics,
validation reports and lint findings using Rich tables.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from phenotab.models.diagnostics import Diagnostic
from phenotab.models.records import SubjectRecord
from phenotab.validation.fixer import FixAction
from phenotab.validation.report import ValidationReport
from phenotab.validation.rules.base import RuleResult, RuleSeverity


def display_records_summary(records: list[SubjectRecord], console: Console) -> None:
    """Print one row per subject record.

    Columns: Subject, Fields, Phenotypes, Diseases, Blocks, Sources
    """
    table = Table(title="Subject Records", show_lines=True)
    table.add_column("Subject", style="bold cyan", no_wrap=True)
    table.add_column("Fields", justify="right")
    table.add_column("Phenotypes", justify="right", style="green")
    table.add_column("Diseases", justify="right", style="green")
    table.add_column("Blocks", justify="right")
    table.add_column("Sources", style="dim")

    for record in records:
        table.add_row(
            record.subject_id,
            str(len(record.fields)),
            str(len(record.phenotypes())),
            str(len(record.diseases())),
            str(sum(len(blocks) for blocks in record.blocks.values())),
            ", ".join(record.sources),
        )

    console.print(table)


def display_diagnostics(
    diagnostics: list[Diagnostic],
    *,
    console: Console,
    limit: int = 20,
) -> None:
    """Print diagnostic counts per kind and the first ``limit`` diagnostics."""
    if not diagnostics:
        console.print("[dim]No diagnostics.[/dim]")
        return

    counts: dict[str, int] = {}
    for diagnostic in diagnostics:
        counts[diagnostic.kind.value] = counts.get(diagnostic.kind.value, 0) + 1

    summary = Table(title="Diagnostics", show_lines=True)
    summary.add_column("Kind", style="bold")
    summary.add_column("Count", justify="right", style="yellow")
    for kind in sorted(counts):
        summary.add_row(kind, str(counts[kind]))
    console.print(summary)

    detail = Table(show_lines=False)
    detail.add_column("Kind", style="yellow")
    detail.add_column("Table")
    detail.add_column("Column")
    detail.add_column("Row", justify="right")
    detail.add_column("Message")
    for diagnostic in diagnostics[:limit]:
        detail.add_row(
            diagnostic.kind.value,
            diagnostic.table or "-",
            diagnostic.column or "-",
            "-" if diagnostic.row is None else str(diagnostic.row),
            diagnostic.message,
        )
    console.print(detail)
    if len(diagnostics) > limit:
        console.print(f"[dim]... and {len(diagnostics) - limit} more[/dim]")


def display_validation_summary(report: ValidationReport, console: Console) -> None:
    """Print severity counts and pass rate of a validation report."""
    table = Table(title="Validation Summary", show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Subjects Validated", str(report.subjects_validated))
    table.add_row("Total Findings", str(len(report.results)))
    error_style = "bold red" if report.error_count > 0 else "green"
    table.add_row("Errors", Text(str(report.error_count), style=error_style))
    warn_style = "yellow" if report.warning_count > 0 else "green"
    table.add_row("Warnings", Text(str(report.warning_count), style=warn_style))
    table.add_row("Notices", str(report.notice_count))
    table.add_row("Pass Rate", f"{report.pass_rate:.0%}")

    console.print(table)


def display_validation_issues(
    results: list[RuleResult],
    *,
    console: Console,
    limit: int = 20,
) -> None:
    """Print findings sorted by severity, ERROR first."""
    if not results:
        console.print("[dim]No validation issues found.[/dim]")
        return

    order = {RuleSeverity.ERROR: 0, RuleSeverity.WARNING: 1, RuleSeverity.NOTICE: 2}
    styles = {
        RuleSeverity.ERROR: "bold red",
        RuleSeverity.WARNING: "yellow",
        RuleSeverity.NOTICE: "dim",
    }
    table = Table(title="Validation Issues", show_lines=True)
    table.add_column("Severity")
    table.add_column("Rule", style="bold")
    table.add_column("Subject", style="cyan")
    table.add_column("Message")

    for r in sorted(results, key=lambda r: (order[r.severity], r.subject_id or ""))[:limit]:
        table.add_row(
            Text(r.severity.display_name, style=styles[r.severity]),
            r.rule_id,
            r.subject_id or "-",
            r.message,
        )
    console.print(table)
    if len(results) > limit:
        console.print(f"[dim]... and {len(results) - limit} more[/dim]")


def display_fix_actions(actions: list[FixAction], console: Console) -> None:
    """Print the audit trail of applied fixes."""
    if not actions:
        console.print("[dim]No fixes applied.[/dim]")
        return
    table = Table(title="Applied Fixes", show_lines=True)
    table.add_column("Rule", style="bold")
    table.add_column("Subject", style="cyan")
    table.add_column("Before")
    table.add_column("After", style="green")
    for action in actions:
        table.add_row(action.rule_id, action.subject_id, action.before_value, action.after_value)
    console.print(table)
