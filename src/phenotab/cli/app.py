"""Phenotab CLI application entry point.

Provides commands for running a configured pipeline, linting finalized
subject records, and listing the available strategies.

Usage:
    phenotab run <config.json>
    phenotab lint <records-dir>
    phenotab strategies
    phenotab version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

app = typer.Typer(
    name="phenotab",
    help="Turn tabular clinical data into per-subject, ontology-normalized phenotype records.",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version() -> None:
    """Show the current version."""
    from phenotab import __version__

    console.print(f"phenotab {__version__}")


@app.command()
def strategies() -> None:
    """List the strategy names accepted in a pipeline configuration."""
    from phenotab.transforms.registry import list_strategies

    for name in list_strategies():
        console.print(name)


@app.command()
def run(
    config_path: Annotated[
        Path,
        typer.Argument(help="Pipeline configuration file (JSON)"),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write one JSON record per subject to this directory"),
    ] = None,
    report: Annotated[
        Path | None,
        typer.Option("--report", "-r", help="Write the validation report as Markdown"),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Tables processed in parallel"),
    ] = None,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Replace existing record files in --output"),
    ] = False,
) -> None:
    """Run the pipeline described by a configuration file.

    Reads every configured data source, tags and transforms each table,
    collects per-subject records, lints them and hands them to the loader.
    """
    from phenotab.cli.display import (
        display_diagnostics,
        display_records_summary,
        display_validation_issues,
        display_validation_summary,
    )
    from phenotab.config.settings import LoaderConfig, LoaderKind, load_pipeline_config
    from phenotab.errors import PhenotabError
    from phenotab.execution.orchestrator import run_pipeline

    if not config_path.is_file():
        console.print(f"[bold red]Error:[/bold red] Configuration not found: {config_path}")
        raise typer.Exit(code=1)

    try:
        config = load_pipeline_config(config_path)
    except PhenotabError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    if output is not None:
        config.loader = LoaderConfig(
            kind=LoaderKind.JSON_DIRECTORY, output_dir=output, overwrite=overwrite
        )
    if workers is not None:
        config.max_workers = workers

    console.print(
        f"\n[bold blue][1/2][/bold blue] Running pipeline over "
        f"{len(config.data_sources)} data source(s)..."
    )
    try:
        result = run_pipeline(config)
    except PhenotabError as e:
        console.print(f"[bold red]Pipeline failed:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold blue][2/2][/bold blue] {len(result.records)} record(s) built\n")
    display_records_summary(result.records, console)
    display_diagnostics(result.diagnostics, console=console)

    if result.validation is not None:
        display_validation_summary(result.validation, console)
        display_validation_issues(result.validation.results, console=console)
        if report is not None:
            report.write_text(result.validation.to_markdown(), encoding="utf-8")
            console.print(f"[green]Validation report written to {report}[/green]")

    if output is not None:
        console.print(f"[green]Records written to {output}[/green]")


@app.command()
def lint(
    records_dir: Annotated[
        Path,
        typer.Argument(help="Directory of subject record JSON files"),
    ],
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Apply available fixes and rewrite the record files"),
    ] = False,
    report: Annotated[
        Path | None,
        typer.Option("--report", "-r", help="Write the validation report as Markdown"),
    ] = None,
) -> None:
    """Lint finalized subject records.

    Exits with code 1 when any ERROR finding remains.
    """
    from pydantic import ValidationError

    from phenotab.cli.display import (
        display_fix_actions,
        display_validation_issues,
        display_validation_summary,
    )
    from phenotab.models.records import SubjectRecord
    from phenotab.validation.engine import ValidationEngine
    from phenotab.validation.fixer import RecordFixer
    from phenotab.validation.report import ValidationReport

    if not records_dir.is_dir():
        console.print(f"[bold red]Error:[/bold red] Directory not found: {records_dir}")
        raise typer.Exit(code=1)

    files = sorted(records_dir.glob("*.json"))
    if not files:
        console.print(f"[bold red]Error:[/bold red] No .json files found in {records_dir}")
        raise typer.Exit(code=1)

    records: list[SubjectRecord] = []
    paths: dict[str, Path] = {}
    for path in files:
        try:
            record = SubjectRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            console.print(f"[bold red]Error:[/bold red] {path.name} is not a subject record")
            raise typer.Exit(code=1) from e
        records.append(record)
        paths[record.subject_id] = path

    engine = ValidationEngine()
    results = engine.validate_all(records)

    if fix:
        outcome = RecordFixer().apply(records, results)
        changed = {action.subject_id for action in outcome.actions}
        for record in outcome.records:
            if record.subject_id in changed:
                paths[record.subject_id].write_text(
                    record.model_dump_json(indent=2), encoding="utf-8"
                )
        display_fix_actions(outcome.actions, console)
        records = outcome.records
        results = engine.validate_all(records)

    validation = ValidationReport.from_results(results, [r.subject_id for r in records])
    display_validation_summary(validation, console)
    display_validation_issues(results, console=console)

    if report is not None:
        report.write_text(validation.to_markdown(), encoding="utf-8")
        console.print(f"[green]Validation report written to {report}[/green]")

    if not validation.is_clean:
        raise typer.Exit(code=1)
