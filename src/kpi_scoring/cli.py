"""Console script for kpi_scoring."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config.loader import ConfigLoader
from .config.models import ClassType, ConfigSnapshot, RubricBand
from .errors import KpiScoringError
from .rubrics.defaults import generate_rubric
from .scoring.report import ComputedEntityRow, ReportPipeline
from .scoring.rollup import check_weights
from .utils.logging import get_logger, setup_logging

app = typer.Typer(help="Rubric defaults and weighted KPI scoring.")
console = Console()
logger = get_logger(__name__)

LOG_LEVEL_ENV = "KPI_SCORING_LOG_LEVEL"


def _fmt(value: float | None) -> str:
    return "—" if value is None else f"{value:g}"


def _parse_classes(values: Optional[list[str]]) -> list[ClassType] | None:
    if not values:
        return None
    try:
        return [ClassType.parse(v) for v in values]
    except ValueError as e:
        raise typer.BadParameter(f"Unknown class type: {e}") from e


def _load_snapshot(loader: ConfigLoader, config: Path) -> ConfigSnapshot:
    try:
        return loader.load_snapshot(config)
    except (FileNotFoundError, KpiScoringError) as e:
        logger.error(str(e))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


def _rubric_table(title: str, rows: list[RubricBand]) -> Table:
    table = Table(title=title)
    table.add_column("Band")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Score", justify="right")
    for row in rows:
        table.add_row(
            row.band_key.value,
            _fmt(row.min_value),
            _fmt(row.max_value),
            _fmt(row.score_value),
        )
    return table


def _entity_payload(row: ComputedEntityRow) -> dict:
    return {
        "entity_key": row.entity_key,
        "entity_label": row.entity_label,
        "results": [
            {
                "class_type": r.class_type.value,
                "kpi_key": r.kpi_key,
                "value": r.value,
                "band_key": r.band_key.value,
                "match_reason": r.match_reason.value,
                "score_value": r.score_value,
                "weight_percent": r.weight_percent,
                "weighted_points": r.weighted_points,
            }
            for r in row.results
        ],
        "totals_by_class": {
            ct.value: {"points": total.points, "max_points": total.max_points}
            for ct, total in row.totals_by_class.items()
        },
    }


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """Rubric defaults and weighted KPI scoring."""
    load_dotenv()
    level = logging.DEBUG if verbose else os.getenv(LOG_LEVEL_ENV, "INFO")
    setup_logging(level=level, log_file=log_file)


@app.command()
def defaults(
    config: Path = typer.Argument(..., help="Configuration YAML file"),
    class_type: str = typer.Option(..., "--class-type", "-c", help="P4P, SMART or TECH"),
    kpi: str = typer.Option(..., "--kpi", "-k", help="KPI key"),
    write: bool = typer.Option(False, "--write", help="Replace the rubric in the config file"),
):
    """Generate the default rubric for one KPI in one class."""
    loader = ConfigLoader()
    snapshot = _load_snapshot(loader, config)
    ct = _parse_classes([class_type])[0]

    try:
        rows = generate_rubric(snapshot, ct, kpi)
    except KpiScoringError as e:
        logger.error(str(e))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(_rubric_table(f"Default rubric: {ct.value} / {kpi}", rows))

    if write:
        path = loader.write_rubric(config, ct, kpi, rows)
        console.print(f"Wrote {len(rows)} rubric rows to {path}")


@app.command()
def score(
    config: Path = typer.Argument(..., help="Configuration YAML file"),
    observations: Path = typer.Argument(..., help="Observations YAML or CSV file"),
    class_type: Optional[list[str]] = typer.Option(
        None, "--class-type", "-c", help="Class to score (repeatable, default all)"
    ),
    fiscal_month: Optional[str] = typer.Option(
        None, "--fiscal-month", help="Only score observations tagged with this month"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
):
    """Score raw observations and print per-class totals."""
    loader = ConfigLoader()
    snapshot = _load_snapshot(loader, config)
    classes = _parse_classes(class_type)

    try:
        raw = loader.load_observations(observations)
    except (FileNotFoundError, KpiScoringError) as e:
        logger.error(str(e))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    rows = ReportPipeline(snapshot).run(raw, classes, fiscal_month)

    if as_json:
        console.print_json(json.dumps([_entity_payload(r) for r in rows]))
        return

    for ct in classes or list(ClassType):
        table = Table(title=f"{ct.value} scores")
        table.add_column("Entity")
        table.add_column("KPI")
        table.add_column("Value", justify="right")
        table.add_column("Band")
        table.add_column("Score", justify="right")
        table.add_column("Weighted", justify="right")
        for row in rows:
            for result in row.results_for(ct):
                kpi_def = snapshot.kpi_def(result.kpi_key)
                table.add_row(
                    row.entity_label,
                    kpi_def.display_label if kpi_def else result.kpi_key,
                    _fmt(result.value),
                    result.band_key.value,
                    _fmt(result.score_value),
                    _fmt(result.weighted_points),
                )
            total = row.totals_by_class.get(ct)
            if total is not None:
                table.add_row(
                    row.entity_label,
                    "[bold]Total[/bold]",
                    "",
                    "",
                    f"{total.points:.3f}",
                    f"/ {total.max_points:.3f}",
                    end_section=True,
                )
        console.print(table)


@app.command("check-weights")
def check_weights_command(
    config: Path = typer.Argument(..., help="Configuration YAML file"),
    class_type: Optional[list[str]] = typer.Option(
        None, "--class-type", "-c", help="Class to check (repeatable, default all)"
    ),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 on any problem"),
):
    """Report whether enabled KPI weights sum to 100 per class."""
    snapshot = _load_snapshot(ConfigLoader(), config)

    table = Table(title="Weight check")
    table.add_column("Class")
    table.add_column("Enabled KPIs", justify="right")
    table.add_column("Weight sum", justify="right")
    table.add_column("Status")

    problems = 0
    for ct in _parse_classes(class_type) or list(ClassType):
        configs = snapshot.enabled_configs(ct)
        check = check_weights(configs)
        if check.ok:
            status = "[green]OK[/green]"
        else:
            problems += 1
            notes = []
            if not check.balanced:
                notes.append("weights do not sum to 100")
            if check.unweighted_kpis:
                notes.append(f"no weight: {', '.join(check.unweighted_kpis)}")
            status = "[yellow]" + "; ".join(notes) + "[/yellow]"
        table.add_row(ct.value, str(len(configs)), f"{check.total_weight:g}", status)

    console.print(table)
    if strict and problems:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
