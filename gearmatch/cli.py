"""gearmatch CLI.

Commands:
- select-pump: Standby pump for a gearbox model
- select-coupling: Flexible coupling for a gearbox model (with torque check)
- select-gearbox: Gearbox for an engine (one series or auto across series)
- select-package: Gearbox plus coupling and standby pump
- rules: Show the loaded rule tables

Catalogs are JSON or YAML files holding a list of items, or a mapping with
an ``items`` list.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from gearmatch.config import get_config
from gearmatch.core.logging import configure_logging
from gearmatch.matching.orchestrator import select_standby_pump
from gearmatch.models import AccessoryKind, OutcomeStatus, SelectionContext, SelectionOutcome
from gearmatch.rules.loader import RuleTableError
from gearmatch.rules.repository import get_repository
from gearmatch.selection.coupling import select_coupling
from gearmatch.selection.gearbox import GearboxSelectionOutcome, select_gearbox
from gearmatch.selection.pipeline import select_package

app = typer.Typer(
    name="gearmatch",
    help="gearmatch - Rule-driven gearbox, coupling and standby pump selection",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Configure logging before any command runs."""
    config = get_config()
    configure_logging(log_level or config.log_level, config.log_format)


def load_catalog(path: Path) -> list[Any]:
    """Read a catalog file (JSON or YAML).

    Raises:
        typer.BadParameter: If the file cannot be read or has no item list
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise typer.BadParameter(f"Cannot read catalog {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise typer.BadParameter(f"Catalog {path} is not valid JSON/YAML: {e}") from e

    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise typer.BadParameter(f"Catalog {path} must be a list of items or have an 'items' list")
    return data


def _render_outcome(title: str, outcome: SelectionOutcome) -> None:
    status_style = {
        OutcomeStatus.RESOLVED: "green",
        OutcomeStatus.NOT_APPLICABLE: "blue",
        OutcomeStatus.UNRESOLVED: "yellow",
        OutcomeStatus.INVALID_INPUT: "red",
    }[outcome.status]
    console.print(f"[bold]{title}:[/bold] [{status_style}]{outcome.status.value}[/{status_style}]")
    console.print(f"  {outcome.message}")

    if outcome.chosen is not None:
        table = Table(title="Matches")
        table.add_column("Model", style="cyan")
        table.add_column("Match", style="green")
        table.add_column("Score", justify="right")
        table.add_column("Via")
        for result in [outcome.chosen, *outcome.alternatives]:
            table.add_row(
                result.catalog_item.model,
                result.match_type.value,
                f"{result.score:g}",
                result.candidate_model,
            )
        console.print(table)
        console.print(f"  Confidence: {outcome.confidence_level}")
    elif outcome.candidates:
        table = Table(title="Recommended models (not in catalog)")
        table.add_column("Model", style="cyan")
        table.add_column("Type")
        table.add_column("Score", justify="right")
        for candidate in outcome.candidates:
            table.add_row(candidate.model, candidate.match_type.value, f"{candidate.score:g}")
        console.print(table)

    for warning in outcome.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")


def _render_gearbox(outcome: GearboxSelectionOutcome, limit: int) -> None:
    if not outcome.success:
        console.print(f"[bold red]✗[/bold red] {outcome.message}")
        return

    console.print(f"[bold green]✓[/bold green] {outcome.message}")
    table = Table(title="Gearbox Recommendations")
    table.add_column("Model", style="cyan")
    table.add_column("Series")
    table.add_column("Ratio", justify="right")
    table.add_column("Capacity", justify="right")
    table.add_column("Margin", justify="right")
    table.add_column("Score", justify="right", style="green")
    for candidate in outcome.recommendations[:limit]:
        table.add_row(
            candidate.model,
            candidate.series,
            f"{candidate.selected_ratio:g}",
            f"{candidate.selected_capacity:.4f}",
            f"{candidate.capacity_margin:.1f}%",
            f"{candidate.score:g}",
        )
    console.print(table)
    for warning in outcome.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")


def _context(**fields) -> SelectionContext:
    try:
        return SelectionContext(**fields)
    except ValidationError as e:
        error = e.errors()[0]
        raise typer.BadParameter(f"{error['loc'][0]}: {error['msg']}") from e


def _exit_for(outcome: SelectionOutcome) -> None:
    if outcome.status == OutcomeStatus.INVALID_INPUT:
        raise typer.Exit(code=2)
    if outcome.status == OutcomeStatus.UNRESOLVED:
        raise typer.Exit(code=1)


@app.command(name="select-pump")
def select_pump_cmd(
    gearbox_model: str = typer.Argument(..., help="Gearbox model, e.g. GW39.41"),
    catalog: Path = typer.Option(..., "--catalog", "-c", help="Pump catalog (JSON/YAML)"),
    power: float | None = typer.Option(None, "--power", help="Rated engine power (kW)"),
):
    """Select a standby pump for a gearbox."""
    items = load_catalog(catalog)
    outcome = select_standby_pump(gearbox_model, items, _context(power=power))
    _render_outcome(f"Standby pump for {gearbox_model}", outcome)
    _exit_for(outcome)


@app.command(name="select-coupling")
def select_coupling_cmd(
    gearbox_model: str = typer.Argument(..., help="Gearbox model, e.g. HC1200/1"),
    catalog: Path = typer.Option(..., "--catalog", "-c", help="Coupling catalog (JSON/YAML)"),
    torque: float | None = typer.Option(None, "--torque", help="Engine torque (N·m)"),
    power: float | None = typer.Option(None, "--power", help="Engine power (kW)"),
    speed: float | None = typer.Option(None, "--speed", help="Engine speed (rpm)"),
    work_condition: str | None = typer.Option(None, "--work-condition", help="Class I-V (default III)"),
    temperature: float | None = typer.Option(None, "--temperature", help="Ambient temperature (°C)"),
    cover: bool = typer.Option(False, "--cover", help="Coupling with cover"),
):
    """Select a highly flexible coupling for a gearbox."""
    items = load_catalog(catalog)
    context = _context(
        power=power,
        speed=speed,
        engine_torque=torque,
        work_condition=work_condition,
        temperature=temperature,
        has_cover=cover,
    )
    outcome = select_coupling(gearbox_model, items, context)
    _render_outcome(f"Coupling for {gearbox_model}", outcome)
    _exit_for(outcome)


@app.command(name="select-gearbox")
def select_gearbox_cmd(
    catalog: Path = typer.Option(..., "--catalog", "-c", help="Gearbox catalog (JSON/YAML)"),
    power: float = typer.Option(..., "--power", help="Engine power (kW)"),
    speed: float = typer.Option(..., "--speed", help="Engine speed (rpm)"),
    ratio: float = typer.Option(..., "--ratio", help="Target reduction ratio"),
    thrust: float = typer.Option(0.0, "--thrust", help="Required thrust (kN)"),
    series: str | None = typer.Option(None, "--series", help="Restrict to one series (default: auto)"),
    limit: int = typer.Option(5, "--limit", help="Recommendations to show"),
):
    """Select a gearbox for an engine."""
    items = load_catalog(catalog)
    outcome = select_gearbox(power, speed, ratio, items, thrust=thrust, series=series)
    _render_gearbox(outcome, limit)
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command(name="select-package")
def select_package_cmd(
    gearboxes: Path = typer.Option(..., "--gearboxes", help="Gearbox catalog (JSON/YAML)"),
    couplings: Path = typer.Option(..., "--couplings", help="Coupling catalog (JSON/YAML)"),
    pumps: Path = typer.Option(..., "--pumps", help="Standby pump catalog (JSON/YAML)"),
    power: float = typer.Option(..., "--power", help="Engine power (kW)"),
    speed: float = typer.Option(..., "--speed", help="Engine speed (rpm)"),
    ratio: float = typer.Option(..., "--ratio", help="Target reduction ratio"),
    thrust: float = typer.Option(0.0, "--thrust", help="Required thrust (kN)"),
    series: str | None = typer.Option(None, "--series", help="Restrict gearbox series"),
    work_condition: str | None = typer.Option(None, "--work-condition", help="Class I-V (default III)"),
    temperature: float | None = typer.Option(None, "--temperature", help="Ambient temperature (°C)"),
    cover: bool = typer.Option(False, "--cover", help="Coupling with cover"),
):
    """Select a gearbox with its coupling and standby pump."""
    package = select_package(
        power,
        speed,
        ratio,
        load_catalog(gearboxes),
        load_catalog(couplings),
        load_catalog(pumps),
        thrust=thrust,
        series=series,
        work_condition=work_condition,
        temperature=temperature,
        has_cover=cover,
    )

    _render_gearbox(package.gearbox, limit=3)
    if not package.success:
        raise typer.Exit(code=1)

    console.print()
    _render_outcome("Coupling", package.coupling)
    console.print()
    _render_outcome("Standby pump", package.standby_pump)

    if package.needs_review:
        console.print("\n[bold yellow]Review recommended before quoting[/bold yellow]")


@app.command()
def rules(
    kind: AccessoryKind | None = typer.Argument(None, help="Accessory class (default: all)"),
):
    """Show the loaded rule tables."""
    try:
        repository = get_repository()
    except RuleTableError as e:
        console.print(f"[bold red]✗ Rule tables failed to load:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    for accessory in [kind] if kind else repository.kinds:
        rule_set = repository.get(accessory)
        table = Table(title=f"{rule_set.accessory} (default {rule_set.default_target})")
        table.add_column("Series", style="cyan")
        table.add_column("Covers")
        table.add_column("Target", style="green")
        table.add_column("Score", justify="right")
        table.add_column("Alternates", style="dim")
        for rule in rule_set.iter_rules():
            table.add_row(
                rule.series,
                rule.describe(),
                rule.target,
                f"{rule.score:g}",
                ", ".join(f"{a.model} (-{a.offset:g})" for a in rule.alternates),
            )
        console.print(table)


if __name__ == "__main__":
    app()
