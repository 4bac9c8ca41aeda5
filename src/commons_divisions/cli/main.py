"""CLI entry point for commons-divisions.

Invoked as::

    commons-div [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m commons_divisions.cli.main

Commands
--------
- version          Show version information
- init             Write a default engine config
- weights          Show effective voting weights for a state file
- tally            Tally a division on a bill, motion or amendment
- advance          Run deadlines and stage transitions for a simulated month
- roster validate  Check roster integrity
- audit show       Display recent audit entries
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import click
import yaml
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from commons_divisions.config import ConfigLoader, EngineConfig
from commons_divisions.store.document import StateDocument

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("divisions.yaml")

_OUTCOME_STYLES: dict[str, str] = {
    "passed": "[green]PASSED[/green]",
    "failed": "[red]FAILED[/red]",
    "tied": "[yellow]TIED[/yellow]",
}

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to divisions.yaml (defaults apply when missing).",
)


def _load_config(config_path: str) -> EngineConfig:
    loader = ConfigLoader()
    path = Path(config_path)
    if not path.exists():
        return loader.defaults()
    try:
        return loader.load(path)
    except ValueError as exc:
        err_console.print(f"[red]Invalid config:[/red] {exc}")
        sys.exit(2)


def _load_state(state_path: str) -> StateDocument:
    try:
        return StateDocument.from_file(Path(state_path))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        err_console.print(f"[red]Could not read state file:[/red] {exc}")
        sys.exit(2)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="commons-divisions")
def cli() -> None:
    """Commons divisions CLI — weights, tallies, and stage progression."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from commons_divisions import __version__

    console.print(
        Panel(
            f"[bold]commons-divisions[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Weighted divisions and stage progression for a simulated Commons.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@cli.command(name="init")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    help="Output engine config file path.",
)
def init_command(output: str) -> None:
    """Write a default engine configuration."""
    output_path = Path(output)
    config = ConfigLoader().defaults()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(
            config.model_dump(mode="json"),
            fh,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    console.print(f"[green]Initialised[/green] engine config: [bold]{output_path}[/bold]")
    console.print(f"  Settling period: [cyan]{config.settling_period_days:g} days[/cyan]")
    console.print(f"  Amendment leaders needed: [cyan]{config.amendments.min_leader_supporters}[/cyan]")


# ---------------------------------------------------------------------------
# weights
# ---------------------------------------------------------------------------


@cli.command(name="weights")
@click.argument("state_path", type=click.Path(exists=True))
@_config_option
def weights_command(state_path: str, config_path: str) -> None:
    """Show the effective voting weight of every active member."""
    from commons_divisions.engine import LegislativeEngine

    document = _load_state(state_path)
    engine = LegislativeEngine(_load_config(config_path))
    allocation = engine.effective_weights(document)

    table = Table(title="Effective Voting Weights", box=box.SIMPLE)
    table.add_column("Member", style="cyan")
    table.add_column("Party", style="magenta")
    table.add_column("Base", justify="right")
    table.add_column("Effective", justify="right", style="bold")
    table.add_column("Leader", justify="center")
    for name, weight in allocation.effective_weights.items():
        table.add_row(
            name,
            allocation.party_by_name.get(name, ""),
            str(allocation.base_weights.get(name, 0)),
            str(weight),
            "yes" if allocation.is_leader(name) else "",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# tally
# ---------------------------------------------------------------------------


@cli.command(name="tally")
@click.argument("state_path", type=click.Path(exists=True))
@click.option("--item", "-i", "item_id", required=True, help="Bill or motion id.")
@click.option("--amendment", "-a", "amendment_id", default=None, help="Amendment id (nested division).")
@_config_option
def tally_command(state_path: str, item_id: str, amendment_id: str | None, config_path: str) -> None:
    """Tally a division and show its outcome."""
    from commons_divisions.engine import LegislativeEngine

    document = _load_state(state_path)
    engine = LegislativeEngine(_load_config(config_path))
    result = engine.resolve_division(document, item_id, amendment_id)
    if not result.accepted or result.tally is None:
        err_console.print(f"[red]Cannot tally:[/red] {result.reason}")
        sys.exit(1)

    tally = result.tally
    outcome = result.outcome.value if result.outcome else "tied"
    console.print(Panel(_OUTCOME_STYLES[outcome], title=f"Division on {item_id}", border_style="blue"))

    table = Table(box=box.SIMPLE)
    table.add_column("Choice", style="cyan")
    table.add_column("Weight", justify="right")
    for choice, weight in tally.as_dict().items():
        table.add_row(choice, f"{weight:g}")
    console.print(table)
    console.print(f"  Player ballots: [cyan]{tally.player_ballots}[/cyan]")
    for party, weight in tally.npc_contributions.items():
        console.print(f"  NPC {party}: [cyan]{weight:g}[/cyan]")


# ---------------------------------------------------------------------------
# advance
# ---------------------------------------------------------------------------


@cli.command(name="advance")
@click.argument("state_path", type=click.Path(exists=True))
@click.option("--month", "-m", required=True, type=click.IntRange(1, 12), help="Simulated month (1-12).")
@click.option("--year", "-y", required=True, type=int, help="Simulated year.")
@click.option("--write", is_flag=True, default=False, help="Write the updated state back to the file.")
@_config_option
def advance_command(state_path: str, month: int, year: int, write: bool, config_path: str) -> None:
    """Apply deadlines and stage transitions as of the given simulated month."""
    from commons_divisions.clock.sim_date import SimDate
    from commons_divisions.engine import LegislativeEngine

    document = _load_state(state_path)
    engine = LegislativeEngine(_load_config(config_path))
    sim_now = SimDate(month, year)
    result = engine.advance_stages(document, now=datetime.now(tz=timezone.utc), sim_now=sim_now)

    table = Table(title=f"Order Paper as of {sim_now.label}", box=box.SIMPLE)
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Stage", style="magenta")
    table.add_column("Status")
    table.add_column("Deadline", style="dim")
    for item in result.document.iter_items():
        table.add_row(
            item.id,
            item.title,
            item.stage.value,
            item.status.value,
            item.stage_deadline_sim.label if item.stage_deadline_sim else "",
        )
    console.print(table)
    console.print(f"  {result.reason}")

    if write:
        result.document.save(Path(state_path))
        console.print(f"[green]Wrote[/green] {state_path}")


# ---------------------------------------------------------------------------
# roster group
# ---------------------------------------------------------------------------


@cli.group(name="roster")
def roster_group() -> None:
    """Roster commands."""


@roster_group.command(name="validate")
@click.argument("state_path", type=click.Path(exists=True))
def roster_validate_command(state_path: str) -> None:
    """Check roster integrity; exits non-zero when problems are found."""
    document = _load_state(state_path)
    problems = document.roster().validate_roster()
    ledger = document.seat_ledger()

    if not problems:
        console.print(
            Panel(
                f"[green]Roster OK[/green]\n"
                f"  Parties: {len(ledger.parties())}  Seats: {ledger.total_seats()}  "
                f"Members: {len(document.players)}",
                title="Roster",
                border_style="green",
            )
        )
        return

    table = Table(title="Roster Problems", box=box.SIMPLE)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Problem", style="red")
    for index, problem in enumerate(problems, start=1):
        table.add_row(str(index), problem)
    console.print(table)
    sys.exit(1)


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@_config_option
def audit_show_command(last: int, config_path: str) -> None:
    """Show recent audit log entries."""
    from commons_divisions.audit.logger import DivisionAuditLog

    config = _load_config(config_path)
    audit = DivisionAuditLog(config.audit.log_path)
    records = audit.last_n(last)
    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Audit Events", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Event", style="cyan")
    table.add_column("Item", style="magenta")
    table.add_column("Actor")
    for record in records:
        table.add_row(
            str(record.get("timestamp", ""))[:19].replace("T", " "),
            str(record.get("event", "")),
            str(record.get("item", "")),
            str(record.get("actor", "") or ""),
        )
    console.print(table)
    console.print(f"  Total audit records: [cyan]{audit.count()}[/cyan]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
