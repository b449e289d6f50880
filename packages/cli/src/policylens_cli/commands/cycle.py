"""cycle commands — manage the RED/GREEN/REFACTOR unit of work."""

from __future__ import annotations

import click
from rich.console import Console

from policylens_cli.cycle_state import load_cycle, save_cycle
from policylens_cli.snapshots import catalog_from_config
from policylens_core.checker import check_squash
from policylens_core.cycle import CycleState
from policylens_core.summary import print_report

console = Console()


def _state_path(ctx) -> str:
    return ctx.obj["config"].get("cycle_state_path", ".policylens/cycle.json")


@click.group("cycle")
def cycle_group():
    """Track a test-driven unit of work.

    While a unit is active, `policylens check` validates that `test:`,
    `green:` and `refactor:` commits happen in RED → GREEN → REFACTOR order
    and carry test evidence.
    """


@cycle_group.command("start")
@click.argument("unit")
@click.option("--force", is_flag=True, help="Replace an unfinished unit of work.")
@click.pass_context
def start_cmd(ctx, unit: str, force: bool):
    """Start a new unit of work named UNIT."""
    path = _state_path(ctx)
    current = load_cycle(path)
    if current is not None and current.active and not force:
        raise click.UsageError(
            f"Unit {current.unit!r} is still active. Squash it first or pass --force to abandon it."
        )
    save_cycle(path, CycleState.start(unit))
    console.print(f"[green]Started unit of work [bold]{unit}[/bold].[/green] Next: a failing test (`test: ...`).")


@cycle_group.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show the current unit of work and its phase history."""
    state = load_cycle(_state_path(ctx))
    if state is None:
        console.print("[yellow]No unit of work. Start one with `policylens cycle start <name>`.[/yellow]")
        return
    phase = state.phase.name if state.phase else "START"
    console.print(f"Unit:     [bold]{state.unit}[/bold]")
    console.print(f"Phase:    [bold cyan]{phase}[/bold cyan]")
    if state.behavior:
        console.print(f"Behavior: {state.behavior}")
    if state.history:
        console.print("History:  " + " → ".join(p.name for p in state.history))


@cycle_group.command("squash")
@click.pass_context
def squash_cmd(ctx):
    """Close the unit of work. Allowed only from GREEN or REFACTOR."""
    path = _state_path(ctx)
    state = load_cycle(path)
    if state is None:
        raise click.UsageError("No unit of work to squash.")

    evaluation = check_squash(state, catalog=catalog_from_config(ctx.obj["config"]))
    print_report(evaluation.report, title=f"squash [bold]{state.unit}[/bold]")
    if not evaluation.passed:
        ctx.exit(1)
    save_cycle(path, evaluation.cycle)
    console.print("[green]Squash the micro-commits now, e.g. `git rebase -i` onto trunk.[/green]")
