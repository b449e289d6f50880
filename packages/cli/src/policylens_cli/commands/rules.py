"""rules command — list the effective rule catalog."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from policylens_cli.snapshots import catalog_from_config

console = Console()


@click.command("rules")
@click.pass_context
def rules_cmd(ctx):
    """List every active rule with its stage and severity, in evaluation order."""
    catalog = catalog_from_config(ctx.obj["config"])

    table = Table(title="Policy rules", show_header=True, header_style="bold cyan")
    table.add_column("Rule", style="bold")
    table.add_column("Stage")
    table.add_column("Severity")
    table.add_column("Description")
    for rule in catalog:
        style = "red" if rule.severity.value == "blocking" else "yellow"
        table.add_row(rule.id, rule.stage, f"[{style}]{rule.severity.value}[/{style}]", rule.description)
    console.print(table)
