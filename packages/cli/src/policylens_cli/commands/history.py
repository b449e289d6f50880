"""history command — display past check records from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from policylens_core.utils import git

console = Console()


def require_store(ctx):
    from policylens_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError(
            "No store configured. Add 'store: sqlite' or 'store: gist' to .policylens.yml, "
            "or run `policylens init` to set one up."
        )
    return store


@click.command("history")
@click.option("--repo", default=None, help="Repository (owner/name). Defaults to the origin remote.")
@click.option("--branch", default=None, help="Filter by branch.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, repo: str | None, branch: str | None, limit: int):
    """Show past compliance checks for a repository, most recent first."""
    store = require_store(ctx)
    repo = repo or git.repo_slug() or "local"

    records = store.list_records(repo, branch=branch)
    if not records:
        console.print("[yellow]No check records found.[/yellow]")
        return

    records = list(reversed(records))[:limit]

    table = Table(title=f"Check History — {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Ref", width=8)
    table.add_column("Subject", max_width=40)
    table.add_column("Branch", max_width=24)
    table.add_column("Result", width=9)
    table.add_column("Violations", max_width=40)
    table.add_column("Checked At", width=20)

    for r in records:
        result = "[green]passed[/green]" if r.passed else "[red]rejected[/red]"
        table.add_row(
            r.ref[:7],
            r.subject[:40],
            r.branch or "",
            result,
            ", ".join(v.rule_id for v in r.violations),
            r.checked_at[:19].replace("T", " "),
        )

    console.print(table)
