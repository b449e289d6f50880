"""branch command — evaluate the current branch against the branch policy."""

from __future__ import annotations

import json

import click
from rich.console import Console

from policylens_cli.records import report_to_record
from policylens_cli.snapshots import catalog_from_config, local_branch
from policylens_core.checker import check_branch
from policylens_core.summary import print_report
from policylens_core.utils import git

console = Console()


@click.command("branch")
@click.option("--name", default=None, help="Branch to evaluate. Defaults to the current branch.")
@click.option("--issue", default=None, help="Issue the branch is linked to. Defaults to the '-#N' name suffix.")
@click.option("--created-at", type=int, default=None, help="Branch creation time (epoch seconds).")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_context
def branch_cmd(ctx, name: str | None, issue: str | None, created_at: int | None, as_json: bool):
    """Check branch naming, age and issue linkage.

    Trunk branches (main, master, trunk by default) are not evaluated.
    """
    config = ctx.obj["config"]
    catalog = catalog_from_config(config)

    branch = local_branch(config, name=name, issue=issue, created_at=created_at, check_merged=True)
    if branch is None:
        console.print("[yellow]On trunk or a detached HEAD; no branch rules apply.[/yellow]")
        return

    report = check_branch(branch, config=config, catalog=catalog)
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report, title=f"branch [cyan]{branch.name}[/cyan]")

    store = ctx.obj.get("store") if ctx.obj else None
    if store is not None:
        store.save(report_to_record(report, git.repo_slug() or "local", "branch", branch.name, branch.name))
    if not report.passed:
        ctx.exit(1)
