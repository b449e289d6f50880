"""stats command — aggregate violation patterns across check history."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from policylens_cli.commands.history import require_store
from policylens_core.utils import git

console = Console()


@click.command("stats")
@click.option("--repo", default=None, help="Repository (owner/name). Defaults to the origin remote.")
@click.option("--top", default=10, show_default=True, help="Number of top entries to show per category.")
@click.pass_context
def stats_cmd(ctx, repo: str | None, top: int):
    """Show aggregated compliance statistics for a repository.

    Reports the pass rate, a severity breakdown, the most frequently violated
    rules and the branches with the most rejected checks.
    """
    store = require_store(ctx)
    repo = repo or git.repo_slug() or "local"

    records = store.list_records(repo)
    if not records:
        console.print("[yellow]No check records found for this repository.[/yellow]")
        return

    total = len(records)
    passed = sum(1 for r in records if r.passed)
    rule_counter: Counter[str] = Counter()
    severity_counter: Counter[str] = Counter()
    branch_counter: Counter[str] = Counter()

    for record in records:
        for violation in record.violations:
            rule_counter[violation.rule_id] += 1
            severity_counter[violation.severity] += 1
        if not record.passed and record.branch:
            branch_counter[record.branch] += 1

    console.print(f"\n[bold]Compliance stats for [cyan]{repo}[/cyan][/bold]")
    console.print(f"  Total checks: {total}")
    console.print(f"  Passed:       {passed} ({passed / total * 100:.1f}%)")
    console.print(f"  Rejected:     {total - passed}")

    if severity_counter:
        total_violations = sum(severity_counter.values())
        sev_table = Table(title="Severity Breakdown", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        sev_table.add_column("% of total", justify="right")
        for sev, style in (("blocking", "red"), ("advisory", "yellow")):
            count = severity_counter.get(sev, 0)
            sev_table.add_row(f"[{style}]{sev}[/{style}]", str(count), f"{count / total_violations * 100:.1f}%")
        console.print(sev_table)

    if rule_counter:
        rule_table = Table(title=f"Top {top} Violated Rules", show_header=True)
        rule_table.add_column("Rule")
        rule_table.add_column("Violations", justify="right")
        for rule_id, count in rule_counter.most_common(top):
            rule_table.add_row(rule_id, str(count))
        console.print(rule_table)

    if branch_counter:
        branch_table = Table(title=f"Top {top} Branches by Rejections", show_header=True)
        branch_table.add_column("Branch")
        branch_table.add_column("Rejected checks", justify="right")
        for name, count in branch_counter.most_common(top):
            branch_table.add_row(name, str(count))
        console.print(branch_table)
