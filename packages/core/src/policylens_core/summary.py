"""Human-readable rendering of compliance results: terminal and Markdown."""

from __future__ import annotations

from collections import Counter

from rich.console import Console

from policylens_core.checker import Evaluation
from policylens_core.models import ComplianceReport, Severity

console = Console()

_SEVERITY_COLOR = {Severity.BLOCKING: "red", Severity.ADVISORY: "yellow"}


def print_report(report: ComplianceReport, title: str = "") -> None:
    """Print one report's verdict and violations to the terminal."""
    status = "[bold green]PASSED[/bold green]" if report.passed else "[bold red]REJECTED[/bold red]"
    heading = f"{status}  {title}" if title else status
    console.print(heading)
    for v in report.violations:
        color = _SEVERITY_COLOR.get(v.severity, "white")
        console.print(f"  [{color}]{v.severity.value.upper():<8}[/{color}] [bold]{v.rule_id}[/bold]  {v.message}")


def print_evaluations(evaluations: list[Evaluation]) -> None:
    if not evaluations:
        console.print("[yellow]No commits to check.[/yellow]")
        return
    for i, evaluation in enumerate(evaluations, 1):
        sha = evaluation.commit.sha[:7] if evaluation.commit and evaluation.commit.sha else f"#{i}"
        print_report(evaluation.report, title=f"[cyan]{sha}[/cyan] {evaluation.subject}")
    rejected = sum(1 for e in evaluations if not e.passed)
    if rejected:
        console.print(f"\n[bold red]{rejected} of {len(evaluations)} commit(s) rejected.[/bold red]")
    else:
        console.print(f"\n[bold green]All {len(evaluations)} commit(s) passed.[/bold green]")


def build_markdown_summary(evaluations: list[Evaluation], branch_report: ComplianceReport | None = None) -> str:
    """Build the Markdown body posted as a pull request comment."""
    rejected = [e for e in evaluations if not e.passed]
    rule_counts: Counter[str] = Counter()
    for e in evaluations:
        for v in e.report.violations:
            rule_counts[v.rule_id] += 1
    branch_ok = branch_report is None or branch_report.passed

    lines = ["## Policy compliance\n"]

    if not rejected and branch_ok:
        verdict = "All commits comply with the development policy."
    else:
        parts = []
        if rejected:
            parts.append(f"{len(rejected)} of {len(evaluations)} commit(s) rejected")
        if not branch_ok:
            parts.append("branch policy failed")
        top = rule_counts.most_common(1)
        most = f" Most frequent: `{top[0][0]}`." if top else ""
        verdict = f"{', '.join(parts)} — changes required.{most}"
    lines.append(f"> {verdict}\n")

    if branch_report is not None and branch_report.violations:
        lines.append("**Branch**")
        for v in branch_report.violations:
            lines.append(f"- `{v.rule_id}` ({v.severity.value}): {v.message}")
        lines.append("")

    flagged = [e for e in evaluations if e.report.violations]
    if flagged:
        lines.append("| Commit | Subject | Result | Violations |")
        lines.append("|--------|---------|:------:|------------|")
        for e in flagged:
            sha = e.commit.sha[:7] if e.commit and e.commit.sha else "—"
            subject = e.subject.replace("|", "\\|")[:60]
            result = "✅" if e.passed else "❌"
            rules = ", ".join(f"`{v.rule_id}`" for v in e.report.violations)
            lines.append(f"| `{sha}` | {subject} | {result} | {rules} |")

    clean = len(evaluations) - len(flagged)
    if clean:
        lines.append(f"\n_Clean: {clean} commit(s) with no findings._")

    return "\n".join(lines)
