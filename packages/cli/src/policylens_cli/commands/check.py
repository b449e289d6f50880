"""check command — evaluate a proposed commit or a range of existing commits."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console

from policylens_cli.cycle_state import load_cycle, save_cycle
from policylens_cli.records import evaluation_to_record
from policylens_cli.snapshots import (
    build_evidence,
    catalog_from_config,
    clean_message,
    commits_in_range,
    local_branch,
)
from policylens_core.checker import batch_passed, check_batch, check_commit
from policylens_core.models import Commit
from policylens_core.summary import print_evaluations, print_report
from policylens_core.utils import git
from policylens_core.utils.diff import parse_added_lines

console = Console()


def _persist(ctx: click.Context, evaluations, branch_name: str | None) -> None:
    store = ctx.obj.get("store") if ctx.obj else None
    if store is None:
        return
    repo = git.repo_slug() or "local"
    for evaluation in evaluations:
        store.save(evaluation_to_record(evaluation, repo, branch_name))


@click.command("check")
@click.option("--message", "-m", default=None, help="Commit message to check.")
@click.option(
    "--message-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the commit message from a file (the commit-msg hook argument).",
)
@click.option("--diff-file", type=click.Path(exists=True, dir_okay=False), default=None, help="Unified diff to scan.")
@click.option("--staged", is_flag=True, help="Scan the staged changes (git diff --cached).")
@click.option("--range", "rev_range", default=None, help="Check existing (squashed) commits instead, e.g. origin/main..HEAD.")
@click.option("--branch", "branch_name", default=None, help="Branch to evaluate. Defaults to the current branch.")
@click.option("--no-branch", is_flag=True, help="Skip branch rules.")
@click.option("--issue", default=None, help="Issue the branch is linked to. Defaults to the '-#N' name suffix.")
@click.option("--created-at", type=int, default=None, help="Branch creation time (epoch seconds).")
@click.option(
    "--failing-before/--not-failing-before",
    default=None,
    help="A test for the behavior failed before this change (GREEN evidence).",
)
@click.option(
    "--passing-now/--not-passing-now",
    default=None,
    help="That test passes with this change (GREEN evidence).",
)
@click.option("--test", "tests", multiple=True, metavar="NAME=pass|fail", help="Current test result (repeatable).")
@click.option("--behavior", default=None, help="Name of the behavior under test.")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_context
def check_cmd(
    ctx,
    message: str | None,
    message_file: str | None,
    diff_file: str | None,
    staged: bool,
    rev_range: str | None,
    branch_name: str | None,
    no_branch: bool,
    issue: str | None,
    created_at: int | None,
    failing_before: bool | None,
    passing_now: bool | None,
    tests: tuple[str, ...],
    behavior: str | None,
    as_json: bool,
):
    """Check a commit against the development policy.

    Exits with status 1 when any blocking rule is violated, so it can run as
    a git hook:

    \b
      .git/hooks/commit-msg:  policylens check --message-file "$1" --staged
      .git/hooks/pre-push:    policylens branch

    --range checks commits already in history without the saved cycle state,
    so it expects squashed history: a leftover green: micro-commit is reported
    as MalformedMessage.
    """
    config = ctx.obj["config"]
    catalog = catalog_from_config(config)

    branch = None
    if not no_branch:
        branch = local_branch(config, name=branch_name, issue=issue, created_at=created_at)

    if rev_range is not None:
        if message or message_file:
            raise click.UsageError("--range cannot be combined with --message or --message-file.")
        evaluations = check_batch(commits_in_range(rev_range), branch=branch, config=config, catalog=catalog)
        if as_json:
            click.echo(json.dumps([e.report.to_dict() for e in evaluations], indent=2))
        else:
            print_evaluations(evaluations)
        _persist(ctx, evaluations, branch.name if branch else None)
        if not batch_passed(evaluations):
            ctx.exit(1)
        return

    if message_file:
        message = clean_message(Path(message_file).read_text(encoding="utf-8"))
    if message is None:
        raise click.UsageError("Provide --message, --message-file or --range.")

    if diff_file:
        diff = parse_added_lines(Path(diff_file).read_text(encoding="utf-8"))
    elif staged:
        diff = parse_added_lines(git.staged_diff())
    else:
        diff = []

    cycle_path = config.get("cycle_state_path", ".policylens/cycle.json")
    cycle = load_cycle(cycle_path)
    evidence = build_evidence(failing_before, passing_now, tests, behavior)

    evaluation = check_commit(
        Commit.build(message=message, diff=diff),
        branch=branch,
        cycle=cycle,
        evidence=evidence,
        config=config,
        catalog=catalog,
    )

    # Only a passing commit moves the saved phase.
    advanced = evaluation.passed and evaluation.cycle is not None and evaluation.cycle != cycle
    if advanced:
        save_cycle(cycle_path, evaluation.cycle)

    if as_json:
        click.echo(json.dumps(evaluation.report.to_dict(), indent=2))
    else:
        print_report(evaluation.report, title=evaluation.subject)
        if advanced:
            console.print(f"[dim]Cycle {evaluation.cycle.unit}: now {evaluation.cycle.phase.name}[/dim]")

    _persist(ctx, [evaluation], branch.name if branch else None)
    if not evaluation.passed:
        ctx.exit(1)
