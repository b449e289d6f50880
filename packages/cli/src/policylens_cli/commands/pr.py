"""pr command — check every commit of a GitHub pull request."""

from __future__ import annotations

import json

import click
from github import GithubException
from rich.console import Console

from policylens_cli.records import evaluation_to_record, report_to_record
from policylens_cli.snapshots import catalog_from_config
from policylens_core.checker import batch_passed, check_batch, check_branch
from policylens_core.gh.pull_request import (
    branch_from_pull,
    commit_from_github,
    get_commits,
    get_pull,
    get_repo,
    post_report,
)
from policylens_core.summary import build_markdown_summary, print_evaluations, print_report

console = Console()


@click.command("pr")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--comment", is_flag=True, help="Post (or update) a summary comment on the pull request.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt before commenting.")
@click.option("--json", "as_json", is_flag=True, help="Print the reports as JSON.")
@click.pass_context
def pr_cmd(ctx, repo: str, pr_number: int, comment: bool, yes: bool, as_json: bool):
    """Check a pull request's commits and branch against the development policy.

    \b
    Required environment variables:
      GITHUB_TOKEN   GitHub token with read access (or use `gh auth login`)
    """
    config = ctx.obj["config"]
    catalog = catalog_from_config(config)

    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )

    this_repo = get_repo(repo, token=token)
    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise click.UsageError(f"PR #{pr_number} not found in {repo}.")

    branch = branch_from_pull(this_pr)
    commits = [commit_from_github(c) for c in get_commits(this_pr)]
    if not as_json:
        console.print(f"[dim]Checking {len(commits)} commit(s) on {branch.name}...[/dim]")

    # Branch rules are reported once for the PR rather than once per commit.
    evaluations = check_batch(commits, config=config, catalog=catalog)
    branch_report = check_branch(branch, config=config, catalog=catalog)
    passed = batch_passed(evaluations) and branch_report.passed

    if as_json:
        click.echo(
            json.dumps(
                {
                    "passed": passed,
                    "branch": branch_report.to_dict(),
                    "commits": [{"sha": e.commit.sha, **e.report.to_dict()} for e in evaluations],
                },
                indent=2,
            )
        )
    else:
        print_report(branch_report, title=f"branch [cyan]{branch.name}[/cyan]")
        print_evaluations(evaluations)

    store = ctx.obj.get("store") if ctx.obj else None
    if store is not None:
        for evaluation in evaluations:
            store.save(evaluation_to_record(evaluation, repo, branch.name))
        store.save(report_to_record(branch_report, repo, "branch", branch.name, branch.name))

    if comment:
        if yes or click.confirm(f"Post compliance summary to {repo}#{pr_number}?", default=True):
            post_report(this_pr, build_markdown_summary(evaluations, branch_report))
            console.print("[green]Summary comment posted.[/green]")

    if not passed:
        ctx.exit(1)
