"""Materialize core snapshots from the local repository and CLI options.

This is the external-collaborator side of the checker: it reads git, the
cycle state file and command-line evidence, and hands the core plain data.
"""

from __future__ import annotations

import time

import click

from policylens_core.branches import issue_from_branch_name
from policylens_core.models import Branch, Commit, TransitionEvidence
from policylens_core.rules import RuleCatalog, load_catalog
from policylens_core.utils import git
from policylens_core.utils.diff import parse_added_lines

_SCISSORS = "# ------------------------ >8 ------------------------"


def catalog_from_config(config: dict) -> RuleCatalog:
    try:
        return load_catalog(config)
    except ValueError as e:
        raise click.UsageError(f"Invalid rule configuration: {e}")


def clean_message(raw: str) -> str:
    """Strip git's comment lines and everything below the scissors line."""
    if _SCISSORS in raw:
        raw = raw.split(_SCISSORS, 1)[0]
    return "\n".join(line for line in raw.splitlines() if not line.startswith("#")).strip()


def local_branch(
    config: dict,
    name: str | None = None,
    issue: str | None = None,
    created_at: int | None = None,
    check_merged: bool = False,
) -> Branch | None:
    """Build a Branch snapshot for ``name`` (default: the checked-out branch).

    Returns None on trunk or a detached HEAD, where branch rules do not apply.
    """
    name = name or git.current_branch()
    if not name or name in config.get("trunk_branches", []):
        return None
    trunk = git.find_trunk(config.get("trunk_branches", []))
    if created_at is None:
        created_at = git.branch_created_at(name, trunk)
    if created_at is None:
        created_at = int(time.time())  # brand-new branch with no reflog yet
    return Branch(
        name=name,
        created_at=created_at,
        linked_issue_id=issue or issue_from_branch_name(name),
        merged=git.is_merged(name, trunk) if check_merged else False,
    )


def commits_in_range(rev_range: str) -> list[Commit]:
    return [
        Commit.build(message=message, diff=parse_added_lines(git.commit_diff(sha)), sha=sha)
        for sha, message in git.log_commits(rev_range)
    ]


def parse_test_results(values: tuple[str, ...]) -> dict[str, bool]:
    """Parse repeated ``NAME=pass|fail`` options."""
    results: dict[str, bool] = {}
    for value in values:
        name, sep, outcome = value.rpartition("=")
        outcome = outcome.strip().lower()
        if not sep or not name or outcome not in ("pass", "fail"):
            raise click.BadParameter(f"expected NAME=pass or NAME=fail, got {value!r}", param_hint="--test")
        results[name.strip()] = outcome == "pass"
    return results


def build_evidence(
    failing_before: bool | None,
    passing_now: bool | None,
    tests: tuple[str, ...],
    behavior: str | None,
) -> TransitionEvidence | None:
    if failing_before is None and passing_now is None and not tests and behavior is None:
        return None
    return TransitionEvidence(
        had_failing_test=failing_before,
        now_passing=passing_now,
        test_results=parse_test_results(tests),
        behavior=behavior,
    )
