from __future__ import annotations

import logging
import re

from github import Github

from policylens_core.branches import issue_from_branch_name
from policylens_core.models import Branch, Commit
from policylens_core.utils.diff import parse_added_lines

logger = logging.getLogger(__name__)

REPORT_MARKER = "<!-- policylens-report -->"
_CLOSING_RE = re.compile(r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?|refs?)\s*:?\s+#(\d+)", re.IGNORECASE)


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_commits(pr):
    return pr.get_commits()


def linked_issue(pr) -> str | None:
    """Return the issue a PR closes/references in its body, else the branch-name suffix."""
    match = _CLOSING_RE.search(pr.body or "")
    if match:
        return match.group(1)
    return issue_from_branch_name(pr.head.ref)


def branch_from_pull(pr) -> Branch:
    return Branch(
        name=pr.head.ref,
        created_at=int(pr.created_at.timestamp()),
        linked_issue_id=linked_issue(pr),
        merged=bool(pr.merged),
    )


def commit_from_github(gh_commit) -> Commit:
    """Materialize a PyGithub commit as a Commit snapshot (message + added lines)."""
    diff = []
    for f in gh_commit.files:
        if not f.patch:
            continue  # binary or too large for the API to return a patch
        diff.extend(parse_added_lines(f.patch, path=f.filename))
    return Commit.build(message=gh_commit.commit.message, diff=diff, sha=gh_commit.sha)


def find_report_comment(pr):
    """Return the previously posted policylens comment on this PR, or None."""
    for comment in pr.get_issue_comments():
        if REPORT_MARKER in (comment.body or ""):
            return comment
    return None


def post_report(pr, body: str) -> None:
    """Create the report comment, or update it in place on later runs."""
    body = f"{body}\n{REPORT_MARKER}"
    existing = find_report_comment(pr)
    if existing is not None:
        logger.debug("Updating existing policylens comment %s", existing.id)
        existing.edit(body)
    else:
        pr.create_issue_comment(body)
