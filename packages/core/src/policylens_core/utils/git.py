"""Local repository facts, read by shelling out to ``git``.

Every helper degrades to None / an empty result when git is missing, times
out, or the command fails (not a repository, unknown ref). The checker never
needs a working git; these only materialize snapshots for the CLI.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_TIMEOUT = 10
_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x00"


def run_git(*args: str, cwd: str | None = None) -> str | None:
    """Run a git command and return stdout, or None on any failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=_TIMEOUT,
            cwd=cwd,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return None
    if result.returncode != 0:
        logger.debug("git %s exited %d: %s", " ".join(args), result.returncode, result.stderr.strip())
        return None
    return result.stdout


def current_branch() -> str | None:
    out = run_git("rev-parse", "--abbrev-ref", "HEAD")
    if not out:
        return None
    name = out.strip()
    return None if name == "HEAD" else name  # detached HEAD


def staged_diff() -> str:
    return run_git("diff", "--cached", "--no-color", "--no-ext-diff", "-U0") or ""


def commit_diff(sha: str) -> str:
    return run_git("show", "--format=", "--no-color", "--no-ext-diff", "-U0", sha) or ""


def log_commits(rev_range: str) -> list[tuple[str, str]]:
    """Return ``(sha, message)`` for every commit in ``rev_range``, oldest first."""
    out = run_git("log", "--reverse", f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}", rev_range)
    if not out:
        return []
    commits = []
    for record in out.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        sha, _, message = record.partition(_FIELD_SEP)
        commits.append((sha.strip(), message.strip()))
    return commits


def ref_exists(ref: str) -> bool:
    return run_git("rev-parse", "--verify", "--quiet", ref) is not None


def find_trunk(trunk_branches: list[str]) -> str | None:
    for name in trunk_branches:
        if ref_exists(name):
            return name
    return None


def branch_created_at(branch: str, trunk: str | None = None) -> int | None:
    """Best-effort creation time of a branch, in epoch seconds.

    git does not record branch creation, so this uses the oldest reflog entry
    for the branch and falls back to the oldest commit not on trunk.
    """
    out = run_git("log", "-g", "--format=%ct", f"refs/heads/{branch}")
    if out and out.strip():
        return int(out.strip().splitlines()[-1])
    if trunk:
        out = run_git("log", "--reverse", "--format=%ct", f"{trunk}..{branch}")
        if out and out.strip():
            return int(out.strip().splitlines()[0])
    return None


def is_merged(branch: str, trunk: str | None) -> bool:
    if not trunk:
        return False
    return run_git("merge-base", "--is-ancestor", branch, trunk) is not None


def hooks_dir() -> Path | None:
    out = run_git("rev-parse", "--git-path", "hooks")
    return Path(out.strip()) if out else None


def repo_slug() -> str | None:
    """Detect ``owner/repo`` from the origin remote, falling back to the top-level directory name."""
    url = (run_git("remote", "get-url", "origin") or "").strip()
    # https://github.com/owner/repo.git  →  owner/repo
    # git@github.com:owner/repo.git      →  owner/repo
    if "github.com" in url:
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        if "/" in slug:
            return slug
    top = run_git("rev-parse", "--show-toplevel")
    return Path(top.strip()).name if top else None
