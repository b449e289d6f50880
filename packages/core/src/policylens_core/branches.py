"""Short-lived branch policy.

Branch names follow ``type/short-description[-#issue]`` (for example
``feat/jwt-refresh-#42``). Every branch must be linked to an issue, and
should be merged back to trunk within a couple of days.
"""

from __future__ import annotations

import re

from policylens_core.config import get_setting
from policylens_core.models import Branch

_SECONDS_PER_DAY = 86_400
_NAME_RE = re.compile(
    r"^(?P<type>[a-z]+)/(?P<description>[a-z0-9]+(?:[-._][a-z0-9]+)*?)"
    r"(?:-#(?P<issue>[A-Za-z0-9]+(?:-\d+)?))?$"
)
_ISSUE_SUFFIX_RE = re.compile(r"-#(?P<issue>[A-Za-z0-9]+(?:-\d+)?)$")


def issue_from_branch_name(name: str) -> str | None:
    """Return the ``#issue`` suffix of a branch name, or None."""
    match = _ISSUE_SUFFIX_RE.search(name)
    return match.group("issue") if match else None


class BranchPolicyEvaluator:
    """Evaluates naming, age and issue linkage independently; never short-circuits."""

    def __init__(self, config: dict | None = None):
        self.branch_types = list(get_setting(config, "branch_types"))
        self.max_age_days = float(get_setting(config, "branch_max_age_days"))
        self.require_issue_link = bool(get_setting(config, "require_issue_link"))

    def naming_violations(self, branch: Branch) -> list[str]:
        match = _NAME_RE.match(branch.name)
        if not match:
            return [f"Branch {branch.name!r} does not match 'type/description[-#issue]' (lower-kebab-case)."]
        if match.group("type") not in self.branch_types:
            return [
                f"Branch type {match.group('type')!r} is not one of: {', '.join(self.branch_types)}."
            ]
        return []

    def age_days(self, branch: Branch, now: float) -> float:
        return max(0.0, (now - branch.created_at) / _SECONDS_PER_DAY)

    def age_violations(self, branch: Branch, now: float) -> list[str]:
        if branch.merged:
            return []
        age = self.age_days(branch, now)
        if age > self.max_age_days:
            return [
                f"Branch {branch.name!r} is {age:.1f} days old and still unmerged "
                f"(limit {self.max_age_days:g} days); merge to trunk or split the work."
            ]
        return []

    def issue_link_violations(self, branch: Branch) -> list[str]:
        if self.require_issue_link and not branch.linked_issue_id:
            return [f"Branch {branch.name!r} is not linked to an issue."]
        return []

    def evaluate(self, branch: Branch, now: float) -> list[tuple[str, str]]:
        """Return ``(rule_id, evidence)`` pairs for every breached branch rule."""
        violations: list[tuple[str, str]] = []
        violations += [("BranchNaming", e) for e in self.naming_violations(branch)]
        violations += [("StaleBranch", e) for e in self.age_violations(branch, now)]
        violations += [("MissingIssueLink", e) for e in self.issue_link_violations(branch)]
        return violations
