"""Check history data models.

Decoupled from policylens_core so the store layer can be used independently
and the core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ViolationRecord:
    rule_id: str
    severity: str  # "blocking" | "advisory"
    message: str


@dataclass
class CheckRecord:
    """One completed compliance check persisted to the store.

    Created by the CLI layer from an Evaluation. ``ref`` is the commit SHA
    when known, otherwise "staged" for a pre-commit check.
    """

    repo: str
    ref: str
    subject: str
    branch: str | None
    checked_at: str  # ISO-8601 UTC timestamp
    passed: bool
    violations: list[ViolationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "repo": self.repo,
            "ref": self.ref,
            "subject": self.subject,
            "branch": self.branch,
            "checked_at": self.checked_at,
            "passed": self.passed,
            "violations": [
                {"rule_id": v.rule_id, "severity": v.severity, "message": v.message} for v in self.violations
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> CheckRecord:
        return cls(
            repo=data.get("repo", ""),
            ref=data.get("ref", ""),
            subject=data.get("subject", ""),
            branch=data.get("branch"),
            checked_at=data.get("checked_at", ""),
            passed=bool(data.get("passed", False)),
            violations=[
                ViolationRecord(
                    rule_id=v.get("rule_id", ""),
                    severity=v.get("severity", "blocking"),
                    message=v.get("message", ""),
                )
                for v in data.get("violations", [])
            ],
        )
