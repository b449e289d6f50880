"""Mapping from core results to store records.

The CLI owns this mapping: policylens_core has no store knowledge and
policylens_store has no core knowledge.
"""

from __future__ import annotations

from datetime import datetime, timezone

from policylens_core.checker import Evaluation
from policylens_core.models import ComplianceReport
from policylens_store.models import CheckRecord, ViolationRecord


def report_to_record(report: ComplianceReport, repo: str, ref: str, subject: str, branch: str | None) -> CheckRecord:
    return CheckRecord(
        repo=repo,
        ref=ref,
        subject=subject,
        branch=branch,
        checked_at=datetime.now(timezone.utc).isoformat(),
        passed=report.passed,
        violations=[
            ViolationRecord(rule_id=v.rule_id, severity=v.severity.value, message=v.message)
            for v in report.violations
        ],
    )


def evaluation_to_record(evaluation: Evaluation, repo: str, branch: str | None) -> CheckRecord:
    sha = evaluation.commit.sha if evaluation.commit is not None else None
    return report_to_record(evaluation.report, repo, sha or "staged", evaluation.subject, branch)
