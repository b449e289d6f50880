"""Compliance evaluation: runs the rule catalog over one event.

Order of evaluation:
  1. secrets  — any finding rejects the commit immediately (SecretDetected);
                nothing else is evaluated for it.
  2. message  — classification plus hygiene rules.
  3. cycle    — only inside an active (unsquashed) unit of work.
  4. branch   — only when a branch snapshot is supplied.

Stages 2-4 collect every violation rather than stopping at the first.
Everything here is a pure function of its arguments: the caller passes the
cycle snapshot in and gets the resulting snapshot back.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from policylens_core.cycle import CycleState
from policylens_core.models import Branch, Commit, ComplianceReport, TransitionEvidence, Violation
from policylens_core.rules import Event, RuleCatalog, load_catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """A report plus the cycle state that results from the evaluated event.

    ``cycle`` is the input state unchanged whenever the event was rejected or
    did not touch the cycle.
    """

    report: ComplianceReport
    cycle: CycleState | None = None
    commit: Commit | None = None

    @property
    def passed(self) -> bool:
        return self.report.passed

    @property
    def subject(self) -> str:
        if self.commit is None:
            return ""
        lines = self.commit.message.strip().splitlines()
        return lines[0] if lines else ""


def _run_stage(catalog: RuleCatalog, stage: str, event: Event) -> list[Violation]:
    violations = []
    for rule in catalog.by_stage(stage):
        for evidence in rule.check(event):
            violations.append(Violation(rule=rule, evidence=evidence))
    return violations


def check_commit(
    commit: Commit,
    branch: Branch | None = None,
    cycle: CycleState | None = None,
    evidence: TransitionEvidence | None = None,
    now: float | None = None,
    catalog: RuleCatalog | None = None,
    config: dict | None = None,
) -> Evaluation:
    """Evaluate a proposed commit and return its report and resulting cycle state."""
    catalog = catalog if catalog is not None else load_catalog(config)
    event = Event(
        commit=commit,
        branch=branch,
        cycle=cycle,
        evidence=evidence,
        now=time.time() if now is None else now,
        waived=catalog.waived,
        config=config,
    )

    secret_violations = _run_stage(catalog, "secrets", event)
    if secret_violations:
        logger.debug("Commit rejected on %d secret finding(s); skipping other rules", len(secret_violations))
        return Evaluation(report=ComplianceReport.from_violations(secret_violations), cycle=cycle, commit=commit)

    violations = _run_stage(catalog, "message", event)
    if event.active_cycle:
        violations += _run_stage(catalog, "cycle", event)
    if branch is not None:
        violations += _run_stage(catalog, "branch", event)

    report = ComplianceReport.from_violations(violations)
    next_cycle, cycle_error = event.cycle_outcome
    if not report.passed or cycle_error is not None or next_cycle is None:
        next_cycle = cycle
    return Evaluation(report=report, cycle=next_cycle, commit=commit)


def check_squash(
    cycle: CycleState,
    catalog: RuleCatalog | None = None,
    config: dict | None = None,
) -> Evaluation:
    """Evaluate an explicit squash of the unit of work."""
    catalog = catalog if catalog is not None else load_catalog(config)
    event = Event(cycle=cycle, squash=True, waived=catalog.waived, config=config)
    report = ComplianceReport.from_violations(_run_stage(catalog, "cycle", event))
    next_cycle, cycle_error = event.cycle_outcome
    if not report.passed or cycle_error is not None:
        next_cycle = cycle
    return Evaluation(report=report, cycle=next_cycle)


def check_branch(
    branch: Branch,
    now: float | None = None,
    catalog: RuleCatalog | None = None,
    config: dict | None = None,
) -> ComplianceReport:
    catalog = catalog if catalog is not None else load_catalog(config)
    event = Event(branch=branch, now=time.time() if now is None else now, config=config)
    return ComplianceReport.from_violations(_run_stage(catalog, "branch", event))


def check_batch(
    commits: Iterable[Commit],
    branch: Branch | None = None,
    cycle: CycleState | None = None,
    evidences: Sequence[TransitionEvidence | None] | None = None,
    now: float | None = None,
    catalog: RuleCatalog | None = None,
    config: dict | None = None,
) -> list[Evaluation]:
    """Evaluate commits in order, threading the cycle snapshot from one to the next.

    Each commit is checked against the same branch snapshot and ``now``.
    """
    catalog = catalog if catalog is not None else load_catalog(config)
    now = time.time() if now is None else now
    results: list[Evaluation] = []
    for i, commit in enumerate(commits):
        evidence = evidences[i] if evidences is not None and i < len(evidences) else None
        evaluation = check_commit(
            commit,
            branch=branch,
            cycle=cycle,
            evidence=evidence,
            now=now,
            catalog=catalog,
            config=config,
        )
        results.append(evaluation)
        cycle = evaluation.cycle
    return results


def batch_passed(evaluations: Iterable[Evaluation]) -> bool:
    return all(e.passed for e in evaluations)
