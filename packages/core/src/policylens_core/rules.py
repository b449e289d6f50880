"""The rule catalog: every named rule, its severity and its predicate.

A predicate takes an Event and returns evidence strings, one per breach; an
empty list means the rule is satisfied. Predicates never raise. The expensive
parts of an Event (secret scan, classification, cycle transition) are computed
once per Event and shared by all predicates that need them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Callable, Iterator

from policylens_core.branches import BranchPolicyEvaluator
from policylens_core.commits import ClassifiedCommit, classify, is_generated_message, long_body_lines
from policylens_core.config import get_setting
from policylens_core.cycle import CycleState, CycleTracker
from policylens_core.errors import (
    IncompleteCycle,
    MalformedMessage,
    OutOfOrderPhase,
    PolicyError,
    RegressionDuringRefactor,
    UnverifiedTransition,
)
from policylens_core.models import Branch, Commit, SecretFinding, Severity, TransitionEvidence
from policylens_core.secrets import SecretScanner

logger = logging.getLogger(__name__)

STAGES = ("secrets", "message", "cycle", "branch")

# Rules that config may not disable or downgrade.
_PINNED = {"SecretDetected"}


@dataclass(frozen=True)
class Event:
    """Everything one evaluation looks at. Built by the checker, read by predicates."""

    commit: Commit | None = None
    branch: Branch | None = None
    cycle: CycleState | None = None
    evidence: TransitionEvidence | None = None
    now: float = 0.0
    squash: bool = False
    waived: frozenset = frozenset()
    config: dict | None = field(default=None, compare=False, repr=False)

    @property
    def active_cycle(self) -> bool:
        return self.cycle is not None and self.cycle.active

    @property
    def generated_message(self) -> bool:
        return (
            self.commit is not None
            and bool(get_setting(self.config, "ignore_generated_messages"))
            and is_generated_message(self.commit.message)
        )

    @cached_property
    def findings(self) -> list[SecretFinding]:
        if self.commit is None:
            return []
        return SecretScanner.from_config(self.config).scan(self.commit.diff)

    @cached_property
    def classification(self) -> tuple[ClassifiedCommit | None, PolicyError | None]:
        if self.commit is None or self.generated_message:
            return None, None
        try:
            return classify(self.commit.message, active_cycle=self.active_cycle, config=self.config), None
        except MalformedMessage as e:
            return None, e
        except Exception as e:
            # Unclassifiable input degrades to a violation; the checker never aborts.
            logger.warning("Could not classify commit message: %s", e)
            return None, MalformedMessage(f"Unclassifiable commit message ({type(e).__name__}: {e}).")

    @property
    def classified(self) -> ClassifiedCommit | None:
        return self.classification[0]

    @cached_property
    def cycle_outcome(self) -> tuple[CycleState | None, PolicyError | None]:
        """Return ``(resulting_state, error)`` for this event's cycle transition."""
        tracker = CycleTracker(waived=self.waived)
        if self.cycle is None:
            return None, None
        if self.squash:
            try:
                return tracker.squash(self.cycle), None
            except PolicyError as e:
                return self.cycle, e
        if not self.active_cycle or self.classified is None:
            return self.cycle, None
        try:
            return tracker.advance(self.cycle, self.classified, self.evidence), None
        except PolicyError as e:
            return self.cycle, e


@dataclass(frozen=True)
class Rule:
    id: str
    description: str
    severity: Severity
    stage: str
    predicate: Callable[[Event], list[str]] = field(compare=False, repr=False)

    def check(self, event: Event) -> list[str]:
        return self.predicate(event)


class RuleCatalog:
    """An ordered, immutable collection of rules."""

    def __init__(self, rules):
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._by_id = {rule.id: rule for rule in self._rules}

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._by_id

    def get(self, rule_id: str) -> Rule:
        return self._by_id[rule_id]

    def by_stage(self, stage: str) -> list[Rule]:
        return [rule for rule in self._rules if rule.stage == stage]

    @property
    def waived(self) -> frozenset[str]:
        """Default cycle rules missing from this catalog. The cycle tracker skips their checks."""
        return frozenset(row[0] for row in _DEFAULT_RULES if row[3] == "cycle" and row[0] not in self._by_id)

    def configured(self, disabled=(), severity_overrides: dict | None = None) -> RuleCatalog:
        """Return a copy with rules disabled and severities overridden.

        Unknown rule ids or severities raise ValueError.
        """
        overrides = severity_overrides or {}
        for rule_id in list(disabled) + list(overrides):
            if rule_id not in self._by_id:
                raise ValueError(f"Unknown rule id {rule_id!r}. Known rules: {', '.join(self._by_id)}.")

        rules = []
        for rule in self._rules:
            if rule.id in disabled:
                if rule.id in _PINNED:
                    logger.warning("Rule %s cannot be disabled; keeping it.", rule.id)
                else:
                    continue
            if rule.id in overrides:
                try:
                    severity = Severity(overrides[rule.id])
                except ValueError:
                    raise ValueError(
                        f"Invalid severity {overrides[rule.id]!r} for {rule.id}; use blocking or advisory."
                    ) from None
                if rule.id in _PINNED and severity != rule.severity:
                    logger.warning("Rule %s cannot be downgraded; keeping %s.", rule.id, rule.severity.value)
                else:
                    rule = replace(rule, severity=severity)
            rules.append(rule)
        return RuleCatalog(rules)


# --------------------------------------------------------------------------- #
# Predicates                                                                   #
# --------------------------------------------------------------------------- #


def _secret_detected(event: Event) -> list[str]:
    return [f"Possible secret: {f.describe()}" for f in event.findings]


def _malformed_message(event: Event) -> list[str]:
    error = event.classification[1]
    return [str(error)] if error is not None else []


def _subject_trailing_period(event: Event) -> list[str]:
    c = event.classified
    if c and c.subject.endswith("."):
        return ["Subject should not end with a period."]
    return []


def _subject_case(event: Event) -> list[str]:
    c = event.classified
    # "Add x" is flagged, "JWT x" (an acronym) is not.
    if c and len(c.subject) > 1 and c.subject[0].isupper() and c.subject[1].islower():
        return [f"Subject should start in lower case: {c.subject[:30]!r}."]
    return []


def _header_body_separation(event: Event) -> list[str]:
    c = event.classified
    if c and not c.header_separated:
        return ["Separate the header from the body with a blank line."]
    return []


def _body_line_length(event: Event) -> list[str]:
    c = event.classified
    if not c or not c.body:
        return []
    limit = get_setting(event.config, "max_body_line_length")
    return [f"Body line {i} is {n} characters; wrap at {limit}." for i, n in long_body_lines(c, limit)]


def _cycle_rule(error_class: type[PolicyError]) -> Callable[[Event], list[str]]:
    def predicate(event: Event) -> list[str]:
        error = event.cycle_outcome[1]
        return [str(error)] if isinstance(error, error_class) else []

    predicate.__name__ = f"_{error_class.__name__}"
    return predicate


def _branch_rule(method: str) -> Callable[[Event], list[str]]:
    def predicate(event: Event) -> list[str]:
        if event.branch is None:
            return []
        evaluator = BranchPolicyEvaluator(event.config)
        if method == "age_violations":
            return evaluator.age_violations(event.branch, event.now)
        return getattr(evaluator, method)(event.branch)

    return predicate


_B, _A = Severity.BLOCKING, Severity.ADVISORY

# (id, description, severity, stage, predicate), in evaluation order.
_DEFAULT_RULES = [
    ("SecretDetected", "Added lines must not contain credentials", _B, "secrets", _secret_detected),
    ("MalformedMessage", "Commit message must be 'type(scope): subject'", _B, "message", _malformed_message),
    ("SubjectTrailingPeriod", "Subject has no trailing period", _A, "message", _subject_trailing_period),
    ("SubjectCase", "Subject starts in lower case", _A, "message", _subject_case),
    ("HeaderBodySeparation", "Blank line between header and body", _A, "message", _header_body_separation),
    ("BodyLineLength", "Body lines are wrapped", _A, "message", _body_line_length),
    ("OutOfOrderPhase", "TDD phases happen in order", _B, "cycle", _cycle_rule(OutOfOrderPhase)),
    ("UnverifiedTransition", "Phase changes carry test evidence", _B, "cycle", _cycle_rule(UnverifiedTransition)),
    (
        "RegressionDuringRefactor",
        "All tests stay green while refactoring",
        _B,
        "cycle",
        _cycle_rule(RegressionDuringRefactor),
    ),
    ("IncompleteCycle", "Squash only a completed cycle", _B, "cycle", _cycle_rule(IncompleteCycle)),
    ("BranchNaming", "Branch is named 'type/description[-#issue]'", _B, "branch", _branch_rule("naming_violations")),
    ("StaleBranch", "Branch is merged within the age limit", _A, "branch", _branch_rule("age_violations")),
    ("MissingIssueLink", "Branch is linked to an issue", _B, "branch", _branch_rule("issue_link_violations")),
]


def default_catalog() -> RuleCatalog:
    return RuleCatalog(Rule(*row) for row in _DEFAULT_RULES)


def load_catalog(config: dict | None = None) -> RuleCatalog:
    """Build the default catalog and apply ``disabled_rules`` / ``severity_overrides``."""
    return default_catalog().configured(
        disabled=get_setting(config, "disabled_rules") or [],
        severity_overrides=get_setting(config, "severity_overrides") or {},
    )
