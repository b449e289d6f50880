"""Snapshot types consumed and produced by the compliance checker.

Every input type here is an immutable snapshot: the external collaborator
(git hook, CI job, GitHub adapter) materializes it once and the core only
reads it. Reports are likewise frozen once returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from policylens_core.rules import Rule


class Severity(str, Enum):
    BLOCKING = "blocking"
    ADVISORY = "advisory"


@dataclass(frozen=True)
class DiffLine:
    """A single added line of a diff, numbered in the new file."""

    line_number: int
    text: str
    path: str | None = None


def as_diff(lines: Iterable) -> tuple[DiffLine, ...]:
    """Normalise a diff given as DiffLine objects or ``(line_number, text)`` pairs."""
    result = []
    for line in lines:
        if isinstance(line, DiffLine):
            result.append(line)
        else:
            number, text = line[0], line[1]
            path = line[2] if len(line) > 2 else None
            result.append(DiffLine(line_number=int(number), text=text, path=path))
    return tuple(result)


@dataclass(frozen=True)
class Commit:
    """A proposed or recorded commit: its message and the lines it adds."""

    message: str
    diff: tuple[DiffLine, ...] = ()
    sha: str | None = None

    @classmethod
    def build(cls, message: str, diff: Iterable = (), sha: str | None = None) -> Commit:
        return cls(message=message, diff=as_diff(diff), sha=sha)


@dataclass(frozen=True)
class Branch:
    name: str
    created_at: int  # epoch seconds
    linked_issue_id: str | None = None
    merged: bool = False


@dataclass(frozen=True)
class TransitionEvidence:
    """Test-run facts supplied alongside a cycle transition.

    The tracker never runs tests itself. ``had_failing_test``/``now_passing``
    describe the failing-then-passing pair for GREEN; ``test_results`` maps
    test names to pass (True) / fail (False) for REFACTOR.
    """

    had_failing_test: bool | None = None
    now_passing: bool | None = None
    test_results: Mapping[str, bool] = field(default_factory=dict)
    behavior: str | None = None

    @property
    def failing_tests(self) -> tuple[str, ...]:
        return tuple(sorted(name for name, ok in self.test_results.items() if not ok))


@dataclass(frozen=True)
class SecretFinding:
    pattern: str
    line_number: int
    confidence: float
    path: str | None = None
    redacted: str = ""

    def describe(self) -> str:
        location = f"{self.path}:{self.line_number}" if self.path else f"line {self.line_number}"
        value = f" ({self.redacted})" if self.redacted else ""
        return f"{self.pattern} at {location}{value}"


@dataclass(frozen=True)
class Violation:
    rule: Rule
    evidence: str

    @property
    def rule_id(self) -> str:
        return self.rule.id

    @property
    def severity(self) -> Severity:
        return self.rule.severity

    @property
    def message(self) -> str:
        return self.evidence or self.rule.description


@dataclass(frozen=True)
class ComplianceReport:
    """Outcome of one evaluation: passed iff no blocking violation exists."""

    passed: bool
    violations: tuple[Violation, ...] = ()

    @classmethod
    def from_violations(cls, violations: Iterable[Violation]) -> ComplianceReport:
        violations = tuple(violations)
        passed = not any(v.severity == Severity.BLOCKING for v in violations)
        return cls(passed=passed, violations=violations)

    @property
    def blocking(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.severity == Severity.BLOCKING)

    @property
    def advisory(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.severity == Severity.ADVISORY)

    @property
    def reasons(self) -> tuple[str, ...]:
        """Rule ids of the blocking violations, in report order."""
        return tuple(v.rule_id for v in self.blocking)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "violations": [
                {"ruleId": v.rule_id, "severity": v.severity.value, "message": v.message} for v in self.violations
            ],
        }

    def merged_with(self, other: ComplianceReport) -> ComplianceReport:
        return ComplianceReport.from_violations(self.violations + other.violations)


def redact(value: str, keep: int = 4) -> str:
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "*" * min(len(value) - keep, 8)
