"""Policy error kinds raised by the classifier and the cycle tracker.

These are policy-violation signals, not crashes. The checker catches every
PolicyError and turns it into a Violation of the rule named by ``rule_id``,
so callers of check_commit() never see them. They surface directly only when
CommitClassifier or CycleTracker are used on their own.
"""

from __future__ import annotations


class PolicyError(Exception):
    """Base class for all rule-backed errors."""

    rule_id: str = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedMessage(PolicyError):
    rule_id = "MalformedMessage"


class OutOfOrderPhase(PolicyError):
    rule_id = "OutOfOrderPhase"


class UnverifiedTransition(PolicyError):
    rule_id = "UnverifiedTransition"


class RegressionDuringRefactor(PolicyError):
    rule_id = "RegressionDuringRefactor"

    def __init__(self, message: str, failing: tuple[str, ...] = ()):
        super().__init__(message)
        self.failing = failing


class IncompleteCycle(PolicyError):
    rule_id = "IncompleteCycle"
