"""RED → GREEN → REFACTOR cycle tracking for a single unit of work.

A unit of work moves through:

    (start) → RED_STRUCTURAL → RED_BEHAVIORAL → GREEN → REFACTOR → RED_STRUCTURAL ...
                                                   ↘         ↘
                                                    SQUASHED (terminal)

CycleState is immutable. advance() and squash() return a new state and never
touch the one passed in, so evaluating a batch of commits only needs to thread
the returned snapshot through in commit order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable

from policylens_core.commits import ClassifiedCommit
from policylens_core.errors import (
    IncompleteCycle,
    OutOfOrderPhase,
    PolicyError,
    RegressionDuringRefactor,
    UnverifiedTransition,
)
from policylens_core.models import TransitionEvidence

logger = logging.getLogger(__name__)


class CyclePhase(str, Enum):
    RED_STRUCTURAL = "red_structural"
    RED_BEHAVIORAL = "red_behavioral"
    GREEN = "green"
    REFACTOR = "refactor"
    SQUASHED = "squashed"


_RED_PHASES = {CyclePhase.RED_STRUCTURAL, CyclePhase.RED_BEHAVIORAL}
_SQUASHABLE = {CyclePhase.GREEN, CyclePhase.REFACTOR}
_GREEN_PREDECESSORS = {CyclePhase.RED_BEHAVIORAL, CyclePhase.REFACTOR}

# Commit types that move the cycle. Anything else (feat, docs, fix, ...) is
# recorded in git history but leaves the phase where it is.
_PHASE_TOKENS = {"test", "green", "refactor"}


@dataclass(frozen=True)
class CycleState:
    unit: str
    phase: CyclePhase | None = None
    history: tuple[CyclePhase, ...] = ()
    behavior: str | None = None

    @classmethod
    def start(cls, unit: str) -> CycleState:
        return cls(unit=unit)

    @property
    def squashed(self) -> bool:
        return self.phase == CyclePhase.SQUASHED

    @property
    def active(self) -> bool:
        return not self.squashed

    def to_dict(self) -> dict:
        return {
            "unit": self.unit,
            "phase": self.phase.value if self.phase else None,
            "history": [p.value for p in self.history],
            "behavior": self.behavior,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CycleState:
        phase = data.get("phase")
        return cls(
            unit=data["unit"],
            phase=CyclePhase(phase) if phase else None,
            history=tuple(CyclePhase(p) for p in data.get("history", [])),
            behavior=data.get("behavior"),
        )


def _label(phase: CyclePhase | None) -> str:
    return phase.name if phase else "START"


class CycleTracker:
    """Validates phase transitions; holds no cycle state of its own.

    ``waived`` names rule ids whose checks are skipped, so a transition that
    would only break a waived rule goes ahead.
    """

    def __init__(self, waived: Iterable[str] = ()):
        self.waived = frozenset(waived)

    def _fail(self, error: PolicyError) -> None:
        if error.rule_id in self.waived:
            logger.debug("%s waived: %s", error.rule_id, error)
            return
        raise error

    def target_phase(self, commit: ClassifiedCommit, evidence: TransitionEvidence | None) -> CyclePhase | None:
        """Return the phase a commit asks for, or None when it is not a phase-transition token."""
        if commit.type not in _PHASE_TOKENS:
            return None
        if commit.type == "test":
            if evidence is not None and evidence.had_failing_test:
                return CyclePhase.RED_BEHAVIORAL
            return CyclePhase.RED_STRUCTURAL
        if commit.type == "green":
            return CyclePhase.GREEN
        return CyclePhase.REFACTOR

    def advance(
        self,
        state: CycleState,
        commit: ClassifiedCommit,
        evidence: TransitionEvidence | None = None,
    ) -> CycleState:
        if state.squashed:
            self._fail(OutOfOrderPhase(f"Unit {state.unit!r} is already squashed; start a new unit of work."))

        target = self.target_phase(commit, evidence)
        if target is None:
            logger.debug("Commit type %r does not move the cycle for %s", commit.type, state.unit)
            return state

        if target == CyclePhase.RED_STRUCTURAL:
            if state.phase == CyclePhase.RED_BEHAVIORAL:
                self._fail(
                    OutOfOrderPhase(
                        "RED_STRUCTURAL cannot follow RED_BEHAVIORAL; a failing test already exists, make it pass."
                    )
                )
            return self._enter(state, target, behavior=None)

        if target == CyclePhase.RED_BEHAVIORAL:
            behavior = (evidence.behavior if evidence else None) or commit.scope or commit.subject
            return self._enter(state, target, behavior=behavior)

        if target == CyclePhase.GREEN:
            self._check_green(state, evidence)
            return self._enter(state, target, behavior=state.behavior)

        self._check_refactor(state, evidence)
        return self._enter(state, target, behavior=state.behavior)

    def squash(self, state: CycleState) -> CycleState:
        if state.squashed:
            self._fail(IncompleteCycle(f"Unit {state.unit!r} is already squashed."))
        elif state.phase not in _SQUASHABLE:
            self._fail(IncompleteCycle(f"Cannot squash {state.unit!r} from {_label(state.phase)}; reach GREEN first."))
        return CycleState(unit=state.unit, phase=CyclePhase.SQUASHED)

    def _check_green(self, state: CycleState, evidence: TransitionEvidence | None) -> None:
        if state.phase not in _GREEN_PREDECESSORS:
            self._fail(OutOfOrderPhase(f"GREEN attempted from {_label(state.phase)}; write a failing test first."))
        if evidence is None or evidence.had_failing_test is None or evidence.now_passing is None:
            self._fail(UnverifiedTransition("GREEN requires failing-then-passing test evidence; none was supplied."))
        elif not evidence.had_failing_test:
            self._fail(UnverifiedTransition("GREEN requires a test that failed before the change."))
        elif not evidence.now_passing:
            self._fail(UnverifiedTransition("GREEN requires the previously failing test to pass now."))
        elif state.behavior and evidence.behavior and evidence.behavior != state.behavior:
            self._fail(
                UnverifiedTransition(
                    f"Evidence is for behavior {evidence.behavior!r}, but the cycle is on {state.behavior!r}."
                )
            )

    def _check_refactor(self, state: CycleState, evidence: TransitionEvidence | None) -> None:
        if state.phase not in (CyclePhase.GREEN, CyclePhase.REFACTOR):
            self._fail(
                OutOfOrderPhase(f"REFACTOR attempted from {_label(state.phase)}; only GREEN code may be refactored.")
            )
        if evidence is None or not evidence.test_results:
            self._fail(UnverifiedTransition("REFACTOR requires the current test results; none were supplied."))
        elif evidence.failing_tests:
            failing = evidence.failing_tests
            self._fail(
                RegressionDuringRefactor(f"Tests failing during refactor: {', '.join(failing)}.", failing=failing)
            )

    @staticmethod
    def _enter(state: CycleState, phase: CyclePhase, behavior: str | None) -> CycleState:
        if phase == state.phase:
            return replace(state, behavior=behavior)
        return replace(state, phase=phase, history=state.history + (phase,), behavior=behavior)
