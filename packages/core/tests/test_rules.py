import logging

import pytest

from policylens_core.cycle import CyclePhase, CycleState
from policylens_core.errors import MalformedMessage
from policylens_core.models import Branch, Commit, Severity, TransitionEvidence
from policylens_core.rules import Event, default_catalog, load_catalog

ALL_RULES = [
    "SecretDetected",
    "MalformedMessage",
    "SubjectTrailingPeriod",
    "SubjectCase",
    "HeaderBodySeparation",
    "BodyLineLength",
    "OutOfOrderPhase",
    "UnverifiedTransition",
    "RegressionDuringRefactor",
    "IncompleteCycle",
    "BranchNaming",
    "StaleBranch",
    "MissingIssueLink",
]


def _event(message="feat: add login", **kwargs):
    return Event(commit=Commit.build(message), **kwargs)


class TestCatalog:
    def test_default_catalog_order(self):
        assert [rule.id for rule in default_catalog()] == ALL_RULES

    def test_lookup(self):
        catalog = default_catalog()
        assert "StaleBranch" in catalog
        assert "NoSuchRule" not in catalog
        assert catalog.get("StaleBranch").severity == Severity.ADVISORY
        assert len(catalog) == len(ALL_RULES)

    def test_by_stage(self):
        assert [r.id for r in default_catalog().by_stage("branch")] == [
            "BranchNaming",
            "StaleBranch",
            "MissingIssueLink",
        ]

    def test_disable_rule(self):
        catalog = default_catalog().configured(disabled=["SubjectCase"])
        assert "SubjectCase" not in catalog
        assert len(catalog) == len(ALL_RULES) - 1

    def test_override_severity(self):
        catalog = default_catalog().configured(severity_overrides={"StaleBranch": "blocking"})
        assert catalog.get("StaleBranch").severity == Severity.BLOCKING

    def test_configured_leaves_original_untouched(self):
        original = default_catalog()
        original.configured(disabled=["SubjectCase"])
        assert "SubjectCase" in original

    def test_secret_rule_cannot_be_disabled(self, caplog):
        with caplog.at_level(logging.WARNING, logger="policylens_core.rules"):
            catalog = default_catalog().configured(disabled=["SecretDetected"])
        assert "SecretDetected" in catalog
        assert "cannot be disabled" in caplog.text

    def test_secret_rule_cannot_be_downgraded(self):
        catalog = default_catalog().configured(severity_overrides={"SecretDetected": "advisory"})
        assert catalog.get("SecretDetected").severity == Severity.BLOCKING

    def test_unknown_rule_id(self):
        with pytest.raises(ValueError, match="Unknown rule id"):
            default_catalog().configured(disabled=["NoSuchRule"])

    def test_invalid_severity(self):
        with pytest.raises(ValueError, match="Invalid severity"):
            default_catalog().configured(severity_overrides={"SubjectCase": "fatal"})

    def test_waived_lists_disabled_cycle_rules(self):
        assert default_catalog().waived == frozenset()
        catalog = default_catalog().configured(disabled=["UnverifiedTransition", "SubjectCase"])
        assert catalog.waived == {"UnverifiedTransition"}

    def test_load_catalog_applies_config(self):
        catalog = load_catalog({"disabled_rules": ["BodyLineLength"], "severity_overrides": {"SubjectCase": "blocking"}})
        assert "BodyLineLength" not in catalog
        assert catalog.get("SubjectCase").severity == Severity.BLOCKING


class TestMessagePredicates:
    def _check(self, rule_id, event):
        return default_catalog().get(rule_id).check(event)

    def test_trailing_period(self):
        assert self._check("SubjectTrailingPeriod", _event("feat: add login."))
        assert self._check("SubjectTrailingPeriod", _event("feat: add login")) == []

    def test_subject_case(self):
        assert self._check("SubjectCase", _event("feat: Add login"))
        assert self._check("SubjectCase", _event("feat: JWT refresh")) == []

    def test_header_body_separation(self):
        assert self._check("HeaderBodySeparation", _event("feat: add login\nbody text"))
        assert self._check("HeaderBodySeparation", _event("feat: add login\n\nbody text")) == []

    def test_body_line_length(self):
        event = _event("feat: add login\n\n" + "word " * 20)
        evidence = self._check("BodyLineLength", event)
        assert evidence == ["Body line 1 is 99 characters; wrap at 72."]

    def test_malformed_message_evidence(self):
        evidence = self._check("MalformedMessage", _event("fixed bug"))
        assert len(evidence) == 1

    def test_hygiene_rules_skip_malformed_messages(self):
        assert self._check("SubjectTrailingPeriod", _event("fixed bug.")) == []

    def test_generated_messages_skip_message_rules(self):
        event = _event("Merge branch 'feat/x' into main")
        assert self._check("MalformedMessage", event) == []

    def test_generated_messages_checked_when_configured(self):
        event = _event("Merge branch 'feat/x' into main", config={"ignore_generated_messages": False})
        assert self._check("MalformedMessage", event)


class TestEvent:
    def test_unexpected_classifier_error_degrades_to_violation(self, mocker):
        mocker.patch("policylens_core.rules.classify", side_effect=RuntimeError("boom"))
        classified, error = _event().classification
        assert classified is None
        assert isinstance(error, MalformedMessage)
        assert "RuntimeError" in str(error)

    def test_findings_computed_once(self, mocker):
        from_config = mocker.patch("policylens_core.rules.SecretScanner.from_config")
        from_config.return_value.scan.return_value = []
        event = _event()
        event.findings
        event.findings
        assert from_config.call_count == 1

    def test_without_commit(self):
        event = Event(branch=Branch(name="feat/x", created_at=0))
        assert event.findings == []
        assert event.classification == (None, None)

    def test_cycle_outcome_without_cycle(self):
        assert _event().cycle_outcome == (None, None)

    def test_cycle_outcome_advances(self):
        cycle = CycleState(unit="login", phase=CyclePhase.GREEN, history=(CyclePhase.GREEN,))
        event = _event("refactor: tidy", cycle=cycle, evidence=TransitionEvidence(test_results={"t": True}))
        state, error = event.cycle_outcome
        assert error is None
        assert state.phase == CyclePhase.REFACTOR

    def test_cycle_outcome_error_keeps_state(self):
        cycle = CycleState.start("login")
        state, error = _event("green: pass", cycle=cycle).cycle_outcome
        assert state is cycle
        assert error.rule_id == "OutOfOrderPhase"

    def test_branch_rule_skipped_without_branch(self):
        assert default_catalog().get("MissingIssueLink").check(_event()) == []
