"""Tests for commit message classification."""

import pytest

from policylens_core.commits import classify, is_generated_message, long_body_lines
from policylens_core.config import COMMIT_TYPES
from policylens_core.errors import MalformedMessage


class TestHeader:
    def test_scenario_feat_with_scope(self):
        c = classify("feat(auth): add JWT refresh before expiry")
        assert c.type == "feat"
        assert c.scope == "auth"
        assert c.subject == "add JWT refresh before expiry"
        assert c.breaking is False
        assert c.micro is False

    @pytest.mark.parametrize("commit_type", COMMIT_TYPES)
    def test_every_enumerated_type_is_accepted(self, commit_type):
        c = classify(f"{commit_type}(core): do the thing")
        assert (c.type, c.scope, c.subject) == (commit_type, "core", "do the thing")

    def test_scope_is_optional(self):
        c = classify("docs: explain branch naming")
        assert c.scope is None
        assert c.subject == "explain branch naming"

    def test_missing_header_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify("fixed bug")

    def test_unknown_type_is_malformed(self):
        with pytest.raises(MalformedMessage, match="Unknown commit type"):
            classify("feature: add login")

    def test_uppercase_type_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify("Feat: add login")

    def test_empty_message_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify("   \n  ")

    def test_empty_subject_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify("fix(api):   ")

    def test_empty_scope_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify("fix(): handle nulls")

    def test_subject_at_limit_is_accepted(self):
        subject = "a" * 72
        assert classify(f"chore: {subject}").subject == subject

    def test_subject_over_limit_is_malformed(self):
        with pytest.raises(MalformedMessage, match="73 characters"):
            classify("chore: " + "a" * 73)

    def test_subject_limit_is_configurable(self):
        with pytest.raises(MalformedMessage):
            classify("chore: twelve chars", config={"max_subject_length": 10})

    def test_non_string_is_malformed(self):
        with pytest.raises(MalformedMessage):
            classify(None)


class TestMicroCommits:
    def test_green_rejected_outside_cycle(self):
        with pytest.raises(MalformedMessage, match="active cycle"):
            classify("green: make login test pass")

    def test_green_accepted_during_cycle(self):
        c = classify("green: make login test pass", active_cycle=True)
        assert c.type == "green"
        assert c.micro is True

    def test_refactor_and_fix_are_regular_types(self):
        assert classify("refactor: extract helper", active_cycle=True).micro is False
        assert classify("fix: off by one", active_cycle=True).micro is False


class TestBodyAndFooters:
    def test_body_and_footers_split(self):
        message = (
            "feat(api): add pagination\n"
            "\n"
            "Large listings were slow.\n"
            "Pages are 50 items.\n"
            "\n"
            "Refs: #12\n"
            "Reviewed-by: Sam\n"
        )
        c = classify(message)
        assert c.body == "Large listings were slow.\nPages are 50 items."
        assert c.footers == (("Refs", "#12"), ("Reviewed-by", "Sam"))
        assert c.footer("refs") == "#12"

    def test_hash_style_footer(self):
        c = classify("fix: guard empty input\n\nFixes #7")
        assert c.footers == (("Fixes", "7"),)
        assert c.body == ""

    def test_bang_marks_breaking(self):
        assert classify("feat(api)!: drop v1 endpoints").breaking is True

    def test_breaking_change_footer_marks_breaking(self):
        c = classify("feat: new config format\n\nBREAKING CHANGE: old keys are ignored")
        assert c.breaking is True

    def test_breaking_change_hyphen_footer(self):
        assert classify("feat: x\n\nBREAKING-CHANGE: y").breaking is True

    def test_body_paragraph_that_is_not_footer(self):
        c = classify("fix: retry uploads\n\nThe client gave up too early: now it retries.")
        assert c.footers == ()
        assert "retries" in c.body

    def test_missing_blank_line_is_recorded(self):
        c = classify("fix: retry uploads\nbody right under header")
        assert c.header_separated is False
        assert c.body == "body right under header"

    def test_long_body_lines_exempt_urls(self):
        long_line = "x" * 80
        url_line = "see https://example.com/" + "y" * 80
        c = classify(f"docs: notes\n\n{long_line}\n{url_line}\nshort")
        assert long_body_lines(c, 72) == [(1, 80)]


class TestGeneratedMessages:
    def test_merge_message(self):
        assert is_generated_message("Merge branch 'feat/x' into main") is True

    def test_revert_message(self):
        assert is_generated_message('Revert "feat: add login"') is True

    def test_normal_message(self):
        assert is_generated_message("feat: merge user records") is False
