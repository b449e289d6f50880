"""Tests for the CLI's snapshot, persistence and token helpers."""

import os
import subprocess
from unittest.mock import MagicMock

import click
import pytest

from policylens_cli.auth import resolve_github_token
from policylens_cli.commands.init import HOOK_MARKER, install_hooks
from policylens_cli.cycle_state import load_cycle, save_cycle
from policylens_cli.records import evaluation_to_record
from policylens_cli.snapshots import build_evidence, clean_message, local_branch, parse_test_results
from policylens_core.checker import check_commit
from policylens_core.config import DEFAULT_CONFIG
from policylens_core.cycle import CyclePhase, CycleState
from policylens_core.models import Commit


class TestResolveGithubToken:
    def test_prefers_policylens_token(self, monkeypatch):
        monkeypatch.setenv("POLICYLENS_GITHUB_TOKEN", "pat")
        monkeypatch.setenv("GITHUB_TOKEN", "ci-token")
        assert resolve_github_token() == "pat"

    def test_returns_env_var_when_set(self, monkeypatch):
        monkeypatch.delenv("POLICYLENS_GITHUB_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    @pytest.fixture
    def no_env(self, monkeypatch):
        monkeypatch.delenv("POLICYLENS_GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    def test_falls_back_to_gh_cli(self, no_env, mocker):
        mocker.patch("subprocess.run", return_value=MagicMock(returncode=0, stdout="gh-token\n"))
        assert resolve_github_token() == "gh-token"

    def test_returns_none_when_gh_not_installed(self, no_env, mocker):
        mocker.patch("subprocess.run", side_effect=FileNotFoundError)
        assert resolve_github_token() is None

    def test_returns_none_when_gh_times_out(self, no_env, mocker):
        mocker.patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5))
        assert resolve_github_token() is None

    def test_returns_none_when_gh_returns_error(self, no_env, mocker):
        mocker.patch("subprocess.run", return_value=MagicMock(returncode=1, stdout=""))
        assert resolve_github_token() is None


class TestCleanMessage:
    def test_strips_comment_lines(self):
        raw = "feat: add login\n\nBody text.\n# Please enter the commit message\n# On branch x\n"
        assert clean_message(raw) == "feat: add login\n\nBody text."

    def test_drops_verbose_diff_below_scissors(self):
        raw = (
            "fix: typo\n"
            "# ------------------------ >8 ------------------------\n"
            "diff --git a/x b/x\n"
            "+AKIA1234567890ABCDEF\n"
        )
        assert clean_message(raw) == "fix: typo"


class TestEvidenceOptions:
    def test_no_options_means_no_evidence(self):
        assert build_evidence(None, None, (), None) is None

    def test_green_evidence(self):
        evidence = build_evidence(True, True, (), "login")
        assert evidence.had_failing_test is True
        assert evidence.now_passing is True
        assert evidence.behavior == "login"

    def test_parse_test_results(self):
        assert parse_test_results(("test_a=pass", "test_b=FAIL", "pkg::test[x=1]=pass")) == {
            "test_a": True,
            "test_b": False,
            "pkg::test[x=1]": True,
        }

    @pytest.mark.parametrize("value", ["test_a", "=pass", "test_a=maybe"])
    def test_parse_test_results_rejects_bad_values(self, value):
        with pytest.raises(click.BadParameter):
            parse_test_results((value,))


class TestLocalBranch:
    @pytest.fixture(autouse=True)
    def git(self, mocker):
        git = mocker.patch("policylens_cli.snapshots.git")
        git.current_branch.return_value = "feat/login-#12"
        git.find_trunk.return_value = "main"
        git.branch_created_at.return_value = 1_700_000_000
        git.is_merged.return_value = True
        return git

    def test_current_branch_snapshot(self, git):
        branch = local_branch(DEFAULT_CONFIG)
        assert branch.name == "feat/login-#12"
        assert branch.created_at == 1_700_000_000
        assert branch.linked_issue_id == "12"
        assert branch.merged is False
        git.branch_created_at.assert_called_once_with("feat/login-#12", "main")

    def test_explicit_values_win(self, git):
        branch = local_branch(DEFAULT_CONFIG, name="fix/x", issue="99", created_at=5, check_merged=True)
        assert (branch.name, branch.linked_issue_id, branch.created_at, branch.merged) == ("fix/x", "99", 5, True)
        git.branch_created_at.assert_not_called()

    def test_trunk_has_no_branch_rules(self, git):
        git.current_branch.return_value = "main"
        assert local_branch(DEFAULT_CONFIG) is None

    def test_detached_head(self, git):
        git.current_branch.return_value = None
        assert local_branch(DEFAULT_CONFIG) is None

    def test_new_branch_without_history_is_fresh(self, git, mocker):
        git.branch_created_at.return_value = None
        mocker.patch("policylens_cli.snapshots.time.time", return_value=1_800_000_000.5)
        assert local_branch(DEFAULT_CONFIG).created_at == 1_800_000_000


class TestCycleState:
    def test_missing_file(self, tmp_path):
        assert load_cycle(str(tmp_path / "cycle.json")) is None

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "state" / "cycle.json")
        state = CycleState(unit="login", phase=CyclePhase.GREEN, history=(CyclePhase.RED_BEHAVIORAL, CyclePhase.GREEN))
        save_cycle(path, state)
        assert load_cycle(path) == state

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "cycle.json"
        path.write_text('{"unit": "x", "phase": "purple"}')
        assert load_cycle(str(path)) is None


class TestRecords:
    def test_staged_commit_record(self):
        evaluation = check_commit(Commit.build("fixed bug"), now=0)
        record = evaluation_to_record(evaluation, "owner/repo", "feat/x")
        assert record.ref == "staged"
        assert record.subject == "fixed bug"
        assert record.passed is False
        assert record.violations[0].rule_id == "MalformedMessage"
        assert record.violations[0].severity == "blocking"

    def test_recorded_commit_uses_sha(self):
        evaluation = check_commit(Commit.build("feat: ok", sha="abc123"), now=0)
        assert evaluation_to_record(evaluation, "owner/repo", None).ref == "abc123"


class TestInstallHooks:
    def test_writes_executable_hooks(self, tmp_path):
        installed = install_hooks(tmp_path)
        assert installed == ["commit-msg", "pre-push"]
        commit_msg = tmp_path / "commit-msg"
        assert "policylens check --message-file" in commit_msg.read_text()
        assert os.access(commit_msg, os.X_OK)

    def test_keeps_foreign_hook(self, tmp_path):
        (tmp_path / "pre-push").write_text("#!/bin/sh\nmake lint\n")
        assert install_hooks(tmp_path) == ["commit-msg"]
        assert "make lint" in (tmp_path / "pre-push").read_text()

    def test_reinstall_over_own_hook(self, tmp_path):
        (tmp_path / "commit-msg").write_text(f"#!/bin/sh\n{HOOK_MARKER}\nold\n")
        assert "commit-msg" in install_hooks(tmp_path)
        assert "old" not in (tmp_path / "commit-msg").read_text()
