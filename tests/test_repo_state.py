"""Tests for in-progress operation detection and the safety check."""

from __future__ import annotations

import pytest

from opskit.core.repo_state import (
    SafetyIssue,
    SpecialState,
    check_safety,
    detect_operation,
    get_current_branch,
)

from .conftest import git


class TestDetectOperation:
    def test_clean(self, tmp_path):
        op = detect_operation(tmp_path)
        assert op.state is SpecialState.NONE
        assert not op.in_progress

    def test_interactive_rebase(self, tmp_path):
        d = tmp_path / "rebase-merge"
        d.mkdir()
        (d / "interactive").write_text("")
        (d / "head-name").write_text("refs/heads/feature\n")
        op = detect_operation(tmp_path)
        assert op.state is SpecialState.REBASING
        assert op.rebase_kind == "interactive"
        assert op.rebase_branch == "feature"

    def test_merge_backend_rebase(self, tmp_path):
        d = tmp_path / "rebase-merge"
        d.mkdir()
        (d / "head-name").write_text("refs/heads/topic/x\n")
        op = detect_operation(tmp_path)
        assert op.rebase_kind == "merge"
        assert op.rebase_branch == "topic/x"

    def test_apply_rebase(self, tmp_path):
        d = tmp_path / "rebase-apply"
        d.mkdir()
        (d / "rebasing").write_text("")
        assert detect_operation(tmp_path).rebase_kind == "apply"

    def test_applying_patch(self, tmp_path):
        d = tmp_path / "rebase-apply"
        d.mkdir()
        (d / "applying").write_text("")
        assert detect_operation(tmp_path).state is SpecialState.APPLYING_PATCH

    def test_bare_rebase_apply(self, tmp_path):
        (tmp_path / "rebase-apply").mkdir()
        op = detect_operation(tmp_path)
        assert op.state is SpecialState.REBASING
        assert op.rebase_kind == "am/rebase"
        assert op.rebase_branch is None

    @pytest.mark.parametrize(
        "marker,state",
        [
            ("MERGE_HEAD", SpecialState.MERGING),
            ("CHERRY_PICK_HEAD", SpecialState.CHERRY_PICKING),
            ("REVERT_HEAD", SpecialState.REVERTING),
            ("BISECT_LOG", SpecialState.BISECTING),
        ],
    )
    def test_marker_files(self, tmp_path, marker, state):
        (tmp_path / marker).write_text("")
        assert detect_operation(tmp_path).state is state

    def test_rebase_wins_over_merge_head(self, tmp_path):
        (tmp_path / "rebase-merge").mkdir()
        (tmp_path / "MERGE_HEAD").write_text("")
        assert detect_operation(tmp_path).state is SpecialState.REBASING


class TestCurrentBranch:
    def test_on_branch(self, git_repo):
        assert get_current_branch(str(git_repo)) == "master"

    def test_detached_during_rebase(self, git_repo):
        git(git_repo, "checkout", "--detach")
        d = git_repo / ".git" / "rebase-merge"
        d.mkdir()
        (d / "head-name").write_text("refs/heads/master\n")
        assert get_current_branch(str(git_repo)) == "master"

    def test_detached_without_rebase(self, git_repo):
        git(git_repo, "checkout", "--detach")
        assert get_current_branch(str(git_repo)) is None


class TestSafety:
    def test_clean_is_safe(self, git_repo):
        check = check_safety(str(git_repo))
        assert not check.unsafe
        assert check.issue is SafetyIssue.NONE

    def test_uncommitted_changes(self, git_repo):
        (git_repo / "README").write_text("changed\n")
        (git_repo / "other").write_text("new\n")
        git(git_repo, "add", "other")
        check = check_safety(str(git_repo))
        assert check.issue is SafetyIssue.UNCOMMITTED_CHANGES
        assert check.reason == "has unstaged and staged changes, commit or stash them first"

    def test_operation_reported_before_changes(self, git_repo):
        (git_repo / "README").write_text("changed\n")
        d = git_repo / ".git" / "rebase-merge"
        d.mkdir()
        (d / "head-name").write_text("refs/heads/feature\n")
        check = check_safety(str(git_repo))
        assert check.issue is SafetyIssue.OPERATION_IN_PROGRESS
        assert check.reason == "is rebasing feature, finish or abort it first"

    def test_merging(self, git_repo):
        (git_repo / ".git" / "MERGE_HEAD").write_text("0" * 40 + "\n")
        assert check_safety(str(git_repo)).reason == "is merging, finish or abort it first"
