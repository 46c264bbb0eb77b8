"""Tests for the git query helpers against real repositories."""

from __future__ import annotations

import pytest

from opskit.core import git_utils
from opskit.core.errors import GitCommandError

from .conftest import commit_file, git


class TestRunGit:
    def test_failure_raises(self, git_repo):
        with pytest.raises(GitCommandError) as exc:
            git_utils.run_git(str(git_repo), ["rev-parse", "--verify", "no-such-ref"])
        assert exc.value.returncode != 0
        assert "rev-parse" in str(exc.value)

    def test_ok_codes(self, git_repo):
        result = git_utils.run_git(str(git_repo), ["diff", "--quiet"], ok_codes=(0, 1))
        assert result.returncode == 0


class TestFindGitRoot:
    def test_from_subdirectory(self, git_repo):
        sub = git_repo / "a" / "b"
        sub.mkdir(parents=True)
        assert git_utils.find_git_root(str(sub)) == str(git_repo.resolve())

    def test_outside_repo(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        assert git_utils.find_git_root(str(plain)) is None


class TestBranches:
    def test_head_branch(self, git_repo):
        assert git_utils.get_head_branch(str(git_repo)) == "master"

    def test_head_detached(self, git_repo):
        git(git_repo, "checkout", "--detach")
        assert git_utils.get_head_branch(str(git_repo)) is None

    def test_list_local_branches(self, git_repo):
        git(git_repo, "branch", "zeta")
        git(git_repo, "branch", "alpha")
        assert git_utils.list_local_branches(str(git_repo)) == ["alpha", "master", "zeta"]

    def test_remote_branches_exclude_head(self, repos):
        branches = git_utils.list_remote_branches(str(repos.work), "origin")
        assert "HEAD" not in branches
        assert sorted(branches) == ["dev", "feature", "master"]

    def test_list_remotes(self, repos, git_repo):
        assert git_utils.list_remotes(str(repos.work)) == ["origin"]
        assert git_utils.list_remotes(str(git_repo)) == []


class TestChanges:
    def test_clean(self, git_repo):
        assert not git_utils.has_unstaged_changes(str(git_repo))
        assert not git_utils.has_staged_changes(str(git_repo))

    def test_unstaged(self, git_repo):
        (git_repo / "README").write_text("changed\n")
        assert git_utils.has_unstaged_changes(str(git_repo))
        assert not git_utils.has_staged_changes(str(git_repo))

    def test_staged(self, git_repo):
        (git_repo / "README").write_text("changed\n")
        git(git_repo, "add", "README")
        assert git_utils.has_staged_changes(str(git_repo))
        assert not git_utils.has_unstaged_changes(str(git_repo))

    def test_untracked_files_do_not_count(self, git_repo):
        (git_repo / "new.txt").write_text("x\n")
        assert not git_utils.has_unstaged_changes(str(git_repo))


class TestComparison:
    def test_trees_and_counts(self, git_repo):
        repo = str(git_repo)
        git(git_repo, "branch", "base")
        commit_file(git_repo, "a.txt", "1\n")
        commit_file(git_repo, "b.txt", "2\n")
        assert git_utils.trees_differ(repo, "base", "master")
        assert git_utils.count_commits(repo, "base", "master") == 2
        assert git_utils.count_commits(repo, "master", "base") == 0

    def test_same_tree_different_history(self, git_repo):
        repo = str(git_repo)
        git(git_repo, "branch", "base")
        commit_file(git_repo, "a.txt", "1\n")
        git(git_repo, "rm", "-q", "a.txt")
        git(git_repo, "commit", "-m", "remove a")
        assert not git_utils.trees_differ(repo, "base", "master")
        assert git_utils.count_commits(repo, "base", "master") == 2


class TestCommandBuilders:
    def test_descriptions(self, git_repo):
        repo = str(git_repo)
        assert git_utils.fetch_command(repo, "origin").description == "git fetch origin"
        assert git_utils.fetch_command(repo, "origin", prune=True).description == "git fetch --prune origin"
        assert git_utils.checkout_command(repo, "dev").description == "git checkout dev"
        assert git_utils.pull_command(repo, "origin", "dev").description == "git pull origin dev"
        assert git_utils.pull_command(repo, "origin", "dev", rebase=True).description == "git pull --rebase origin dev"

    def test_checkout_runs_in_repo(self, git_repo):
        git(git_repo, "branch", "other")
        assert git_utils.checkout_command(str(git_repo), "other").action() == 0
        assert git_utils.get_head_branch(str(git_repo)) == "other"
