"""Shared fixtures: real git repositories and an isolated configuration."""

from __future__ import annotations

import io
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest
from rich.console import Console


def git(repo, *args: str) -> str:
    result = subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True, text=True)
    return result.stdout.strip()


def commit_file(repo, name: str, content: str, message: str | None = None) -> None:
    (Path(repo) / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-m", message or f"update {name}")


@dataclass
class Repos:
    remote: Path
    work: Path
    upstream: Path

    def push_upstream(self, branch: str, name: str, content: str) -> None:
        """Add a commit to ``branch`` on the remote through the upstream clone."""
        git(self.upstream, "checkout", branch)
        commit_file(self.upstream, name, content)
        git(self.upstream, "push", "origin", branch)


@pytest.fixture(autouse=True)
def git_env(tmp_path, monkeypatch):
    """Identity and a private HOME so the user's git config does not leak in."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")
    monkeypatch.setenv("GIT_EDITOR", "true")
    return home


@pytest.fixture
def isolated_global_config(tmp_path, monkeypatch):
    """Isolate global config to temp dir."""
    config_path = tmp_path / "global_opskit" / "config.toml"
    monkeypatch.setattr("opskit.core.config._GLOBAL_CONFIG_PATH", config_path)
    return config_path


@pytest.fixture
def git_repo(tmp_path):
    """A standalone repo on master with one commit and no remote."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/master")
    commit_file(repo, "README", "hello\n", "init")
    return repo


@pytest.fixture
def repos(tmp_path):
    """A bare remote with master, dev and feature, cloned twice.

    ``work`` is the clone under test and tracks all three branches locally;
    ``upstream`` is used to push new commits to the remote.
    """
    remote = tmp_path / "remote.git"
    seed = tmp_path / "seed"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    git(remote, "symbolic-ref", "HEAD", "refs/heads/master")

    seed.mkdir()
    git(seed, "init")
    git(seed, "symbolic-ref", "HEAD", "refs/heads/master")
    commit_file(seed, "README", "hello\n", "init")
    git(seed, "branch", "dev")
    git(seed, "branch", "feature")
    git(seed, "remote", "add", "origin", str(remote))
    git(seed, "push", "origin", "master", "dev", "feature")

    work = tmp_path / "work"
    upstream = tmp_path / "upstream"
    for clone in (work, upstream):
        subprocess.run(["git", "clone", str(remote), str(clone)], check=True, capture_output=True)
        git(clone, "config", "pull.rebase", "false")
        git(clone, "branch", "dev", "origin/dev")
        git(clone, "branch", "feature", "origin/feature")
    return Repos(remote=remote, work=work, upstream=upstream)


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def cc_settings(tmp_path):
    """Settings pointing at a fake cleartool that serves canned output.

    Every invocation is appended to ``<tmp>/cleartool.log``.
    """
    from opskit.clearcase.cleartool import ClearCaseSettings

    from .clearcase_samples import DESCRIBE_ALPHA, FAKE_CLEARTOOL, LSHIST_ALPHA, LSVIEW, LSVOB

    data = tmp_path / "ccdata"
    data.mkdir()
    (data / "lsvob.txt").write_text(LSVOB)
    (data / "describe.alpha.txt").write_text(DESCRIBE_ALPHA)
    (data / "lshist.txt").write_text(LSHIST_ALPHA)
    (data / "lsview.txt").write_text(LSVIEW)

    script = tmp_path / "cleartool"
    script.write_text(FAKE_CLEARTOOL.format(log=tmp_path / "cleartool.log", data=data))
    script.chmod(0o755)
    return ClearCaseSettings(cleartool=str(script), save_dir=str(tmp_path / "ccsave"), host="vobhost")


def cleartool_calls(settings) -> list[str]:
    log = Path(settings.cleartool).parent / "cleartool.log"
    return log.read_text().splitlines() if log.exists() else []
