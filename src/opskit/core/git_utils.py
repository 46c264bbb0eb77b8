"""Git query helpers.

All assumptions about git's plain-text output live here; callers get
plain Python values back (lists of names, counts, booleans).
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Sequence

from .commands import Command, run_process
from .errors import GitCommandError

logger = logging.getLogger(__name__)

_HEADS = "refs/heads/"
_REMOTES = "refs/remotes/"


def run_git(repo_path: str, args: Sequence[str], ok_codes: Sequence[int] = (0,), timeout: int = 30) -> subprocess.CompletedProcess:
    """Run a read-only git query; raise GitCommandError unless the exit status is in ok_codes."""
    argv = ["git", *args]
    logger.debug("$ %s", shlex.join(argv))
    try:
        result = subprocess.run(
            argv,
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise GitCommandError(args) from e
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(args, stderr=f"timed out after {timeout}s") from e
    if result.returncode not in ok_codes:
        raise GitCommandError(args, result.returncode, result.stderr)
    return result


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


def find_git_root(path: str = ".") -> str | None:
    """Find git repo root from given path."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(path),
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError, NotADirectoryError):
        pass
    return None


def get_git_dir(repo_path: str) -> str:
    """Absolute path of the repository metadata directory."""
    return run_git(repo_path, ["rev-parse", "--absolute-git-dir"]).stdout.strip()


def get_head_branch(repo_path: str) -> str | None:
    """Branch HEAD points at, or None when HEAD is detached."""
    result = run_git(repo_path, ["symbolic-ref", "--quiet", "HEAD"], ok_codes=(0, 1))
    ref = result.stdout.strip()
    if result.returncode != 0 or not ref.startswith(_HEADS):
        return None
    return ref[len(_HEADS):]


def list_local_branches(repo_path: str) -> list[str]:
    """Local branch names in the order git lists them."""
    out = run_git(repo_path, ["for-each-ref", "--format=%(refname)", _HEADS]).stdout
    return [ref[len(_HEADS):] for ref in _lines(out) if ref.startswith(_HEADS)]


def list_remotes(repo_path: str) -> list[str]:
    return _lines(run_git(repo_path, ["remote"]).stdout)


def list_remote_branches(repo_path: str, remote: str) -> list[str]:
    """Names of the remote-tracking branches of one remote, without the remote prefix."""
    prefix = f"{_REMOTES}{remote}/"
    out = run_git(repo_path, ["for-each-ref", "--format=%(refname)", prefix]).stdout
    names = [ref[len(prefix):] for ref in _lines(out) if ref.startswith(prefix)]
    return [name for name in names if name != "HEAD"]


def has_unstaged_changes(repo_path: str) -> bool:
    result = run_git(repo_path, ["diff", "--no-ext-diff", "--quiet"], ok_codes=(0, 1))
    return result.returncode == 1


def has_staged_changes(repo_path: str) -> bool:
    # An unborn branch has nothing to compare the index against.
    if run_git(repo_path, ["rev-parse", "--verify", "--quiet", "HEAD"], ok_codes=(0, 1)).returncode != 0:
        return False
    result = run_git(repo_path, ["diff", "--no-ext-diff", "--cached", "--quiet"], ok_codes=(0, 1))
    return result.returncode == 1


def trees_differ(repo_path: str, ref_a: str, ref_b: str) -> bool:
    """True when the tree contents of two refs differ (history is not compared)."""
    result = run_git(repo_path, ["diff", "--no-ext-diff", "--quiet", ref_a, ref_b, "--"], ok_codes=(0, 1))
    return result.returncode == 1


def count_commits(repo_path: str, exclude: str, include: str) -> int:
    """Number of commits reachable from include but not from exclude."""
    out = run_git(repo_path, ["rev-list", "--count", f"{exclude}..{include}"]).stdout.strip()
    try:
        return max(int(out), 0)
    except ValueError as e:
        raise GitCommandError(["rev-list", "--count", f"{exclude}..{include}"], stderr=f"unexpected output {out!r}") from e


def fetch_command(repo_path: str, remote: str, prune: bool = False) -> Command:
    argv = ["git", "fetch"]
    if prune:
        argv.append("--prune")
    argv.append(remote)
    return _git_command(repo_path, argv)


def checkout_command(repo_path: str, branch: str) -> Command:
    return _git_command(repo_path, ["git", "checkout", branch])


def pull_command(repo_path: str, remote: str, branch: str, rebase: bool = False) -> Command:
    argv = ["git", "pull"]
    if rebase:
        argv.append("--rebase")
    argv += [remote, branch]
    return _git_command(repo_path, argv)


def _git_command(repo_path: str, argv: list[str]) -> Command:
    return Command(shlex.join(argv), lambda: run_process(argv, cwd=repo_path))
