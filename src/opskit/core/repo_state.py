"""In-progress operation detection and the current-branch safety check."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from . import git_utils


class SpecialState(str, Enum):
    NONE = "none"
    REBASING = "rebasing"
    APPLYING_PATCH = "applying a patch"
    MERGING = "merging"
    CHERRY_PICKING = "cherry-picking"
    REVERTING = "reverting"
    BISECTING = "bisecting"


class SafetyIssue(str, Enum):
    NONE = "none"
    OPERATION_IN_PROGRESS = "operation in progress"
    UNCOMMITTED_CHANGES = "uncommitted changes"


@dataclass(frozen=True)
class RepoOperation:
    state: SpecialState
    # interactive / merge / apply / am/rebase, only set while rebasing
    rebase_kind: str | None = None
    rebase_branch: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.state is not SpecialState.NONE


@dataclass(frozen=True)
class SafetyCheck:
    issue: SafetyIssue
    reason: str = ""

    @property
    def unsafe(self) -> bool:
        return self.issue is not SafetyIssue.NONE


SAFE = SafetyCheck(SafetyIssue.NONE)


def _read_head_name(rebase_dir: Path) -> str | None:
    head_name = rebase_dir / "head-name"
    if not head_name.is_file():
        return None
    name = head_name.read_text(encoding="utf-8").strip()
    if name.startswith("refs/heads/"):
        name = name[len("refs/heads/"):]
    return name or None


def detect_operation(git_dir: str | Path) -> RepoOperation:
    """Inspect the marker files git leaves in its metadata directory.

    States are mutually exclusive in git, so the first marker found wins.
    """
    git_dir = Path(git_dir)
    rebase_merge = git_dir / "rebase-merge"
    rebase_apply = git_dir / "rebase-apply"

    if rebase_merge.is_dir():
        kind = "interactive" if (rebase_merge / "interactive").exists() else "merge"
        return RepoOperation(SpecialState.REBASING, kind, _read_head_name(rebase_merge))
    if rebase_apply.is_dir():
        if (rebase_apply / "rebasing").exists():
            return RepoOperation(SpecialState.REBASING, "apply", _read_head_name(rebase_apply))
        if (rebase_apply / "applying").exists():
            return RepoOperation(SpecialState.APPLYING_PATCH)
        return RepoOperation(SpecialState.REBASING, "am/rebase", _read_head_name(rebase_apply))
    if (git_dir / "MERGE_HEAD").exists():
        return RepoOperation(SpecialState.MERGING)
    if (git_dir / "CHERRY_PICK_HEAD").exists():
        return RepoOperation(SpecialState.CHERRY_PICKING)
    if (git_dir / "REVERT_HEAD").exists():
        return RepoOperation(SpecialState.REVERTING)
    if (git_dir / "BISECT_LOG").exists():
        return RepoOperation(SpecialState.BISECTING)
    return RepoOperation(SpecialState.NONE)


def get_current_branch(repo_path: str, operation: RepoOperation | None = None) -> str | None:
    """Current branch, falling back to the branch being rebased while HEAD is detached."""
    branch = git_utils.get_head_branch(repo_path)
    if branch is not None:
        return branch
    if operation is None:
        operation = detect_operation(git_utils.get_git_dir(repo_path))
    if operation.state is SpecialState.REBASING:
        return operation.rebase_branch
    return None


def check_safety(repo_path: str, operation: RepoOperation | None = None) -> SafetyCheck:
    """Decide whether switching away from the current branch is safe.

    An in-progress operation is reported before uncommitted changes since it
    needs a different remedy (finish or abort, rather than commit or stash).
    """
    if operation is None:
        operation = detect_operation(git_utils.get_git_dir(repo_path))

    if operation.in_progress:
        what = operation.state.value
        if operation.rebase_branch:
            what = f"{what} {operation.rebase_branch}"
        return SafetyCheck(
            SafetyIssue.OPERATION_IN_PROGRESS,
            f"is {what}, finish or abort it first",
        )

    unstaged = git_utils.has_unstaged_changes(repo_path)
    staged = git_utils.has_staged_changes(repo_path)
    if unstaged or staged:
        kinds = " and ".join(k for k, present in (("unstaged", unstaged), ("staged", staged)) if present)
        return SafetyCheck(
            SafetyIssue.UNCOMMITTED_CHANGES,
            f"has {kinds} changes, commit or stash them first",
        )
    return SAFE
