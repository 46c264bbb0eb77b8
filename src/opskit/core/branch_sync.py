"""Branch tracking: classify local branches against a remote and update them.

``status_report`` is the read-only variant; ``update_branches`` fetches,
checks the current branch is safe to leave, pulls every branch that is
behind its same-named remote branch, and finally returns to the branch the
operator started on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from . import git_utils
from .commands import CommandRunner, Outcome
from .errors import AmbiguousRemoteError, GitCommandError, UnsafeBranchError
from .repo_state import SAFE, RepoOperation, SafetyCheck, check_safety, detect_operation, get_current_branch

logger = logging.getLogger(__name__)


class BranchState(str, Enum):
    UP_TO_DATE = "up to date"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    NO_REMOTE = "no remote"


@dataclass(frozen=True)
class BranchStatus:
    branch: str
    remote: str
    state: BranchState
    # Always non-negative; direction is carried by state.
    count: int = 0

    @property
    def remote_ref(self) -> str:
        return f"{self.remote}/{self.branch}"

    def phrase(self) -> str:
        commits = "commit" if self.count == 1 else "commits"
        if self.state is BranchState.UP_TO_DATE:
            return "up to date"
        if self.state is BranchState.BEHIND:
            return f"{self.count} {commits} behind {self.remote_ref}"
        if self.state is BranchState.AHEAD:
            return f"{self.count} {commits} ahead of {self.remote_ref}"
        if self.state is BranchState.DIVERGED:
            return f"diverged from {self.remote_ref}"
        return f"has no remote on {self.remote}"


@dataclass(frozen=True)
class BranchLine:
    status: BranchStatus
    is_current: bool = False
    safety: SafetyCheck = SAFE

    @property
    def phrase(self) -> str:
        if self.is_current and self.safety.unsafe:
            return self.safety.reason
        return self.status.phrase()

    def render(self) -> str:
        marker = "*" if self.is_current else " "
        return f"{marker} {self.status.branch} ( {self.phrase} )"


@dataclass
class SyncContext:
    """Everything an operation needs, passed explicitly instead of read from globals."""

    repo_path: str
    remote: str
    update: bool = False
    force_all: bool = False
    rebase: bool = False
    prune: bool = False


@dataclass
class StatusReport:
    remote: str
    current_branch: str | None
    safety: SafetyCheck
    lines: list[BranchLine] = field(default_factory=list)

    def render(self) -> list[str]:
        return [line.render() for line in self.lines]


@dataclass
class UpdateResult:
    report: StatusReport
    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    restored: bool = False
    # Branch checked out when the update finished.
    checked_out: str | None = None


def resolve_remote(repo_path: str, requested: str | None = None) -> str:
    """Pick the remote to compare against, failing when the choice is ambiguous."""
    remotes = git_utils.list_remotes(repo_path)
    if requested:
        if requested not in remotes:
            raise AmbiguousRemoteError(f"Unknown remote '{requested}'", remotes)
        return requested
    if not remotes:
        raise AmbiguousRemoteError("No remote is configured", remotes)
    if len(remotes) > 1:
        raise AmbiguousRemoteError("More than one remote, select one with --remote", remotes)
    return remotes[0]


def classify_branch(repo_path: str, branch: str, remote: str, remote_branches: list[str] | None = None) -> BranchStatus:
    """Compare a branch with its same-named remote-tracking branch.

    Tree contents are compared first; commit counts are only taken when the
    trees differ. When commits exist on both sides the branch is reported as
    ahead and the behind count is ignored.
    """
    if remote_branches is None:
        remote_branches = git_utils.list_remote_branches(repo_path, remote)
    if branch not in remote_branches:
        return BranchStatus(branch, remote, BranchState.NO_REMOTE)

    remote_ref = f"{remote}/{branch}"
    local_ref = f"refs/heads/{branch}"
    if not git_utils.trees_differ(repo_path, local_ref, f"refs/remotes/{remote_ref}"):
        return BranchStatus(branch, remote, BranchState.UP_TO_DATE)

    ahead = git_utils.count_commits(repo_path, f"refs/remotes/{remote_ref}", local_ref)
    if ahead:
        return BranchStatus(branch, remote, BranchState.AHEAD, ahead)
    behind = git_utils.count_commits(repo_path, local_ref, f"refs/remotes/{remote_ref}")
    if behind:
        return BranchStatus(branch, remote, BranchState.BEHIND, behind)
    return BranchStatus(branch, remote, BranchState.DIVERGED)


def fetch(ctx: SyncContext, runner: CommandRunner) -> None:
    """Fetch the selected remote; any failure is fatal."""
    runner.execute(git_utils.fetch_command(ctx.repo_path, ctx.remote, prune=ctx.prune))


def collect_status(ctx: SyncContext) -> StatusReport:
    """Classify every local branch without touching the working tree."""
    operation: RepoOperation = detect_operation(git_utils.get_git_dir(ctx.repo_path))
    current = get_current_branch(ctx.repo_path, operation)
    safety = check_safety(ctx.repo_path, operation)
    remote_branches = git_utils.list_remote_branches(ctx.repo_path, ctx.remote)

    report = StatusReport(remote=ctx.remote, current_branch=current, safety=safety)
    for branch in git_utils.list_local_branches(ctx.repo_path):
        status = classify_branch(ctx.repo_path, branch, ctx.remote, remote_branches)
        is_current = branch == current
        report.lines.append(BranchLine(status, is_current, safety if is_current else SAFE))
    return report


def status_report(ctx: SyncContext, runner: CommandRunner) -> StatusReport:
    fetch(ctx, runner)
    return collect_status(ctx)


def _wants_update(status: BranchStatus, force_all: bool) -> bool:
    if status.state is BranchState.BEHIND:
        return True
    return force_all and status.state in (BranchState.AHEAD, BranchState.DIVERGED)


def update_branches(ctx: SyncContext, runner: CommandRunner) -> UpdateResult:
    """Fetch, then pull each branch that is behind its remote counterpart.

    Nothing is checked out when the current branch is unsafe to leave. A
    failing checkout or pull only skips that branch. If any checkout happened
    the original branch is checked out again at the end.
    """
    fetch(ctx, runner)
    report = collect_status(ctx)

    if report.safety.unsafe:
        raise UnsafeBranchError(report.current_branch, report.safety)

    result = UpdateResult(report=report)
    original = report.current_branch
    if original is None:
        raise GitCommandError(["symbolic-ref", "HEAD"], stderr="HEAD is detached, check out a branch first")

    checked_out = original
    did_checkout = False
    for line in report.lines:
        status = line.status
        if not _wants_update(status, ctx.force_all):
            result.skipped.append(status.branch)
            continue

        if status.branch != checked_out:
            outcome = runner.execute(git_utils.checkout_command(ctx.repo_path, status.branch), check=False)
            if outcome in (Outcome.EXECUTED, Outcome.DRY_RUN):
                did_checkout = True
            if outcome is Outcome.FAILED:
                logger.debug("checkout of %s failed, skipping it", status.branch)
                result.failed.append(status.branch)
                continue
            if outcome is Outcome.DECLINED:
                result.skipped.append(status.branch)
                continue
            checked_out = status.branch

        pull = git_utils.pull_command(ctx.repo_path, ctx.remote, status.branch, rebase=ctx.rebase)
        outcome = runner.execute(pull, check=False)
        if outcome is Outcome.FAILED:
            logger.debug("pull of %s failed, continuing with the next branch", status.branch)
            result.failed.append(status.branch)
        elif outcome is Outcome.DECLINED:
            result.skipped.append(status.branch)
        else:
            result.updated.append(status.branch)

    if did_checkout:
        outcome = runner.execute(git_utils.checkout_command(ctx.repo_path, original), check=False)
        if outcome in (Outcome.EXECUTED, Outcome.DRY_RUN):
            result.restored = True
            checked_out = original
        else:
            logger.debug("could not check out %s again, still on %s", original, checked_out)
    result.checked_out = checked_out
    return result
