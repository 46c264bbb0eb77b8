"""Exception hierarchy shared by the git and ClearCase helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .repo_state import SafetyCheck


class OpskitError(Exception):
    """Base class for fatal, operator-facing errors."""


class GitCommandError(OpskitError):
    """A git query failed: git missing, not a repository, or a primitive returned an error."""

    def __init__(self, args: Sequence[str], returncode: int | None = None, stderr: str = ""):
        self.argv = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or (f"exit status {returncode}" if returncode is not None else "not found")
        super().__init__(f"git {' '.join(self.argv)} failed: {detail}")


class NotAGitRepoError(OpskitError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not inside a git working copy: {path}")


class AmbiguousRemoteError(OpskitError):
    """No usable remote could be selected; the message lists the candidates."""

    def __init__(self, message: str, remotes: Sequence[str]):
        self.remotes = list(remotes)
        listed = ", ".join(self.remotes) if self.remotes else "(none)"
        super().__init__(f"{message}. Remotes: {listed}")


class UnsafeBranchError(OpskitError):
    def __init__(self, branch: str | None, check: SafetyCheck):
        self.branch = branch
        self.check = check
        super().__init__(f"{branch or 'HEAD'} {check.reason}")


class CommandFailedError(OpskitError):
    def __init__(self, description: str, returncode: int):
        self.description = description
        self.returncode = returncode
        super().__init__(f"Failed cmd: {description} (exit status {returncode})")


class ClearCaseError(OpskitError):
    """Invalid ClearCase request (unknown tag, missing setting, refused change)."""


class CacheMissingError(ClearCaseError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Can't open {path}. Run the 'init' command to create it.")
