"""Core logic for opskit."""

from .branch_sync import (
    BranchState,
    BranchStatus,
    SyncContext,
    classify_branch,
    collect_status,
    resolve_remote,
    status_report,
    update_branches,
)
from .commands import Command, CommandRunner, Outcome, shell_command
from .config import get_config_value, load_config, save_config
from .git_utils import find_git_root
from .repo_state import SafetyCheck, SafetyIssue, SpecialState, check_safety, detect_operation

__all__ = [
    "BranchState",
    "BranchStatus",
    "SyncContext",
    "classify_branch",
    "collect_status",
    "resolve_remote",
    "status_report",
    "update_branches",
    "Command",
    "CommandRunner",
    "Outcome",
    "shell_command",
    "load_config",
    "save_config",
    "get_config_value",
    "find_git_root",
    "SafetyCheck",
    "SafetyIssue",
    "SpecialState",
    "check_safety",
    "detect_operation",
]
