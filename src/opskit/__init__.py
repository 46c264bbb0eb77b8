"""opskit: sysadmin helpers for git branch tracking and ClearCase inventory."""

__version__ = "0.1.0"
