#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Process and version-control helpers for verdict."""

from verdict.tools.command_runner import (
    CommandResult,
    CommandRunner,
    RunningCommand,
    run_command,
    start_command,
)
from verdict.tools.git_ops import (
    GitDiffInfo,
    files_changed_between,
    get_commit_hash,
    get_diff_for_feature,
    get_diff_for_review,
    is_git_repo,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "RunningCommand",
    "run_command",
    "start_command",
    "GitDiffInfo",
    "files_changed_between",
    "get_commit_hash",
    "get_diff_for_feature",
    "get_diff_for_review",
    "is_git_repo",
]
