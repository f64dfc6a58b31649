#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Git operations used for capability staleness and change summaries.

A missing git binary, a directory outside a repository, or a failing git
command are all reported as ``None`` rather than raised; callers decide what
"unknown" means for them.
"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from verdict import config
from verdict.debug_logger import get_logger


@dataclass
class GitDiffInfo:
    """Changes attributed to the feature under verification."""
    diff: str = ""
    files: List[str] = field(default_factory=list)
    commit_hash: Optional[str] = None


def _git(args: Sequence[str], cwd: Path) -> Optional[subprocess.CompletedProcess]:
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=config.GIT_TIMEOUT_S,
            cwd=str(cwd),
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        get_logger().log("git", "GIT_UNAVAILABLE", {"args": list(args), "error": str(e)}, "DEBUG")
        return None


def _git_output(args: Sequence[str], cwd: Path) -> Optional[str]:
    proc = _git(args, cwd)
    if proc is None or proc.returncode != 0:
        return None
    return proc.stdout


def is_git_repo(cwd: Path) -> bool:
    """True when git is installed and ``cwd`` is inside a work tree."""
    return _git_output(["rev-parse", "--git-dir"], cwd) is not None


def get_commit_hash(cwd: Path) -> Optional[str]:
    """Current HEAD commit, or None without git or commits."""
    out = _git_output(["rev-parse", "HEAD"], cwd)
    if out is None:
        return None
    return out.strip() or None


def files_changed_between(
    cwd: Path, from_commit: str, to_ref: str = "HEAD", paths: Optional[Sequence[str]] = None
) -> Optional[List[str]]:
    """Files that differ between two revisions, restricted to ``paths``.

    Returns None when the diff cannot be computed (unknown commit, no git).
    """
    args = ["diff", "--name-only", from_commit, to_ref]
    if paths:
        args += ["--", *paths]
    out = _git_output(args, cwd)
    if out is None:
        return None
    return [line.strip() for line in out.splitlines() if line.strip()]


def _name_only(args: Sequence[str], cwd: Path) -> List[str]:
    out = _git_output(["diff", "--name-only", *args], cwd) or ""
    return [line.strip() for line in out.splitlines() if line.strip()]


def get_diff_for_feature(cwd: Path) -> GitDiffInfo:
    """Uncommitted changes against HEAD, or the last commit when the tree is clean."""
    commit_hash = get_commit_hash(cwd)
    if commit_hash is None:
        return GitDiffInfo()

    diff = _git_output(["diff", "HEAD", "--no-color"], cwd) or ""
    files = _name_only(["HEAD"], cwd)
    if not diff.strip():
        diff = _git_output(["diff", "HEAD~1", "HEAD", "--no-color"], cwd) or ""
        files = _name_only(["HEAD~1", "HEAD"], cwd)

    return GitDiffInfo(diff=diff, files=files, commit_hash=commit_hash)


def get_diff_for_review(cwd: Path, limit: Optional[int] = None) -> str:
    """Diff shown to an AI reviewer: last commit, falling back to the staged changes."""
    limit = config.DIFF_PROMPT_LIMIT if limit is None else limit
    diff = _git_output(["diff", "HEAD~1", "--no-color"], cwd)
    if not diff or not diff.strip():
        diff = _git_output(["diff", "--cached", "--no-color"], cwd) or ""
    if not diff.strip():
        return "No changes detected"
    if len(diff) > limit:
        return diff[:limit] + "\n... (diff truncated)"
    return diff
