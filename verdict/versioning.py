#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Version helpers for verdict."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from verdict._version import VERDICT_VERSION, VERDICT_GIT_COMMIT


def get_version() -> str:
    """Return the package version using the single source of truth."""
    if VERDICT_VERSION:
        return VERDICT_VERSION

    try:
        from importlib.metadata import version

        return version("verdict-engine")
    except Exception:
        return "unknown"


def get_git_commit(short: bool = True) -> Optional[str]:
    """Return the git commit hash, preferring the build-time value if present."""
    if VERDICT_GIT_COMMIT and VERDICT_GIT_COMMIT != "unknown":
        return VERDICT_GIT_COMMIT[:7] if short else VERDICT_GIT_COMMIT

    try:
        repo_root = Path(__file__).resolve().parent.parent
        cmd = ["git", "rev-parse", "--short", "HEAD"] if short else ["git", "rev-parse", "HEAD"]
        commit = subprocess.check_output(cmd, cwd=repo_root, stderr=subprocess.DEVNULL)
        return commit.decode().strip()
    except Exception:
        return None


def build_version_string() -> str:
    """Version string shown by ``verdict --version``."""
    commit = get_git_commit()
    return f"verdict {get_version()}" + (f" ({commit})" if commit else "")
