#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""File strategy: existence, content, size and permission assertions."""

import glob
import os
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from verdict.models.results import StrategyResult
from verdict.models.strategies import FileCheck, FileStrategy, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.strategies.safety import has_unsafe_traversal, is_within_root

PASSED_PREVIEW_LIMIT = 10


@dataclass
class CheckOutcome:
    type: str
    success: bool
    message: Optional[str] = None


@dataclass
class FileCheckResult:
    path: str
    success: bool
    checks: List[CheckOutcome] = field(default_factory=list)


def resolve_pattern(cwd: Path, pattern: str) -> Tuple[Optional[List[str]], Optional[str]]:
    """Expand a glob pattern to files inside ``cwd``.

    Returns:
        (paths, None) on success, (None, error) when the pattern or a match
        escapes the project root.
    """
    if ".." in pattern and has_unsafe_traversal(pattern):
        return None, f"Path pattern contains unsafe traversal: {pattern}"
    if os.path.isabs(pattern) and not is_within_root(cwd, pattern):
        return None, f"Absolute path must be within project root: {pattern}"

    full_pattern = pattern if os.path.isabs(pattern) else os.path.join(str(cwd), pattern)
    matches = sorted(p for p in glob.glob(full_pattern, recursive=True) if os.path.isfile(p))
    for match in matches:
        if not is_within_root(cwd, match):
            return None, f"Matched path escapes project root: {match}"
    return matches, None


def _check_exists(path: str, should_exist: bool) -> CheckOutcome:
    exists = os.path.exists(path)
    if exists == should_exist:
        return CheckOutcome("exists", True, "File exists" if exists else "File correctly does not exist")
    return CheckOutcome("exists", False, "File exists but should not" if exists else "File does not exist")


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _check_contains(path: str, pattern: str) -> CheckOutcome:
    try:
        found = re.search(pattern, _read(path)) is not None
    except re.error as e:
        return CheckOutcome("contains_pattern", False, f"Invalid pattern {pattern!r}: {e}")
    except OSError as e:
        return CheckOutcome("contains_pattern", False, f"Failed to read file: {e}")
    return CheckOutcome("contains_pattern", found, None if found else f"Pattern not found: {pattern}")


def _check_matches(path: str, expected: str) -> CheckOutcome:
    try:
        same = _read(path) == expected
    except OSError as e:
        return CheckOutcome("matches_content", False, f"Failed to read file: {e}")
    return CheckOutcome("matches_content", same, None if same else "File content does not match expected")


def _check_size(path: str, min_size: Optional[int], max_size: Optional[int]) -> CheckOutcome:
    try:
        size = os.path.getsize(path)
    except OSError as e:
        return CheckOutcome("size", False, f"Failed to get file stats: {e}")
    if min_size is not None and size < min_size:
        return CheckOutcome("size", False, f"File size {size} is less than minimum {min_size}")
    if max_size is not None and size > max_size:
        return CheckOutcome("size", False, f"File size {size} exceeds maximum {max_size}")
    return CheckOutcome("size", True)


def _check_not_empty(path: str) -> CheckOutcome:
    try:
        size = os.path.getsize(path)
    except OSError as e:
        return CheckOutcome("not_empty", False, f"Failed to get file stats: {e}")
    return CheckOutcome("not_empty", size > 0, None if size > 0 else "File is empty")


def _check_permissions(path: str, expected: str) -> CheckOutcome:
    try:
        mode = format(os.stat(path).st_mode & 0o777, "03o")
    except OSError as e:
        return CheckOutcome("permissions", False, f"Failed to get file stats: {e}")
    ok = mode == expected
    return CheckOutcome("permissions", ok, None if ok else f"Permissions {mode} do not match expected {expected}")


def check_file(path: str, checks: List[FileCheck]) -> FileCheckResult:
    """Apply every check to one file."""
    outcomes: List[CheckOutcome] = []
    for check in checks:
        if check.exists is not None:
            outcome = _check_exists(path, check.exists)
            outcomes.append(outcome)
            if not outcome.success or not check.exists:
                # Nothing else to inspect on a missing (or unwanted) file
                break
        if check.contains_pattern is not None:
            outcomes.append(_check_contains(path, check.contains_pattern))
        if check.matches_content is not None:
            outcomes.append(_check_matches(path, check.matches_content))
        if check.min_size is not None or check.max_size is not None:
            outcomes.append(_check_size(path, check.min_size, check.max_size))
        if check.not_empty:
            outcomes.append(_check_not_empty(path))
        if check.permissions is not None:
            outcomes.append(_check_permissions(path, check.permissions))

    return FileCheckResult(path=path, success=all(o.success for o in outcomes), checks=outcomes)


def format_output(results: List[FileCheckResult], patterns: List[str]) -> str:
    passed = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    lines = [
        f"File verification for patterns: {', '.join(patterns)}",
        f"Files checked: {len(results)}",
        "",
        f"Results: {len(passed)} passed, {len(failed)} failed",
        "",
    ]

    if failed:
        lines.append("Failed checks:")
        for result in failed:
            lines.append(f"  {result.path}")
            for outcome in result.checks:
                if not outcome.success:
                    lines.append(f"    ✗ {outcome.type}: {outcome.message or 'failed'}")
        lines.append("")

    if passed:
        lines.append("Passed checks:")
        for result in passed[:PASSED_PREVIEW_LIMIT]:
            lines.append(f"  ✓ {result.path}")
        if len(passed) > PASSED_PREVIEW_LIMIT:
            lines.append(f"  ... and {len(passed) - PASSED_PREVIEW_LIMIT} more")

    return "\n".join(lines).rstrip("\n")


class FileStrategyExecutor(StrategyExecutor):
    """Verifies files matched by glob patterns inside the project root."""

    strategy_type = StrategyType.FILE

    def execute(self, strategy: FileStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        patterns = strategy.all_patterns()
        checks = strategy.checks or [FileCheck()]
        if not patterns:
            return StrategyResult(False, "No paths specified for file verification",
                                  elapsed_ms(started), {"reason": "no-paths"})

        resolved: List[str] = []
        for pattern in patterns:
            paths, error = resolve_pattern(context.cwd, pattern)
            if error:
                return StrategyResult(False, error, elapsed_ms(started),
                                      {"reason": "security-violation", "path": pattern})
            resolved.extend(p for p in paths if p not in resolved)

        if not resolved:
            if any(check.exists is not False for check in checks):
                return StrategyResult(False, f"No files matched the pattern(s): {', '.join(patterns)}",
                                      elapsed_ms(started), {"reason": "no-files-matched", "patterns": patterns})
            return StrategyResult(True, f"Verified no files exist matching: {', '.join(patterns)}",
                                  elapsed_ms(started), {"patterns": patterns, "files_found": 0})

        results = [check_file(path, checks) for path in resolved]
        return StrategyResult(
            success=all(r.success for r in results),
            output=format_output(results, patterns),
            duration_ms=elapsed_ms(started),
            details={
                "files_checked": len(resolved),
                "patterns": patterns,
                "results": [
                    {"path": r.path, "success": r.success,
                     "checks": [{"type": c.type, "success": c.success, "message": c.message} for c in r.checks]}
                    for r in results
                ],
            },
        )
