#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Framework-aware construction of test and e2e commands.

Discovered templates win; hardcoded per-framework patterns are the fallback.
Template placeholders: ``{files}`` and ``{pattern}`` for tests, ``{tags}`` and
``{files}`` for e2e.
"""

import re
from typing import List, Optional, Sequence

from verdict.models.capabilities import CapabilityInfo

_GLOB_RE = re.compile(r"[*?\[\]{}]")
_FRAMEWORK_MARKERS = (
    ("vitest", re.compile(r"\bvitest\b")),
    ("jest", re.compile(r"\bjest\b")),
    ("mocha", re.compile(r"\bmocha\b")),
    ("pytest", re.compile(r"\bpytest\b")),
    ("cargo", re.compile(r"\bcargo\s+test\b")),
    ("go", re.compile(r"\bgo\s+test\b")),
)


def is_glob_pattern(pattern: str) -> bool:
    return bool(_GLOB_RE.search(pattern))


def detect_framework(command: str) -> str:
    """Guess the test framework from a command line."""
    lower = command.lower()
    for name, marker in _FRAMEWORK_MARKERS:
        if marker.search(lower):
            return name
    return "unknown"


def build_selective_test_command(
    info: CapabilityInfo, pattern: Optional[str], files: Sequence[str] = ()
) -> Optional[str]:
    """Run only the tests related to a change; None without a test command."""
    if not info.runnable:
        return None
    base = info.command
    if not pattern and not files:
        return base

    framework = info.framework or detect_framework(base)
    if files and info.selective_file_template:
        return info.selective_file_template.replace("{files}", " ".join(files))
    if pattern and info.selective_name_template:
        if framework == "go" and is_glob_pattern(pattern):
            return base
        return info.selective_name_template.replace("{pattern}", pattern)

    file_list = " ".join(files)
    if framework == "vitest":
        return f"npx vitest run {file_list}" if files else f'npx vitest run --testNamePattern "{pattern}"'
    if framework == "jest":
        return f"npx jest {file_list}" if files else f'npx jest --testPathPattern "{pattern}"'
    if framework == "mocha":
        return f"npx mocha {file_list}" if files else f'npx mocha --grep "{pattern}"'
    if framework == "pytest":
        return f"pytest {file_list}" if files else f'pytest -k "{pattern}"'
    if framework == "go":
        if not pattern or is_glob_pattern(pattern):
            return "go test ./..."
        return f'go test -run "{pattern}" ./...'
    if framework == "cargo" and pattern:
        return f'cargo test "{pattern}"'
    if pattern and base.startswith(("npm ", "pnpm ")):
        return f'{base} -- "{pattern}"'
    if pattern and base.startswith(("yarn ", "bun ")):
        return f'{base} "{pattern}"'
    return base


def add_pattern(command: str, pattern: str, framework: Optional[str] = None) -> str:
    """Restrict a test command to files/paths matching ``pattern``."""
    framework = framework or detect_framework(command)
    if framework == "jest":
        return f'{command} --testPathPattern="{pattern}"'
    if framework == "mocha":
        return f'{command} "{pattern}"'
    if framework == "go":
        return f'{command} -run "{pattern}"'
    return f"{command} {pattern}"


def add_case_filter(command: str, cases: Sequence[str], framework: Optional[str] = None) -> str:
    """Restrict a test command to named test cases."""
    framework = framework or detect_framework(command)
    case_pattern = "|".join(cases)
    if framework in ("vitest", "jest"):
        return f'{command} -t "{case_pattern}"'
    if framework == "mocha":
        return f'{command} --grep "{case_pattern}"'
    if framework == "pytest":
        return f'{command} -k "{case_pattern}"'
    if framework == "go":
        return f'{command} -run "{case_pattern}"'
    return command


def build_e2e_grep_command(info: CapabilityInfo, tags: Sequence[str]) -> str:
    tag_pattern = "|".join(tags)
    if info.grep_template:
        return info.grep_template.replace("{tags}", f'"{tag_pattern}"')
    if info.framework == "playwright":
        return f'npx playwright test --grep "{tag_pattern}"'
    if info.framework == "cypress":
        return f'npx cypress run --spec "**/*" --env grep="{tag_pattern}"'
    return f'{info.command} --grep "{tag_pattern}"'


def build_e2e_file_command(info: CapabilityInfo, pattern: str) -> str:
    if info.file_template:
        return info.file_template.replace("{files}", pattern)
    if info.framework == "playwright":
        return f"npx playwright test {pattern}"
    if info.framework == "cypress":
        return f'npx cypress run --spec "{pattern}"'
    return f"{info.command} {pattern}"


def determine_e2e_mode(test_mode: str, has_tags: bool) -> str:
    """full | smoke | tags | skip, derived from the unit test mode."""
    if test_mode == "skip":
        return "skip"
    if test_mode == "full":
        return "full"
    return "tags" if has_tags else "smoke"


def build_e2e_command(info: CapabilityInfo, tags: List[str], mode: str) -> Optional[str]:
    """E2E invocation for a mode; None when e2e is unavailable or skipped."""
    if not info.runnable or mode == "skip":
        return None
    if mode == "full" or tags == ["*"]:
        return info.command
    if mode == "smoke" or not tags:
        return build_e2e_grep_command(info, ["@smoke"])
    return build_e2e_grep_command(info, tags)
