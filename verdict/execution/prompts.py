#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Prompt builders for AI verification and capability discovery."""

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from verdict.models.feature import Feature
from verdict.models.results import AutomatedCheckResult, truncate

VERDICT_RULES = """The "verdict" field MUST be EXACTLY ONE of these three string values (choose only one):
- "pass" - Use this if ALL criteria are satisfied with confidence > 0.7
- "fail" - Use this if ANY criterion is clearly NOT satisfied
- "needs_review" - Use this if evidence is insufficient or confidence too low

Replace <VERDICT> with your chosen value. Do NOT output the literal string "pass|fail|needs_review"."""

RESPONSE_SCHEMA = """{
  "criteriaResults": [
    {
      "index": 0,
      "criterion": "exact text of criterion",
      "satisfied": true,
      "reasoning": "Explanation with file:line references",
      "evidence": ["src/module.py:45", "tests/test_module.py:100"],
      "confidence": 0.95
    }
  ],
  "verdict": "<VERDICT>",
  "overallReasoning": "Summary of verification findings",
  "suggestions": ["Improvement suggestions if any"],
  "codeQualityNotes": ["Quality observations if any"]
}"""

CAPABILITY_SCHEMA = """{
  "languages": ["python"],
  "configFiles": ["pyproject.toml"],
  "packageManager": "pip",
  "test": {"available": true, "command": "pytest -q", "framework": "pytest", "confidence": 0.9,
           "selectiveFileTemplate": "pytest {files}", "selectiveNameTemplate": "pytest -k \\"{pattern}\\""},
  "e2e": {"available": false, "command": null, "framework": null, "confidence": 0.0,
          "configFile": null, "grepTemplate": null, "fileTemplate": null},
  "typecheck": {"available": true, "command": "mypy .", "confidence": 0.8},
  "lint": {"available": true, "command": "ruff check .", "confidence": 0.8},
  "build": {"available": false, "command": null, "confidence": 0.0},
  "customRules": [{"id": "migrations", "description": "Check migrations", "command": "make check-migrations", "type": "custom"}]
}"""


def format_criteria(acceptance: Sequence[str]) -> str:
    return "\n".join(f"{i + 1}. {criterion}" for i, criterion in enumerate(acceptance))


def _feature_block(feature: Feature) -> str:
    return (
        "## Feature Information\n\n"
        f"- **ID**: {feature.id}\n"
        f"- **Description**: {feature.description}\n"
        f"- **Module**: {feature.module}\n"
    )


def summarize_checks(results: Sequence[AutomatedCheckResult]) -> str:
    if not results:
        return "No automated checks were run."
    lines = []
    for r in results:
        status = "PASSED" if r.success else "FAILED"
        duration = f" ({r.duration_ms}ms)" if r.duration_ms else ""
        lines.append(f"- {r.type.value.upper()}: {status}{duration}")
    return "\n".join(lines)


def format_related_files(related_files: Dict[str, str], limit: int) -> str:
    if not related_files:
        return "No source files available."
    return "\n\n".join(
        f"### {name}\n\n```\n{truncate(content, limit)}\n```" for name, content in related_files.items()
    )


def build_verification_prompt(
    feature: Feature,
    diff: str,
    changed_files: List[str],
    automated_results: Sequence[AutomatedCheckResult],
    diff_limit: int,
    related_files: Optional[Dict[str, str]] = None,
    related_limit: int = 5000,
) -> str:
    """Prompt for reviewing a feature from its diff, changed sources and check results."""
    files = "\n".join(f"- {f}" for f in changed_files) or "- (none detected)"
    return (
        "You are a code reviewer verifying if changes satisfy acceptance criteria.\n\n"
        f"{_feature_block(feature)}\n"
        "## Acceptance Criteria to Verify\n\n"
        f"{format_criteria(feature.acceptance)}\n\n"
        "## Changed Files\n\n"
        f"{files}\n\n"
        "## Git Diff\n\n"
        f"```diff\n{truncate(diff, diff_limit)}\n```\n\n"
        "## Changed Source Files\n\n"
        f"{format_related_files(related_files or {}, related_limit)}\n\n"
        "## Automated Check Results\n\n"
        f"{summarize_checks(automated_results)}\n\n"
        "## Output\n\n"
        "Return ONLY a JSON object (no markdown, no explanation):\n\n"
        f"{RESPONSE_SCHEMA}\n\n"
        f"{VERDICT_RULES}\n\n"
        "Analyze the changes now."
    )


def build_diff_prompt(feature: Feature, diff: str) -> str:
    """Prompt for the ai strategy in ``diff`` mode (diff already truncated)."""
    return (
        "You are a code reviewer verifying if changes satisfy acceptance criteria.\n\n"
        f"{_feature_block(feature)}\n"
        "## Acceptance Criteria to Verify\n\n"
        f"{format_criteria(feature.acceptance)}\n\n"
        "## Git Diff\n\n"
        f"```diff\n{diff}\n```\n\n"
        "## Your Task\n\n"
        "Analyze the git diff and verify EACH acceptance criterion:\n\n"
        "1. Check if the changes implement the required functionality\n"
        "2. Verify the implementation matches the criterion requirements\n"
        "3. Assess confidence based on evidence in the diff\n\n"
        "## Output\n\n"
        "Return ONLY a JSON object (no markdown, no explanation):\n\n"
        f"{RESPONSE_SCHEMA}\n\n"
        f"{VERDICT_RULES}\n\n"
        "Analyze the diff now."
    )


def build_autonomous_prompt(
    cwd: Path, feature: Feature, automated_results: Sequence[AutomatedCheckResult] = ()
) -> str:
    """Prompt asking the agent to explore the working tree itself."""
    return (
        "You are a software verification expert. Verify if a feature's acceptance criteria are satisfied.\n\n"
        "## Working Directory\n\n"
        f"{cwd}\n\n"
        "You are currently working in this directory. Explore it using your available tools.\n\n"
        f"{_feature_block(feature)}\n"
        "## Acceptance Criteria to Verify\n\n"
        f"{format_criteria(feature.acceptance)}\n\n"
        "## Automated Check Results\n\n"
        f"{summarize_checks(automated_results)}\n\n"
        "## Your Task\n\n"
        "For each criterion: read the relevant source files, check for test coverage, "
        "and verify the implementation matches the requirement.\n\n"
        "## Output\n\n"
        "After your exploration, return ONLY a JSON object (no markdown, no explanation):\n\n"
        f"{RESPONSE_SCHEMA}\n\n"
        f"{VERDICT_RULES}\n\n"
        "Begin exploration now."
    )


def build_custom_prompt(cwd: Path, template: str, feature: Feature) -> str:
    """Fill ``{cwd}``, ``{featureId}`` and friends into a user-supplied template."""
    replacements = {
        "{cwd}": str(cwd),
        "{featureId}": feature.id,
        "{featureDescription}": feature.description,
        "{featureModule}": feature.module,
        "{acceptanceCriteria}": format_criteria(feature.acceptance),
    }
    prompt = template
    for placeholder, value in replacements.items():
        prompt = prompt.replace(placeholder, value)
    return prompt


def build_capability_discovery_prompt(cwd: Path) -> str:
    """Prompt asking the agent to discover the project's verification commands."""
    return (
        "You are analyzing a software project to find how it is tested, type-checked, linted and built.\n\n"
        "## Working Directory\n\n"
        f"{cwd}\n\n"
        "Inspect the build and configuration files (package.json, pyproject.toml, setup.cfg, "
        "Makefile, Cargo.toml, go.mod, CI workflows, ...). Only report commands that actually "
        "exist in this project. Use null for anything you cannot find.\n\n"
        "List every file you relied on in \"configFiles\" (paths relative to the working "
        "directory); changes to them invalidate the result.\n\n"
        "## Output\n\n"
        "Return ONLY a JSON object with this shape (no markdown, no explanation):\n\n"
        f"{CAPABILITY_SCHEMA}\n"
    )
