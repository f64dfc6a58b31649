#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Append-only verification history.

Layout under ``<project>/ai/verification``::

    index.json          # per-feature summary
    <feature-id>/001.json   # run 1, full result (outputs truncated)
    <feature-id>/001.md     # run 1, human-readable report

No file locking: concurrent writers to the same project race, last writer wins.
"""

import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from verdict import config
from verdict.debug_logger import get_logger
from verdict.models.results import Verdict, VerificationResult

_RUN_FILE_RE = re.compile(r"^(\d{3,})\.json$")


def _iso_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def verification_dir(cwd: Path) -> Path:
    return Path(cwd) / config.VERIFICATION_DIR


def _safe_id(feature_id: str) -> str:
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in feature_id)[:128] or "feature"


def format_run_number(num: int) -> str:
    return str(num).zfill(3)


def _write_atomic(path: Path, text: str) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8", errors="replace")
    os.replace(tmp_path, path)


def empty_index() -> Dict[str, Any]:
    return {"version": config.STORE_VERSION, "updatedAt": _iso_utc(), "features": {}}


def load_index(cwd: Path) -> Dict[str, Any]:
    """The index, or an empty one when missing or unreadable."""
    path = verification_dir(cwd) / "index.json"
    if not path.exists():
        return empty_index()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        get_logger().warning("Verification index %s is unreadable, starting fresh: %s", path, e)
        return empty_index()
    if not isinstance(data, dict) or not isinstance(data.get("features"), dict):
        return empty_index()
    return data


def _next_run_number(feature_dir: Path) -> int:
    if not feature_dir.is_dir():
        return 1
    numbers = [int(m.group(1)) for m in (_RUN_FILE_RE.match(p.name) for p in feature_dir.iterdir()) if m]
    return max(numbers, default=0) + 1


def _update_summary(index: Dict[str, Any], result: VerificationResult, run_number: int) -> None:
    summary = index["features"].get(result.feature_id) or {
        "featureId": result.feature_id,
        "totalRuns": 0,
        "passCount": 0,
        "failCount": 0,
    }
    summary["latestRun"] = run_number
    summary["latestTimestamp"] = result.timestamp
    summary["latestVerdict"] = result.verdict.value
    summary["totalRuns"] = summary.get("totalRuns", 0) + 1
    if result.verdict == Verdict.PASS:
        summary["passCount"] = summary.get("passCount", 0) + 1
    elif result.verdict == Verdict.FAIL:
        summary["failCount"] = summary.get("failCount", 0) + 1
    index["features"][result.feature_id] = summary
    index["version"] = config.STORE_VERSION
    index["updatedAt"] = _iso_utc()


def render_report(result: VerificationResult, run_number: int) -> str:
    """Markdown report for one run."""
    lines = [
        f"# Verification Report: {result.feature_id}",
        "",
        f"- **Run**: {format_run_number(run_number)}",
        f"- **Timestamp**: {result.timestamp}",
        f"- **Verdict**: {result.verdict.value.upper()}",
        f"- **Verified by**: {result.verified_by}",
    ]
    if result.mode is not None:
        lines.append(f"- **Mode**: {result.mode.value}")
    if result.commit_hash:
        lines.append(f"- **Commit**: {result.commit_hash}")
    lines.append(f"- **Changes**: {result.diff_summary or 'none'}")

    if result.criteria_results:
        lines += ["", "## Acceptance Criteria", ""]
        for c in result.criteria_results:
            mark = "x" if c.satisfied else " "
            lines.append(f"- [{mark}] {c.index + 1}. {c.criterion} ({round(c.confidence * 100)}%)")
            if c.reasoning:
                lines.append(f"  - {c.reasoning}")
            for item in c.evidence:
                lines.append(f"  - `{item}`")

    if result.automated_checks:
        lines += ["", "## Automated Checks", "", "| Check | Result | Duration |", "|---|---|---|"]
        for check in result.automated_checks:
            status = "PASS" if check.success else "FAIL"
            lines.append(f"| {check.type.value} | {status} | {check.duration_ms}ms |")

    if result.strategy_results:
        lines += ["", "## Strategies", ""]
        for s in result.strategy_results:
            status = "PASS" if s.success else "FAIL"
            optional = "" if s.required else " (optional)"
            lines.append(f"- **{s.type}**{optional}: {status}")

    lines += ["", "## Reasoning", "", result.overall_reasoning or "(none)"]
    if result.suggestions:
        lines += ["", "## Suggestions", ""]
        lines.extend(f"- {s}" for s in result.suggestions)
    if result.code_quality_notes:
        lines += ["", "## Code Quality Notes", ""]
        lines.extend(f"- {n}" for n in result.code_quality_notes)
    return "\n".join(lines) + "\n"


def save_verification_result(cwd: Path, result: VerificationResult) -> int:
    """Persist a run and update the index. Returns the run number.

    Raises:
        OSError: the verification directory cannot be written
    """
    root = verification_dir(cwd)
    feature_dir = root / _safe_id(result.feature_id)
    feature_dir.mkdir(parents=True, exist_ok=True)

    run_number = _next_run_number(feature_dir)
    run_name = format_run_number(run_number)
    _write_atomic(
        feature_dir / f"{run_name}.json",
        json.dumps(result.to_dict(config.STORED_OUTPUT_LIMIT), indent=2, ensure_ascii=False),
    )
    _write_atomic(feature_dir / f"{run_name}.md", render_report(result, run_number))

    index = load_index(cwd)
    _update_summary(index, result, run_number)
    _write_atomic(root / "index.json", json.dumps(index, indent=2, ensure_ascii=False))

    get_logger().log("store", "RUN_SAVED", {
        "feature_id": result.feature_id,
        "run": run_number,
        "verdict": result.verdict.value,
    })
    return run_number


def get_feature_summary(cwd: Path, feature_id: str) -> Optional[Dict[str, Any]]:
    return load_index(cwd)["features"].get(feature_id)


def load_run(cwd: Path, feature_id: str, run_number: int) -> Optional[VerificationResult]:
    path = verification_dir(cwd) / _safe_id(feature_id) / f"{format_run_number(run_number)}.json"
    if not path.exists():
        return None
    try:
        return VerificationResult.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, KeyError, TypeError) as e:
        get_logger().warning("Could not read verification run %s: %s", path, e)
        return None


def get_run_history(cwd: Path, feature_id: str) -> List[VerificationResult]:
    """All readable runs for a feature, oldest first."""
    feature_dir = verification_dir(cwd) / _safe_id(feature_id)
    if not feature_dir.is_dir():
        return []
    numbers = sorted(int(m.group(1)) for m in (_RUN_FILE_RE.match(p.name) for p in feature_dir.iterdir()) if m)
    runs = [load_run(cwd, feature_id, n) for n in numbers]
    return [r for r in runs if r is not None]


def get_latest_result(cwd: Path, feature_id: str) -> Optional[VerificationResult]:
    summary = get_feature_summary(cwd, feature_id)
    if summary and summary.get("latestRun"):
        return load_run(cwd, feature_id, int(summary["latestRun"]))
    history = get_run_history(cwd, feature_id)
    return history[-1] if history else None
