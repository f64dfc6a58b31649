#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Parsing of free-form AI verification output.

Agents wrap JSON in prose and code fences, drop criteria, and invent verdicts.
``parse_ai_response`` turns whatever came back into a ParsedAIResponse with
exactly one CriterionResult per acceptance criterion, in criterion order.
"""

import json
import re
from typing import Any, Dict, List, Optional

from verdict.debug_logger import get_logger
from verdict.models.results import CriterionResult, ParsedAIResponse, Verdict

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)

NOT_ANALYZED_REASONING = "Criterion not analyzed by AI"


def strip_code_fences(content: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(content)
    return match.group(1) if match else content


def extract_json_substrings(content: str) -> List[str]:
    """Extract balanced JSON object substrings from text, ignoring braces inside strings."""
    substrings = []
    depth = 0
    start_idx = None
    in_string = False
    escape = False

    for index, char in enumerate(content):
        if in_string:
            if escape:
                escape = False
            elif char == '\\':
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            if depth > 0:
                in_string = True
            continue

        if char == '{':
            if depth == 0:
                start_idx = index
            depth += 1
        elif char == '}' and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                substrings.append(content[start_idx:index + 1])
                start_idx = None

    return substrings


def parse_json_from_text(content: str) -> Optional[Dict[str, Any]]:
    """First JSON object found in ``content``, or None."""
    if not content or not content.strip():
        return None

    stripped = strip_code_fences(content).strip()
    try:
        parsed = json.loads(stripped)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    for candidate in extract_json_substrings(stripped):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    return None


def _confidence(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return min(1.0, max(0.0, number))


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _index_entries(raw_results: List[Any], count: int) -> Dict[int, Dict[str, Any]]:
    """Map criterion index -> AI entry; entries without an index use their position."""
    by_index: Dict[int, Dict[str, Any]] = {}
    unindexed = []
    for position, entry in enumerate(raw_results):
        if not isinstance(entry, dict):
            continue
        index = entry.get("index")
        if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < count:
            by_index.setdefault(index, entry)
        elif index is None:
            unindexed.append((position, entry))
    for position, entry in unindexed:
        if position < count:
            by_index.setdefault(position, entry)
    return by_index


def failure_response(
    acceptance: List[str], reasoning: str, overall_reasoning: str, agent_used: Optional[str] = None
) -> ParsedAIResponse:
    """A needs_review response where every criterion carries ``reasoning``."""
    return ParsedAIResponse(
        criteria_results=[
            CriterionResult(
                criterion=criterion,
                index=i,
                satisfied=False,
                reasoning=reasoning,
                evidence=[],
                confidence=0.0,
            )
            for i, criterion in enumerate(acceptance)
        ],
        verdict=Verdict.NEEDS_REVIEW,
        overall_reasoning=overall_reasoning,
        suggestions=[],
        agent_used=agent_used,
    )


def parse_ai_response(response: str, acceptance: List[str]) -> ParsedAIResponse:
    """Reconcile raw AI output against the known acceptance criteria.

    Never raises. Malformed output yields a needs_review response with one
    default entry per criterion.
    """
    try:
        parsed = parse_json_from_text(response or "")
        if parsed is None:
            raise ValueError("No JSON object found in AI response")

        raw_results = parsed.get("criteriaResults", parsed.get("criteria_results"))
        entries = _index_entries(raw_results if isinstance(raw_results, list) else [], len(acceptance))

        criteria_results = []
        for i, criterion in enumerate(acceptance):
            entry = entries.get(i)
            if entry is None:
                criteria_results.append(CriterionResult(
                    criterion=criterion,
                    index=i,
                    satisfied=False,
                    reasoning=NOT_ANALYZED_REASONING,
                    evidence=[],
                    confidence=0.0,
                ))
                continue
            criteria_results.append(CriterionResult(
                criterion=criterion,
                index=i,
                satisfied=entry.get("satisfied") is True,
                reasoning=str(entry.get("reasoning") or "No reasoning provided"),
                evidence=_str_list(entry.get("evidence")),
                confidence=_confidence(entry.get("confidence"), 0.5),
            ))

        return ParsedAIResponse(
            criteria_results=criteria_results,
            verdict=Verdict.coerce(parsed.get("verdict")),
            overall_reasoning=str(parsed.get("overallReasoning", parsed.get("overall_reasoning")) or ""),
            suggestions=_str_list(parsed.get("suggestions")),
            code_quality_notes=_str_list(parsed.get("codeQualityNotes", parsed.get("code_quality_notes"))),
        )
    except Exception as e:
        get_logger().log("ai", "PARSE_FAILED", {"error": str(e), "response_head": (response or "")[:300]}, "DEBUG")
        return failure_response(
            acceptance,
            reasoning=f"Failed to parse AI response: {e}",
            overall_reasoning="AI response could not be parsed",
        )
