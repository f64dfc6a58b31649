#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""AI strategy: ask the agent to judge the acceptance criteria."""

import time
from typing import List, Optional

from verdict import config
from verdict.execution.ai_analysis import call_with_retry
from verdict.execution.prompts import build_autonomous_prompt, build_custom_prompt, build_diff_prompt
from verdict.execution.response_parser import parse_ai_response
from verdict.models.results import ParsedAIResponse, StrategyResult, Verdict
from verdict.models.strategies import AIStrategy, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.tools.git_ops import get_diff_for_review

REASONING_PREVIEW = 200


def format_ai_output(parsed: ParsedAIResponse, verdict: Verdict) -> str:
    lines = [f"AI Verification: {verdict.value.upper()}", "", "Criteria Results:"]
    for result in parsed.criteria_results:
        status = "[PASS]" if result.satisfied else "[FAIL]"
        lines.append(
            f"  {status} Criterion {result.index + 1} ({round(result.confidence * 100)}%): {result.criterion}"
        )
        if result.reasoning:
            reasoning = result.reasoning
            if len(reasoning) > REASONING_PREVIEW:
                reasoning = reasoning[:REASONING_PREVIEW] + "..."
            lines.append(f"       {reasoning}")
    if parsed.overall_reasoning:
        lines += ["", f"Overall: {parsed.overall_reasoning}"]
    if parsed.suggestions:
        lines += ["", "Suggestions:"]
        lines.extend(f"  - {s}" for s in parsed.suggestions)
    return "\n".join(lines)


class AIStrategyExecutor(StrategyExecutor):
    """Diff review, autonomous exploration, or a custom prompt."""

    strategy_type = StrategyType.AI

    def build_prompt(self, strategy: AIStrategy, context: StrategyContext) -> str:
        feature = context.feature
        if strategy.custom_prompt:
            return build_custom_prompt(context.cwd, strategy.custom_prompt, feature)
        if strategy.mode == "autonomous":
            return build_autonomous_prompt(context.cwd, feature)
        return build_diff_prompt(feature, get_diff_for_review(context.cwd, config.DIFF_PROMPT_LIMIT))

    def execute(self, strategy: AIStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        min_confidence = strategy.min_confidence if strategy.min_confidence is not None else config.AI_MIN_CONFIDENCE

        if context.agent is None:
            return StrategyResult(False, "AI verification failed: no AI agent available",
                                  elapsed_ms(started), {"reason": "no-agent"})

        response = call_with_retry(
            context.agent,
            self.build_prompt(strategy, context),
            cwd=context.cwd,
            timeout_ms=strategy.timeout_ms or config.AI_TIMEOUT_MS,
            preferred_model=strategy.model,
        )
        if not response.success:
            return StrategyResult(
                False,
                f"AI verification failed: {response.error or 'Unknown error'}",
                elapsed_ms(started),
                {"reason": "ai-call-failed", "error": response.error, "agent_used": response.agent_used},
            )

        parsed = parse_ai_response(response.output, context.feature.acceptance)
        parsed.agent_used = response.agent_used

        low_confidence: List[str] = [
            r.criterion for r in parsed.criteria_results if r.satisfied and r.confidence < min_confidence
        ]
        verdict = parsed.verdict
        success = verdict == Verdict.PASS
        if success and low_confidence:
            success = False
            verdict = Verdict.NEEDS_REVIEW

        return StrategyResult(
            success=success,
            output=format_ai_output(parsed, verdict),
            duration_ms=elapsed_ms(started),
            details={
                "mode": "custom" if strategy.custom_prompt else strategy.mode,
                "agent_used": response.agent_used,
                "verdict": verdict.value,
                "criteria_results": parsed.criteria_results,
                "overall_reasoning": parsed.overall_reasoning,
                "suggestions": parsed.suggestions,
                "code_quality_notes": parsed.code_quality_notes,
                "min_confidence": min_confidence,
                "low_confidence_criteria": low_confidence,
            },
        )
