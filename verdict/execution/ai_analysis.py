#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""AI analysis: call the agent, retry transient failures, parse the verdict."""

import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from verdict import config
from verdict.agents.base import AIAgent, AgentResponse
from verdict.debug_logger import get_logger
from verdict.execution.response_parser import failure_response, parse_ai_response
from verdict.models.results import ParsedAIResponse


@dataclass
class RetryConfig:
    """Retry behaviour for agent calls."""
    max_retries: int = 3  # total attempts, including the first
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000

    @classmethod
    def from_config(cls) -> "RetryConfig":
        return cls(
            max_retries=config.AI_MAX_RETRIES,
            base_delay_ms=config.AI_RETRY_BASE_MS,
            max_delay_ms=config.AI_RETRY_MAX_MS,
        )


TRANSIENT_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"timeout",
        r"timed?\s*out",
        r"ETIMEDOUT",
        r"ECONNRESET",
        r"ECONNREFUSED",
        r"ENETUNREACH",
        r"network",
        r"socket hang up",
        r"connection.*(?:reset|refused|closed)",
        r"temporarily unavailable",
        r"rate limit",
        r"too many requests",
        r"\b429\b",
        r"\b502\b",
        r"\b503\b",
        r"\b504\b",
        r"overloaded",
        r"capacity",
    )
]


def is_transient_error(error: Optional[str]) -> bool:
    """True when an error message looks likely to succeed on retry."""
    if not error:
        return False
    return any(pattern.search(error) for pattern in TRANSIENT_PATTERNS)


def calculate_backoff(attempt: int, retry_config: Optional[RetryConfig] = None) -> int:
    """Delay in ms before retrying after failed ``attempt`` (1-indexed).

    Exponential backoff: base * 2^(attempt-1), capped at max_delay_ms.
    """
    retry_config = retry_config or RetryConfig.from_config()
    delay = retry_config.base_delay_ms * (2 ** (attempt - 1))
    return min(delay, retry_config.max_delay_ms)


def _call_agent(agent: AIAgent, prompt: str, **kwargs) -> AgentResponse:
    try:
        return agent.call(prompt, **kwargs)
    except Exception as e:
        # Agents should report failures as values; treat a raise the same way.
        return AgentResponse(success=False, error=f"{type(e).__name__}: {e}")


def call_with_retry(
    agent: AIAgent,
    prompt: str,
    *,
    cwd: Optional[Path] = None,
    timeout_ms: Optional[int] = None,
    preferred_model: Optional[str] = None,
    show_progress: bool = False,
    retry_config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> AgentResponse:
    """Call the agent, retrying transient failures with exponential backoff.

    At most ``retry_config.max_retries`` attempts are made. A non-transient
    failure returns immediately. The last failed response is returned when
    every attempt fails.
    """
    retry_config = retry_config or RetryConfig.from_config()
    timeout_ms = timeout_ms if timeout_ms is not None else config.AI_TIMEOUT_MS
    response = AgentResponse(success=False, error="No attempts made")

    for attempt in range(1, max(1, retry_config.max_retries) + 1):
        response = _call_agent(
            agent,
            prompt,
            timeout_ms=timeout_ms,
            cwd=cwd,
            preferred_model=preferred_model,
            show_progress=show_progress,
        )
        if response.success:
            if attempt > 1:
                get_logger().log("ai", "RETRY_SUCCEEDED", {"attempt": attempt, "agent": response.agent_used})
            return response

        error = response.error or "Unknown agent error"
        transient = is_transient_error(f"{error} {response.output or ''}")
        get_logger().log("ai", "AGENT_CALL_FAILED", {
            "attempt": attempt,
            "error": error,
            "transient": transient,
        }, "WARNING" if transient else "ERROR")

        if not transient:
            break

        if attempt < retry_config.max_retries:
            delay_ms = calculate_backoff(attempt, retry_config)
            sleep(delay_ms / 1000)

    return response


def analyze_with_ai(
    agent: AIAgent,
    prompt: str,
    acceptance: List[str],
    *,
    cwd: Optional[Path] = None,
    timeout_ms: Optional[int] = None,
    preferred_model: Optional[str] = None,
    show_progress: bool = False,
    retry_config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ParsedAIResponse:
    """Send ``prompt`` to the agent and reconcile its answer with ``acceptance``.

    The result always has one criterion entry per acceptance criterion. When
    every attempt fails, each criterion carries the agent's error and the
    verdict is needs_review.
    """
    response = call_with_retry(
        agent,
        prompt,
        cwd=cwd,
        timeout_ms=timeout_ms,
        preferred_model=preferred_model,
        show_progress=show_progress,
        retry_config=retry_config,
        sleep=sleep,
    )

    if not response.success:
        return failure_response(
            acceptance,
            reasoning=f"AI analysis failed: {response.error or 'Unknown agent error'}",
            overall_reasoning="AI analysis failed after retries",
            agent_used="none",
        )

    parsed = parse_ai_response(response.output, acceptance)
    parsed.agent_used = response.agent_used
    get_logger().log("ai", "ANALYSIS_COMPLETE", {
        "agent": response.agent_used,
        "verdict": parsed.verdict.value,
    })
    return parsed
