#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for agent retries and AI analysis."""

import pytest
from conftest import FakeAgent, verification_json

from verdict.agents.base import AgentResponse
from verdict.execution.ai_analysis import (
    RetryConfig,
    analyze_with_ai,
    calculate_backoff,
    call_with_retry,
    is_transient_error,
)
from verdict.models.results import Verdict

RETRY = RetryConfig(max_retries=3, base_delay_ms=1000, max_delay_ms=10000)


def _fail(error: str) -> AgentResponse:
    return AgentResponse(success=False, error=error, agent_used="fake")


class TestTransientClassification:
    @pytest.mark.parametrize("error", [
        "Request timed out",
        "connect ECONNREFUSED 127.0.0.1:11434",
        "socket hang up",
        "HTTP 503 Service Unavailable",
        "429 Too Many Requests",
        "rate limit exceeded",
        "model is overloaded",
    ])
    def test_transient(self, error):
        assert is_transient_error(error)

    @pytest.mark.parametrize("error", [None, "", "invalid API key", "claude exited with code 1: bad flag"])
    def test_not_transient(self, error):
        assert not is_transient_error(error)


class TestBackoff:
    def test_doubles_per_attempt(self):
        assert [calculate_backoff(n, RETRY) for n in (1, 2, 3)] == [1000, 2000, 4000]

    def test_is_capped(self):
        assert calculate_backoff(10, RETRY) == 10000


class TestCallWithRetry:
    def test_recovers_after_two_transient_failures(self, recording_sleep):
        agent = FakeAgent([_fail("ECONNRESET"), _fail("503 Service Unavailable"), "ok"])

        response = call_with_retry(agent, "prompt", retry_config=RETRY, sleep=recording_sleep)

        assert response.success
        assert response.output == "ok"
        assert agent.call_count == 3
        assert recording_sleep.delays == [1.0, 2.0]
        assert recording_sleep.delays[0] < recording_sleep.delays[1]

    def test_non_transient_failure_is_not_retried(self, recording_sleep):
        agent = FakeAgent([_fail("invalid API key")])

        response = call_with_retry(agent, "prompt", retry_config=RETRY, sleep=recording_sleep)

        assert not response.success
        assert agent.call_count == 1
        assert recording_sleep.delays == []

    def test_gives_up_after_max_attempts(self, recording_sleep):
        agent = FakeAgent([_fail("network unreachable")])

        response = call_with_retry(agent, "prompt", retry_config=RETRY, sleep=recording_sleep)

        assert not response.success
        assert response.error == "network unreachable"
        assert agent.call_count == 3
        assert recording_sleep.delays == [1.0, 2.0]

    def test_transient_marker_in_output_counts(self, recording_sleep):
        agent = FakeAgent([AgentResponse(success=False, output="upstream timeout", error="exit 1"), "ok"])
        assert call_with_retry(agent, "p", retry_config=RETRY, sleep=recording_sleep).success

    def test_raising_agent_is_treated_as_failure(self, recording_sleep):
        agent = FakeAgent([ConnectionError("connection reset by peer"), "ok"])

        response = call_with_retry(agent, "p", retry_config=RETRY, sleep=recording_sleep)

        assert response.success
        assert agent.call_count == 2

    def test_passes_call_options_through(self, tmp_path, recording_sleep):
        agent = FakeAgent(["ok"])
        call_with_retry(agent, "p", cwd=tmp_path, timeout_ms=1234, preferred_model="m",
                        retry_config=RETRY, sleep=recording_sleep)
        assert agent.calls[0] == {"timeout_ms": 1234, "cwd": tmp_path, "preferred_model": "m"}


class TestAnalyzeWithAI:
    ACCEPTANCE = ["Button renders", "Click submits the form"]

    def test_parses_successful_answer(self, recording_sleep):
        agent = FakeAgent([verification_json("pass", [
            {"index": 0, "satisfied": True, "reasoning": "rendered", "confidence": 0.9},
            {"index": 1, "satisfied": True, "reasoning": "submits", "confidence": 0.8},
        ])])

        parsed = analyze_with_ai(agent, "prompt", self.ACCEPTANCE, retry_config=RETRY, sleep=recording_sleep)

        assert parsed.verdict == Verdict.PASS
        assert parsed.agent_used == "fake"
        assert [c.satisfied for c in parsed.criteria_results] == [True, True]

    def test_exhausted_retries_need_review(self, recording_sleep):
        agent = FakeAgent([_fail("Request timed out")])

        parsed = analyze_with_ai(agent, "prompt", self.ACCEPTANCE, retry_config=RETRY, sleep=recording_sleep)

        assert parsed.verdict == Verdict.NEEDS_REVIEW
        assert parsed.agent_used == "none"
        assert parsed.overall_reasoning == "AI analysis failed after retries"
        assert len(parsed.criteria_results) == 2
        assert all(c.reasoning == "AI analysis failed: Request timed out" for c in parsed.criteria_results)
