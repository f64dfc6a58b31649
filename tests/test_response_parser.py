#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for parsing free-form AI verification output."""

import json

from verdict.execution.response_parser import (
    NOT_ANALYZED_REASONING,
    extract_json_substrings,
    failure_response,
    parse_ai_response,
    parse_json_from_text,
)
from verdict.models.results import Verdict

ACCEPTANCE = ["Users can log in", "Sessions expire after 30 minutes", "Failed logins are rate limited"]


class TestCriteriaCount:
    """The parsed response always carries one entry per acceptance criterion."""

    def test_missing_criteria_are_filled_in_order(self):
        response = json.dumps({
            "criteriaResults": [
                {"index": 1, "satisfied": True, "reasoning": "Timeout set", "evidence": ["auth.py:12"],
                 "confidence": 0.9},
            ],
            "verdict": "pass",
            "overallReasoning": "Only checked the session code",
        })

        parsed = parse_ai_response(response, ACCEPTANCE)

        assert len(parsed.criteria_results) == 3
        assert [c.index for c in parsed.criteria_results] == [0, 1, 2]
        assert [c.criterion for c in parsed.criteria_results] == ACCEPTANCE
        assert parsed.criteria_results[1].satisfied is True
        assert parsed.criteria_results[1].evidence == ["auth.py:12"]
        for i in (0, 2):
            assert parsed.criteria_results[i].satisfied is False
            assert parsed.criteria_results[i].reasoning == NOT_ANALYZED_REASONING
            assert parsed.criteria_results[i].confidence == 0.0
        # The AI's verdict is kept even though two criteria were not analyzed
        assert parsed.verdict == Verdict.PASS

    def test_extra_and_out_of_range_entries_are_ignored(self):
        response = json.dumps({
            "criteriaResults": [
                {"index": 0, "satisfied": True, "confidence": 0.8},
                {"index": 7, "satisfied": True},
                {"index": True, "satisfied": True},
                "not an object",
            ],
            "verdict": "pass",
        })

        parsed = parse_ai_response(response, ACCEPTANCE)

        assert len(parsed.criteria_results) == 3
        assert parsed.criteria_results[0].satisfied is True
        assert parsed.criteria_results[1].reasoning == NOT_ANALYZED_REASONING
        assert parsed.criteria_results[2].reasoning == NOT_ANALYZED_REASONING

    def test_entries_without_index_use_their_position(self):
        response = json.dumps({
            "criteriaResults": [
                {"satisfied": True, "reasoning": "first"},
                {"satisfied": False, "reasoning": "second"},
            ],
            "verdict": "fail",
        })

        parsed = parse_ai_response(response, ACCEPTANCE)

        assert parsed.criteria_results[0].reasoning == "first"
        assert parsed.criteria_results[1].reasoning == "second"
        assert parsed.criteria_results[2].reasoning == NOT_ANALYZED_REASONING

    def test_empty_acceptance_gives_empty_results(self):
        parsed = parse_ai_response('{"verdict": "pass"}', [])
        assert parsed.criteria_results == []
        assert parsed.verdict == Verdict.PASS


class TestMalformedOutput:
    def test_prose_without_json_needs_review(self):
        parsed = parse_ai_response("I think it all looks fine!", ACCEPTANCE)

        assert parsed.verdict == Verdict.NEEDS_REVIEW
        assert len(parsed.criteria_results) == 3
        assert all(not c.satisfied for c in parsed.criteria_results)
        assert all(c.reasoning.startswith("Failed to parse AI response") for c in parsed.criteria_results)

    def test_empty_output_needs_review(self):
        parsed = parse_ai_response("", ACCEPTANCE)
        assert parsed.verdict == Verdict.NEEDS_REVIEW
        assert len(parsed.criteria_results) == 3

    def test_unknown_verdict_becomes_needs_review(self):
        parsed = parse_ai_response('{"verdict": "mostly-ok", "criteriaResults": []}', ACCEPTANCE)
        assert parsed.verdict == Verdict.NEEDS_REVIEW

    def test_confidence_is_clamped_and_defaulted(self):
        response = json.dumps({
            "criteriaResults": [
                {"index": 0, "satisfied": True, "confidence": 1.7},
                {"index": 1, "satisfied": True, "confidence": -2},
                {"index": 2, "satisfied": True, "confidence": "high"},
            ],
            "verdict": "pass",
        })

        confidences = [c.confidence for c in parse_ai_response(response, ACCEPTANCE).criteria_results]

        assert confidences == [1.0, 0.0, 0.5]

    def test_satisfied_must_be_literal_true(self):
        response = json.dumps({
            "criteriaResults": [{"index": 0, "satisfied": "yes"}],
            "verdict": "pass",
        })
        assert parse_ai_response(response, ACCEPTANCE).criteria_results[0].satisfied is False


class TestJsonExtraction:
    def test_fenced_json_inside_prose(self):
        text = "Here is my analysis:\n```json\n{\"verdict\": \"fail\", \"suggestions\": [\"add tests\"]}\n```\nThanks"

        parsed = parse_ai_response(text, ["a"])

        assert parsed.verdict == Verdict.FAIL
        assert parsed.suggestions == ["add tests"]

    def test_braces_inside_strings_do_not_split_objects(self):
        text = 'prefix {"a": "has } brace", "b": {"c": 1}} suffix {"d": 2}'

        assert extract_json_substrings(text) == ['{"a": "has } brace", "b": {"c": 1}}', '{"d": 2}']

    def test_first_valid_object_wins(self):
        assert parse_json_from_text('{broken} then {"verdict": "pass"}') == {"verdict": "pass"}

    def test_snake_case_keys_are_accepted(self):
        response = json.dumps({
            "criteria_results": [{"index": 0, "satisfied": True}],
            "verdict": "pass",
            "overall_reasoning": "ok",
            "code_quality_notes": ["tidy"],
        })

        parsed = parse_ai_response(response, ["a"])

        assert parsed.criteria_results[0].satisfied is True
        assert parsed.overall_reasoning == "ok"
        assert parsed.code_quality_notes == ["tidy"]


def test_failure_response_marks_every_criterion():
    parsed = failure_response(ACCEPTANCE, reasoning="boom", overall_reasoning="failed", agent_used="none")

    assert parsed.verdict == Verdict.NEEDS_REVIEW
    assert parsed.agent_used == "none"
    assert [c.reasoning for c in parsed.criteria_results] == ["boom"] * 3
