#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for framework-aware test and e2e command construction."""

import pytest

from verdict.execution.commands import (
    add_case_filter,
    add_pattern,
    build_e2e_command,
    build_e2e_file_command,
    build_e2e_grep_command,
    build_selective_test_command,
    detect_framework,
    determine_e2e_mode,
    is_glob_pattern,
)
from verdict.models.capabilities import CapabilityInfo


@pytest.mark.parametrize("command, framework", [
    ("npx vitest run", "vitest"),
    ("npx jest --ci", "jest"),
    ("python -m pytest -q", "pytest"),
    ("go test ./...", "go"),
    ("cargo test", "cargo"),
    ("cargo test --workspace", "cargo"),
    ("go test -v ./pkg/...", "go"),
    ("npx mocha", "mocha"),
    ("make check", "unknown"),
])
def test_detect_framework(command, framework):
    assert detect_framework(command) == framework


def test_glob_detection():
    assert is_glob_pattern("src/**/*.py")
    assert not is_glob_pattern("TestLogin")


class TestSelectiveTests:
    def test_templates_win(self):
        info = CapabilityInfo(True, "pytest -q", framework="pytest",
                              selective_file_template="pytest -q {files}",
                              selective_name_template='pytest -q -k "{pattern}"')
        assert build_selective_test_command(info, None, ["tests/a.py", "tests/b.py"]) == "pytest -q tests/a.py tests/b.py"
        assert build_selective_test_command(info, "login") == 'pytest -q -k "login"'

    @pytest.mark.parametrize("command, expected", [
        ("pytest -q", 'pytest -k "login"'),
        ("npx vitest run", 'npx vitest run --testNamePattern "login"'),
        ("npx jest", 'npx jest --testPathPattern "login"'),
        ("go test ./...", 'go test -run "login" ./...'),
        ("npm test", 'npm test -- "login"'),
        ("make test", "make test"),
    ])
    def test_fallback_patterns(self, command, expected):
        assert build_selective_test_command(CapabilityInfo(True, command), "login") == expected

    def test_cargo_is_not_mistaken_for_go(self):
        info = CapabilityInfo(True, "cargo test")
        assert build_selective_test_command(info, "parse") == 'cargo test "parse"'

    def test_go_ignores_glob_patterns(self):
        assert build_selective_test_command(CapabilityInfo(True, "go test ./..."), "*_test.go") == "go test ./..."

    def test_nothing_to_narrow(self):
        assert build_selective_test_command(CapabilityInfo(True, "pytest"), None) == "pytest"
        assert build_selective_test_command(CapabilityInfo(False), "login") is None


def test_add_pattern_and_cases():
    assert add_pattern("npx jest", "auth") == 'npx jest --testPathPattern="auth"'
    assert add_pattern("pytest", "tests/test_auth.py") == "pytest tests/test_auth.py"
    assert add_case_filter("npx vitest run", ["a", "b"]) == 'npx vitest run -t "a|b"'
    assert add_case_filter("make test", ["a"]) == "make test"


class TestE2E:
    PLAYWRIGHT = CapabilityInfo(True, "npx playwright test", framework="playwright")

    @pytest.mark.parametrize("test_mode, has_tags, mode", [
        ("skip", True, "skip"),
        ("full", True, "full"),
        ("quick", True, "tags"),
        ("quick", False, "smoke"),
    ])
    def test_mode_follows_test_mode(self, test_mode, has_tags, mode):
        assert determine_e2e_mode(test_mode, has_tags) == mode

    def test_commands_per_mode(self):
        assert build_e2e_command(self.PLAYWRIGHT, [], "full") == "npx playwright test"
        assert build_e2e_command(self.PLAYWRIGHT, [], "smoke") == 'npx playwright test --grep "@smoke"'
        assert build_e2e_command(self.PLAYWRIGHT, ["@auth"], "tags") == 'npx playwright test --grep "@auth"'
        assert build_e2e_command(self.PLAYWRIGHT, ["*"], "tags") == "npx playwright test"
        assert build_e2e_command(self.PLAYWRIGHT, ["@auth"], "skip") is None
        assert build_e2e_command(CapabilityInfo(), ["@auth"], "tags") is None

    def test_cypress(self):
        info = CapabilityInfo(True, "npx cypress run", framework="cypress")
        assert build_e2e_grep_command(info, ["@a", "@b"]) == 'npx cypress run --spec "**/*" --env grep="@a|@b"'
        assert build_e2e_file_command(info, "cypress/e2e/login.cy.ts") == 'npx cypress run --spec "cypress/e2e/login.cy.ts"'
