#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Test and E2E strategies: run the project's own test suites."""

import time
from dataclasses import replace
from typing import Dict, Optional

from verdict import config
from verdict.execution.commands import (
    add_case_filter,
    add_pattern,
    build_e2e_file_command,
    build_e2e_grep_command,
)
from verdict.models.results import StrategyResult
from verdict.models.strategies import E2EStrategy, StrategyType, TestStrategy
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.tools.command_runner import CommandResult


def _run(context: StrategyContext, command: str, timeout_ms: int, env: Dict[str, str]) -> CommandResult:
    return context.runner.run(command, cwd=context.cwd, timeout_ms=timeout_ms, env={"CI": "true", **env})


def _to_result(label: str, command: str, result: CommandResult, timeout_ms: int,
               started: float, details: Dict) -> StrategyResult:
    output = result.stdout + (f"\n{result.stderr}" if result.stderr else "")
    if result.timed_out:
        return StrategyResult(False, f"{label} execution timed out after {timeout_ms}ms\n{output}",
                              elapsed_ms(started), {"reason": "timeout", "timeout_ms": timeout_ms})
    if result.error:
        output = output or result.error
    return StrategyResult(
        success=result.success,
        output=output,
        duration_ms=elapsed_ms(started),
        details={"command": command, "exit_code": result.exit_code, **details},
    )


class TestStrategyExecutor(StrategyExecutor):
    """Runs the detected unit test command, optionally narrowed."""

    __test__ = False
    strategy_type = StrategyType.TEST

    def execute(self, strategy: TestStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        timeout_ms = strategy.timeout_ms or config.TEST_TIMEOUT_MS
        capabilities = context.resolve_capabilities()
        base: Optional[str] = capabilities.test_command
        if not base:
            return StrategyResult(False, "No test framework detected in project",
                                  elapsed_ms(started), {"reason": "no-test-framework"})

        framework = strategy.framework or capabilities.test.framework
        command = base
        if strategy.pattern:
            command = add_pattern(command, strategy.pattern, framework)
        if strategy.cases:
            command = add_case_filter(command, strategy.cases, framework)

        result = _run(context, command, timeout_ms, strategy.env)
        return _to_result("Test", command, result, timeout_ms, started,
                          {"pattern": strategy.pattern, "cases": list(strategy.cases)})


class E2EStrategyExecutor(StrategyExecutor):
    """Runs the detected e2e command, filtered by tags or a file pattern."""

    strategy_type = StrategyType.E2E

    def execute(self, strategy: E2EStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        timeout_ms = strategy.timeout_ms or config.E2E_TIMEOUT_MS
        info = context.resolve_capabilities().e2e
        if not info.runnable:
            return StrategyResult(False, "No E2E framework detected in project",
                                  elapsed_ms(started), {"reason": "no-e2e-framework"})

        if strategy.framework and not info.framework:
            info = replace(info, framework=strategy.framework)

        if strategy.tags:
            command = build_e2e_grep_command(info, strategy.tags)
        elif strategy.pattern:
            command = build_e2e_file_command(info, strategy.pattern)
        else:
            command = info.command

        result = _run(context, command, timeout_ms, strategy.env)
        return _to_result("E2E", command, result, timeout_ms, started,
                          {"pattern": strategy.pattern, "tags": list(strategy.tags),
                           "scenarios": list(strategy.scenarios)})
