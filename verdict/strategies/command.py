#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Command strategy: run a project command and assert on exit code and output."""

import re
import time
from typing import List, Optional

from verdict import config
from verdict.models.results import StrategyResult
from verdict.models.strategies import CommandStrategy, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.strategies.safety import exit_code_matches, find_dangerous_pattern, is_within_root, quote_command


def clip(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def format_output(exit_code: int, failures: List[str], stdout: str, stderr: str) -> str:
    limit = config.COMMAND_OUTPUT_LIMIT
    lines = [f"Exit code: {exit_code}", *failures, "", "STDOUT:", clip(stdout, limit)]
    if stderr:
        lines += ["", "STDERR:", clip(stderr, limit)]
    return "\n".join(lines)


def _first_match(patterns: List[str], text: str) -> Optional[str]:
    for pattern in patterns:
        if re.search(pattern, text):
            return pattern
    return None


class CommandStrategyExecutor(StrategyExecutor):
    """Runs a denylist-checked shell command inside the project root."""

    strategy_type = StrategyType.COMMAND

    def execute(self, strategy: CommandStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        timeout_ms = strategy.timeout_ms or config.COMMAND_TIMEOUT_MS

        working_dir = (context.cwd / strategy.cwd).resolve() if strategy.cwd else context.cwd
        if not is_within_root(context.cwd, working_dir):
            return StrategyResult(False, f"Working directory must be within project root: {working_dir}",
                                  elapsed_ms(started), {"reason": "security-violation", "cwd": strategy.cwd})

        command = quote_command(strategy.command, strategy.args)
        danger = find_dangerous_pattern(command)
        if danger:
            return StrategyResult(False, f"Command contains dangerous pattern: {danger}",
                                  elapsed_ms(started), {"reason": "security-violation", "command": command})

        result = context.runner.run(
            command,
            cwd=working_dir,
            timeout_ms=timeout_ms,
            env={"CI": "true", **strategy.env},
        )
        if result.timed_out:
            return StrategyResult(False, f"Command execution timed out after {timeout_ms}ms",
                                  elapsed_ms(started), {"reason": "timeout", "timeout_ms": timeout_ms})
        if result.error:
            return StrategyResult(False, f"Command execution failed: {result.error}",
                                  elapsed_ms(started), {"reason": "error", "error": result.error})

        failures: List[str] = []
        try:
            exit_ok = exit_code_matches(result.exit_code, strategy.expected_exit_code)
            if not exit_ok:
                failures.append("Exit code did not match expected value")
            if strategy.expected_output_pattern and not re.search(strategy.expected_output_pattern, result.stdout):
                failures.append("Stdout did not match expected pattern")
            if strategy.stderr_pattern and not re.search(strategy.stderr_pattern, result.stderr):
                failures.append("Stderr did not match expected pattern")
            forbidden = _first_match(strategy.not_patterns, result.output)
            if forbidden:
                failures.append(f"Negative assertion failed: pattern '{forbidden}' was found")
        except re.error as e:
            return StrategyResult(False, f"Invalid output pattern: {e}", elapsed_ms(started),
                                  {"reason": "invalid-pattern", "error": str(e)})

        return StrategyResult(
            success=not failures,
            output=format_output(result.exit_code, failures, result.stdout, result.stderr),
            duration_ms=elapsed_ms(started),
            details={
                "command": command,
                "cwd": str(working_dir),
                "exit_code": result.exit_code,
                "expected_exit_code": strategy.expected_exit_code,
                "exit_code_match": exit_ok,
                "failures": failures,
            },
        )
