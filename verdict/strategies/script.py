#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Script strategy: run a script file from the project."""

import os
import re
import shlex
import time
from pathlib import Path

from verdict import config
from verdict.models.results import StrategyResult
from verdict.models.strategies import ScriptStrategy, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.strategies.safety import (
    exit_code_matches,
    find_dangerous_pattern,
    is_readable_file,
    is_within_root,
    validate_args,
)


def build_script_command(script: Path, args) -> str:
    """Quote the script and its args; non-executable scripts go through ``sh``."""
    command = shlex.quote(str(script))
    if not os.access(script, os.X_OK):
        command = f"sh {command}"
    if args:
        command += " " + " ".join(shlex.quote(a) for a in args)
    return command


class ScriptStrategyExecutor(StrategyExecutor):
    """Runs a script that lives inside the project root."""

    strategy_type = StrategyType.SCRIPT

    def execute(self, strategy: ScriptStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        timeout_ms = strategy.timeout_ms or config.COMMAND_TIMEOUT_MS

        script = Path(strategy.path)
        if not script.is_absolute():
            script = context.cwd / script
        if not is_within_root(context.cwd, script):
            return StrategyResult(False, f"Script path must be within project root: {strategy.path}",
                                  elapsed_ms(started), {"reason": "security-violation", "path": strategy.path})
        if not is_readable_file(script):
            return StrategyResult(False, f"Script file not found or not readable: {strategy.path}",
                                  elapsed_ms(started), {"reason": "not-found", "path": strategy.path})

        args_error = validate_args(strategy.args)
        if args_error:
            return StrategyResult(False, args_error, elapsed_ms(started),
                                  {"reason": "security-violation", "args": list(strategy.args)})

        command = build_script_command(script.resolve(), strategy.args)
        danger = find_dangerous_pattern(command)
        if danger:
            return StrategyResult(False, f"Command contains dangerous pattern: {danger}",
                                  elapsed_ms(started), {"reason": "security-violation", "command": command})

        working_dir = (context.cwd / strategy.cwd).resolve() if strategy.cwd else context.cwd
        if not is_within_root(context.cwd, working_dir):
            return StrategyResult(False, f"Working directory must be within project root: {working_dir}",
                                  elapsed_ms(started), {"reason": "security-violation", "cwd": strategy.cwd})

        result = context.runner.run(command, cwd=working_dir, timeout_ms=timeout_ms, env=dict(strategy.env))
        output = result.stdout + (f"\n{result.stderr}" if result.stderr else "")
        if result.timed_out:
            return StrategyResult(False, f"Script execution timed out after {timeout_ms}ms\n{output}",
                                  elapsed_ms(started), {"reason": "timeout", "timeout_ms": timeout_ms})
        if result.error:
            return StrategyResult(False, f"Script execution failed: {result.error}",
                                  elapsed_ms(started), {"reason": "error", "error": result.error})

        exit_ok = exit_code_matches(result.exit_code, strategy.expected_exit_code)
        pattern_ok = True
        if strategy.output_pattern:
            try:
                pattern_ok = re.search(strategy.output_pattern, result.stdout) is not None
            except re.error as e:
                return StrategyResult(False, f"Invalid output pattern: {e}", elapsed_ms(started),
                                      {"reason": "invalid-pattern", "error": str(e)})

        return StrategyResult(
            success=exit_ok and pattern_ok,
            output=output,
            duration_ms=elapsed_ms(started),
            details={
                "command": command,
                "exit_code": result.exit_code,
                "expected_exit_code": strategy.expected_exit_code,
                "pattern_match": pattern_ok if strategy.output_pattern else None,
            },
        )
