#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Automated check execution (test, typecheck, lint, build, e2e).

Checks run sequentially by default. In parallel mode every non-e2e check is
launched up front as its own OS process and the results are collected in
input order, whatever order the processes finish in. E2E checks always run
afterwards, one at a time, and only when the unit tests passed.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from verdict import config
from verdict.debug_logger import get_logger
from verdict.execution.commands import (
    build_e2e_command,
    build_selective_test_command,
    determine_e2e_mode,
)
from verdict.models.capabilities import ExtendedCapabilities
from verdict.models.results import AutomatedCheckResult, CheckType
from verdict.tools.command_runner import CommandResult, CommandRunner


E2E_SKIPPED_OUTPUT = "Skipped: unit tests failed"
NOT_CONFIGURED_OUTPUT = "Skipped: no command configured"

_CHECK_NAMES = {
    CheckType.TEST: "tests",
    CheckType.TYPECHECK: "type check",
    CheckType.LINT: "linter",
    CheckType.BUILD: "build",
    CheckType.E2E: "E2E tests",
}


@dataclass
class CheckDefinition:
    """One check to run. ``command=None`` means the project has no such step."""
    type: CheckType
    command: Optional[str]
    name: str = ""
    env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            self.name = _CHECK_NAMES[self.type]
        if self.type in (CheckType.TEST, CheckType.E2E):
            self.env = {"CI": "true", **self.env}

    @property
    def is_e2e(self) -> bool:
        return self.type == CheckType.E2E


@dataclass
class CheckOptions:
    """How to derive and run checks from detected capabilities."""
    test_mode: str = "full"  # full | quick | skip
    test_pattern: Optional[str] = None
    test_files: List[str] = field(default_factory=list)
    skip_build: bool = False
    skip_e2e: bool = False
    e2e_tags: List[str] = field(default_factory=list)
    e2e_mode: Optional[str] = None  # full | smoke | tags | skip
    parallel: bool = False
    timeout_ms: Optional[int] = None


def build_check_definitions(
    capabilities: ExtendedCapabilities, options: Optional[CheckOptions] = None
) -> List[CheckDefinition]:
    """Ordered checks: test, typecheck, lint, build, e2e."""
    options = options or CheckOptions()
    checks: List[CheckDefinition] = []

    if options.test_mode != "skip":
        command = capabilities.test_command
        name = "tests"
        if options.test_mode == "quick" and (options.test_pattern or options.test_files):
            command = build_selective_test_command(capabilities.test, options.test_pattern, options.test_files)
            name = "selective tests"
        checks.append(CheckDefinition(CheckType.TEST, command, name=name))

    for check_type, info in (
        (CheckType.TYPECHECK, capabilities.typecheck),
        (CheckType.LINT, capabilities.lint),
        (CheckType.BUILD, capabilities.build),
    ):
        if check_type == CheckType.BUILD and options.skip_build:
            continue
        checks.append(CheckDefinition(check_type, info.command if info.runnable else None))

    if not options.skip_e2e:
        mode = options.e2e_mode or determine_e2e_mode(options.test_mode, bool(options.e2e_tags))
        command = build_e2e_command(capabilities.e2e, options.e2e_tags, mode)
        if mode != "skip":
            checks.append(CheckDefinition(CheckType.E2E, command, name=f"E2E tests ({mode})"))

    return checks


def _not_configured(check: CheckDefinition) -> AutomatedCheckResult:
    return AutomatedCheckResult(type=check.type, success=True, duration_ms=0, error_count=0,
                                output=NOT_CONFIGURED_OUTPUT)


def _to_check_result(check: CheckDefinition, result: CommandResult) -> AutomatedCheckResult:
    output = result.output
    if result.timed_out:
        output = f"{check.name} timed out after {result.duration_ms}ms\n{output}"
    elif result.error:
        output = f"{result.error}\n{output}"
    get_logger().log("checks", "CHECK_COMPLETE", {
        "type": check.type.value,
        "command": check.command,
        "success": result.success,
        "duration_ms": result.duration_ms,
    }, "DEBUG")
    return AutomatedCheckResult(
        type=check.type,
        success=result.success,
        duration_ms=result.duration_ms,
        error_count=0 if result.success else 1,
        output=output,
    )


def run_check(
    check: CheckDefinition,
    cwd: Path,
    runner: Optional[CommandRunner] = None,
    timeout_ms: Optional[int] = None,
) -> AutomatedCheckResult:
    """Run one check to completion."""
    if not check.command:
        return _not_configured(check)
    runner = runner or CommandRunner()
    result = runner.run(
        check.command,
        cwd=cwd,
        timeout_ms=timeout_ms if timeout_ms is not None else config.CHECK_TIMEOUT_MS,
        env=check.env,
    )
    return _to_check_result(check, result)


def _unit_tests_passed(checks: Sequence[CheckDefinition], results: Sequence[Optional[AutomatedCheckResult]]) -> bool:
    return all(
        result is not None and result.success
        for check, result in zip(checks, results)
        if check.type == CheckType.TEST
    )


def _run_e2e_after_units(
    checks: Sequence[CheckDefinition],
    results: List[Optional[AutomatedCheckResult]],
    cwd: Path,
    runner: CommandRunner,
    timeout_ms: Optional[int],
) -> None:
    units_ok = _unit_tests_passed(checks, results)
    for i, check in enumerate(checks):
        if not check.is_e2e:
            continue
        if not units_ok:
            results[i] = AutomatedCheckResult(type=CheckType.E2E, success=False, duration_ms=0,
                                              error_count=1, output=E2E_SKIPPED_OUTPUT)
            continue
        results[i] = run_check(check, cwd, runner, timeout_ms)


def run_checks_in_parallel(
    checks: Sequence[CheckDefinition],
    cwd: Path,
    runner: Optional[CommandRunner] = None,
    timeout_ms: Optional[int] = None,
) -> List[AutomatedCheckResult]:
    """Launch all non-e2e checks at once; results keep the input order."""
    runner = runner or CommandRunner()
    timeout_ms = timeout_ms if timeout_ms is not None else config.CHECK_TIMEOUT_MS
    results: List[Optional[AutomatedCheckResult]] = [None] * len(checks)

    running = {}
    for i, check in enumerate(checks):
        if check.is_e2e:
            continue
        if not check.command:
            results[i] = _not_configured(check)
            continue
        running[i] = runner.start(check.command, cwd=cwd, timeout_ms=timeout_ms, env=check.env)

    try:
        for i, handle in running.items():
            results[i] = _to_check_result(checks[i], handle.wait())
    finally:
        for i, handle in running.items():
            if results[i] is None:
                handle.cancel()

    _run_e2e_after_units(checks, results, cwd, runner, timeout_ms)
    return [r for r in results if r is not None]


def run_automated_checks(
    checks: Sequence[CheckDefinition],
    cwd: Path,
    *,
    parallel: bool = False,
    runner: Optional[CommandRunner] = None,
    timeout_ms: Optional[int] = None,
) -> List[AutomatedCheckResult]:
    """Run checks and return one result per check, in input order.

    A check without a command is reported as a vacuous success.
    """
    runner = runner or CommandRunner()
    get_logger().log("checks", "RUN_CHECKS", {
        "checks": [c.type.value for c in checks],
        "parallel": parallel,
    })
    if parallel:
        return run_checks_in_parallel(checks, cwd, runner, timeout_ms)

    results: List[Optional[AutomatedCheckResult]] = [None] * len(checks)
    for i, check in enumerate(checks):
        if check.is_e2e:
            continue
        results[i] = run_check(check, cwd, runner, timeout_ms)
    _run_e2e_after_units(checks, results, cwd, runner, timeout_ms)
    return [r for r in results if r is not None]
