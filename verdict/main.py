#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Main entry point for the verdict CLI."""

import argparse
import json
import sys
from pathlib import Path

from . import config
from .agents import create_agent
from .capabilities import detect_capabilities, get_default_cache
from .debug_logger import DebugLogger
from .execution.check_executor import CheckOptions
from .execution.verifier import VerifyOptions, verify_feature
from .models.feature import load_feature
from .models.results import Verdict, VerificationMode
from .store import get_feature_summary, get_run_history
from .versioning import build_version_string

EXIT_CODES = {
    Verdict.PASS: 0,
    Verdict.FAIL: 1,
    Verdict.NEEDS_REVIEW: 2,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="verdict - verify features built by coding agents against their acceptance criteria"
    )
    parser.add_argument("--version", action="version", version=build_version_string())
    parser.add_argument(
        "--cwd",
        default=str(config.ROOT),
        help="Project root (default: current directory)"
    )
    parser.add_argument(
        "--agent",
        choices=["cli", "ollama"],
        default="cli",
        help="AI agent adapter (default: cli)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Write a debug log to .verdict/logs/"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    verify = sub.add_parser("verify", help="Verify a feature definition file")
    verify.add_argument("feature_file", help="Feature YAML or markdown file with YAML front matter")
    verify.add_argument(
        "--mode",
        choices=["auto", "tdd", "ai"],
        default="auto",
        help="Force a verification mode (default: auto)"
    )
    verify.add_argument(
        "--test-mode",
        choices=["full", "quick", "skip"],
        default="full",
        help="How much of the test suite to run (default: full)"
    )
    verify.add_argument("--parallel", action="store_true", help="Run automated checks concurrently")
    verify.add_argument("--skip-build", action="store_true", help="Skip the build check")
    verify.add_argument("--skip-e2e", action="store_true", help="Skip end-to-end tests")
    verify.add_argument("--no-save", action="store_true", help="Do not record the run in the history")
    verify.add_argument("--verbose", action="store_true", help="Report capability cache activity")
    verify.add_argument("--json", action="store_true", help="Print the result as JSON")

    detect = sub.add_parser("detect", help="Detect the project's verification capabilities")
    detect.add_argument("--force", action="store_true", help="Ignore cached capabilities")

    history = sub.add_parser("history", help="Show the verification history of a feature")
    history.add_argument("feature_id", help="Feature identifier")
    return parser


def _print_result(result) -> None:
    icon = {"pass": "✓", "fail": "✗", "needs_review": "⚠️"}[result.verdict.value]
    print(f"\n{icon} {result.feature_id}: {result.verdict.value.upper()} (verified by {result.verified_by})")
    if result.mode is not None:
        print(f"  Mode: {result.mode.value}")
    print(f"  {result.diff_summary}")

    if result.automated_checks:
        print("\nAutomated checks:")
        for check in result.automated_checks:
            print(f"  {'✓' if check.success else '✗'} {check.type.value} ({check.duration_ms}ms)")

    if result.strategy_results:
        print("\nStrategies:")
        for record in result.strategy_results:
            tag = "required" if record.required else "optional"
            print(f"  {'✓' if record.success else '✗'} {record.type} [{tag}] ({record.duration_ms}ms)")

    print("\nAcceptance criteria:")
    for criterion in result.criteria_results:
        mark = "✓" if criterion.satisfied else "✗"
        print(f"  {mark} {criterion.index + 1}. {criterion.criterion} ({criterion.confidence:.0%})")
        if criterion.reasoning:
            print(f"      {criterion.reasoning}")

    if result.overall_reasoning:
        print(f"\n{result.overall_reasoning}")
    if result.suggestions:
        print("\nSuggestions:")
        for suggestion in result.suggestions:
            print(f"  - {suggestion}")


def _cmd_verify(args, cwd: Path) -> int:
    try:
        feature = load_feature(args.feature_file)
    except (OSError, ValueError, KeyError) as e:
        print(f"✗ Could not load feature from {args.feature_file}: {e}")
        return 1

    options = VerifyOptions(
        force_mode=None if args.mode == "auto" else VerificationMode(args.mode),
        checks=CheckOptions(
            test_mode=args.test_mode,
            skip_build=args.skip_build,
            skip_e2e=args.skip_e2e,
            parallel=args.parallel,
        ),
        save=not args.no_save,
        verbose=args.verbose,
    )
    result = verify_feature(cwd, feature, agent=create_agent(args.agent),
                            capability_cache=get_default_cache(), options=options)

    if args.json:
        print(json.dumps(result.to_dict(config.STORED_OUTPUT_LIMIT), indent=2))
    else:
        _print_result(result)
    return EXIT_CODES[result.verdict]


def _cmd_detect(args, cwd: Path) -> int:
    capabilities = detect_capabilities(cwd, create_agent(args.agent), get_default_cache(),
                                       force=args.force, verbose=True)
    print(json.dumps(capabilities.to_dict(), indent=2))
    return 0


def _cmd_history(args, cwd: Path) -> int:
    runs = get_run_history(cwd, args.feature_id)
    if not runs:
        print(f"No verification history for {args.feature_id}")
        return 1

    summary = get_feature_summary(cwd, args.feature_id) or {}
    print(f"{args.feature_id}: {summary.get('totalRuns', len(runs))} runs, "
          f"{summary.get('passCount', 0)} passed, {summary.get('failCount', 0)} failed")
    for number, run in enumerate(runs, start=1):
        print(f"  #{number:03d} {run.timestamp}  {run.verdict.value:<12} {run.verified_by}")
    return 0


def main(argv=None):
    """Main entry point for the verdict CLI."""
    args = _build_parser().parse_args(argv)

    debug_logger = DebugLogger.initialize(enabled=args.debug)
    if args.debug:
        print(f"Debug logging enabled: {debug_logger.log_file_path}")

    cwd = Path(args.cwd).resolve()
    handlers = {
        "verify": _cmd_verify,
        "detect": _cmd_detect,
        "history": _cmd_history,
    }
    try:
        code = handlers[args.command](args, cwd)
    except KeyboardInterrupt:
        print("\n\nVerification cancelled by user")
        code = 130
    finally:
        debug_logger.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
