#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Top-level verification of a feature.

``verify_feature`` picks a mode, gathers the change under review, runs the
automated checks, strategies and AI analysis that apply, folds everything
into one VerificationResult and appends it to the project's history. Errors
from any layer end up in the result; nothing is raised to the caller.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from verdict import config
from verdict.agents.base import AIAgent
from verdict.capabilities.cache import CapabilityCache
from verdict.capabilities.detector import detect_capabilities, get_default_cache
from verdict.debug_logger import get_logger
from verdict.errors import StrategyConfigError, UnknownStrategyError
from verdict.execution.ai_analysis import RetryConfig, analyze_with_ai
from verdict.execution.check_executor import CheckOptions, build_check_definitions, run_automated_checks
from verdict.execution.mode_selector import select_mode
from verdict.execution.prompts import build_verification_prompt, summarize_checks
from verdict.execution.response_parser import failure_response
from verdict.execution.strategy_resolution import resolve_strategies, uses_strategy_verification
from verdict.models.capabilities import ExtendedCapabilities
from verdict.models.feature import Feature
from verdict.models.results import (
    CriterionResult,
    StrategyResult,
    StrategyRunRecord,
    Verdict,
    VerificationMode,
    VerificationResult,
)
from verdict.models.strategies import StrategyType, VerificationStrategy
from verdict.store.verification_store import save_verification_result
from verdict.strategies.base import StrategyContext, StrategyRegistry
from verdict.strategies.manual import UserInput
from verdict.strategies.registry import build_default_registry
from verdict.strategies.safety import is_within_root
from verdict.tools.command_runner import CommandRunner
from verdict.tools.git_ops import GitDiffInfo, get_diff_for_feature

STRATEGY_VERIFIER = "strategy-framework"
TDD_VERIFIER = "tdd"
SOURCE_FILE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs")


@dataclass
class VerifyOptions:
    """Knobs for one verification run. Collaborators default to the real ones."""
    force_mode: Optional[VerificationMode] = None
    project_tdd_mode: Optional[str] = None
    checks: CheckOptions = field(default_factory=CheckOptions)
    capabilities: Optional[ExtendedCapabilities] = None
    force_detect: bool = False
    retry_config: Optional[RetryConfig] = None
    sleep: Callable[[float], None] = time.sleep
    runner: Optional[CommandRunner] = None
    registry: Optional[StrategyRegistry] = None
    user_input: Optional[UserInput] = None
    save: bool = True
    verbose: bool = False


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_options_for(feature: Feature, options: CheckOptions) -> CheckOptions:
    """Fill the selective test pattern and e2e tags from the feature's test requirements."""
    reqs = feature.test_requirements
    if reqs is None:
        return options
    pattern = options.test_pattern or (reqs.unit.pattern if reqs.unit else None)
    tags = options.e2e_tags or (list(reqs.e2e.tags) if reqs.e2e else [])
    return replace(options, test_pattern=pattern, e2e_tags=tags)


# ---------------------------------------------------------------------------
# TDD mode
# ---------------------------------------------------------------------------

def _verify_tdd(
    cwd: Path,
    feature: Feature,
    capabilities: ExtendedCapabilities,
    diff_info: GitDiffInfo,
    options: VerifyOptions,
) -> VerificationResult:
    checks = build_check_definitions(capabilities, _check_options_for(feature, options.checks))
    automated = run_automated_checks(checks, cwd, parallel=options.checks.parallel,
                                     runner=options.runner, timeout_ms=options.checks.timeout_ms)
    all_passed = all(c.success for c in automated)
    failed = [c.type.value for c in automated if not c.success]

    if all_passed:
        reasoning = "All automated checks passed (TDD mode)"
    else:
        reasoning = f"Automated checks failed: {', '.join(failed)}"
    evidence = [f"{c.type.value}: {'passed' if c.success else 'failed'}" for c in automated]
    criteria = [
        CriterionResult(criterion=text, index=i, satisfied=all_passed, reasoning=reasoning,
                        evidence=evidence, confidence=1.0 if all_passed else 0.0)
        for i, text in enumerate(feature.acceptance)
    ]

    return VerificationResult(
        feature_id=feature.id,
        timestamp=_now(),
        verdict=Verdict.PASS if all_passed else Verdict.FAIL,
        verified_by=TDD_VERIFIER,
        overall_reasoning=f"{reasoning}\n\n{summarize_checks(automated)}",
        commit_hash=diff_info.commit_hash,
        changed_files=list(diff_info.files),
        diff_summary=f"{len(diff_info.files)} files changed",
        automated_checks=automated,
        criteria_results=criteria,
        suggestions=[f"Fix the failing {name} check" for name in failed],
        mode=VerificationMode.TDD,
    )


# ---------------------------------------------------------------------------
# AI mode: automated checks plus AI analysis
# ---------------------------------------------------------------------------

def read_related_files(cwd: Path, changed_files: Sequence[str]) -> Dict[str, str]:
    """Contents of the changed source files, keyed by their relative path.

    Files outside ``cwd`` and files that cannot be read are left out.
    """
    related: Dict[str, str] = {}
    for name in changed_files:
        if not name.endswith(SOURCE_FILE_EXTENSIONS) or not is_within_root(cwd, name):
            continue
        try:
            related[name] = (Path(cwd) / name).read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
    return related


def _verify_with_ai(
    cwd: Path,
    feature: Feature,
    agent: Optional[AIAgent],
    capabilities: ExtendedCapabilities,
    diff_info: GitDiffInfo,
    options: VerifyOptions,
) -> VerificationResult:
    checks = build_check_definitions(capabilities, _check_options_for(feature, options.checks))
    automated = run_automated_checks(checks, cwd, parallel=options.checks.parallel,
                                     runner=options.runner, timeout_ms=options.checks.timeout_ms)

    if agent is None:
        analysis = failure_response(
            feature.acceptance,
            reasoning="AI analysis failed: no AI agent available",
            overall_reasoning="AI analysis failed after retries",
            agent_used="none",
        )
    else:
        prompt = build_verification_prompt(feature, diff_info.diff, diff_info.files, automated,
                                           config.DIFF_PROMPT_LIMIT,
                                           read_related_files(cwd, diff_info.files),
                                           config.RELATED_FILE_LIMIT)
        analysis = analyze_with_ai(agent, prompt, feature.acceptance, cwd=cwd,
                                   retry_config=options.retry_config, sleep=options.sleep)

    # The analysis verdict is recorded as returned, even when some criteria
    # were not analyzed.
    return VerificationResult(
        feature_id=feature.id,
        timestamp=_now(),
        verdict=analysis.verdict,
        verified_by=analysis.agent_used or "none",
        overall_reasoning=analysis.overall_reasoning,
        commit_hash=diff_info.commit_hash,
        changed_files=list(diff_info.files),
        diff_summary=f"{len(diff_info.files)} files changed",
        automated_checks=automated,
        criteria_results=analysis.criteria_results,
        suggestions=analysis.suggestions,
        code_quality_notes=analysis.code_quality_notes,
        mode=VerificationMode.AI,
    )


# ---------------------------------------------------------------------------
# AI mode: strategy framework
# ---------------------------------------------------------------------------

Executed = List[Tuple[VerificationStrategy, StrategyResult]]


def execute_strategies(strategies: Sequence[VerificationStrategy], context: StrategyContext) -> Executed:
    """Run every strategy in order; an executor error becomes a failed result."""
    registry = context.registry or build_default_registry()
    context.registry = registry
    executed: Executed = []
    for strategy in strategies:
        try:
            result = registry.execute(strategy, context)
        except UnknownStrategyError as e:
            result = StrategyResult(False, f"Strategy execution error: {e}", 0,
                                    {"error": str(e), "strategy_type": strategy.type.value})
        except Exception as e:
            get_logger().log_error("verifier", e, {"strategy": strategy.type.value})
            result = StrategyResult(False, f"Strategy execution error: {e}", 0,
                                    {"error": str(e), "strategy_type": strategy.type.value})
        get_logger().log("verifier", "STRATEGY_RESULT", {
            "type": strategy.type.value,
            "required": strategy.required,
            "success": result.success,
        })
        executed.append((strategy, result))
    return executed


def determine_verdict(executed: Executed) -> Verdict:
    if any(s.required and not r.success for s, r in executed):
        return Verdict.FAIL
    if any(r.details.get("verdict") == Verdict.NEEDS_REVIEW.value for _, r in executed):
        return Verdict.NEEDS_REVIEW
    return Verdict.PASS


def build_overall_reasoning(executed: Executed) -> str:
    lines: List[str] = []
    for strategy, result in executed:
        status = "✓ PASS" if result.success else "✗ FAIL"
        lines.append(f"[{strategy.type.value.upper()}] {status}")
        if result.output:
            lines.extend(f"  {line}" for line in result.output.split("\n"))
        lines.append("")
    return "\n".join(lines).strip()


def map_criteria(feature: Feature, executed: Executed) -> List[CriterionResult]:
    """Criteria from the first AI strategy that produced them, else from required outcomes."""
    for _, result in executed:
        criteria = result.details.get("criteria_results")
        if isinstance(criteria, list) and criteria:
            return list(criteria)

    all_required_passed = all(r.success for s, r in executed if s.required)
    return [
        CriterionResult(
            criterion=text,
            index=i,
            satisfied=all_required_passed,
            reasoning=("Verified by strategy execution" if all_required_passed
                       else "One or more required strategies failed"),
            confidence=0.8 if all_required_passed else 0.3,
        )
        for i, text in enumerate(feature.acceptance)
    ]


def _collect(executed: Executed, key: str) -> List[str]:
    items: List[str] = []
    for _, result in executed:
        items.extend(str(v) for v in result.details.get(key) or [])
    return items


def _config_error_result(feature: Feature, diff_info: GitDiffInfo, error: StrategyConfigError) -> VerificationResult:
    message = f"Invalid verification strategy: {error}"
    return VerificationResult(
        feature_id=feature.id,
        timestamp=_now(),
        verdict=Verdict.FAIL,
        verified_by=STRATEGY_VERIFIER,
        overall_reasoning=f"[CONFIG] ✗ FAIL\n  {message}",
        commit_hash=diff_info.commit_hash,
        changed_files=list(diff_info.files),
        diff_summary=f"{len(diff_info.files)} files changed",
        criteria_results=[
            CriterionResult(criterion=text, index=i, satisfied=False, reasoning=message, confidence=0.0)
            for i, text in enumerate(feature.acceptance)
        ],
        suggestions=["Fix the verification strategy definitions for this feature"],
        strategy_results=[StrategyRunRecord(type="config", required=True, success=False, output=message)],
        mode=VerificationMode.AI,
    )


def _verify_with_strategies(
    cwd: Path,
    feature: Feature,
    agent: Optional[AIAgent],
    cache: CapabilityCache,
    capabilities: ExtendedCapabilities,
    diff_info: GitDiffInfo,
    options: VerifyOptions,
) -> VerificationResult:
    try:
        strategies = resolve_strategies(feature)
    except StrategyConfigError as e:
        return _config_error_result(feature, diff_info, e)

    context = StrategyContext(
        cwd=cwd,
        feature=feature,
        agent=agent,
        capability_cache=cache,
        user_input=options.user_input,
        runner=options.runner or CommandRunner(),
        registry=options.registry,
        capabilities=capabilities,
    )
    executed = execute_strategies(strategies, context)

    agent_used = next(
        (r.details.get("agent_used") for s, r in executed
         if s.type == StrategyType.AI and r.details.get("agent_used")),
        None,
    )
    records = [
        StrategyRunRecord(type=s.type.value, required=s.required, success=r.success,
                          output=r.output, duration_ms=r.duration_ms)
        for s, r in executed
    ]

    return VerificationResult(
        feature_id=feature.id,
        timestamp=_now(),
        verdict=determine_verdict(executed),
        verified_by=agent_used or STRATEGY_VERIFIER,
        overall_reasoning=build_overall_reasoning(executed),
        commit_hash=diff_info.commit_hash,
        changed_files=list(diff_info.files),
        diff_summary=f"{len(diff_info.files)} files changed",
        criteria_results=map_criteria(feature, executed),
        suggestions=_collect(executed, "suggestions"),
        code_quality_notes=_collect(executed, "code_quality_notes"),
        strategy_results=records,
        mode=VerificationMode.AI,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _error_result(feature: Feature, error: BaseException) -> VerificationResult:
    analysis = failure_response(
        feature.acceptance,
        reasoning=f"Verification error: {error}",
        overall_reasoning=f"Verification could not complete: {type(error).__name__}: {error}",
        agent_used="none",
    )
    return VerificationResult(
        feature_id=feature.id,
        timestamp=_now(),
        verdict=Verdict.NEEDS_REVIEW,
        verified_by="none",
        overall_reasoning=analysis.overall_reasoning,
        criteria_results=analysis.criteria_results,
    )


def _run(
    cwd: Path,
    feature: Feature,
    agent: Optional[AIAgent],
    cache: CapabilityCache,
    options: VerifyOptions,
) -> VerificationResult:
    capabilities = options.capabilities
    if capabilities is None:
        if agent is not None:
            capabilities = detect_capabilities(cwd, agent, cache, force=options.force_detect,
                                               verbose=options.verbose)
        else:
            capabilities = ExtendedCapabilities.empty()

    mode = select_mode(feature, capabilities, force_mode=options.force_mode,
                       project_tdd_mode=options.project_tdd_mode)
    diff_info = get_diff_for_feature(cwd)
    get_logger().log("verifier", "VERIFY_START", {
        "feature_id": feature.id,
        "mode": mode.value,
        "changed_files": len(diff_info.files),
    })

    if mode == VerificationMode.TDD:
        return _verify_tdd(cwd, feature, capabilities, diff_info, options)
    if uses_strategy_verification(feature):
        return _verify_with_strategies(cwd, feature, agent, cache, capabilities, diff_info, options)
    return _verify_with_ai(cwd, feature, agent, capabilities, diff_info, options)


def verify_feature(
    cwd: Path,
    feature: Feature,
    *,
    agent: Optional[AIAgent] = None,
    capability_cache: Optional[CapabilityCache] = None,
    options: Optional[VerifyOptions] = None,
) -> VerificationResult:
    """Verify ``feature`` in the project at ``cwd`` and record the run.

    Args:
        cwd: Project root
        feature: Feature under verification
        agent: AI agent for discovery and analysis; without one, capabilities
            must be supplied in ``options`` and AI steps fail softly
        capability_cache: Memory tier to share across calls (process default otherwise)
        options: Mode override, check options and injected collaborators

    Returns:
        The VerificationResult, whether or not it could be persisted.
    """
    cwd = Path(cwd)
    options = options or VerifyOptions()
    cache = capability_cache or get_default_cache()

    try:
        result = _run(cwd, feature, agent, cache, options)
    except Exception as e:
        get_logger().log_error("verifier", e, {"feature_id": feature.id})
        result = _error_result(feature, e)

    get_logger().log("verifier", "VERIFY_COMPLETE", {
        "feature_id": feature.id,
        "verdict": result.verdict.value,
        "verified_by": result.verified_by,
    })

    if options.save:
        try:
            save_verification_result(cwd, result)
        except OSError as e:
            get_logger().warning("Could not save verification result for %s: %s", feature.id, e)
    return result
