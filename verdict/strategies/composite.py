#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Composite strategy: fold child strategies with AND / OR."""

import time
from typing import List, Tuple

from verdict.debug_logger import get_logger
from verdict.errors import UnknownStrategyError
from verdict.models.results import StrategyResult
from verdict.models.strategies import CompositeStrategy, StrategyType, VerificationStrategy
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms


def _format(operator: str, executed: List[Tuple[int, VerificationStrategy, StrategyResult]], total: int) -> str:
    passed = sum(1 for _, _, r in executed if r.success)
    lines = [f"Composite ({operator.upper()}): {passed} passed, {len(executed) - passed} failed "
             f"({len(executed)} executed)"]
    outputs = [
        f"  [{i + 1}/{total}] {child.type.value}: {result.output}"
        for i, child, result in executed
        if result.output
    ]
    if outputs:
        lines += ["", "Results:", *outputs]
    return "\n".join(lines)


class CompositeStrategyExecutor(StrategyExecutor):
    """AND stops at the first failure, OR at the first success.

    A failing child marked ``required`` fails the composite in either mode.
    """

    strategy_type = StrategyType.COMPOSITE

    def _run_child(self, child: VerificationStrategy, context: StrategyContext) -> StrategyResult:
        registry = context.registry
        if registry is None:
            from verdict.strategies.registry import build_default_registry
            registry = context.registry = build_default_registry()
        try:
            return registry.execute(child, context)
        except UnknownStrategyError as e:
            return StrategyResult(False, str(e), 0, {"reason": "no-executor", "strategy_type": e.strategy_type})

    def execute(self, strategy: CompositeStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        operator = strategy.operator
        children = strategy.strategies
        if not children:
            return StrategyResult(True, "Composite strategy has no nested strategies (vacuously true)",
                                  elapsed_ms(started), {"operator": operator, "executed_count": 0, "total_count": 0})

        executed: List[Tuple[int, VerificationStrategy, StrategyResult]] = []
        success = operator != "or"
        try:
            for i, child in enumerate(children):
                result = self._run_child(child, context)
                executed.append((i, child, result))
                if not result.success and (operator == "and" or child.required):
                    success = False
                    break
                if result.success and operator == "or":
                    success = True
                    break
        except Exception as e:
            get_logger().log_error("strategies", e, {"strategy": "composite", "executed": len(executed)})
            return StrategyResult(False, f"Composite verification failed: {e}", elapsed_ms(started),
                                  {"operator": operator, "reason": "error", "error": str(e)})

        return StrategyResult(
            success=success,
            output=_format(operator, executed, len(children)),
            duration_ms=elapsed_ms(started),
            details={
                "operator": operator,
                "nested_results": [
                    {"type": child.type.value, "index": i, "success": r.success,
                     "duration_ms": r.duration_ms, "output": r.output}
                    for i, child, r in executed
                ],
                "executed_count": len(executed),
                "total_count": len(children),
                "short_circuited": len(executed) < len(children),
            },
        )
