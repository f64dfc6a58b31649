#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Which strategies verify a feature.

Resolution order: explicit strategies, then strategies derived from test
requirements, then defaults for the task type, then a single required AI
review.
"""

from typing import List, Optional

from verdict.models.feature import Feature, TaskType, TestRequirements
from verdict.models.strategies import (
    AIStrategy,
    CommandStrategy,
    E2EStrategy,
    FileStrategy,
    ManualStrategy,
    ScriptStrategy,
    StrategyType,
    TestStrategy,
    VerificationStrategy,
)


def convert_test_requirements(requirements: Optional[TestRequirements]) -> List[VerificationStrategy]:
    if requirements is None:
        return []
    strategies: List[VerificationStrategy] = []
    if requirements.unit:
        unit = requirements.unit
        strategies.append(TestStrategy(required=unit.required, pattern=unit.pattern, cases=list(unit.cases)))
    if requirements.e2e:
        e2e = requirements.e2e
        strategies.append(E2EStrategy(required=e2e.required, pattern=e2e.pattern,
                                      tags=list(e2e.tags), scenarios=list(e2e.scenarios)))
    return strategies


def default_strategies_for_task_type(task_type: Optional[TaskType]) -> List[VerificationStrategy]:
    if task_type == TaskType.CODE:
        return [TestStrategy(required=False), AIStrategy(required=True)]
    if task_type == TaskType.OPS:
        return [ScriptStrategy(required=False, path="./verify.sh"), AIStrategy(required=True)]
    if task_type == TaskType.DATA:
        return [FileStrategy(required=False), AIStrategy(required=True)]
    if task_type == TaskType.INFRA:
        return [CommandStrategy(required=False, command="terraform validate"), AIStrategy(required=True)]
    if task_type == TaskType.MANUAL:
        return [ManualStrategy(required=True)]
    return [AIStrategy(required=True)]


def resolve_strategies(feature: Feature) -> List[VerificationStrategy]:
    """Strategies for ``feature``; raises StrategyConfigError on a malformed record."""
    if feature.verification_strategies:
        return feature.parsed_strategies()

    converted = convert_test_requirements(feature.test_requirements)
    if converted:
        return converted

    if feature.task_type is not None:
        return default_strategies_for_task_type(feature.task_type)

    return [AIStrategy(required=True)]


def uses_strategy_verification(feature: Feature) -> bool:
    """Whether the strategy framework decides, rather than checks plus AI analysis.

    True for explicit strategies, and for derived strategies that include
    anything besides AI review.
    """
    if feature.verification_strategies:
        return True
    converted = convert_test_requirements(feature.test_requirements)
    if converted:
        return any(s.type != StrategyType.AI for s in converted)
    if feature.task_type is not None:
        return any(s.type != StrategyType.AI for s in default_strategies_for_task_type(feature.task_type))
    return False
