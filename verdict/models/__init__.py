#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Feature, strategy, capability and result models for verdict."""

from verdict.models.capabilities import (
    CapabilityInfo,
    CapabilitySource,
    CustomRule,
    ExtendedCapabilities,
)
from verdict.models.feature import Feature, TaskType, TestRequirement, TestRequirements, load_feature
from verdict.models.results import (
    AutomatedCheckResult,
    CheckType,
    CriterionResult,
    ParsedAIResponse,
    StrategyResult,
    StrategyRunRecord,
    Verdict,
    VerificationMode,
    VerificationResult,
)
from verdict.models.strategies import (
    AIStrategy,
    CommandStrategy,
    CompositeStrategy,
    E2EStrategy,
    FileCheck,
    FileStrategy,
    HttpStrategy,
    JsonAssertion,
    ManualStrategy,
    ScriptStrategy,
    StrategyType,
    TestStrategy,
    VerificationStrategy,
    parse_strategy,
)

__all__ = [
    "CapabilityInfo",
    "CapabilitySource",
    "CustomRule",
    "ExtendedCapabilities",
    "Feature",
    "TaskType",
    "TestRequirement",
    "TestRequirements",
    "load_feature",
    "AutomatedCheckResult",
    "CheckType",
    "CriterionResult",
    "ParsedAIResponse",
    "StrategyResult",
    "StrategyRunRecord",
    "Verdict",
    "VerificationMode",
    "VerificationResult",
    "AIStrategy",
    "CommandStrategy",
    "CompositeStrategy",
    "E2EStrategy",
    "FileCheck",
    "FileStrategy",
    "HttpStrategy",
    "JsonAssertion",
    "ManualStrategy",
    "ScriptStrategy",
    "StrategyType",
    "TestStrategy",
    "VerificationStrategy",
    "parse_strategy",
]
