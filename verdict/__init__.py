#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""verdict - verification orchestration for features built by coding agents."""

from verdict.versioning import get_version

__version__ = get_version()

from verdict.config import ROOT
from verdict.errors import AgentUnavailableError, StrategyConfigError, UnknownStrategyError, VerdictError
from verdict.models import (
    Feature,
    Verdict,
    VerificationMode,
    VerificationResult,
    load_feature,
)
from verdict.execution.verifier import VerifyOptions, verify_feature

__all__ = [
    "__version__",
    "ROOT",
    "VerdictError",
    "StrategyConfigError",
    "UnknownStrategyError",
    "AgentUnavailableError",
    "Feature",
    "Verdict",
    "VerificationMode",
    "VerificationResult",
    "load_feature",
    "VerifyOptions",
    "verify_feature",
]
