#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Choose between TDD (tests decide) and AI-judged verification."""

from typing import Optional

from verdict.models.capabilities import ExtendedCapabilities
from verdict.models.feature import Feature
from verdict.models.results import VerificationMode


def _tdd_requested(feature: Feature, project_tdd_mode: Optional[str]) -> bool:
    if project_tdd_mode == "strict" or feature.tdd_mode == "strict":
        return True
    return bool(feature.test_requirements and feature.test_requirements.any_required)


def _tests_runnable(feature: Feature, capabilities: ExtendedCapabilities) -> bool:
    reqs = feature.test_requirements
    if reqs and reqs.e2e and reqs.e2e.required and not (reqs.unit and reqs.unit.required):
        return capabilities.e2e.runnable
    return capabilities.has_tests


def select_mode(
    feature: Feature,
    capabilities: ExtendedCapabilities,
    *,
    force_mode: Optional[VerificationMode] = None,
    project_tdd_mode: Optional[str] = None,
) -> VerificationMode:
    """Pick the verification mode. Pure: same inputs, same answer.

    Args:
        feature: Feature under verification
        capabilities: Detected project capabilities
        force_mode: Explicit override from the caller; wins unconditionally
        project_tdd_mode: Project-wide TDD setting ("strict" forces a TDD request)

    Returns:
        TDD when tests are required (by the feature or a strict project) and a
        runnable test command exists; AI otherwise.
    """
    if force_mode is not None:
        return force_mode
    if _tdd_requested(feature, project_tdd_mode) and _tests_runnable(feature, capabilities):
        return VerificationMode.TDD
    return VerificationMode.AI
