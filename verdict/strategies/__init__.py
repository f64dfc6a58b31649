#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Verification strategy executors."""

from verdict.strategies.base import StrategyContext, StrategyExecutor, StrategyRegistry
from verdict.strategies.manual import CLIUserInput, UserInput
from verdict.strategies.registry import build_default_registry
from verdict.strategies.safety import has_unsafe_traversal

__all__ = [
    "StrategyContext",
    "StrategyExecutor",
    "StrategyRegistry",
    "CLIUserInput",
    "UserInput",
    "build_default_registry",
    "has_unsafe_traversal",
]
