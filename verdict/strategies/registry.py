#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Default executor table."""

from verdict.strategies.ai import AIStrategyExecutor
from verdict.strategies.base import StrategyRegistry
from verdict.strategies.command import CommandStrategyExecutor
from verdict.strategies.composite import CompositeStrategyExecutor
from verdict.strategies.file import FileStrategyExecutor
from verdict.strategies.http import HttpStrategyExecutor
from verdict.strategies.manual import ManualStrategyExecutor
from verdict.strategies.script import ScriptStrategyExecutor
from verdict.strategies.testing import E2EStrategyExecutor, TestStrategyExecutor

DEFAULT_EXECUTORS = (
    TestStrategyExecutor,
    E2EStrategyExecutor,
    ScriptStrategyExecutor,
    HttpStrategyExecutor,
    FileStrategyExecutor,
    CommandStrategyExecutor,
    ManualStrategyExecutor,
    AIStrategyExecutor,
    CompositeStrategyExecutor,
)


def build_default_registry() -> StrategyRegistry:
    """A registry with one executor for every strategy type."""
    registry = StrategyRegistry()
    for executor_class in DEFAULT_EXECUTORS:
        registry.register(executor_class())
    return registry
