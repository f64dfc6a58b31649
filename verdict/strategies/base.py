#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Strategy executor interface, execution context and registry."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from verdict.capabilities.cache import CapabilityCache, load_cached_capabilities
from verdict.capabilities.detector import detect_capabilities
from verdict.debug_logger import get_logger
from verdict.errors import UnknownStrategyError
from verdict.models.capabilities import ExtendedCapabilities
from verdict.models.feature import Feature
from verdict.models.results import StrategyResult
from verdict.models.strategies import StrategyType, VerificationStrategy
from verdict.tools.command_runner import CommandRunner

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from verdict.agents.base import AIAgent
    from verdict.strategies.manual import UserInput


def elapsed_ms(started_at: float) -> int:
    return int((time.monotonic() - started_at) * 1000)


@dataclass
class StrategyContext:
    """Everything an executor may need besides the strategy itself.

    Collaborators are injected so executors can be tested without spawning
    agents or prompting a human.
    """
    cwd: Path
    feature: Feature
    agent: Optional["AIAgent"] = None
    capability_cache: Optional[CapabilityCache] = None
    user_input: Optional["UserInput"] = None
    runner: CommandRunner = field(default_factory=CommandRunner)
    registry: Optional["StrategyRegistry"] = None
    capabilities: Optional[ExtendedCapabilities] = None

    def __post_init__(self):
        self.cwd = Path(self.cwd)

    def resolve_capabilities(self) -> ExtendedCapabilities:
        """Detected capabilities, looked up once per context.

        Without an agent only a disk-cached result can be used.
        """
        if self.capabilities is None:
            if self.agent is not None:
                if self.capability_cache is None:
                    self.capability_cache = CapabilityCache()
                self.capabilities = detect_capabilities(self.cwd, self.agent, self.capability_cache)
            else:
                self.capabilities = load_cached_capabilities(self.cwd) or ExtendedCapabilities.empty()
        return self.capabilities


class StrategyExecutor(ABC):
    """Runs one kind of verification strategy."""

    strategy_type: StrategyType

    @abstractmethod
    def execute(self, strategy: VerificationStrategy, context: StrategyContext) -> StrategyResult:
        """Run the strategy; failures are results, never exceptions."""


class StrategyRegistry:
    """Maps strategy types to executors.

    One executor per type; registering a second replaces the first.
    """

    def __init__(self):
        self._executors: Dict[StrategyType, StrategyExecutor] = {}

    def register(self, executor: StrategyExecutor) -> None:
        if not isinstance(executor, StrategyExecutor):
            raise ValueError(f"{type(executor).__name__} must inherit from StrategyExecutor.")
        self._executors[executor.strategy_type] = executor

    def get(self, strategy_type: StrategyType) -> Optional[StrategyExecutor]:
        return self._executors.get(strategy_type)

    def has(self, strategy_type: StrategyType) -> bool:
        return strategy_type in self._executors

    def execute(self, strategy: VerificationStrategy, context: StrategyContext) -> StrategyResult:
        """Dispatch to the executor registered for ``strategy.type``.

        Raises:
            UnknownStrategyError: nothing is registered for the type
        """
        executor = self._executors.get(strategy.type)
        if executor is None:
            raise UnknownStrategyError(strategy.type.value)
        if context.registry is None:
            context.registry = self
        get_logger().log("strategies", "EXECUTE", {"type": strategy.type.value, "required": strategy.required}, "DEBUG")
        return executor.execute(strategy, context)

    def registered_types(self) -> List[StrategyType]:
        return list(self._executors.keys())

    def clear(self) -> None:
        self._executors.clear()
