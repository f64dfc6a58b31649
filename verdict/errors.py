#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Exception types raised across verdict's internal seams.

None of these escape ``verify_feature``: executors and analysis steps convert
them into failed results.
"""


class VerdictError(Exception):
    """Base class for verdict errors."""


class StrategyConfigError(VerdictError):
    """A strategy record is malformed (unknown type, missing field, bad value)."""


class UnknownStrategyError(VerdictError):
    """No executor is registered for a strategy type."""

    def __init__(self, strategy_type: str):
        super().__init__(f"No executor registered for strategy type: {strategy_type}")
        self.strategy_type = strategy_type


class AgentUnavailableError(VerdictError):
    """No AI agent could be reached."""
