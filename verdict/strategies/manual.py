#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Manual strategy: a human confirms the work."""

import os
import time
from abc import ABC, abstractmethod
from typing import List

from verdict.models.results import StrategyResult
from verdict.models.strategies import ManualStrategy, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms

CI_OUTPUT = "Manual verification required - cannot complete in CI environment"


class UserInput(ABC):
    """Where manual answers come from."""

    @abstractmethod
    def ask_yes_no(self, question: str) -> bool:
        ...

    def ask_checklist(self, items: List[str]) -> List[bool]:
        return [self.ask_yes_no(f"  [ ] {item} - Complete?") for item in items]


class CLIUserInput(UserInput):
    """Prompt on the terminal."""

    def ask_yes_no(self, question: str) -> bool:
        try:
            answer = input(f"{question} (y/n): ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")


def in_ci() -> bool:
    return os.environ.get("CI") == "true"


class ManualStrategyExecutor(StrategyExecutor):
    strategy_type = StrategyType.MANUAL

    def execute(self, strategy: ManualStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        if in_ci():
            return StrategyResult(False, CI_OUTPUT, elapsed_ms(started), {
                "reason": "ci-environment",
                "instructions": strategy.instructions,
                "checklist": list(strategy.checklist),
                "assignee": strategy.assignee,
            })

        user_input = context.user_input or CLIUserInput()
        feature = context.feature

        print("\n" + "=" * 60)
        print("          MANUAL VERIFICATION REQUIRED")
        print("=" * 60 + "\n")
        if strategy.assignee:
            print(f"Assigned to: {strategy.assignee}\n")
        if strategy.instructions:
            print(f"Instructions:\n-------------\n{strategy.instructions}\n")
        print(f"Task: {feature.id}")
        print(f"Description: {feature.description}\n")

        if strategy.checklist:
            print("Checklist:\n-----------")
            answers = list(user_input.ask_checklist(strategy.checklist))
            # Items without an answer count as not done.
            answers += [False] * (len(strategy.checklist) - len(answers))
            incomplete = [item for item, done in zip(strategy.checklist, answers) if not done]
            if incomplete:
                return StrategyResult(
                    False,
                    f"Manual verification incomplete. {len(incomplete)} items not completed.",
                    elapsed_ms(started),
                    {"reason": "checklist-incomplete", "incomplete_items": incomplete, "results": answers},
                )
            approved = True
        else:
            approved = user_input.ask_yes_no("Verification complete?")

        return StrategyResult(
            approved,
            "Manual verification passed" if approved else "Manual verification rejected by reviewer",
            elapsed_ms(started),
            {"assignee": strategy.assignee, "approved": approved, "checklist": list(strategy.checklist)},
        )
