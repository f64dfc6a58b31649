#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Shared fixtures: scripted agents, throwaway git repositories, a clean logger."""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest

from verdict.agents.base import AIAgent, AgentResponse
from verdict.debug_logger import DebugLogger
from verdict.models.feature import Feature
from verdict.strategies.base import StrategyContext
from verdict.tools.command_runner import CommandRunner

Scripted = Union[str, AgentResponse, Exception]


class FakeAgent(AIAgent):
    """Agent that answers from a script instead of a model.

    ``responses`` are consumed one per call; the last one is repeated. A
    string is a successful answer, an exception is raised from ``call``.
    ``handler`` (prompt -> Scripted) takes precedence when given.
    """

    name = "fake"

    def __init__(self, responses: Optional[List[Scripted]] = None,
                 handler: Optional[Callable[[str], Scripted]] = None):
        self.responses = list(responses or [])
        self.handler = handler
        self.prompts: List[str] = []
        self.calls: List[dict] = []

    def call(self, prompt, *, timeout_ms=None, cwd=None, preferred_model=None, show_progress=False):
        self.prompts.append(prompt)
        self.calls.append({"timeout_ms": timeout_ms, "cwd": cwd, "preferred_model": preferred_model})
        if self.handler is not None:
            item = self.handler(prompt)
        elif not self.responses:
            item = AgentResponse(success=False, error="no scripted response")
        elif len(self.responses) > 1:
            item = self.responses.pop(0)
        else:
            item = self.responses[0]

        if isinstance(item, Exception):
            raise item
        if isinstance(item, AgentResponse):
            return item
        return AgentResponse(success=True, output=item, agent_used=self.name)

    @property
    def call_count(self) -> int:
        return len(self.prompts)


def discovery_json(**overrides) -> str:
    """Capability discovery answer for a pytest project."""
    data = {
        "languages": ["python"],
        "packageManager": "pip",
        "test": {"available": True, "command": "pytest -q", "framework": "pytest", "confidence": 0.9},
        "e2e": {"available": False},
        "typecheck": {"available": False},
        "lint": {"available": True, "command": "ruff check .", "confidence": 0.7},
        "build": {"available": False},
        "customRules": [],
        "configFiles": ["pyproject.toml"],
    }
    data.update(overrides)
    return json.dumps(data)


def verification_json(verdict: str = "pass", criteria=None, **extra) -> str:
    data = {
        "criteriaResults": criteria if criteria is not None else [],
        "verdict": verdict,
        "overallReasoning": extra.pop("overallReasoning", "Looks good"),
        "suggestions": extra.pop("suggestions", []),
        "codeQualityNotes": extra.pop("codeQualityNotes", []),
    }
    data.update(extra)
    return json.dumps(data)


def make_feature(**overrides) -> Feature:
    data = {
        "id": "feat-1",
        "description": "Demo feature",
        "acceptance": ["It works"],
    }
    data.update(overrides)
    return Feature.from_dict(data)


def make_context(cwd: Path, feature: Optional[Feature] = None, **kwargs) -> StrategyContext:
    return StrategyContext(cwd=cwd, feature=feature or make_feature(), **kwargs)


class RecordingRunner(CommandRunner):
    """CommandRunner that remembers every command it was asked to run."""

    def __init__(self):
        self.commands: List[str] = []
        self.kwargs: List[dict] = []

    def run(self, command, **kwargs):
        self.commands.append(command)
        self.kwargs.append(kwargs)
        return super().run(command, **kwargs)


class RecordingSleep:
    """Stand-in for time.sleep that remembers the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", "-c", "user.email=dev@example.com", "-c", "user.name=Dev",
         "-c", "commit.gpgsign=false", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout


def commit_all(cwd: Path, message: str) -> str:
    git(cwd, "add", "-A")
    git(cwd, "commit", "-q", "-m", message)
    return git(cwd, "rev-parse", "HEAD").strip()


@pytest.fixture(autouse=True)
def reset_debug_logger():
    """Each test starts with a fresh, disabled logger."""
    DebugLogger.reset()
    yield
    DebugLogger.reset()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def git_repo(project: Path) -> Path:
    """A repository with one commit containing pyproject.toml and src/app.py."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    git(project, "init", "-q")
    (project / "pyproject.toml").write_text("[project]\nname = 'demo'\n", encoding="utf-8")
    (project / "src").mkdir()
    (project / "src" / "app.py").write_text("print('hello')\n", encoding="utf-8")
    commit_all(project, "initial")
    return project


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
