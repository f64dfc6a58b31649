#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Agent adapter that drives a locally installed coding-agent CLI.

The prompt is written to the CLI's stdin and its stdout is taken as the
answer. The first CLI from the configured priority list that is found on PATH
is used.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from verdict import config
from verdict.agents.base import AIAgent, AgentResponse
from verdict.debug_logger import get_logger
from verdict.errors import AgentUnavailableError
from verdict.tools.command_runner import CommandRunner


@dataclass(frozen=True)
class AgentCommand:
    name: str
    argv: List[str]


KNOWN_AGENTS: Dict[str, AgentCommand] = {
    "claude": AgentCommand("claude", ["claude", "--print", "--output-format", "text",
                                      "--permission-mode", "bypassPermissions", "-"]),
    "codex": AgentCommand("codex", ["codex", "exec", "--skip-git-repo-check", "--full-auto", "-"]),
    "gemini": AgentCommand("gemini", ["gemini", "--output-format", "text", "--yolo"]),
}


class CLIAgent(AIAgent):
    """Run the first available agent CLI from ``config.AGENT_PRIORITY``."""

    name = "cli"

    def __init__(self, priority: Optional[List[str]] = None, runner: Optional[CommandRunner] = None):
        self.priority = priority if priority is not None else list(config.AGENT_PRIORITY)
        self.runner = runner or CommandRunner()

    def select_agent(self) -> AgentCommand:
        """First configured agent whose executable is on PATH."""
        for name in self.priority:
            agent = KNOWN_AGENTS.get(name)
            if agent and shutil.which(agent.argv[0]):
                return agent
        raise AgentUnavailableError(
            f"No AI agent CLI found (looked for: {', '.join(self.priority) or 'none'})"
        )

    def call(
        self,
        prompt: str,
        *,
        timeout_ms: Optional[int] = None,
        cwd: Optional[Path] = None,
        preferred_model: Optional[str] = None,
        show_progress: bool = False,
    ) -> AgentResponse:
        try:
            agent = self.select_agent()
        except AgentUnavailableError as e:
            return AgentResponse(success=False, error=str(e), agent_used=None)

        argv = list(agent.argv)
        if preferred_model and agent.name == "claude":
            argv[1:1] = ["--model", preferred_model]

        get_logger().log("agents", "AGENT_CALL", {
            "agent": agent.name,
            "prompt_chars": len(prompt),
            "timeout_ms": timeout_ms,
        }, "DEBUG")

        result = self.runner.run(
            argv,
            cwd=cwd,
            timeout_ms=timeout_ms if timeout_ms is not None else config.AI_TIMEOUT_MS,
            input_text=prompt,
        )

        if result.timed_out:
            return AgentResponse(success=False, output=result.stdout, agent_used=agent.name,
                                 error=f"Agent timed out after {result.duration_ms}ms")
        if result.error:
            return AgentResponse(success=False, agent_used=agent.name, error=result.error)
        if result.exit_code != 0:
            detail = (result.stderr or result.stdout).strip()[-500:]
            return AgentResponse(success=False, output=result.stdout, agent_used=agent.name,
                                 error=f"{agent.name} exited with code {result.exit_code}: {detail}")
        return AgentResponse(success=True, output=result.stdout, agent_used=agent.name)
