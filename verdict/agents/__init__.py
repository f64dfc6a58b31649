#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""AI agent capability and its adapters."""

from verdict.agents.base import AgentResponse, AIAgent
from verdict.agents.cli_agent import CLIAgent
from verdict.agents.ollama_agent import OllamaAgent


def create_agent(kind: str = "cli") -> AIAgent:
    """Build the agent adapter named on the command line."""
    if kind == "ollama":
        return OllamaAgent()
    if kind == "cli":
        return CLIAgent()
    raise ValueError(f"Unknown agent kind: {kind}")


__all__ = ["AgentResponse", "AIAgent", "CLIAgent", "OllamaAgent", "create_agent"]
