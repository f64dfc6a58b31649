"""Base interface for AI agents used by verification."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class AgentResponse:
    """What an agent call produced. Failures are values, not exceptions."""
    success: bool
    output: str = ""
    agent_used: Optional[str] = None
    error: Optional[str] = None


class AIAgent(ABC):
    """An opaque capability: given a prompt, eventually return success/output/error.

    Implementations must be safe to call repeatedly and must not raise for
    agent-side failures; those come back as ``AgentResponse(success=False)``.
    """

    name = "base"

    @abstractmethod
    def call(
        self,
        prompt: str,
        *,
        timeout_ms: Optional[int] = None,
        cwd: Optional[Path] = None,
        preferred_model: Optional[str] = None,
        show_progress: bool = False,
    ) -> AgentResponse:
        """Send a prompt to the agent."""
