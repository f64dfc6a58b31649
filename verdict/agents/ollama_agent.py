#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Agent adapter for an Ollama server (``/api/generate``)."""

from pathlib import Path
from typing import Optional

import requests

from verdict import config
from verdict.agents.base import AIAgent, AgentResponse
from verdict.debug_logger import get_logger


class OllamaAgent(AIAgent):
    """Single-shot completion against Ollama.

    Transport errors are reported in the error text the way the requests
    exception describes them (``Read timed out``, ``Connection refused``),
    which lets AI analysis classify them as transient.
    """

    name = "ollama"

    def __init__(self, base_url: Optional[str] = None, model: Optional[str] = None):
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or config.OLLAMA_MODEL

    def call(
        self,
        prompt: str,
        *,
        timeout_ms: Optional[int] = None,
        cwd: Optional[Path] = None,
        preferred_model: Optional[str] = None,
        show_progress: bool = False,
    ) -> AgentResponse:
        model = preferred_model or self.model
        url = f"{self.base_url}/api/generate"
        timeout = (timeout_ms if timeout_ms is not None else config.AI_TIMEOUT_MS) / 1000
        payload = {"model": model, "prompt": prompt, "stream": False}

        get_logger().log("agents", "OLLAMA_REQUEST", {"model": model, "url": url}, "DEBUG")
        try:
            resp = requests.post(url, json=payload, timeout=timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.Timeout:
            return AgentResponse(success=False, agent_used=self.name,
                                 error=f"Ollama request timed out after {int(timeout * 1000)}ms")
        except requests.exceptions.HTTPError as e:
            return AgentResponse(success=False, agent_used=self.name, error=f"Ollama API error: {e}")
        except ValueError as e:
            return AgentResponse(success=False, agent_used=self.name,
                                 error=f"Ollama returned invalid JSON: {e}")
        except requests.exceptions.RequestException as e:
            return AgentResponse(success=False, agent_used=self.name,
                                 error=f"Ollama connection error: {e}")

        if data.get("error"):
            return AgentResponse(success=False, agent_used=self.name, error=f"Ollama API error: {data['error']}")
        return AgentResponse(success=True, output=data.get("response", ""), agent_used=f"{self.name}:{model}")
