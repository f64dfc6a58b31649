#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""AI-driven discovery of a project's verification commands."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from verdict import config
from verdict.agents.base import AIAgent
from verdict.debug_logger import get_logger
from verdict.execution.prompts import build_capability_discovery_prompt
from verdict.execution.response_parser import parse_json_from_text
from verdict.models.capabilities import CHECK_KINDS, CapabilitySource, ExtendedCapabilities
from verdict.tools.git_ops import is_git_repo


@dataclass
class DiscoveryResult:
    capabilities: ExtendedCapabilities
    config_files: List[str] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None


def _overall_confidence(data: Dict[str, Any]) -> float:
    scores = []
    for kind in CHECK_KINDS:
        info = data.get(kind)
        if isinstance(info, dict) and info.get("available"):
            try:
                scores.append(float(info.get("confidence", 0.5)))
            except (TypeError, ValueError):
                scores.append(0.5)
    return round(sum(scores) / len(scores), 2) if scores else 0.0


def parse_discovery_response(output: str, has_git: bool = False) -> DiscoveryResult:
    """Turn the agent's JSON answer into capabilities plus tracked config files."""
    data = parse_json_from_text(output)
    if data is None:
        return DiscoveryResult(ExtendedCapabilities.empty(has_git), error="No JSON object in discovery response")

    try:
        record = dict(data)
        record["source"] = CapabilitySource.AI.value
        record["confidence"] = _overall_confidence(data)
        record["detectedAt"] = datetime.now(timezone.utc).isoformat()
        record["hasGit"] = has_git
        capabilities = ExtendedCapabilities.from_dict(record).with_source(CapabilitySource.AI)
    except (TypeError, ValueError) as e:
        return DiscoveryResult(ExtendedCapabilities.empty(has_git), error=f"Invalid discovery response: {e}")

    config_files = [str(f) for f in data.get("configFiles") or [] if isinstance(f, str) and f.strip()]
    return DiscoveryResult(capabilities, config_files=config_files, success=True)


def discover_capabilities(cwd: Path, agent: AIAgent, timeout_ms: Optional[int] = None) -> DiscoveryResult:
    """Ask the agent which test/lint/build commands the project has."""
    has_git = is_git_repo(cwd)
    prompt = build_capability_discovery_prompt(cwd)
    try:
        response = agent.call(
            prompt,
            timeout_ms=timeout_ms if timeout_ms is not None else config.AI_TIMEOUT_MS,
            cwd=cwd,
        )
    except Exception as e:
        get_logger().log_error("capabilities", e, {"cwd": str(cwd)})
        return DiscoveryResult(ExtendedCapabilities.empty(has_git), error=str(e))

    if not response.success:
        get_logger().warning("Capability discovery failed: %s", response.error)
        return DiscoveryResult(ExtendedCapabilities.empty(has_git), error=response.error)

    result = parse_discovery_response(response.output, has_git)
    get_logger().log("capabilities", "DISCOVERY_COMPLETE", {
        "agent": response.agent_used,
        "success": result.success,
        "config_files": result.config_files,
        "error": result.error,
    })
    return result
