#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Capability detection: memory tier, then disk tier, then AI discovery."""

from pathlib import Path
from typing import Optional

from verdict.agents.base import AIAgent
from verdict.capabilities.cache import (
    CapabilityCache,
    is_stale,
    load_cache_file,
    save_capabilities,
)
from verdict.capabilities.discovery import discover_capabilities
from verdict.debug_logger import get_logger
from verdict.models.capabilities import CapabilitySource, ExtendedCapabilities


def detect_capabilities(
    cwd: Path,
    agent: AIAgent,
    cache: CapabilityCache,
    *,
    force: bool = False,
    verbose: bool = False,
) -> ExtendedCapabilities:
    """Return the project's verification capabilities.

    Lookup order is memory tier, disk tier (if not stale), AI discovery. The
    first fresh hit wins. ``force`` skips both tiers and overwrites them with a
    new discovery.

    Args:
        cwd: Project root
        agent: Agent used when discovery is needed
        cache: Memory tier shared by callers in this process
        force: Always rediscover
        verbose: Log which tier answered at INFO level
    """
    cwd = Path(cwd)
    level = "INFO" if verbose else "DEBUG"

    if not force:
        cached = cache.get(cwd)
        if cached is not None:
            get_logger().log("capabilities", "MEMORY_HIT", {"cwd": str(cwd)}, level)
            return cached

        entry = load_cache_file(cwd)
        if entry is not None:
            if not is_stale(cwd, entry):
                capabilities = entry.capabilities.with_source(CapabilitySource.CACHE)
                cache.set(cwd, capabilities)
                get_logger().log("capabilities", "DISK_HIT", {"cwd": str(cwd)}, level)
                return capabilities
            get_logger().log("capabilities", "DISK_STALE", {"cwd": str(cwd)}, level)

    get_logger().log("capabilities", "DISCOVERING", {"cwd": str(cwd), "force": force}, level)
    result = discover_capabilities(cwd, agent)
    if not result.success:
        # Nothing trustworthy to persist; the next call retries discovery.
        return result.capabilities

    save_capabilities(cwd, result.capabilities, result.config_files)
    cache.set(cwd, result.capabilities)
    return result.capabilities


def get_default_cache() -> CapabilityCache:
    """Process-wide cache for callers that do not manage their own (e.g. the CLI)."""
    global _default_cache
    if _default_cache is None:
        _default_cache = CapabilityCache()
    return _default_cache


_default_cache: Optional[CapabilityCache] = None
