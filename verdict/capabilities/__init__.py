#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Capability detection with memory and disk caching."""

from verdict.capabilities.cache import (
    CapabilityCache,
    CapabilityCacheFile,
    cache_path,
    clear_disk_cache,
    is_stale,
    load_cache_file,
    load_cached_capabilities,
    save_capabilities,
)
from verdict.capabilities.detector import detect_capabilities, get_default_cache
from verdict.capabilities.discovery import DiscoveryResult, discover_capabilities, parse_discovery_response

__all__ = [
    "CapabilityCache",
    "CapabilityCacheFile",
    "cache_path",
    "clear_disk_cache",
    "is_stale",
    "load_cache_file",
    "load_cached_capabilities",
    "save_capabilities",
    "detect_capabilities",
    "get_default_cache",
    "DiscoveryResult",
    "discover_capabilities",
    "parse_discovery_response",
]
