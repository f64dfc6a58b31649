#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Two-tier capability cache.

- Memory tier: ``CapabilityCache``, a single slot keyed by project path with
  a TTL. Setting a value for any path replaces the slot (last write wins).
- Disk tier: a JSON document at ``<project>/ai/capabilities.json`` recording
  the capabilities, the config files they were derived from, and the commit
  they were discovered at. It is trusted only while HEAD still equals that
  commit and none of the tracked config files differ.
"""

import json
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from verdict import config
from verdict.debug_logger import get_logger
from verdict.models.capabilities import CapabilitySource, ExtendedCapabilities
from verdict.tools.git_ops import files_changed_between, get_commit_hash


def _resolve(cwd: Path) -> str:
    return str(Path(cwd).resolve())


@dataclass
class MemoryEntry:
    """The single memory slot."""
    cwd: str
    capabilities: ExtendedCapabilities
    timestamp: float


class CapabilityCache:
    """Process-lifetime memory tier for detected capabilities.

    Pass one instance to every ``detect_capabilities`` call that should share
    it. The slot holds one project at a time; detecting another project evicts
    the previous one.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = config.CAPABILITY_MEMORY_TTL_S if ttl is None else ttl
        self._clock = clock
        self._entry: Optional[MemoryEntry] = None
        self.stats = {"hits": 0, "misses": 0, "expirations": 0, "evictions": 0}

    def _is_expired(self, entry: MemoryEntry) -> bool:
        if self.ttl <= 0:  # TTL of 0 or negative means never expire
            return False
        return (self._clock() - entry.timestamp) > self.ttl

    def get(self, cwd: Path) -> Optional[ExtendedCapabilities]:
        """Capabilities for ``cwd`` if the slot holds them and they are fresh."""
        entry = self._entry
        if entry is None or entry.cwd != _resolve(cwd):
            self.stats["misses"] += 1
            return None
        if self._is_expired(entry):
            self._entry = None
            self.stats["expirations"] += 1
            self.stats["misses"] += 1
            return None
        self.stats["hits"] += 1
        return entry.capabilities

    def set(self, cwd: Path, capabilities: ExtendedCapabilities) -> None:
        key = _resolve(cwd)
        if self._entry is not None and self._entry.cwd != key:
            self.stats["evictions"] += 1
        self._entry = MemoryEntry(cwd=key, capabilities=capabilities, timestamp=self._clock())

    def invalidate(self, cwd: Path) -> bool:
        """Drop the slot if it belongs to ``cwd``."""
        if self._entry is not None and self._entry.cwd == _resolve(cwd):
            self._entry = None
            return True
        return False

    def clear(self) -> None:
        self._entry = None

    def get_stats(self) -> Dict[str, Any]:
        total = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "hit_rate": round(self.stats["hits"] / total * 100, 2) if total else 0,
            "ttl_seconds": self.ttl,
            "cwd": self._entry.cwd if self._entry else None,
        }


@dataclass
class CapabilityCacheFile:
    """On-disk capability cache document."""
    capabilities: ExtendedCapabilities
    config_files: List[str] = field(default_factory=list)
    commit_hash: Optional[str] = None
    cached_at: Optional[str] = None
    version: str = config.CAPABILITY_CACHE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "capabilities": self.capabilities.to_dict(),
            "configFiles": list(self.config_files),
            "commitHash": self.commit_hash,
            "cachedAt": self.cached_at,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CapabilityCacheFile":
        return CapabilityCacheFile(
            version=str(data.get("version", "")),
            capabilities=ExtendedCapabilities.from_dict(data.get("capabilities") or {}),
            config_files=[str(f) for f in data.get("configFiles") or []],
            commit_hash=data.get("commitHash"),
            cached_at=data.get("cachedAt"),
        )


def cache_path(cwd: Path) -> Path:
    return Path(cwd) / config.CAPABILITY_CACHE_FILE


def load_cache_file(cwd: Path) -> Optional[CapabilityCacheFile]:
    """Read the disk cache; None when missing, unreadable or from another version."""
    path = cache_path(cwd)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        entry = CapabilityCacheFile.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        get_logger().warning("Failed to parse capability cache %s: %s", path, e)
        return None

    if entry.version != config.CAPABILITY_CACHE_VERSION:
        get_logger().log("capabilities", "CACHE_VERSION_MISMATCH", {
            "found": entry.version,
            "expected": config.CAPABILITY_CACHE_VERSION,
        })
        return None
    return entry


def load_cached_capabilities(cwd: Path) -> Optional[ExtendedCapabilities]:
    """Disk-cached capabilities marked as coming from the cache."""
    entry = load_cache_file(cwd)
    if entry is None:
        return None
    return entry.capabilities.with_source(CapabilitySource.CACHE)


def save_capabilities(
    cwd: Path, capabilities: ExtendedCapabilities, config_files: Optional[List[str]] = None
) -> bool:
    """Write the disk cache. A failed write is logged and reported as False."""
    entry = CapabilityCacheFile(
        capabilities=capabilities,
        config_files=list(config_files or []),
        commit_hash=get_commit_hash(cwd),
        cached_at=datetime.now(timezone.utc).isoformat(),
    )
    path = cache_path(cwd)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(entry.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        get_logger().warning("Could not write capability cache %s: %s", path, e)
        return False
    return True


def clear_disk_cache(cwd: Path) -> bool:
    """Delete the disk cache file; True if one was removed."""
    path = cache_path(cwd)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


def is_stale(cwd: Path, entry: Optional[CapabilityCacheFile] = None) -> bool:
    """Whether a disk cache entry can no longer be trusted.

    Stale when: no entry, no recorded commit, git unavailable, HEAD moved, or
    any tracked config file differs between the recorded commit and HEAD.
    """
    entry = entry if entry is not None else load_cache_file(cwd)
    if entry is None or not entry.commit_hash:
        return True

    head = get_commit_hash(cwd)
    if head is None or head != entry.commit_hash:
        get_logger().log("capabilities", "CACHE_STALE", {"cached": entry.commit_hash, "head": head})
        return True

    if entry.config_files:
        changed = files_changed_between(cwd, entry.commit_hash, "HEAD", entry.config_files)
        if changed is None or changed:
            get_logger().log("capabilities", "CACHE_STALE", {"changed_files": changed})
            return True

    return False
