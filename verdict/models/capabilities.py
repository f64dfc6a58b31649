#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Detected project capabilities (test, e2e, typecheck, lint and build commands)."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class CapabilitySource(Enum):
    """Where a capabilities record came from."""
    CACHE = "cache"
    AI = "ai"
    NONE = "none"


CHECK_KINDS = ("test", "e2e", "typecheck", "lint", "build")


@dataclass(frozen=True)
class CapabilityInfo:
    """One check kind: is it available, and how is it invoked."""
    available: bool = False
    command: Optional[str] = None
    confidence: Optional[float] = None
    framework: Optional[str] = None
    # test: selective invocation templates using {files} / {pattern}
    selective_file_template: Optional[str] = None
    selective_name_template: Optional[str] = None
    # e2e: config file and filter templates using {tags} / {files}
    config_file: Optional[str] = None
    grep_template: Optional[str] = None
    file_template: Optional[str] = None
    source: CapabilitySource = CapabilitySource.NONE

    @property
    def runnable(self) -> bool:
        return self.available and bool(self.command)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"available": self.available}
        for key, attr in _INFO_KEYS:
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        data["source"] = self.source.value
        return data

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]],
                  default_source: CapabilitySource = CapabilitySource.NONE) -> "CapabilityInfo":
        if not isinstance(data, dict):
            return CapabilityInfo(source=default_source)
        kwargs: Dict[str, Any] = {
            "available": bool(data.get("available", False)),
            "source": _parse_source(data.get("source"), default_source),
        }
        for key, attr in _INFO_KEYS:
            value = data.get(key, data.get(attr))
            if value is not None:
                kwargs[attr] = float(value) if attr == "confidence" else value
        return CapabilityInfo(**kwargs)


def _parse_source(value: Any, default: CapabilitySource) -> CapabilitySource:
    try:
        return CapabilitySource(value) if value is not None else default
    except ValueError:
        return default


_INFO_KEYS = (
    ("command", "command"),
    ("confidence", "confidence"),
    ("framework", "framework"),
    ("selectiveFileTemplate", "selective_file_template"),
    ("selectiveNameTemplate", "selective_name_template"),
    ("configFile", "config_file"),
    ("grepTemplate", "grep_template"),
    ("fileTemplate", "file_template"),
)


@dataclass(frozen=True)
class CustomRule:
    """A project-specific verification command discovered alongside the standard ones."""
    id: str
    description: str
    command: str
    type: str = "custom"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "description": self.description, "command": self.command, "type": self.type}


@dataclass(frozen=True)
class ExtendedCapabilities:
    """Capabilities for every check kind plus custom rules."""
    test: CapabilityInfo = field(default_factory=CapabilityInfo)
    e2e: CapabilityInfo = field(default_factory=CapabilityInfo)
    typecheck: CapabilityInfo = field(default_factory=CapabilityInfo)
    lint: CapabilityInfo = field(default_factory=CapabilityInfo)
    build: CapabilityInfo = field(default_factory=CapabilityInfo)
    custom_rules: List[CustomRule] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    package_manager: Optional[str] = None
    source: CapabilitySource = CapabilitySource.NONE
    confidence: float = 0.0
    detected_at: Optional[str] = None
    has_git: bool = False

    @property
    def has_tests(self) -> bool:
        return self.test.runnable

    @property
    def test_command(self) -> Optional[str]:
        return self.test.command if self.test.runnable else None

    def info_for(self, kind: str) -> CapabilityInfo:
        """Capability for a check kind name (test, e2e, typecheck, lint, build)."""
        return getattr(self, kind)

    def with_source(self, source: CapabilitySource) -> "ExtendedCapabilities":
        """Copy with ``source`` set on the record and on every check kind."""
        kinds = {kind: replace(getattr(self, kind), source=source) for kind in CHECK_KINDS}
        return replace(self, source=source, **kinds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test": self.test.to_dict(),
            "e2e": self.e2e.to_dict(),
            "typecheck": self.typecheck.to_dict(),
            "lint": self.lint.to_dict(),
            "build": self.build.to_dict(),
            "customRules": [r.to_dict() for r in self.custom_rules],
            "languages": list(self.languages),
            "packageManager": self.package_manager,
            "source": self.source.value,
            "confidence": self.confidence,
            "detectedAt": self.detected_at,
            "hasGit": self.has_git,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ExtendedCapabilities":
        rules = []
        for raw in data.get("customRules") or []:
            if isinstance(raw, dict) and raw.get("id") and raw.get("command"):
                rules.append(CustomRule(
                    id=str(raw["id"]),
                    description=str(raw.get("description", "")),
                    command=str(raw["command"]),
                    type=str(raw.get("type", "custom")),
                ))
        source = _parse_source(data.get("source"), CapabilitySource.NONE)
        return ExtendedCapabilities(
            test=CapabilityInfo.from_dict(data.get("test"), source),
            e2e=CapabilityInfo.from_dict(data.get("e2e"), source),
            typecheck=CapabilityInfo.from_dict(data.get("typecheck"), source),
            lint=CapabilityInfo.from_dict(data.get("lint"), source),
            build=CapabilityInfo.from_dict(data.get("build"), source),
            custom_rules=rules,
            languages=[str(lang) for lang in data.get("languages") or []],
            package_manager=data.get("packageManager"),
            source=source,
            confidence=float(data.get("confidence") or 0.0),
            detected_at=data.get("detectedAt"),
            has_git=bool(data.get("hasGit", False)),
        )

    @staticmethod
    def empty(has_git: bool = False) -> "ExtendedCapabilities":
        """Nothing detected."""
        return ExtendedCapabilities(source=CapabilitySource.NONE, has_git=has_git)
