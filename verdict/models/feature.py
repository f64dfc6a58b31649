#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Feature (task) models consumed by the verifier.

A feature carries its acceptance criteria, optional test requirements and
optional explicit verification strategies. Features are loaded from YAML, or
from markdown files with YAML front matter.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from verdict.models.strategies import VerificationStrategy, parse_strategy


class TaskType(Enum):
    """Kinds of work, each with default verification strategies."""
    CODE = "code"
    OPS = "ops"
    DATA = "data"
    INFRA = "infra"
    MANUAL = "manual"


@dataclass
class TestRequirement:
    """Unit or e2e test expectations for a feature."""
    __test__ = False

    required: bool = False
    pattern: Optional[str] = None
    cases: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    scenarios: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional["TestRequirement"]:
        if not isinstance(data, dict):
            return None
        return TestRequirement(
            required=bool(data.get("required", False)),
            pattern=data.get("pattern"),
            cases=list(data.get("cases") or []),
            tags=list(data.get("tags") or []),
            scenarios=list(data.get("scenarios") or []),
        )


@dataclass
class TestRequirements:
    __test__ = False

    unit: Optional[TestRequirement] = None
    e2e: Optional[TestRequirement] = None

    @property
    def any_required(self) -> bool:
        return bool((self.unit and self.unit.required) or (self.e2e and self.e2e.required))

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional["TestRequirements"]:
        if not isinstance(data, dict):
            return None
        return TestRequirements(
            unit=TestRequirement.from_dict(data.get("unit")),
            e2e=TestRequirement.from_dict(data.get("e2e")),
        )


@dataclass
class Feature:
    """A unit of work with acceptance criteria to verify."""
    id: str
    description: str
    acceptance: List[str] = field(default_factory=list)
    module: str = ""
    task_type: Optional[TaskType] = None
    test_requirements: Optional[TestRequirements] = None
    verification_strategies: List[Dict[str, Any]] = field(default_factory=list)
    tdd_mode: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def parsed_strategies(self) -> List[VerificationStrategy]:
        """Parse the raw strategy records; raises StrategyConfigError on bad input."""
        return [parse_strategy(record) for record in self.verification_strategies]

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Feature":
        """Deserialize from a mapping (snake_case or camelCase keys)."""
        task_type = data.get("task_type", data.get("taskType"))
        return Feature(
            id=str(data["id"]),
            description=str(data.get("description", "")),
            acceptance=[str(c) for c in data.get("acceptance") or []],
            module=str(data.get("module", "")),
            task_type=TaskType(task_type) if task_type else None,
            test_requirements=TestRequirements.from_dict(
                data.get("test_requirements", data.get("testRequirements"))
            ),
            verification_strategies=list(
                data.get("verification_strategies", data.get("verificationStrategies")) or []
            ),
            tdd_mode=data.get("tdd_mode", data.get("tddMode")),
            metadata=dict(data.get("metadata") or {}),
        )

    @staticmethod
    def from_yaml(yaml_str: str) -> "Feature":
        """Deserialize from YAML format."""
        data = yaml.safe_load(yaml_str)
        if not isinstance(data, dict):
            raise ValueError("Feature YAML must be a mapping")
        return Feature.from_dict(data)

    def __repr__(self) -> str:
        return f"Feature({self.id}): {len(self.acceptance)} criteria"


_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*\n?(.*)\Z", re.DOTALL)
_CRITERIA_HEADING_RE = re.compile(r"^#+\s*acceptance criteria\s*$", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-*]|\d+\.)\s+(?:\[[ xX]\]\s+)?(.+?)\s*$")


def _criteria_from_markdown(body: str) -> List[str]:
    criteria: List[str] = []
    in_section = False
    for line in body.splitlines():
        if _CRITERIA_HEADING_RE.match(line.strip()):
            in_section = True
            continue
        if in_section:
            if line.lstrip().startswith("#"):
                break
            match = _BULLET_RE.match(line)
            if match:
                criteria.append(match.group(1))
    return criteria


def load_feature(path: Union[str, Path]) -> Feature:
    """Load a feature from a YAML file or a markdown file with YAML front matter."""
    text = Path(path).read_text(encoding="utf-8")
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return Feature.from_yaml(text)

    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Front matter in {path} must be a mapping")
    if not data.get("acceptance"):
        data["acceptance"] = _criteria_from_markdown(match.group(2))
    return Feature.from_dict(data)
