#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Verification strategy records.

A strategy is a declarative description of one verification method. Records
arrive from task definitions as plain dicts (YAML or JSON, camelCase or
snake_case keys) and are parsed into one dataclass per variant. The variant
is identified by ``strategy.type``.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from verdict.errors import StrategyConfigError


class StrategyType(Enum):
    """Strategy variants."""
    TEST = "test"
    E2E = "e2e"
    SCRIPT = "script"
    HTTP = "http"
    FILE = "file"
    COMMAND = "command"
    MANUAL = "manual"
    AI = "ai"
    COMPOSITE = "composite"


ExitCodes = Union[int, List[int]]


@dataclass
class VerificationStrategy:
    """Fields shared by every variant."""
    type: StrategyType = StrategyType.AI
    required: bool = True
    timeout_ms: Optional[int] = None
    description: Optional[str] = None


@dataclass
class TestStrategy(VerificationStrategy):
    __test__ = False

    type: StrategyType = StrategyType.TEST
    pattern: Optional[str] = None
    cases: List[str] = field(default_factory=list)
    framework: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class E2EStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.E2E
    pattern: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    scenarios: List[str] = field(default_factory=list)
    framework: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class ScriptStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.SCRIPT
    path: str = ""
    args: List[str] = field(default_factory=list)
    cwd: Optional[str] = None
    expected_exit_code: int = 0
    output_pattern: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class JsonAssertion:
    path: str
    expected: Any


@dataclass
class HttpStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.HTTP
    url: str = ""
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    expected_status: ExitCodes = 200
    expected_body_pattern: Optional[str] = None
    json_assertions: List[JsonAssertion] = field(default_factory=list)
    allowed_hosts: Optional[List[str]] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class FileCheck:
    """Assertions applied to every file a file strategy resolves."""
    exists: Optional[bool] = True
    contains_pattern: Optional[str] = None
    matches_content: Optional[str] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    not_empty: Optional[bool] = None
    permissions: Optional[str] = None


@dataclass
class FileStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.FILE
    path: str = ""
    paths: List[str] = field(default_factory=list)
    checks: List[FileCheck] = field(default_factory=lambda: [FileCheck()])

    def all_patterns(self) -> List[str]:
        return [p for p in [self.path, *self.paths] if p]


@dataclass
class CommandStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.COMMAND
    command: str = ""
    args: List[str] = field(default_factory=list)
    cwd: Optional[str] = None
    expected_exit_code: ExitCodes = 0
    expected_output_pattern: Optional[str] = None
    stderr_pattern: Optional[str] = None
    not_patterns: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class ManualStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.MANUAL
    instructions: Optional[str] = None
    checklist: List[str] = field(default_factory=list)
    assignee: Optional[str] = None


@dataclass
class AIStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.AI
    mode: str = "diff"
    custom_prompt: Optional[str] = None
    min_confidence: Optional[float] = None
    model: Optional[str] = None


@dataclass
class CompositeStrategy(VerificationStrategy):
    type: StrategyType = StrategyType.COMPOSITE
    operator: str = "and"
    strategies: List[VerificationStrategy] = field(default_factory=list)


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_keys(record: Dict[str, Any]) -> Dict[str, Any]:
    return {_CAMEL_RE.sub("_", str(k)).lower(): v for k, v in record.items()}


def _require(data: Dict[str, Any], key: str, strategy_type: str) -> Any:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise StrategyConfigError(f"{strategy_type} strategy requires '{key}'")
    return value


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _exit_codes(value: Any, default: ExitCodes) -> ExitCodes:
    if value is None:
        return default
    try:
        if isinstance(value, (list, tuple)):
            return [int(v) for v in value]
        return int(value)
    except (TypeError, ValueError):
        raise StrategyConfigError(f"Invalid exit code/status: {value!r}")


def _file_check(raw: Dict[str, Any]) -> FileCheck:
    raw = _snake_keys(raw)
    size = raw.get("size") or raw.get("size_constraint") or {}
    return FileCheck(
        exists=raw.get("exists", True),
        contains_pattern=raw.get("contains_pattern") or raw.get("contains"),
        matches_content=raw.get("matches_content"),
        min_size=size.get("min", raw.get("min_size")),
        max_size=size.get("max", raw.get("max_size")),
        not_empty=raw.get("not_empty"),
        permissions=str(raw["permissions"]) if raw.get("permissions") is not None else None,
    )


_LEGACY_FILE_KEYS = ("exists", "contains_pattern", "contains", "matches_content",
                     "size", "size_constraint", "not_empty", "permissions")


def _parse_file(data: Dict[str, Any], common: Dict[str, Any]) -> FileStrategy:
    checks: List[FileCheck] = []
    if any(k in data for k in _LEGACY_FILE_KEYS):
        checks.append(_file_check({k: data[k] for k in _LEGACY_FILE_KEYS if k in data}))
    for raw in data.get("checks") or []:
        if not isinstance(raw, dict):
            raise StrategyConfigError(f"file check must be a mapping, got {raw!r}")
        checks.append(_file_check(raw))
    if not checks:
        checks.append(FileCheck(exists=True))
    return FileStrategy(
        path=str(data.get("path") or ""),
        paths=_str_list(data.get("paths")),
        checks=checks,
        **common,
    )


def _parse_http(data: Dict[str, Any], common: Dict[str, Any]) -> HttpStrategy:
    assertions = []
    for raw in data.get("json_assertions") or []:
        if not isinstance(raw, dict) or "path" not in raw:
            raise StrategyConfigError(f"json assertion needs a 'path': {raw!r}")
        assertions.append(JsonAssertion(path=str(raw["path"]), expected=raw.get("expected")))
    allowed = data.get("allowed_hosts")
    return HttpStrategy(
        url=str(_require(data, "url", "http")),
        method=str(data.get("method") or "GET").upper(),
        headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
        body=data.get("body"),
        expected_status=_exit_codes(data.get("expected_status"), 200),
        expected_body_pattern=data.get("expected_body_pattern"),
        json_assertions=assertions,
        allowed_hosts=_str_list(allowed) if allowed is not None else None,
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        **common,
    )


def _parse_composite(data: Dict[str, Any], common: Dict[str, Any]) -> CompositeStrategy:
    operator = str(data.get("operator") or data.get("logic") or "and").lower()
    if operator not in ("and", "or"):
        raise StrategyConfigError(f"composite operator must be 'and' or 'or', got {operator!r}")
    children = data.get("strategies") or []
    if not isinstance(children, list):
        raise StrategyConfigError("composite 'strategies' must be a list")
    # Children are optional unless marked, so OR can recover from a failed branch
    parsed = [
        parse_strategy({"required": False, **child} if isinstance(child, dict) else child)
        for child in children
    ]
    return CompositeStrategy(operator=operator, strategies=parsed, **common)


def _env(data: Dict[str, Any]) -> Dict[str, str]:
    return {str(k): str(v) for k, v in (data.get("env") or {}).items()}


_PARSERS: Dict[StrategyType, Callable[[Dict[str, Any], Dict[str, Any]], VerificationStrategy]] = {
    StrategyType.TEST: lambda d, c: TestStrategy(
        pattern=d.get("pattern"), cases=_str_list(d.get("cases")),
        framework=d.get("framework"), env=_env(d), **c),
    StrategyType.E2E: lambda d, c: E2EStrategy(
        pattern=d.get("pattern"), tags=_str_list(d.get("tags")),
        scenarios=_str_list(d.get("scenarios")), framework=d.get("framework"),
        env=_env(d), **c),
    StrategyType.SCRIPT: lambda d, c: ScriptStrategy(
        path=str(_require(d, "path", "script")), args=_str_list(d.get("args")),
        cwd=d.get("cwd"), expected_exit_code=_exit_codes(d.get("expected_exit_code"), 0),
        output_pattern=d.get("output_pattern") or d.get("expected_output_pattern"),
        env=_env(d), **c),
    StrategyType.HTTP: _parse_http,
    StrategyType.FILE: _parse_file,
    StrategyType.COMMAND: lambda d, c: CommandStrategy(
        command=str(_require(d, "command", "command")), args=_str_list(d.get("args")),
        cwd=d.get("cwd"), expected_exit_code=_exit_codes(d.get("expected_exit_code"), 0),
        expected_output_pattern=d.get("expected_output_pattern") or d.get("stdout_pattern"),
        stderr_pattern=d.get("stderr_pattern"), not_patterns=_str_list(d.get("not_patterns")),
        env=_env(d), **c),
    StrategyType.MANUAL: lambda d, c: ManualStrategy(
        instructions=d.get("instructions"), checklist=_str_list(d.get("checklist")),
        assignee=d.get("assignee") or d.get("reviewer"), **c),
    StrategyType.AI: lambda d, c: AIStrategy(
        mode=str(d.get("mode") or "diff"), custom_prompt=d.get("custom_prompt"),
        min_confidence=float(d["min_confidence"]) if d.get("min_confidence") is not None else None,
        model=d.get("model"), **c),
    StrategyType.COMPOSITE: _parse_composite,
}


def parse_strategy(record: Union[Dict[str, Any], VerificationStrategy]) -> VerificationStrategy:
    """Parse one strategy record into its variant dataclass.

    Raises:
        StrategyConfigError: unknown type, missing mandatory field or bad value
    """
    if isinstance(record, VerificationStrategy):
        return record
    if not isinstance(record, dict):
        raise StrategyConfigError(f"Strategy must be a mapping, got {type(record).__name__}")

    data = _snake_keys(record)
    try:
        strategy_type = StrategyType(str(data.get("type", "")).lower())
    except ValueError:
        raise StrategyConfigError(f"Unknown strategy type: {data.get('type')!r}")

    timeout = data.get("timeout_ms", data.get("timeout"))
    try:
        common = {
            "required": bool(data.get("required", True)),
            "timeout_ms": int(timeout) if timeout is not None else None,
            "description": data.get("description"),
        }
        return _PARSERS[strategy_type](data, common)
    except (TypeError, ValueError, AttributeError) as e:
        raise StrategyConfigError(f"Invalid {strategy_type.value} strategy: {e}") from e
