#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Result models produced by a verification run.

Serialized artifacts use camelCase keys so the JSON written to
``ai/verification`` stays readable by other tooling in the project.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CheckType(Enum):
    """Kinds of automated checks."""
    TEST = "test"
    TYPECHECK = "typecheck"
    LINT = "lint"
    BUILD = "build"
    E2E = "e2e"


class Verdict(Enum):
    """Verification outcome."""
    PASS = "pass"
    FAIL = "fail"
    NEEDS_REVIEW = "needs_review"

    @classmethod
    def coerce(cls, value: Any) -> "Verdict":
        """Map an untrusted value onto a verdict, defaulting to needs_review."""
        if isinstance(value, Verdict):
            return value
        for member in cls:
            if member.value == value:
                return member
        return cls.NEEDS_REVIEW


class VerificationMode(Enum):
    """How a feature is verified."""
    TDD = "tdd"
    AI = "ai"


def truncate(text: str, limit: int, marker: str = "\n... (truncated)") -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + marker


@dataclass(frozen=True)
class AutomatedCheckResult:
    """Result of running one automated check."""
    type: CheckType
    success: bool
    duration_ms: int = 0
    error_count: int = 0
    output: str = ""

    def to_dict(self, output_limit: Optional[int] = None) -> Dict[str, Any]:
        output = self.output if output_limit is None else truncate(self.output, output_limit)
        return {
            "type": self.type.value,
            "success": self.success,
            "duration": self.duration_ms,
            "errorCount": self.error_count,
            "output": output,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AutomatedCheckResult":
        return AutomatedCheckResult(
            type=CheckType(data["type"]),
            success=bool(data.get("success", False)),
            duration_ms=int(data.get("duration", 0)),
            error_count=int(data.get("errorCount", 0)),
            output=data.get("output", ""),
        )


@dataclass(frozen=True)
class CriterionResult:
    """Verdict on a single acceptance criterion, tied to its position by ``index``."""
    criterion: str
    index: int
    satisfied: bool
    reasoning: str
    evidence: List[str] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "criterion": self.criterion,
            "index": self.index,
            "satisfied": self.satisfied,
            "reasoning": self.reasoning,
            "evidence": list(self.evidence),
            "confidence": self.confidence,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CriterionResult":
        return CriterionResult(
            criterion=data.get("criterion", ""),
            index=int(data.get("index", 0)),
            satisfied=bool(data.get("satisfied", False)),
            reasoning=data.get("reasoning", ""),
            evidence=list(data.get("evidence", [])),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass
class ParsedAIResponse:
    """AI verdict reconciled against the feature's acceptance criteria."""
    criteria_results: List[CriterionResult]
    verdict: Verdict
    overall_reasoning: str = ""
    suggestions: List[str] = field(default_factory=list)
    code_quality_notes: List[str] = field(default_factory=list)
    agent_used: Optional[str] = None


@dataclass
class StrategyResult:
    """What a strategy executor reports back."""
    success: bool
    output: str
    duration_ms: int = 0
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StrategyRunRecord:
    """Per-strategy line item kept on a VerificationResult."""
    type: str
    required: bool
    success: bool
    output: str
    duration_ms: int = 0

    def to_dict(self, output_limit: Optional[int] = None) -> Dict[str, Any]:
        output = self.output if output_limit is None else truncate(self.output, output_limit)
        return {
            "type": self.type,
            "required": self.required,
            "success": self.success,
            "output": output,
            "duration": self.duration_ms,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "StrategyRunRecord":
        return StrategyRunRecord(
            type=data["type"],
            required=bool(data.get("required", True)),
            success=bool(data.get("success", False)),
            output=data.get("output", ""),
            duration_ms=int(data.get("duration", 0)),
        )


@dataclass(frozen=True)
class VerificationResult:
    """One verification run. Never mutated; a correction is a new run."""
    feature_id: str
    timestamp: str
    verdict: Verdict
    verified_by: str
    overall_reasoning: str
    commit_hash: Optional[str] = None
    changed_files: List[str] = field(default_factory=list)
    diff_summary: str = ""
    automated_checks: List[AutomatedCheckResult] = field(default_factory=list)
    criteria_results: List[CriterionResult] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    code_quality_notes: List[str] = field(default_factory=list)
    strategy_results: List[StrategyRunRecord] = field(default_factory=list)
    mode: Optional[VerificationMode] = None

    def to_dict(self, output_limit: Optional[int] = None) -> Dict[str, Any]:
        """Serialize; ``output_limit`` truncates check and strategy output."""
        data: Dict[str, Any] = {
            "featureId": self.feature_id,
            "timestamp": self.timestamp,
            "commitHash": self.commit_hash,
            "changedFiles": list(self.changed_files),
            "diffSummary": self.diff_summary,
            "automatedChecks": [c.to_dict(output_limit) for c in self.automated_checks],
            "criteriaResults": [c.to_dict() for c in self.criteria_results],
            "verdict": self.verdict.value,
            "verifiedBy": self.verified_by,
            "overallReasoning": self.overall_reasoning,
            "suggestions": list(self.suggestions),
            "codeQualityNotes": list(self.code_quality_notes),
            "strategyResults": [s.to_dict(output_limit) for s in self.strategy_results],
        }
        if self.mode is not None:
            data["mode"] = self.mode.value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "VerificationResult":
        mode = data.get("mode")
        return VerificationResult(
            feature_id=data["featureId"],
            timestamp=data.get("timestamp", ""),
            verdict=Verdict.coerce(data.get("verdict")),
            verified_by=data.get("verifiedBy", ""),
            overall_reasoning=data.get("overallReasoning", ""),
            commit_hash=data.get("commitHash"),
            changed_files=list(data.get("changedFiles", [])),
            diff_summary=data.get("diffSummary", ""),
            automated_checks=[AutomatedCheckResult.from_dict(c) for c in data.get("automatedChecks", [])],
            criteria_results=[CriterionResult.from_dict(c) for c in data.get("criteriaResults", [])],
            suggestions=list(data.get("suggestions", [])),
            code_quality_notes=list(data.get("codeQualityNotes", [])),
            strategy_results=[StrategyRunRecord.from_dict(s) for s in data.get("strategyResults", [])],
            mode=VerificationMode(mode) if mode else None,
        )
