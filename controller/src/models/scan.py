"""
Security scan envelopes and gate decisions.
"""

from pydantic import BaseModel
from typing import List, Optional, Dict, Any
from enum import Enum

class ScanCategory(str, Enum):
    SAST = "sast"
    SCA = "sca"

class GateOutcome(str, Enum):
    CLEAR = "clear"
    WARN = "warn"

class WarningType(str, Enum):
    NO_ANALYSIS = "no_analysis"
    CRITICAL_FOUND = "critical_found"

class SeveritySummary(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def __add__(self, other: "SeveritySummary") -> "SeveritySummary":
        return SeveritySummary(
            critical=self.critical + other.critical,
            high=self.high + other.high,
            medium=self.medium + other.medium,
            low=self.low + other.low,
        )

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

class ScanResultEnvelope(BaseModel):
    category: ScanCategory
    status: str = "completed"
    artifact: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    scan_date: Optional[str] = None

    @property
    def has_result(self) -> bool:
        return self.status == "completed" and bool(self.result)

class GateDecision(BaseModel):
    category: ScanCategory
    stage: str
    outcome: GateOutcome
    warning_type: Optional[WarningType] = None
    summary: SeveritySummary = SeveritySummary()
    unanalyzed_artifacts: List[str] = []

    @property
    def is_clear(self) -> bool:
        return self.outcome == GateOutcome.CLEAR

    @classmethod
    def clear(cls, category: ScanCategory, stage: str, summary: Optional[SeveritySummary] = None) -> "GateDecision":
        return cls(category=category, stage=stage, outcome=GateOutcome.CLEAR,
                   summary=summary or SeveritySummary())

    @classmethod
    def warn(
        cls,
        category: ScanCategory,
        stage: str,
        warning_type: WarningType,
        summary: Optional[SeveritySummary] = None,
        unanalyzed_artifacts: Optional[List[str]] = None,
    ) -> "GateDecision":
        return cls(
            category=category,
            stage=stage,
            outcome=GateOutcome.WARN,
            warning_type=warning_type,
            summary=summary or SeveritySummary(),
            unanalyzed_artifacts=unanalyzed_artifacts or [],
        )
