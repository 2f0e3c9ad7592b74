"""Scoring and analysis result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

from ..constants import RiskTier, Severity
from .signals import SignalOmission, SignalResult, signal_to_dict


@dataclass(frozen=True)
class Indicator:
    """A severity-tagged, user-facing statement about one fired check."""

    severity: Severity
    message: str
    check: str = ""

    def to_dict(self) -> dict:
        return {"severity": str(self.severity), "message": self.message, "check": self.check}


@dataclass(frozen=True)
class ScoreResult:
    score: int
    risk_tier: RiskTier
    indicators: tuple[Indicator, ...]
    explanation: str
    omitted: tuple[str, ...] = ()

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.indicators if i.severity == severity)


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregate root returned by PageAnalyzer.analyze()."""

    url: str
    score: int
    risk_tier: RiskTier
    indicators: tuple[Indicator, ...]
    explanation: str
    raw_signals: Mapping[str, SignalResult] = field(default_factory=dict)
    omitted_signals: tuple[SignalOmission, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    trusted: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "score": self.score,
            "risk_tier": str(self.risk_tier),
            "indicators": [i.to_dict() for i in self.indicators],
            "explanation": self.explanation,
            "raw_signals": {kind: signal_to_dict(s) for kind, s in self.raw_signals.items()},
            "omitted_signals": [{"kind": o.kind, "reason": o.reason} for o in self.omitted_signals],
            "error": self.error,
            "trusted": self.trusted,
        }
