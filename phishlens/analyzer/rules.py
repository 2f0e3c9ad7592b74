"""Rule-based building blocks for risk scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol

from ..config import Config
from ..constants import Severity
from .features import UrlFeatures
from .signals import SignalResult


@dataclass
class ScoringContext:
    """Shared context passed to each scoring rule."""

    features: UrlFeatures
    signals: Mapping[str, SignalResult]
    config: Config

    def signal(self, kind: str) -> Optional[SignalResult]:
        """Checked signal of the given kind, or None."""
        signal = self.signals.get(str(kind))
        if signal is None or not getattr(signal, "checked", False):
            return None
        return signal


@dataclass
class Finding:
    """One fired check: a score adjustment plus its user-facing message."""

    check: str
    points: float
    message: str
    severity: Optional[Severity] = None

    def resolved_severity(self) -> Severity:
        if self.severity is not None:
            return self.severity
        return Severity.for_adjustment(self.points)


@dataclass
class RuleResult:
    """Outcome of a single scoring rule."""

    name: str
    findings: list[Finding] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    # Score change that produces no indicator.
    adjustment: float = 0.0

    def add(self, check: str, points: float, message: str) -> None:
        self.findings.append(Finding(check=check, points=points, message=message))

    @property
    def score(self) -> float:
        return self.adjustment + sum(f.points for f in self.findings)


class ScoringRule(Protocol):
    """Interface for scoring rules."""

    name: str

    def apply(self, context: ScoringContext) -> RuleResult:  # pragma: no cover - interface
        ...
