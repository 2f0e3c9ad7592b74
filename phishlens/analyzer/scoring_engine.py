"""Risk scoring engine.

Turns extracted features plus provider signals into a 0-100 safety score
(higher is safer), a risk tier, severity-ordered indicators and a one-line
explanation.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping, Optional, Sequence

from ..config import Config, ScoringThresholds
from ..constants import BASELINE_SCORE, ERROR_SCORE, RiskTier, Severity, SignalKind
from .features import UrlFeatures
from .rules import Finding, ScoringContext, ScoringRule
from .scoring_models import Indicator, ScoreResult
from .scoring_rules import DEFAULT_RULES
from .signals import ClassifierSignal, SignalOmission, SignalResult

logger = logging.getLogger(__name__)

RECOMMENDATIONS = {
    RiskTier.HIGH: "We strongly recommend not providing any personal information to this website.",
    RiskTier.MEDIUM: "Exercise caution when interacting with this website.",
    RiskTier.LOW: "This website appears to have some minor issues but is likely legitimate.",
    RiskTier.SAFE: "This website appears to be legitimate and safe.",
}


def tier_for(score: float, thresholds: ScoringThresholds) -> RiskTier:
    """Map a score onto the ordered thresholds."""
    if score >= thresholds.safe:
        return RiskTier.SAFE
    if score >= thresholds.suspicious:
        return RiskTier.LOW
    if score >= thresholds.dangerous:
        return RiskTier.MEDIUM
    return RiskTier.HIGH


def clamp_score(score: float) -> int:
    """Clamp to [0, 100] and round half away from zero."""
    bounded = max(0.0, min(100.0, float(score)))
    return int(math.floor(bounded + 0.5))


def order_indicators(indicators: Iterable[Indicator]) -> tuple[Indicator, ...]:
    # sorted() is stable, so rule order is kept within a severity bucket.
    return tuple(sorted(indicators, key=lambda i: int(i.severity)))


def build_explanation(score: int, tier: RiskTier, indicators: Sequence[Indicator]) -> str:
    counts = {s: 0 for s in Severity}
    for indicator in indicators:
        counts[indicator.severity] += 1
    return (
        f"This website has a safety score of {score}/100 ({tier}) with "
        f"{counts[Severity.HIGH]} high-risk, {counts[Severity.MEDIUM]} medium-risk, "
        f"{counts[Severity.LOW]} low-risk and {counts[Severity.SAFE]} safety indicators. "
        f"{RECOMMENDATIONS[tier]}"
    )


class RiskScorer:
    """Applies one scoring rule per feature group / signal kind."""

    def __init__(self, rules: Optional[Sequence[ScoringRule]] = None):
        self._rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def score(
        self,
        features: UrlFeatures,
        signals: Mapping[str, SignalResult],
        config: Config,
        omitted: Sequence[SignalOmission] = (),
    ) -> ScoreResult:
        context = ScoringContext(features=features, signals=signals, config=config)

        total = float(BASELINE_SCORE)
        findings: list[Finding] = []
        for rule in self._rules:
            try:
                rule_result = rule.apply(context)
            except Exception as exc:
                logger.warning(
                    "Rule %s failed for %s: %s",
                    getattr(rule, "name", "unknown"),
                    features.url,
                    exc,
                )
                continue
            total += rule_result.score
            findings.extend(rule_result.findings)

        classifier = context.signal(SignalKind.CLASSIFIER)
        if isinstance(classifier, ClassifierSignal) and classifier.score is not None:
            # Classifier output is authoritative, not blended.
            total = float(classifier.score)

        score = clamp_score(total)
        tier = tier_for(score, config.thresholds)
        indicators = order_indicators(
            Indicator(severity=f.resolved_severity(), message=f.message, check=f.check)
            for f in findings
        )
        return ScoreResult(
            score=score,
            risk_tier=tier,
            indicators=indicators,
            explanation=build_explanation(score, tier, indicators),
            omitted=tuple(o.kind for o in omitted),
        )

    def error_result(self, message: str, config: Config) -> ScoreResult:
        """Neutral result for a URL that could not be analyzed."""
        tier = tier_for(ERROR_SCORE, config.thresholds)
        indicator = Indicator(severity=Severity.MEDIUM, message=message, check="invalid_url")
        return ScoreResult(
            score=ERROR_SCORE,
            risk_tier=tier,
            indicators=(indicator,),
            explanation=f"Error analyzing URL: {message}. {RECOMMENDATIONS[tier]}",
        )
