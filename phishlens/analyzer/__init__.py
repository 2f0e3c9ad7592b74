"""Feature extraction, signal providers and risk scoring."""

from .features import ContentFeatures, PageSnapshot, UrlFeatures, extract
from .scoring_engine import RiskScorer, tier_for
from .scoring_models import AnalysisResult, Indicator, ScoreResult

__all__ = [
    "ContentFeatures",
    "PageSnapshot",
    "UrlFeatures",
    "extract",
    "RiskScorer",
    "tier_for",
    "AnalysisResult",
    "Indicator",
    "ScoreResult",
]
