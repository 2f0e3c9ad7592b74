"""Centralized constants for PhishLens.

Enums shared by the scoring engine, the orchestrator and the CLI.
"""

from enum import Enum, IntEnum


class Severity(IntEnum):
    """Indicator severity. Lower rank is displayed first."""

    HIGH = 0
    MEDIUM = 1
    LOW = 2
    SAFE = 3

    @classmethod
    def from_string(cls, value: str | None) -> "Severity":
        """Convert a severity label (or UI detail type) to enum, defaulting to LOW."""
        if not value:
            return cls.LOW
        mapping = {
            "high": cls.HIGH,
            "danger": cls.HIGH,
            "medium": cls.MEDIUM,
            "warning": cls.MEDIUM,
            "low": cls.LOW,
            "info": cls.LOW,
            "safe": cls.SAFE,
        }
        return mapping.get(value.lower(), cls.LOW)

    @classmethod
    def for_adjustment(cls, points: float) -> "Severity":
        """Severity implied by the sign and size of a score adjustment."""
        if points <= -15:
            return cls.HIGH
        if points <= -5:
            return cls.MEDIUM
        if points < 0:
            return cls.LOW
        return cls.SAFE

    def __str__(self) -> str:
        return self.name.lower()


class RiskTier(str, Enum):
    """Risk tiers derived from the numeric safety score."""

    SAFE = "Safe"
    LOW = "Low Risk"
    MEDIUM = "Medium Risk"
    HIGH = "High Risk"

    def __str__(self) -> str:
        return self.value


class SignalKind(str, Enum):
    """Tags for the signal provider result variants."""

    HEURISTICS = "heuristics"
    SSL = "ssl"
    TEXT = "text"
    REPUTATION = "reputation"
    FAVICON = "favicon"
    CLASSIFIER = "classifier"

    def __str__(self) -> str:
        return self.value


ALL_SIGNAL_KINDS = frozenset(kind.value for kind in SignalKind)

BASELINE_SCORE = 70
ERROR_SCORE = 50
MAX_TEXT_CHARS = 20_000
