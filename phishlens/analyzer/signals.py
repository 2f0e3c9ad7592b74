"""Signal result variants, one frozen dataclass per provider kind.

Every variant carries ``kind``, ``checked`` and an optional ``error``. An
unchecked signal means "no data" and contributes nothing to the score.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional, Union

from ..constants import SignalKind


@dataclass(frozen=True)
class HeuristicSignal:
    checked: bool = True
    suspicious_tld: bool = False
    tld: str = ""
    misspellings: tuple[tuple[str, str], ...] = ()
    excessive_subdomains: bool = False
    subdomain_count: int = 0
    keyword_matches: tuple[str, ...] = ()
    keyword_density: str = "none"  # none | weak | strong
    is_data_uri: bool = False
    has_ip: bool = False
    long_url: bool = False
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.HEURISTICS, init=False)


@dataclass(frozen=True)
class SSLSignal:
    checked: bool = True
    has_ssl: bool = False
    security_level: str = "poor"  # poor | good | excellent
    issuer: str = ""
    valid_from: str = ""
    valid_until: str = ""
    is_ev: bool = False
    is_trusted: bool = False
    reason: str = ""
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.SSL, init=False)


@dataclass(frozen=True)
class BrandImpersonation:
    detected_brand: str
    confidence: str = "medium"


@dataclass(frozen=True)
class TextSignal:
    checked: bool = True
    suspicious_phrases: tuple[str, ...] = ()
    urgency_patterns: tuple[str, ...] = ()
    threat_level: str = "low"  # low | medium | high
    urgency_level: str = "low"
    brand_impersonation: Optional[BrandImpersonation] = None
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.TEXT, init=False)

    @property
    def suspicious_phrase_count(self) -> int:
        return len(self.suspicious_phrases)

    @property
    def urgency_count(self) -> int:
        return len(self.urgency_patterns)


@dataclass(frozen=True)
class ServiceVerdict:
    """Answer from one reputation service."""

    service: str
    flagged: bool = False
    blacklisted: bool = False
    detail: str = ""


@dataclass(frozen=True)
class ReputationSignal:
    checked: bool = True
    threat_detected: bool = False
    in_blacklist: bool = False
    reputation: int = 75
    data_sources: tuple[str, ...] = ()
    services: tuple[ServiceVerdict, ...] = ()
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.REPUTATION, init=False)


@dataclass(frozen=True)
class FaviconSignal:
    checked: bool = True
    matches_known_site: bool = False
    similarity_score: float = 0.0
    target_brand: Optional[str] = None
    favicon_url: str = ""
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.FAVICON, init=False)


@dataclass(frozen=True)
class ClassifierSignal:
    checked: bool = True
    score: Optional[float] = None
    explanation: tuple[tuple[str, str], ...] = ()  # (type, text)
    model: str = ""
    error: Optional[str] = None
    kind: SignalKind = field(default=SignalKind.CLASSIFIER, init=False)


@dataclass(frozen=True)
class SignalOmission:
    """A provider that produced nothing: failed, timed out or was cancelled."""

    kind: str
    reason: str


SignalResult = Union[
    HeuristicSignal,
    SSLSignal,
    TextSignal,
    ReputationSignal,
    FaviconSignal,
    ClassifierSignal,
]


def signal_to_dict(signal: SignalResult) -> dict:
    data = asdict(signal)
    data["kind"] = str(signal.kind)
    return data
