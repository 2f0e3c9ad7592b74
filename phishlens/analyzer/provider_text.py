"""Page text analysis: social-engineering phrases, urgency and brand mentions."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from ..config import Config
from ..constants import SignalKind
from ..utils.domains import domain_matches
from .features import UrlFeatures
from .signals import BrandImpersonation, TextSignal

SUSPICIOUS_PHRASES = (
    "verify your account",
    "confirm your identity",
    "account suspended",
    "unusual activity",
    "security alert",
    "update your information",
    "limited access",
    "verify your identity",
    "your account has been limited",
    "click here immediately",
    "urgent action required",
    "login to continue",
    "unauthorized login attempt",
    "suspicious sign-in activity",
    "confirm payment",
    "payment declined",
    "update billing information",
    "verify credit card",
    "account compromised",
    "security breach",
)

URGENCY_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"urgent",
        r"immediately",
        r"warning",
        r"alert",
        r"limited time",
        r"expir(e|ed|es|ing)",
        r"suspend(ed)?",
        r"restricted",
        r"blocked",
        r"unauthorized",
        r"compromised",
        r"required action",
        r"must verify",
        r"within 24 hours",
        r"account access",
        r"security breach",
        r"unusual activity",
    )
)

# brand -> (mention patterns, domains the brand legitimately serves from)
BRAND_PATTERNS: tuple[tuple[str, tuple[re.Pattern, ...], frozenset[str]], ...] = tuple(
    (name, tuple(re.compile(p, re.IGNORECASE) for p in patterns), frozenset(domains))
    for name, patterns, domains in (
        ("PayPal", (r"\bpay[\s-]?pal\b",), {"paypal.com"}),
        ("Apple", (r"\bapple\b", r"\bicloud\b", r"\bitunes\b"), {"apple.com", "icloud.com"}),
        (
            "Microsoft",
            (r"\bmicrosoft\b", r"\boffice365\b", r"\boutlook\b", r"\bonedrive\b"),
            {"microsoft.com", "live.com", "outlook.com", "office.com", "microsoftonline.com"},
        ),
        ("Google", (r"\bgoogle\b", r"\bgmail\b", r"\byoutube\b"), {"google.com", "gmail.com", "youtube.com"}),
        ("Amazon", (r"\bamazon\b", r"\baws\b"), {"amazon.com", "aws.amazon.com"}),
        ("Facebook", (r"\bfacebook\b", r"\bfb\s"), {"facebook.com", "fb.com"}),
        ("Instagram", (r"\binstagram\b", r"\binsta\b"), {"instagram.com"}),
        ("Netflix", (r"\bnetflix\b",), {"netflix.com"}),
        ("Bank of America", (r"\bbank\s+of\s+america\b", r"\bbankofamerica\b"), {"bankofamerica.com"}),
        ("Chase", (r"\bchase\s+bank\b", r"\bjpmorgan\s+chase\b"), {"chase.com"}),
        ("Wells Fargo", (r"\bwells\s+fargo\b", r"\bwellsfargo\b"), {"wellsfargo.com"}),
    )
)


def _tier(count: int, high_above: int, medium_from: int) -> str:
    if count > high_above:
        return "high"
    if count >= medium_from:
        return "medium"
    return "low"


def detect_brand_impersonation(
    text: str, hostname: str = "", brands: Iterable = BRAND_PATTERNS
) -> Optional[BrandImpersonation]:
    """First brand mentioned in the text, unless the page is that brand's own site."""
    if not text:
        return None
    for name, patterns, domains in brands:
        if any(p.search(text) for p in patterns):
            if hostname and domain_matches(hostname, domains):
                continue
            return BrandImpersonation(detected_brand=name, confidence="medium")
    return None


def analyze_page_text(text: str, hostname: str = "") -> TextSignal:
    if not text:
        return TextSignal(checked=False)

    lowered = text.lower()
    phrases = tuple(p for p in SUSPICIOUS_PHRASES if p in lowered)
    urgency = tuple(p.pattern for p in URGENCY_PATTERNS if p.search(lowered))

    return TextSignal(
        suspicious_phrases=phrases,
        urgency_patterns=urgency,
        threat_level=_tier(len(phrases), high_above=3, medium_from=2),
        urgency_level=_tier(len(urgency), high_above=2, medium_from=1),
        brand_impersonation=detect_brand_impersonation(text, hostname),
    )


class PageTextProvider:
    name = SignalKind.TEXT.value

    async def check(self, url: str, features: UrlFeatures, config: Config) -> TextSignal:
        return analyze_page_text(features.page_text, features.hostname)
