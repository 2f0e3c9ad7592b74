"""Domain/URL heuristics provider (no network)."""

from __future__ import annotations

from ..config import Config
from ..constants import SignalKind
from .features import UrlFeatures, find_keywords, find_misspellings
from .signals import HeuristicSignal


def keyword_density(match_count: int) -> str:
    if match_count >= 3:
        return "strong"
    if match_count >= 1:
        return "weak"
    return "none"


def evaluate_heuristics(features: UrlFeatures, config: Config) -> HeuristicSignal:
    """Run the static domain checks against the configured tables."""
    # Recomputed so the tables of this config snapshot apply.
    keywords = find_keywords(features.url, config.suspicious_keywords)
    misspellings = find_misspellings(features.hostname, config.misspelling_table())

    return HeuristicSignal(
        suspicious_tld=bool(features.tld) and features.tld.rsplit(".", 1)[-1] in config.suspicious_tlds,
        tld=features.tld,
        misspellings=misspellings,
        excessive_subdomains=features.subdomain_count > config.max_subdomains,
        subdomain_count=features.subdomain_count,
        keyword_matches=keywords,
        keyword_density=keyword_density(len(keywords)),
        is_data_uri=features.is_data_uri,
        has_ip=features.has_ip,
        long_url=features.url_length > config.max_url_length,
    )


class DomainHeuristicsProvider:
    name = SignalKind.HEURISTICS.value

    async def check(self, url: str, features: UrlFeatures, config: Config) -> HeuristicSignal:
        return evaluate_heuristics(features, config)
