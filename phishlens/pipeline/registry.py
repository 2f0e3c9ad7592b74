"""Provider registry: builds signal providers from configuration."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..analyzer.provider_base import SignalProvider
from ..analyzer.provider_classifier import RemoteClassifierProvider
from ..analyzer.provider_favicon import FaviconSimilarityProvider
from ..analyzer.provider_heuristics import DomainHeuristicsProvider
from ..analyzer.provider_reputation import DomainReputationProvider
from ..analyzer.provider_ssl import SSLPostureProvider
from ..analyzer.provider_text import PageTextProvider
from ..cache import SignalCache
from ..config import Config
from ..constants import SignalKind

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Config], Optional[SignalProvider]]


def _reputation(config: Config) -> SignalProvider:
    cache = SignalCache(ttl_seconds=config.intel_cache_ttl_hours * 3600, namespace="reputation")
    return DomainReputationProvider(cache=cache)


def _classifier(config: Config) -> Optional[SignalProvider]:
    if not config.classifier_endpoint:
        return None
    # Endpoint is read from each analysis snapshot.
    return RemoteClassifierProvider()


DEFAULT_FACTORIES: dict[str, ProviderFactory] = {
    SignalKind.HEURISTICS.value: lambda config: DomainHeuristicsProvider(),
    SignalKind.SSL.value: lambda config: SSLPostureProvider(),
    SignalKind.TEXT.value: lambda config: PageTextProvider(),
    SignalKind.REPUTATION.value: _reputation,
    SignalKind.FAVICON.value: lambda config: FaviconSimilarityProvider(),
    SignalKind.CLASSIFIER.value: _classifier,
}


class ProviderRegistry:
    """Holds provider instances keyed by signal kind.

    Built once at startup and injected into PageAnalyzer. Which providers run
    for a given analysis is decided by that analysis' config snapshot.
    """

    def __init__(self, providers: Optional[dict[str, SignalProvider]] = None):
        self._providers: dict[str, SignalProvider] = dict(providers or {})

    @classmethod
    def from_config(
        cls,
        config: Config,
        factories: Optional[dict[str, ProviderFactory]] = None,
    ) -> "ProviderRegistry":
        registry = cls()
        for kind, factory in (factories or DEFAULT_FACTORIES).items():
            provider = factory(config)
            if provider is None:
                logger.info(f"Provider '{kind}' not configured; skipping")
                continue
            registry.register(kind, provider)
        return registry

    def register(self, kind: str, provider: SignalProvider) -> None:
        self._providers[str(kind)] = provider

    def get(self, kind: str) -> Optional[SignalProvider]:
        return self._providers.get(str(kind))

    def enabled(self, config: Config) -> dict[str, SignalProvider]:
        """Providers enabled by the given config, in registration order."""
        return {k: p for k, p in self._providers.items() if config.provider_enabled(k)}

    def __contains__(self, kind: str) -> bool:
        return str(kind) in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def build_providers(config: Config) -> ProviderRegistry:
    """Production wiring: every network-backed provider the config can support."""
    return ProviderRegistry.from_config(config)
