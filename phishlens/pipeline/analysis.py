"""Analysis orchestrator for PhishLens."""

from __future__ import annotations

import asyncio
import logging
import time
from types import MappingProxyType
from typing import Optional

from ..analyzer.features import PageSnapshot, UrlFeatures, extract
from ..analyzer.provider_base import SignalProvider
from ..analyzer.scoring_engine import RiskScorer, build_explanation, tier_for
from ..analyzer.scoring_models import AnalysisResult, Indicator
from ..analyzer.signals import SignalOmission, SignalResult
from ..config import Config, ConfigStore
from ..constants import Severity
from ..errors import InvalidUrlError, ProviderTimeoutError
from ..utils.domains import domain_matches
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class PageAnalyzer:
    """Extracts features, fans out to providers, fans in and scores.

    Holds no per-analysis state, so one instance serves concurrent calls.
    """

    def __init__(
        self,
        *,
        config_store: ConfigStore,
        registry: ProviderRegistry,
        scorer: Optional[RiskScorer] = None,
    ):
        self.config_store = config_store
        self.registry = registry
        self.scorer = scorer or RiskScorer()

    async def analyze(self, url: str, snapshot: Optional[PageSnapshot] = None) -> AnalysisResult:
        """Analyze one URL. Never raises for provider failures or bad URLs."""
        config = self.config_store.snapshot()
        started = time.monotonic()

        try:
            features = extract(
                url,
                snapshot,
                keywords=config.suspicious_keywords,
                misspellings=config.misspelling_table(),
            )
        except InvalidUrlError as exc:
            logger.info(f"Cannot analyze {url!r}: {exc.message}")
            return self._error_result(url, exc, config)

        if features.hostname and domain_matches(features.hostname, config.trusted_domains):
            logger.info(f"Trusted domain, skipping providers: {features.hostname}")
            return self._trusted_result(features, config)

        signals, omitted = await self._collect_signals(url, features, config)
        scored = self.scorer.score(features, signals, config, omitted)

        logger.info(
            f"Analysis complete: {features.url} score={scored.score} tier={scored.risk_tier} "
            f"signals={len(signals)} omitted={len(omitted)} "
            f"({time.monotonic() - started:.2f}s)"
        )
        return AnalysisResult(
            url=features.url,
            score=scored.score,
            risk_tier=scored.risk_tier,
            indicators=scored.indicators,
            explanation=scored.explanation,
            raw_signals=MappingProxyType(signals),
            omitted_signals=tuple(omitted),
        )

    async def _run_provider(
        self, kind: str, provider: SignalProvider, url: str, features: UrlFeatures, config: Config
    ) -> SignalResult:
        try:
            return await asyncio.wait_for(
                provider.check(url, features, config), timeout=config.provider_timeout
            )
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(kind, config.provider_timeout) from exc

    async def _collect_signals(
        self, url: str, features: UrlFeatures, config: Config
    ) -> tuple[dict[str, SignalResult], list[SignalOmission]]:
        providers = self.registry.enabled(config)
        if not providers:
            return {}, []

        tasks = {
            kind: asyncio.create_task(self._run_provider(kind, provider, url, features, config))
            for kind, provider in providers.items()
        }
        try:
            _, pending = await asyncio.wait(tasks.values(), timeout=config.analysis_timeout)
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        signals: dict[str, SignalResult] = {}
        omitted: list[SignalOmission] = []
        for kind, task in tasks.items():
            if task in pending:
                logger.warning(
                    f"Provider {kind} missed the {config.analysis_timeout:g}s deadline for {url}"
                )
                omitted.append(SignalOmission(kind=kind, reason="timeout"))
                continue
            if task.cancelled():
                omitted.append(SignalOmission(kind=kind, reason="cancelled"))
                continue
            exc = task.exception()
            if exc is not None:
                logger.warning(f"Provider {kind} failed for {url}: {exc}")
                if isinstance(exc, ProviderTimeoutError):
                    reason = "timeout"
                else:
                    reason = str(exc) or type(exc).__name__
                omitted.append(SignalOmission(kind=kind, reason=reason))
                continue
            signals[kind] = task.result()
        return signals, omitted

    def _trusted_result(self, features: UrlFeatures, config: Config) -> AnalysisResult:
        score = 100
        tier = tier_for(score, config.thresholds)
        domain = features.registered_domain or features.hostname
        indicators = (
            Indicator(
                severity=Severity.SAFE,
                message=f"{domain} is on the trusted domain list",
                check="trusted_domain",
            ),
        )
        return AnalysisResult(
            url=features.url,
            score=score,
            risk_tier=tier,
            indicators=indicators,
            explanation=build_explanation(score, tier, indicators),
            trusted=True,
        )

    def _error_result(self, url: str, exc: InvalidUrlError, config: Config) -> AnalysisResult:
        scored = self.scorer.error_result(exc.message, config)
        return AnalysisResult(
            url=url or "",
            score=scored.score,
            risk_tier=scored.risk_tier,
            indicators=scored.indicators,
            explanation=scored.explanation,
            error=str(exc),
        )
