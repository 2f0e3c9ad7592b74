"""Domain reputation provider aggregating third-party services."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional, Sequence

from ..cache import SignalCache
from ..config import Config
from ..constants import SignalKind
from ..errors import ProviderUnavailableError
from .features import UrlFeatures
from .reputation_services import PhishTankClient, SafeBrowsingClient, VirusTotalClient
from .signals import ReputationSignal, ServiceVerdict

logger = logging.getLogger(__name__)

FLAGGED_REPUTATION = 25
CLEAN_REPUTATION = 75


def aggregate_verdicts(verdicts: Sequence[ServiceVerdict]) -> ReputationSignal:
    """Fold per-service answers into one reputation signal."""
    threat = any(v.flagged for v in verdicts)
    blacklisted = any(v.blacklisted for v in verdicts)
    return ReputationSignal(
        threat_detected=threat,
        in_blacklist=blacklisted,
        reputation=FLAGGED_REPUTATION if threat or blacklisted else CLEAN_REPUTATION,
        data_sources=tuple(v.service for v in verdicts),
        services=tuple(verdicts),
    )


class DomainReputationProvider:
    """Queries every configured reputation service concurrently.

    With no service configured the signal is reported unchecked instead of
    inventing a verdict.
    """

    name = SignalKind.REPUTATION.value

    def __init__(
        self,
        clients: Optional[Sequence] = None,
        cache: Optional[SignalCache] = None,
        vt_min_interval: float = 15.0,
    ):
        self._fixed_clients = list(clients) if clients is not None else None
        self._vt_min_interval = vt_min_interval
        self._client_pool: dict[tuple[str, str], object] = {}
        self.cache = cache or SignalCache(ttl_seconds=24 * 3600, namespace="reputation")

    def _client(self, key: tuple[str, str], factory):
        # Clients are reused across analyses so the VirusTotal spacing holds.
        if key not in self._client_pool:
            self._client_pool[key] = factory()
        return self._client_pool[key]

    def clients_for(self, config: Config) -> list:
        if self._fixed_clients is not None:
            return self._fixed_clients
        clients = []
        if config.safe_browsing_api_key:
            key = config.safe_browsing_api_key
            clients.append(self._client(("safebrowsing", key), lambda: SafeBrowsingClient(key)))
        if config.virustotal_api_key:
            key = config.virustotal_api_key
            clients.append(
                self._client(
                    ("virustotal", key),
                    lambda: VirusTotalClient(key, min_interval=self._vt_min_interval),
                )
            )
        if config.phishtank_api_key:
            key = config.phishtank_api_key
            clients.append(self._client(("phishtank", key), lambda: PhishTankClient(key)))
        return clients

    async def check(self, url: str, features: UrlFeatures, config: Config) -> ReputationSignal:
        clients = self.clients_for(config)
        if not clients:
            return ReputationSignal(checked=False, error="No reputation service configured")

        cached = self.cache.get(features.url)
        if cached is not None:
            return cached

        results = await asyncio.gather(
            *(c.lookup(features.url, config.provider_timeout) for c in clients),
            return_exceptions=True,
        )

        verdicts: list[ServiceVerdict] = []
        failures: list[str] = []
        for client, result in zip(clients, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.debug(f"Reputation lookup failed ({client.service}): {result}")
                failures.append(f"{client.service}: {result}")
                continue
            verdicts.append(result)

        if not verdicts:
            raise ProviderUnavailableError(self.name, "; ".join(failures))

        signal = aggregate_verdicts(verdicts)
        if failures:
            signal = dataclasses.replace(signal, error="; ".join(failures))
        else:
            self.cache.set(features.url, signal)
        return signal
