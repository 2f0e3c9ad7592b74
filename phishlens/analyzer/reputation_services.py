"""Clients for third-party URL reputation services.

Each client answers ``lookup(url, timeout) -> ServiceVerdict`` and raises
ProviderUnavailableError when the service cannot give an answer.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time

import aiohttp
import httpx

from ..errors import ProviderUnavailableError
from .signals import ServiceVerdict

logger = logging.getLogger(__name__)

USER_AGENT = "PhishLens/0.1"


class SafeBrowsingClient:
    """Google Safe Browsing v4 ``threatMatches:find``."""

    service = "Google Safe Browsing"
    API_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    THREAT_TYPES = (
        "MALWARE",
        "SOCIAL_ENGINEERING",
        "UNWANTED_SOFTWARE",
        "POTENTIALLY_HARMFUL_APPLICATION",
    )

    def __init__(self, api_key: str):
        self.api_key = api_key

    def build_request(self, url: str) -> dict:
        return {
            "client": {"clientId": "phishlens", "clientVersion": "0.1.0"},
            "threatInfo": {
                "threatTypes": list(self.THREAT_TYPES),
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    async def lookup(self, url: str, timeout: float) -> ServiceVerdict:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.API_URL,
                    params={"key": self.api_key},
                    json=self.build_request(url),
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as resp:
                    if resp.status != 200:
                        raise ProviderUnavailableError(self.service, f"HTTP {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderUnavailableError(self.service, str(exc) or type(exc).__name__) from exc

        matches = (data or {}).get("matches") or []
        threat_types = sorted({m.get("threatType", "") for m in matches if isinstance(m, dict)})
        logger.debug(f"Safe Browsing: {url} -> {len(matches)} matches")
        return ServiceVerdict(
            service=self.service,
            flagged=bool(matches),
            detail=", ".join(t for t in threat_types if t),
        )


class VirusTotalClient:
    """VirusTotal v3 URL report.

    Free tier allows 4 requests/minute, so calls are spaced by
    ``min_interval`` seconds.
    """

    service = "VirusTotal"
    API_URL = "https://www.virustotal.com/api/v3/urls/{url_id}"

    def __init__(self, api_key: str, min_interval: float = 15.0):
        self.api_key = api_key
        self.min_interval = min_interval
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    @staticmethod
    def url_id(url: str) -> str:
        return base64.urlsafe_b64encode(url.encode()).decode().strip("=")

    async def _claim_turn(self) -> None:
        """Reserve the next request slot. A lookup that is not due yet fails at once."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request
            if self._last_request and elapsed < self.min_interval:
                wait = self.min_interval - elapsed
                logger.debug(f"VirusTotal rate limit: next request in {wait:.1f}s")
                raise ProviderUnavailableError(self.service, f"rate limited for {wait:.0f}s")
            self._last_request = now

    async def lookup(self, url: str, timeout: float) -> ServiceVerdict:
        await self._claim_turn()
        endpoint = self.API_URL.format(url_id=self.url_id(url))
        headers = {"x-apikey": self.api_key}
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(endpoint, headers=headers, timeout=client_timeout) as resp:
                    if resp.status == 404:
                        return ServiceVerdict(service=self.service, detail="not found")
                    if resp.status == 429:
                        logger.warning("VirusTotal rate limit exceeded")
                        raise ProviderUnavailableError(self.service, "rate limited")
                    if resp.status != 200:
                        raise ProviderUnavailableError(self.service, f"HTTP {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderUnavailableError(self.service, str(exc) or type(exc).__name__) from exc

        stats = (data or {}).get("data", {}).get("attributes", {}).get("last_analysis_stats", {})
        malicious = int(stats.get("malicious", 0) or 0)
        total = sum(int(v or 0) for v in stats.values())
        logger.debug(f"VirusTotal: {url} = {malicious}/{total} malicious")
        return ServiceVerdict(
            service=self.service,
            flagged=malicious > 0,
            detail=f"{malicious}/{total} engines flagged",
        )


class PhishTankClient:
    """PhishTank ``checkurl`` lookup."""

    service = "PhishTank"
    CHECK_URL = "https://checkurl.phishtank.com/checkurl/"

    def __init__(self, api_key: str):
        self.api_key = api_key

    async def lookup(self, url: str, timeout: float) -> ServiceVerdict:
        data = {"url": url, "format": "json", "app_key": self.api_key}
        async with httpx.AsyncClient(timeout=timeout) as client:
            try:
                resp = await client.post(
                    self.CHECK_URL,
                    data=data,
                    headers={"User-Agent": USER_AGENT},
                )
            except httpx.HTTPError as exc:
                raise ProviderUnavailableError(self.service, str(exc) or type(exc).__name__) from exc

        if resp.status_code != 200:
            raise ProviderUnavailableError(self.service, f"HTTP {resp.status_code}")
        try:
            results = (resp.json() or {}).get("results", {})
        except ValueError as exc:
            raise ProviderUnavailableError(self.service, "invalid JSON response") from exc

        listed = bool(results.get("in_database")) and bool(results.get("verified"))
        if listed and results.get("valid") is False:
            listed = False
        return ServiceVerdict(
            service=self.service,
            blacklisted=listed,
            detail="verified phish" if listed else "not listed",
        )
