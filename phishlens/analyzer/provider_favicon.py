"""Favicon similarity provider."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import urljoin, urlparse

import aiohttp
from PIL import UnidentifiedImageError

from ..cache import SignalCache
from ..config import Config
from ..constants import SignalKind
from ..errors import ProviderUnavailableError
from ..utils.domains import domain_matches
from .favicon_match import BrandFingerprint, best_match, compute_phash, load_fingerprints
from .features import UrlFeatures
from .signals import FaviconSignal

logger = logging.getLogger(__name__)

MAX_FAVICON_BYTES = 512 * 1024


def favicon_url(features: UrlFeatures) -> str:
    """Page-declared icon if captured, else the conventional /favicon.ico."""
    if features.content and features.content.favicon_href:
        href = features.content.favicon_href
        if not href.startswith("data:"):
            try:
                return urljoin(features.url, href)
            except ValueError:
                logger.debug(f"Ignoring malformed favicon href {href!r}")
    parsed = urlparse(features.url)
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


class FaviconSimilarityProvider:
    name = SignalKind.FAVICON.value

    def __init__(
        self,
        fingerprints: Optional[Sequence[BrandFingerprint]] = None,
        cache: Optional[SignalCache] = None,
    ):
        self._fixed = list(fingerprints) if fingerprints is not None else None
        self._loaded: dict[Path, list[BrandFingerprint]] = {}
        self.cache = cache or SignalCache(ttl_seconds=6 * 3600, namespace="favicon")

    def fingerprints_for(self, config: Config) -> list[BrandFingerprint]:
        if self._fixed is not None:
            return self._fixed
        path = config.favicon_fingerprints
        if not path:
            return []
        if path not in self._loaded:
            self._loaded[path] = load_fingerprints(path)
            if self._loaded[path]:
                logger.info(f"Loaded {len(self._loaded[path])} favicon fingerprints from {path}")
            else:
                logger.warning(f"No favicon fingerprints in {path}; favicon matching is inactive")
        return self._loaded[path]

    async def fetch(self, url: str, timeout: float) -> bytes:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                    if resp.status != 200:
                        raise ProviderUnavailableError(self.name, f"favicon HTTP {resp.status}")
                    data = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderUnavailableError(self.name, f"favicon fetch failed: {exc}") from exc
        if not data:
            raise ProviderUnavailableError(self.name, "empty favicon")
        return data[:MAX_FAVICON_BYTES]

    async def check(self, url: str, features: UrlFeatures, config: Config) -> FaviconSignal:
        fingerprints = self.fingerprints_for(config)
        if not fingerprints:
            return FaviconSignal(checked=False, error="No favicon fingerprints configured")
        if features.scheme not in {"http", "https"} or not features.hostname:
            return FaviconSignal(checked=False, error="No favicon for this URL scheme")

        icon_url = favicon_url(features)

        async def fetch_hash():
            data = await self.fetch(icon_url, config.provider_timeout)
            try:
                return compute_phash(data)
            except (UnidentifiedImageError, OSError, ValueError) as exc:
                raise ProviderUnavailableError(self.name, f"undecodable favicon: {exc}") from exc

        phash = await self.cache.get_or_fetch(icon_url, fetch_hash)

        match, similarity = best_match(phash, fingerprints)
        similarity = round(similarity, 1)
        if (
            match is not None
            and similarity >= config.favicon_similarity_threshold
            and not domain_matches(features.hostname, match.domains)
        ):
            return FaviconSignal(
                matches_known_site=True,
                similarity_score=similarity,
                target_brand=match.brand,
                favicon_url=icon_url,
            )
        return FaviconSignal(similarity_score=similarity, favicon_url=icon_url)
