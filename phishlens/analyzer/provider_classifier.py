"""Remote classifier provider.

Posts the extracted features to a model endpoint that answers
``{"score": 0..100, "explanation": [{"type": "danger", "text": "..."}]}``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging

import aiohttp

from ..config import Config
from ..constants import SignalKind
from ..errors import ProviderUnavailableError
from .features import UrlFeatures
from .signals import ClassifierSignal

logger = logging.getLogger(__name__)


def feature_payload(features: UrlFeatures) -> dict:
    payload = dataclasses.asdict(features)
    if features.content is not None:
        # The excerpt is page content, not a model feature.
        payload["content"].pop("text_excerpt", None)
    return payload


def parse_classifier_response(data) -> ClassifierSignal:
    if not isinstance(data, dict) or data.get("score") is None:
        raise ValueError("response has no score")
    score = float(data["score"])
    items = []
    for item in data.get("explanation") or []:
        if not isinstance(item, dict):
            continue
        text = item.get("text") or item.get("message")
        if text:
            items.append((str(item.get("type") or "info"), str(text)))
    return ClassifierSignal(score=score, explanation=tuple(items), model=str(data.get("model") or ""))


class RemoteClassifierProvider:
    name = SignalKind.CLASSIFIER.value

    def __init__(self, endpoint: str = ""):
        self.endpoint = endpoint

    async def check(self, url: str, features: UrlFeatures, config: Config) -> ClassifierSignal:
        endpoint = self.endpoint or config.classifier_endpoint
        if not endpoint:
            return ClassifierSignal(checked=False, error="No classifier endpoint configured")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    endpoint,
                    json=feature_payload(features),
                    timeout=aiohttp.ClientTimeout(total=config.provider_timeout),
                ) as resp:
                    if resp.status != 200:
                        raise ProviderUnavailableError(self.name, f"HTTP {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderUnavailableError(self.name, str(exc) or type(exc).__name__) from exc

        try:
            signal = parse_classifier_response(data)
        except (TypeError, ValueError) as exc:
            raise ProviderUnavailableError(self.name, f"unusable response: {exc}") from exc
        logger.debug(f"Classifier scored {features.url} at {signal.score}")
        return signal
