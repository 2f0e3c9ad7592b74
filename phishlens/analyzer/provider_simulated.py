"""Deterministic stand-in provider for demos and tests."""

from __future__ import annotations

import asyncio
from typing import Optional

from ..config import Config
from .features import UrlFeatures
from .signals import SignalResult


class SimulatedProvider:
    """Returns a fixed signal, optionally after a delay or by raising."""

    def __init__(
        self,
        result: Optional[SignalResult] = None,
        *,
        name: Optional[str] = None,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ):
        if result is None and name is None:
            raise ValueError("SimulatedProvider needs a result or a name")
        self.result = result
        self.name = name or str(result.kind)
        self.delay = delay
        self.error = error
        self.calls = 0

    async def check(self, url: str, features: UrlFeatures, config: Config) -> SignalResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise RuntimeError(f"{self.name}: no simulated result configured")
        return self.result
