"""Signal provider interface."""

from __future__ import annotations

from typing import Protocol

from ..config import Config
from .features import UrlFeatures
from .signals import SignalResult


class SignalProvider(Protocol):
    """Interface for signal providers.

    ``check`` raises ProviderUnavailableError (or any exception) on failure;
    the orchestrator records that as an omission.
    """

    name: str

    async def check(
        self, url: str, features: UrlFeatures, config: Config
    ) -> SignalResult:  # pragma: no cover - interface
        ...
