"""Analysis orchestration."""

from .analysis import PageAnalyzer
from .registry import ProviderRegistry, build_providers

__all__ = ["PageAnalyzer", "ProviderRegistry", "build_providers"]
