"""Storage modules for PhishLens."""

from .history import HistoryStore

__all__ = ["HistoryStore"]
