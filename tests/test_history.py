"""Tests for the SQLite analysis history."""

import pytest

from phishlens.analyzer.scoring_models import AnalysisResult, Indicator
from phishlens.constants import RiskTier, Severity
from phishlens.storage.history import HistoryStore


def _result(url: str, score: int = 80) -> AnalysisResult:
    return AnalysisResult(
        url=url,
        score=score,
        risk_tier=RiskTier.SAFE if score >= 80 else RiskTier.HIGH,
        indicators=(Indicator(severity=Severity.SAFE, message="ok", check="https"),),
        explanation="test",
    )


class TestHistoryStore:
    @pytest.mark.asyncio
    async def test_append_and_recent(self, tmp_path):
        async with HistoryStore(tmp_path / "nested" / "history.db") as store:
            await store.append(_result("https://a.example/"))
            await store.append(_result("https://b.example/", score=20))

            entries = await store.recent()
            assert [e["url"] for e in entries] == ["https://b.example/", "https://a.example/"]
            assert entries[0]["risk_tier"] == "High Risk"
            assert entries[0]["indicators"][0]["check"] == "https"
            assert await store.count() == 2

    @pytest.mark.asyncio
    async def test_retention_limit(self, tmp_path):
        async with HistoryStore(tmp_path / "history.db", limit=3) as store:
            for i in range(5):
                await store.append(_result(f"https://site{i}.example/"))
            assert await store.count() == 3
            entries = await store.recent()
            assert entries[0]["url"] == "https://site4.example/"
            assert entries[-1]["url"] == "https://site2.example/"
            assert len(await store.recent(1)) == 1

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "history.db"
        async with HistoryStore(path) as store:
            await store.append(_result("https://a.example/"))
        async with HistoryStore(path) as store:
            assert await store.count() == 1
            await store.clear()
            assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_requires_connection(self, tmp_path):
        store = HistoryStore(tmp_path / "history.db")
        with pytest.raises(RuntimeError):
            await store.append(_result("https://a.example/"))

    def test_rejects_invalid_limit(self, tmp_path):
        with pytest.raises(ValueError):
            HistoryStore(tmp_path / "history.db", limit=0)
