"""SQLite-backed analysis history."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from ..analyzer.scoring_models import AnalysisResult

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only log of analysis results, capped at the most recent ``limit``."""

    def __init__(self, db_path: Path, limit: int = 100):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.db_path = Path(db_path)
        self.limit = limit
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self):
        """Open the database and create the history table."""
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.executescript(
            """
                CREATE TABLE IF NOT EXISTS analyses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL,
                    score INTEGER NOT NULL,
                    risk_tier TEXT NOT NULL,
                    analyzed_at TIMESTAMP NOT NULL,
                    payload TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_analyses_url ON analyses(url);
            """
        )
        await self._connection.commit()

    async def close(self):
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> "HistoryStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("HistoryStore is not connected")
        return self._connection

    async def append(self, result: AnalysisResult) -> int:
        """Store a result and drop entries beyond the retention limit."""
        conn = self._conn()
        async with self._lock:
            cursor = await conn.execute(
                """
                INSERT INTO analyses (url, score, risk_tier, analyzed_at, payload)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    result.url,
                    result.score,
                    str(result.risk_tier),
                    result.timestamp.isoformat(),
                    json.dumps(result.to_dict()),
                ),
            )
            row_id = cursor.lastrowid
            await conn.execute(
                """
                DELETE FROM analyses WHERE id NOT IN (
                    SELECT id FROM analyses ORDER BY id DESC LIMIT ?
                )
                """,
                (self.limit,),
            )
            await conn.commit()
        logger.debug(f"Stored analysis #{row_id} for {result.url}")
        return row_id

    async def recent(self, limit: Optional[int] = None) -> list[dict]:
        """Most recent results first, as stored dictionaries."""
        conn = self._conn()
        async with conn.execute(
            "SELECT payload FROM analyses ORDER BY id DESC LIMIT ?",
            (limit or self.limit,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [json.loads(row["payload"]) for row in rows]

    async def count(self) -> int:
        conn = self._conn()
        async with conn.execute("SELECT COUNT(*) AS n FROM analyses") as cursor:
            row = await cursor.fetchone()
        return int(row["n"])

    async def clear(self) -> None:
        conn = self._conn()
        async with self._lock:
            await conn.execute("DELETE FROM analyses")
            await conn.commit()
