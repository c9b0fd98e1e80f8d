"""AnalyticsStore — per-user daily chat usage counters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import aiosqlite

from src.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS user_analytics (
    user_id TEXT NOT NULL,
    day TEXT NOT NULL,
    messages_exchanged INTEGER NOT NULL DEFAULT 0,
    tokens_used INTEGER NOT NULL DEFAULT 0,
    average_response_time REAL NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, day)
)
"""


@dataclass
class DailyStats:
    user_id: str
    day: str
    messages_exchanged: int
    tokens_used: int
    average_response_time: float


class AnalyticsStore:
    """Persists daily usage stats in SQLite.

    Singleton accessed via ``AnalyticsStore.get()``.  Pass an explicit
    *db_path* for test isolation.
    """

    _instance: AnalyticsStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @classmethod
    def get(cls) -> AnalyticsStore:
        """Return the shared AnalyticsStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    async def track_chat_message(
        self,
        user_id: str,
        tokens_used: int,
        response_time: float,
        day: date | None = None,
    ) -> DailyStats:
        """Count one exchange and fold its response time into the daily mean.

        The mean is weighted by message count, so every exchange in the day
        contributes equally.
        """
        key = (day or datetime.now(UTC).date()).isoformat()
        db = await self._connect()
        try:
            await db.execute("BEGIN IMMEDIATE")
            cursor = await db.execute(
                "SELECT messages_exchanged, tokens_used, average_response_time "
                "FROM user_analytics WHERE user_id = ? AND day = ?",
                (user_id, key),
            )
            row = await cursor.fetchone()
            count, tokens, mean = row if row else (0, 0, 0.0)

            count += 1
            tokens += tokens_used
            mean += (response_time - mean) / count

            await db.execute(
                """
                INSERT INTO user_analytics
                    (user_id, day, messages_exchanged, tokens_used, average_response_time)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, day) DO UPDATE SET
                    messages_exchanged = excluded.messages_exchanged,
                    tokens_used = excluded.tokens_used,
                    average_response_time = excluded.average_response_time
                """,
                (user_id, key, count, tokens, mean),
            )
            await db.commit()
            return DailyStats(user_id, key, count, tokens, mean)
        except Exception:
            await db.rollback()
            raise
        finally:
            await db.close()

    async def get_daily_stats(self, user_id: str, day: date) -> DailyStats | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT messages_exchanged, tokens_used, average_response_time "
                "FROM user_analytics WHERE user_id = ? AND day = ?",
                (user_id, day.isoformat()),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return DailyStats(user_id, day.isoformat(), row[0], row[1], row[2])
        finally:
            await db.close()
