from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger("weatherstation.hub.daily_summary")

SUMMARY_COLUMNS = ("temp_high_c", "temp_low_c", "humidity_high", "humidity_low", "rain_in")


@dataclass(frozen=True, slots=True)
class DailySummaryRecord:
    """Summary of one local calendar day, keyed by the day's local-midnight timestamp."""

    day_ts: int
    temp_high_c: Optional[float]
    temp_low_c: Optional[float]
    humidity_high: Optional[float]
    humidity_low: Optional[float]
    rain_in: Optional[float]

    def as_row(self) -> Dict[str, Any]:
        return {
            "day_ts": self.day_ts,
            "temp_high_c": self.temp_high_c,
            "temp_low_c": self.temp_low_c,
            "humidity_high": self.humidity_high,
            "humidity_low": self.humidity_low,
            "rain_in": self.rain_in,
        }


class DailySummaryStore:
    """SQLite table with one row per day; rows are overwritten, never appended."""

    def __init__(self, *, db_path: Path) -> None:
        self._db_path = db_path
        self._lock = asyncio.Lock()
        self._available = False
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._initialize()
            self._available = True
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Daily summary store unavailable at %s: %s", self._db_path, exc)

    @property
    def available(self) -> bool:
        return self._available

    @property
    def path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _initialize(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS daily_weather (
                    day_ts INTEGER PRIMARY KEY,
                    temp_high_c REAL,
                    temp_low_c REAL,
                    humidity_high REAL,
                    humidity_low REAL,
                    rain_in REAL
                );
                """
            )
            conn.commit()
        finally:
            conn.close()

    async def upsert(self, record: DailySummaryRecord) -> bool:
        """Insert or replace the row for ``record.day_ts``; False when the write failed."""
        if not self._available:
            logger.warning("Dropping daily summary for %s: store unavailable", record.day_ts)
            return False
        async with self._lock:
            try:
                await asyncio.to_thread(self._upsert_row, record)
            except sqlite3.Error as exc:
                logger.warning("Failed to write daily summary for %s: %s", record.day_ts, exc)
                return False
        logger.info("Stored daily summary for day %s", record.day_ts)
        return True

    def _upsert_row(self, record: DailySummaryRecord) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO daily_weather
                    (day_ts, temp_high_c, temp_low_c, humidity_high, humidity_low, rain_in)
                VALUES
                    (:day_ts, :temp_high_c, :temp_low_c, :humidity_high, :humidity_low, :rain_in)
                ON CONFLICT(day_ts) DO UPDATE SET
                    temp_high_c=excluded.temp_high_c,
                    temp_low_c=excluded.temp_low_c,
                    humidity_high=excluded.humidity_high,
                    humidity_low=excluded.humidity_low,
                    rain_in=excluded.rain_in;
                """,
                record.as_row(),
            )
            conn.commit()
        finally:
            conn.close()

    async def query(
        self,
        *,
        columns: Sequence[str],
        since_ts: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Rows ordered by day ascending, each holding ``day_ts`` plus ``columns``.

        ``since_ts`` filters ``day_ts >= since_ts``; ``limit``/``offset`` page the
        result. Missing values come back as ``None``.
        """
        if not self._available:
            return []
        unknown = [column for column in columns if column not in SUMMARY_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown summary columns: {', '.join(unknown)}")
        try:
            return await asyncio.to_thread(self._select_rows, tuple(columns), since_ts, limit, offset)
        except sqlite3.Error as exc:
            logger.warning("Daily summary query failed: %s", exc)
            return []

    def _select_rows(
        self,
        columns: tuple[str, ...],
        since_ts: Optional[int],
        limit: Optional[int],
        offset: Optional[int],
    ) -> List[Dict[str, Any]]:
        params: List[Any] = []
        query = f"SELECT day_ts{''.join(', ' + column for column in columns)} FROM daily_weather"
        if since_ts is not None:
            query += " WHERE day_ts >= ?"
            params.append(int(since_ts))
        query += " ORDER BY day_ts ASC"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([int(limit), int(offset or 0)])

        conn = self._connect()
        try:
            return [dict(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    async def clear(self) -> None:
        if not self._available:
            return
        async with self._lock:
            await asyncio.to_thread(self._truncate)

    def _truncate(self) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM daily_weather;")
            conn.commit()
        finally:
            conn.close()


__all__ = ["DailySummaryRecord", "DailySummaryStore", "SUMMARY_COLUMNS"]
