"""Async Data Access Layer for the history table.

Provides `HistoryStore`, the durable append-only record of processed
screenshots, built on `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import aiosqlite

from models.screenshot_record import ScreenshotRecord
from services.errors import NotFoundError, PersistenceError
from utils.database_init import AsyncDatabaseInitializer


class HistoryStore:
    """Data access layer for screenshot history records.

    Writes are serialized through a single lock and committed before
    returning; reads open their own connection and proceed concurrently.
    """

    _COLUMNS = (
        "id",
        "timestamp",
        "image_path",
        "thumbnail",
        "text",
        "answer",
        "title",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer
        self._write_lock = asyncio.Lock()

    async def append(self, record: ScreenshotRecord, *, lock_timeout: Optional[float] = None) -> int:
        """Insert a new history row and return its id.

        `lock_timeout` bounds only the wait for the write slot. Once the
        INSERT has been issued it runs to commit, so a row exists exactly
        when this method returns an id.

        Args:
            record: ScreenshotRecord with `id=None`.
            lock_timeout: Seconds to wait for the write slot; None waits forever.

        Returns:
            The integer primary key of the created row.

        Raises:
            PersistenceError: If the write slot was not acquired in time or
                the row could not be written.
        """
        try:
            await asyncio.wait_for(self._write_lock.acquire(), timeout=lock_timeout)
        except asyncio.TimeoutError as exc:
            raise PersistenceError(f"History write timed out after {lock_timeout:g}s waiting for the database") from exc
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    f"INSERT INTO history ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        record.timestamp,
                        record.image_path,
                        record.thumbnail,
                        record.text,
                        record.answer,
                        record.title or None,
                    ),
                )
                await conn.commit()
                return cur.lastrowid
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to save screenshot record: {exc}") from exc
        finally:
            self._write_lock.release()

    async def recent(self, limit: int) -> List[ScreenshotRecord]:
        """Return at most `limit` records, newest first (ties by descending id)."""
        if limit <= 0:
            return []
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    f"SELECT {self._COLUMN_LIST} FROM history ORDER BY timestamp DESC, id DESC LIMIT ?",
                    (limit,),
                )
                rows = await cur.fetchall()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to read screenshot history: {exc}") from exc
        return [self._row_to_record(r) for r in rows]

    async def latest_id(self) -> int:
        """Return the highest record id in history, or 0 when it is empty."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute("SELECT COALESCE(MAX(id), 0) FROM history")
                row = await cur.fetchone()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to read screenshot history: {exc}") from exc
        return int(row[0])

    async def by_id(self, record_id: int) -> ScreenshotRecord:
        """Return the record for `record_id` or raise NotFoundError."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    f"SELECT {self._COLUMN_LIST} FROM history WHERE id = ?",
                    (record_id,),
                )
                row = await cur.fetchone()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to read screenshot record {record_id}: {exc}") from exc
        if row is None:
            raise NotFoundError(record_id)
        return self._row_to_record(row)

    async def delete(self, record_id: int) -> None:
        """Delete a history row by id; raises NotFoundError if nothing was deleted."""
        async with self._write_lock:
            try:
                async with self._db.connection() as conn:
                    cur = await conn.execute("DELETE FROM history WHERE id = ?", (record_id,))
                    await conn.commit()
                    deleted = cur.rowcount
            except (aiosqlite.Error, OSError) as exc:
                raise PersistenceError(f"Failed to delete screenshot record {record_id}: {exc}") from exc
        if not deleted:
            raise NotFoundError(record_id)

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ScreenshotRecord:
        """Convert a DB row tuple into a ScreenshotRecord, defaulting legacy NULLs."""
        return ScreenshotRecord(
            id=row[0],
            timestamp=float(row[1]),
            image_path=row[2] or "",
            thumbnail=row[3] or "",
            text=row[4] or "",
            answer=row[5] or "",
            title=row[6] or "",
        )
