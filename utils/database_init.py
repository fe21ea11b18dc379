import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict

import aiosqlite

logger = logging.getLogger(__name__)

# Optional columns added after the first release; older files are migrated in place.
OPTIONAL_COLUMNS: Dict[str, str] = {
    "image_path": "TEXT NOT NULL DEFAULT ''",
    "thumbnail": "TEXT NOT NULL DEFAULT ''",
    "title": "TEXT",
}


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite history database.

    - The database file lives at `db_path`; its parent directory is created
      when missing. A RuntimeError is raised if the parent is not a directory.
    - On the first call to `ensure_database()` for a given instance the
      `history` table is created if absent and any optional column missing
      from an older file is added. Existing rows are never discarded.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_path: Path | str) -> None:
        db_path = Path(db_path).expanduser()
        db_dir = db_path.parent

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"Database directory {db_dir} points to a file, not a directory. "
                f"Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = db_path

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Ensure the history schema exists at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute("PRAGMA journal_mode=WAL;")
                        await db.execute(
                            """
                            CREATE TABLE IF NOT EXISTS history (
                                id INTEGER PRIMARY KEY AUTOINCREMENT,
                                timestamp REAL NOT NULL,
                                text TEXT NOT NULL,
                                answer TEXT NOT NULL
                            )
                            """
                        )

                        cur = await db.execute("PRAGMA table_info(history)")
                        cols = await cur.fetchall()
                        col_names = {col[1] for col in cols}
                        for name, ddl in OPTIONAL_COLUMNS.items():
                            if name not in col_names:
                                await db.execute(f"ALTER TABLE history ADD COLUMN {name} {ddl}")
                                logger.info("Added missing column history.%s", name)

                        await db.execute(
                            "CREATE INDEX IF NOT EXISTS idx_history_timestamp ON history(timestamp DESC, id DESC)"
                        )
                        await db.commit()
                    break
                except FileNotFoundError:
                    # On some platforms a transient missing file error may occur; retry a few times.
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(0.1 * attempt)

            self._initialized = True
            logger.info("History database ready at %s", self.db_path)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created/migrated on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
