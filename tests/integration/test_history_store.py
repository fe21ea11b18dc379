import asyncio
import sqlite3
from pathlib import Path

import pytest

from dal.history_dal import HistoryStore
from models.screenshot_record import ScreenshotRecord
from services.errors import NotFoundError, PersistenceError
from utils.database_init import AsyncDatabaseInitializer


def _record(timestamp: float, text: str = "t", **kwargs) -> ScreenshotRecord:
    return ScreenshotRecord(id=None, timestamp=timestamp, text=text, answer=f"answer for {text}", **kwargs)


def _store(db_path: Path) -> HistoryStore:
    return HistoryStore(AsyncDatabaseInitializer(db_path))


@pytest.mark.integration
class TestHistoryStoreAppend:
    def test_append_returns_increasing_ids(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            return [await store.append(_record(float(i))) for i in range(3)]

        ids = asyncio.run(scenario())
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_round_trip_through_by_id(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            record_id = await store.append(_record(1700000000.5, "hello", title="Greeting", thumbnail="data:x"))
            return record_id, await store.by_id(record_id)

        record_id, record = asyncio.run(scenario())
        assert record.id == record_id
        assert record.timestamp == 1700000000.5
        assert (record.text, record.answer, record.title, record.thumbnail) == (
            "hello",
            "answer for hello",
            "Greeting",
            "data:x",
        )
        assert record.image_path == ""

    def test_concurrent_appends_all_land(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            ids = await asyncio.gather(*(store.append(_record(float(i))) for i in range(20)))
            return ids, await store.recent(100)

        ids, records = asyncio.run(scenario())
        assert len(set(ids)) == 20
        assert len(records) == 20

    def test_file_persists_across_initializers(self, db_path: Path) -> None:
        asyncio.run(_store(db_path).append(_record(1.0, "kept")))
        records = asyncio.run(_store(db_path).recent(10))
        assert [r.text for r in records] == ["kept"]

    def test_zero_timestamp_is_stored_as_given(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            record_id = await store.append(_record(0.0))
            return await store.by_id(record_id)

        assert asyncio.run(scenario()).timestamp == 0.0

    def test_lock_timeout_leaves_no_row(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            await store._write_lock.acquire()
            try:
                with pytest.raises(PersistenceError, match="timed out"):
                    await store.append(_record(1.0), lock_timeout=0.01)
            finally:
                store._write_lock.release()
            return await store.recent(10), store._write_lock.locked()

        assert asyncio.run(scenario()) == ([], False)


@pytest.mark.integration
class TestHistoryStoreRecent:
    def test_newest_first_with_ties_by_id(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            first = await store.append(_record(100.0, "a"))
            second = await store.append(_record(100.0, "b"))
            await store.append(_record(50.0, "old"))
            await store.append(_record(200.0, "new"))
            return first, second, await store.recent(10)

        first, second, records = asyncio.run(scenario())
        assert [r.text for r in records] == ["new", "b", "a", "old"]
        assert records[1].id == second and records[2].id == first

    def test_limit_is_respected(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            for i in range(5):
                await store.append(_record(float(i)))
            return await store.recent(2), await store.recent(0), await store.recent(-1)

        two, zero, negative = asyncio.run(scenario())
        assert [r.timestamp for r in two] == [4.0, 3.0]
        assert zero == [] and negative == []

    def test_empty_history(self, db_path: Path) -> None:
        assert asyncio.run(_store(db_path).recent(10)) == []

    def test_latest_id(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            empty = await store.latest_id()
            await store.append(_record(5.0))
            second = await store.append(_record(1.0))
            return empty, await store.latest_id(), second

        empty, latest, second = asyncio.run(scenario())
        assert empty == 0
        assert latest == second


@pytest.mark.integration
class TestHistoryStoreLookupAndDelete:
    def test_missing_id_raises_not_found(self, db_path: Path) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(_store(db_path).by_id(42))
        assert exc_info.value.record_id == 42

    def test_delete_removes_record(self, db_path: Path) -> None:
        async def scenario():
            store = _store(db_path)
            record_id = await store.append(_record(1.0))
            await store.delete(record_id)
            with pytest.raises(NotFoundError):
                await store.by_id(record_id)
            with pytest.raises(NotFoundError):
                await store.delete(record_id)
            return await store.recent(10)

        assert asyncio.run(scenario()) == []


@pytest.mark.integration
class TestSchemaMigration:
    def test_legacy_rows_gain_empty_optional_fields(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(db_path)
        conn.execute(
            "CREATE TABLE history (id INTEGER PRIMARY KEY AUTOINCREMENT, timestamp REAL NOT NULL, "
            "text TEXT NOT NULL, answer TEXT NOT NULL)"
        )
        conn.execute("INSERT INTO history (timestamp, text, answer) VALUES (?, ?, ?)", (10.0, "legacy", "old answer"))
        conn.commit()
        conn.close()

        async def scenario():
            store = _store(db_path)
            legacy = await store.recent(10)
            await store.append(_record(20.0, "fresh", title="New"))
            return legacy, await store.recent(10)

        legacy, both = asyncio.run(scenario())
        assert legacy[0].text == "legacy"
        assert (legacy[0].title, legacy[0].thumbnail, legacy[0].image_path) == ("", "", "")
        assert [r.text for r in both] == ["fresh", "legacy"]
        assert both[0].title == "New"

    def test_database_dir_that_is_a_file_is_rejected(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(RuntimeError, match="points to a file"):
            AsyncDatabaseInitializer(blocker / "screensage.db")

    def test_unreadable_table_raises_persistence_error(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE history (id INTEGER PRIMARY KEY, timestamp REAL NOT NULL, text TEXT, answer TEXT)")
        conn.commit()
        conn.close()

        async def scenario():
            initializer = AsyncDatabaseInitializer(db_path)
            store = HistoryStore(initializer)
            await initializer.ensure_database()
            async with initializer.connection() as c:
                await c.execute("DROP TABLE history")
                await c.commit()
            await store.recent(10)

        with pytest.raises(PersistenceError):
            asyncio.run(scenario())
