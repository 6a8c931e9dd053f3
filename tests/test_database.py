"""
Tests for database.py - SQLite key-value backend.
"""

import asyncio

import pytest

from jobtracker.backend import KeyValueBackend, MemoryBackend
from jobtracker.database import Entry, SqliteBackend, get_session, init_database
from jobtracker.models import Status
from jobtracker.store import JobRecordStore


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        db_path = tmp_path / "test.db"
        engine = init_database(db_path)

        with get_session(engine) as session:
            assert session.query(Entry).count() == 0
        engine.dispose()

    def test_init_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()


class TestSqliteBackend:
    """Test the backend contract against SQLite."""

    @pytest.fixture
    def sqlite_backend(self, tmp_path):
        backend = SqliteBackend(tmp_path / "jobs.db")
        yield backend
        backend.close()

    def test_satisfies_protocol(self, sqlite_backend):
        assert isinstance(sqlite_backend, KeyValueBackend)
        assert isinstance(MemoryBackend(), KeyValueBackend)

    async def test_set_and_get(self, sqlite_backend):
        await sqlite_backend.set("job:1", '{"id": "1"}')
        assert await sqlite_backend.get("job:1") == '{"id": "1"}'

    async def test_get_missing(self, sqlite_backend):
        assert await sqlite_backend.get("job:missing") is None

    async def test_set_overwrites_without_duplicating(self, sqlite_backend):
        await sqlite_backend.set("job:1", "first")
        await sqlite_backend.set("job:1", "second")

        assert await sqlite_backend.get("job:1") == "second"
        with get_session(sqlite_backend._engine) as session:
            assert session.query(Entry).filter_by(key="job:1").count() == 1

    async def test_list_by_prefix(self, sqlite_backend):
        for key in ["job:b", "job:a", "note:x", "jobs:y"]:
            await sqlite_backend.set(key, "v")
        assert await sqlite_backend.list("job:") == ["job:a", "job:b"]

    async def test_list_prefix_is_literal(self, sqlite_backend):
        await sqlite_backend.set("a_b:1", "v")
        await sqlite_backend.set("axb:1", "v")
        await sqlite_backend.set("a%b:1", "v")
        assert await sqlite_backend.list("a_b:") == ["a_b:1"]
        assert await sqlite_backend.list("a%b:") == ["a%b:1"]

    async def test_list_prefix_is_case_sensitive(self, sqlite_backend):
        await sqlite_backend.set("JOB:1", "v")
        await sqlite_backend.set("job:2", "v")
        assert await sqlite_backend.list("job:") == ["job:2"]

    async def test_delete(self, sqlite_backend):
        await sqlite_backend.set("job:1", "v")
        await sqlite_backend.delete("job:1")
        assert await sqlite_backend.get("job:1") is None

    async def test_delete_missing_is_noop(self, sqlite_backend):
        await sqlite_backend.delete("job:never")

    async def test_rejects_non_string_values(self, sqlite_backend):
        with pytest.raises(TypeError):
            await sqlite_backend.set("job:1", 123)

    async def test_concurrent_reads(self, sqlite_backend):
        for i in range(10):
            await sqlite_backend.set(f"job:{i}", str(i))
        values = await asyncio.gather(*(sqlite_backend.get(f"job:{i}") for i in range(10)))
        assert values == [str(i) for i in range(10)]

    async def test_data_survives_reopen(self, tmp_path):
        db_path = tmp_path / "jobs.db"
        first = SqliteBackend(db_path)
        await first.set("job:1", "persisted")
        first.close()

        second = SqliteBackend(db_path)
        assert await second.get("job:1") == "persisted"
        second.close()


class TestStoreOnSqlite:
    """End-to-end store operations on a SQLite file."""

    async def test_full_lifecycle(self, tmp_path):
        backend = SqliteBackend(tmp_path / "jobs.db")
        store = JobRecordStore(backend)

        created = await store.create({"company": "Acme", "position": "Engineer"})
        await store.update_status(created.id, "Offer")
        records = await store.list()
        assert len(records) == 1
        assert records[0].status is Status.OFFER

        bundle = store.export_snapshot(records)
        await store.delete(created.id)
        assert await store.list() == []

        report = await store.import_bundle(bundle)
        assert report.success_count == 1
        assert (await store.get(created.id)).status is Status.OFFER
        backend.close()
